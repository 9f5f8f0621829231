#!/usr/bin/env python3
"""Structured queries against git's machine-readable status output.

Everything here parses NUL-terminated (``-z``) output, so paths with spaces,
quotes or non-ASCII characters come through verbatim.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple

from git_runner import GitRunner

STAGE_BASE = 1
STAGE_OURS = 2
STAGE_THEIRS = 3


class FileState(Enum):
    """Per-side state of a path, from porcelain v1 status letters."""
    UNMODIFIED = " "
    MODIFIED = "M"
    ADDED = "A"
    DELETED = "D"
    RENAMED = "R"
    COPIED = "C"
    TYPE_CHANGED = "T"
    UNMERGED = "U"
    UNTRACKED = "?"
    IGNORED = "!"


class ConflictKind(Enum):
    """Conflict classes as git reports them for unmerged paths."""
    BOTH_MODIFIED = "UU"
    BOTH_ADDED = "AA"
    DELETED_BY_US = "DU"
    DELETED_BY_THEM = "UD"
    BOTH_DELETED = "DD"
    ADDED_BY_US = "AU"
    ADDED_BY_THEM = "UA"


_KIND_BY_STAGES: Dict[FrozenSet[int], ConflictKind] = {
    frozenset({STAGE_BASE, STAGE_OURS, STAGE_THEIRS}): ConflictKind.BOTH_MODIFIED,
    frozenset({STAGE_OURS, STAGE_THEIRS}): ConflictKind.BOTH_ADDED,
    frozenset({STAGE_BASE, STAGE_THEIRS}): ConflictKind.DELETED_BY_US,
    frozenset({STAGE_BASE, STAGE_OURS}): ConflictKind.DELETED_BY_THEM,
    frozenset({STAGE_BASE}): ConflictKind.BOTH_DELETED,
    frozenset({STAGE_OURS}): ConflictKind.ADDED_BY_US,
    frozenset({STAGE_THEIRS}): ConflictKind.ADDED_BY_THEM,
}

_UNMERGED_CODES = {kind.value for kind in ConflictKind}


@dataclass
class ConflictEntry:
    """An unmerged path and the index stages present for it."""
    path: str
    stages: FrozenSet[int] = field(default_factory=frozenset)

    @property
    def kind(self) -> ConflictKind:
        return _KIND_BY_STAGES[self.stages]

    @property
    def has_ours(self) -> bool:
        return STAGE_OURS in self.stages

    @property
    def has_theirs(self) -> bool:
        return STAGE_THEIRS in self.stages


@dataclass
class StatusEntry:
    """One line of ``git status --porcelain=v1``."""
    path: str
    index_state: FileState
    worktree_state: FileState
    orig_path: Optional[str] = None

    @property
    def code(self) -> str:
        return self.index_state.value + self.worktree_state.value

    @property
    def is_unmerged(self) -> bool:
        return self.code in _UNMERGED_CODES

    @property
    def conflict_kind(self) -> Optional[ConflictKind]:
        if not self.is_unmerged:
            return None
        return ConflictKind(self.code)

    @property
    def deleted_by_us(self) -> bool:
        return self.conflict_kind in (
            ConflictKind.DELETED_BY_US,
            ConflictKind.BOTH_DELETED,
        )


def parse_unmerged(output: str) -> List[ConflictEntry]:
    """Parse ``git ls-files -u -z`` into one entry per path, sorted by path."""
    stages: Dict[str, set] = {}
    for record in output.split("\0"):
        if not record:
            continue
        meta, _, path = record.partition("\t")
        _mode, _sha, stage = meta.split()
        stages.setdefault(path, set()).add(int(stage))
    return [
        ConflictEntry(path=path, stages=frozenset(found))
        for path, found in sorted(stages.items())
    ]


def parse_porcelain(output: str) -> List[StatusEntry]:
    """Parse ``git status --porcelain=v1 -z``.

    Renames and copies are followed by an extra NUL-terminated field holding
    the original path.
    """
    entries: List[StatusEntry] = []
    records = output.split("\0")
    i = 0
    while i < len(records):
        record = records[i]
        i += 1
        if not record:
            continue
        x, y, path = record[0], record[1], record[3:]
        entry = StatusEntry(path=path, index_state=FileState(x), worktree_state=FileState(y))
        if x in ("R", "C"):
            entry.orig_path = records[i]
            i += 1
        entries.append(entry)
    return entries


def list_conflicts(runner: GitRunner) -> List[ConflictEntry]:
    return parse_unmerged(runner.run("ls-files", "-u", "-z", quiet=True).stdout)


def list_status(runner: GitRunner) -> List[StatusEntry]:
    result = runner.run(
        "status", "--porcelain=v1", "-z", "--untracked-files=all", quiet=True
    )
    return parse_porcelain(result.stdout)


def status_by_path(runner: GitRunner) -> Dict[str, StatusEntry]:
    return {entry.path: entry for entry in list_status(runner)}


def is_clean(runner: GitRunner) -> bool:
    """True when the working tree and index match the last commit."""
    return not list_status(runner)


def ref_exists(runner: GitRunner, ref: str) -> bool:
    result = runner.run(
        "rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}", check=False, quiet=True
    )
    return result.returncode == 0


def ahead_behind(runner: GitRunner, local: str, upstream: str) -> Tuple[int, int]:
    """Return (commits only on local, commits only on upstream)."""
    counts = runner.output("rev-list", "--left-right", "--count", f"{local}...{upstream}")
    ahead, behind = counts.split()
    return int(ahead), int(behind)
