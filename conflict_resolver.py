#!/usr/bin/env python3
"""Resolve merge conflicts by keeping our side of every conflicted path."""

from __future__ import annotations

import os
from enum import Enum
from typing import Dict, List

from git_runner import GitRunner
from git_status import ConflictEntry, status_by_path
from logging_utils import Logger


class Resolution(Enum):
    KEPT_OURS = "kept-ours"
    REMOVED = "removed"


class ConflictResolver:
    """Stages a resolution for each unmerged path, then commits it.

    A path is removed when our side deleted it, and additionally, with
    ``remove_when_missing``, when it is absent from the working tree.
    Every other path takes our version unconditionally.
    """

    def __init__(self, runner: GitRunner, remove_when_missing: bool = False) -> None:
        self.runner = runner
        self.remove_when_missing = remove_when_missing

    def _should_remove(self, conflict: ConflictEntry, deleted_by_us: bool) -> bool:
        if deleted_by_us or not conflict.has_ours:
            return True
        if self.remove_when_missing:
            return not os.path.lexists(self.runner.workdir / conflict.path)
        return False

    def resolve(self, conflicts: List[ConflictEntry]) -> Dict[str, Resolution]:
        statuses = status_by_path(self.runner)
        resolutions: Dict[str, Resolution] = {}
        for conflict in conflicts:
            status = statuses.get(conflict.path)
            deleted_by_us = status is not None and status.deleted_by_us
            if self._should_remove(conflict, deleted_by_us):
                self.runner.run("rm", "--quiet", "--", conflict.path)
                resolutions[conflict.path] = Resolution.REMOVED
            else:
                self.runner.run("checkout", "--ours", "--", conflict.path)
                self.runner.run("add", "--", conflict.path)
                resolutions[conflict.path] = Resolution.KEPT_OURS
            Logger.debug(
                f"{conflict.path}: {conflict.kind.name.lower()} -> "
                f"{resolutions[conflict.path].value}"
            )
        return resolutions

    def commit(self, message: str) -> str:
        self.runner.run("commit", "--no-edit", "--no-verify", "-m", message)
        return self.runner.output("rev-parse", "HEAD")
