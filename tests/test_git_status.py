"""Tests for the porcelain and unmerged-index parsers."""

from __future__ import annotations

import pytest

from git_status import (ConflictKind, FileState, parse_porcelain,
                        parse_unmerged)

SHA = 'e69de29bb2d1d6434b8b29ae775ad8c2e48c5391'


def _unmerged(*records: tuple) -> str:
    return ''.join(f'100644 {SHA} {stage}\t{path}\0' for path, stage in records)


def test_parse_unmerged_groups_stages_per_path() -> None:
    output = _unmerged(
        ('b.txt', 1), ('b.txt', 2), ('b.txt', 3),
        ('a dir/with space.txt', 1), ('a dir/with space.txt', 3),
    )

    conflicts = parse_unmerged(output)

    assert [c.path for c in conflicts] == ['a dir/with space.txt', 'b.txt']
    assert conflicts[0].kind == ConflictKind.DELETED_BY_US
    assert not conflicts[0].has_ours
    assert conflicts[1].kind == ConflictKind.BOTH_MODIFIED
    assert conflicts[1].has_ours and conflicts[1].has_theirs


@pytest.mark.parametrize(
    'stages, kind',
    [
        ((2, 3), ConflictKind.BOTH_ADDED),
        ((1, 2), ConflictKind.DELETED_BY_THEM),
        ((1,), ConflictKind.BOTH_DELETED),
        ((2,), ConflictKind.ADDED_BY_US),
        ((3,), ConflictKind.ADDED_BY_THEM),
    ],
)
def test_conflict_kind_from_stages(stages: tuple, kind: ConflictKind) -> None:
    output = _unmerged(*(('f', stage) for stage in stages))
    assert parse_unmerged(output)[0].kind == kind


def test_parse_unmerged_empty_output() -> None:
    assert parse_unmerged('') == []


def test_parse_porcelain_reads_renames_and_untracked() -> None:
    output = 'R  new name.txt\0old name.txt\0 M mod.txt\0?? fresh.txt\0 D gone.txt\0'

    entries = parse_porcelain(output)

    assert [e.path for e in entries] == ['new name.txt', 'mod.txt', 'fresh.txt', 'gone.txt']
    assert entries[0].index_state == FileState.RENAMED
    assert entries[0].orig_path == 'old name.txt'
    assert entries[1].worktree_state == FileState.MODIFIED
    assert entries[2].index_state == FileState.UNTRACKED
    assert entries[3].worktree_state == FileState.DELETED
    assert not entries[3].is_unmerged


def test_unmerged_status_codes_are_typed() -> None:
    entries = parse_porcelain('DU ours-gone\0UD theirs-gone\0DD both-gone\0UU both\0')

    by_path = {e.path: e for e in entries}
    assert by_path['ours-gone'].conflict_kind == ConflictKind.DELETED_BY_US
    assert by_path['ours-gone'].deleted_by_us
    assert by_path['both-gone'].deleted_by_us
    assert not by_path['theirs-gone'].deleted_by_us
    assert by_path['theirs-gone'].conflict_kind == ConflictKind.DELETED_BY_THEM
    assert not by_path['both'].deleted_by_us
    assert by_path['both'].conflict_kind == ConflictKind.BOTH_MODIFIED


def test_file_named_like_a_status_letter_is_not_a_deletion() -> None:
    """Path text never leaks into the state."""
    entries = parse_porcelain('UU D\0')
    assert not entries[0].deleted_by_us
    assert entries[0].path == 'D'
    assert entries[0].conflict_kind == ConflictKind.BOTH_MODIFIED
