"""Shared fixtures: throwaway git remotes and clones under tmp_path."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Dict, Iterable, Optional

import pytest

from config import (Config, GitOperationConfig, IdentityConfig, RemoteConfig,
                    SyncBehaviorConfig)
from logging_utils import Logger

BRANCH = 'master'
IDENTITY_ENV = {
    'GIT_AUTHOR_NAME': 'Test Author',
    'GIT_AUTHOR_EMAIL': 'author@example.com',
    'GIT_COMMITTER_NAME': 'Test Author',
    'GIT_COMMITTER_EMAIL': 'author@example.com',
}


def git(cwd: Path, *args: str, check: bool = True) -> str:
    result = subprocess.run(
        ['git', *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        check=check,
        env={**os.environ, **IDENTITY_ENV},
    )
    return result.stdout.strip()


class GitSandbox:
    """Builds bare remotes and working clones for a single test."""

    def __init__(self, root: Path) -> None:
        self.root = root
        self._counter = 0

    def _scratch(self, prefix: str) -> Path:
        self._counter += 1
        return self.root / f'{prefix}-{self._counter}'

    @staticmethod
    def write(workdir: Path, files: Dict[str, str]) -> None:
        for name, content in files.items():
            path = workdir / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)

    def remote(self, name: str, files: Dict[str, str]) -> Path:
        """Create a bare remote whose master holds a single seed commit."""
        seed = self._scratch(f'seed-{name}')
        seed.mkdir()
        git(seed, 'init', '--quiet')
        self.write(seed, files)
        git(seed, 'add', '-A')
        git(seed, 'commit', '--quiet', '-m', f'seed {name}')
        git(seed, 'branch', '-M', BRANCH)
        bare = self.root / f'{name}.git'
        git(self.root, 'clone', '--quiet', '--bare', str(seed), str(bare))
        return bare

    def fork(self, source: Path, name: str) -> Path:
        """Create a bare remote sharing source's history."""
        bare = self.root / f'{name}.git'
        git(self.root, 'clone', '--quiet', '--bare', str(source), str(bare))
        return bare

    def clone(self, remote: Path, dest: Optional[Path] = None) -> Path:
        dest = dest or self._scratch('clone')
        git(self.root, 'clone', '--quiet', str(remote), str(dest))
        return dest

    def commit(
        self,
        workdir: Path,
        files: Dict[str, str],
        message: str,
        deletions: Iterable[str] = (),
    ) -> str:
        self.write(workdir, files)
        for name in deletions:
            git(workdir, 'rm', '--quiet', name)
        git(workdir, 'add', '-A')
        git(workdir, 'commit', '--quiet', '-m', message)
        return git(workdir, 'rev-parse', 'HEAD')

    def commit_to(
        self,
        remote: Path,
        files: Dict[str, str],
        message: str,
        deletions: Iterable[str] = (),
    ) -> str:
        """Commit to a bare remote's master through a scratch clone."""
        work = self.clone(remote)
        sha = self.commit(work, files, message, deletions)
        git(work, 'push', '--quiet', 'origin', f'HEAD:{BRANCH}')
        return sha

    @staticmethod
    def tip(repo: Path, ref: str = BRANCH) -> str:
        return git(repo, 'rev-parse', ref)

    @staticmethod
    def show(repo: Path, path: str, ref: str = BRANCH) -> str:
        return git(repo, 'show', f'{ref}:{path}')

    @staticmethod
    def tree(repo: Path, ref: str = BRANCH) -> set:
        return set(git(repo, 'ls-tree', '-r', '--name-only', ref).splitlines())


@pytest.fixture(autouse=True)
def isolated_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep user and system git configuration out of every test."""
    home = tmp_path / 'home'
    home.mkdir()
    global_config = home / '.gitconfig'
    global_config.write_text('')
    monkeypatch.setenv('HOME', str(home))
    monkeypatch.setenv('GIT_CONFIG_NOSYSTEM', '1')
    monkeypatch.setenv('GIT_CONFIG_GLOBAL', str(global_config))
    for var in IDENTITY_ENV:
        monkeypatch.delenv(var, raising=False)
    for var in ('MIRROR_ORIGIN_URL', 'MIRROR_SECONDARY_URL', 'MIRROR_BRANCH',
                'MIRROR_SECONDARY_NAME', 'MIRROR_COMMIT_USER_NAME',
                'MIRROR_COMMIT_USER_EMAIL', 'MIRROR_WORKDIR', 'MIRROR_SSH_KEY'):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(Logger, 'verbose', True)


@pytest.fixture
def sandbox(tmp_path: Path) -> GitSandbox:
    root = tmp_path / 'repos'
    root.mkdir()
    return GitSandbox(root)


def make_config(
    workdir: Path,
    origin: Path,
    secondary: Path,
    *,
    dry_run: bool = False,
    branch: str = BRANCH,
) -> Config:
    return Config(
        workdir=str(workdir),
        branch=branch,
        origin=RemoteConfig(name='origin', url=str(origin)),
        secondary=RemoteConfig(name='gitee', url=str(secondary)),
        identity=IdentityConfig(name='Mirror Bot', email='mirror-bot@example.com'),
        git_config=GitOperationConfig(timeout_s=60.0),
        behavior=SyncBehaviorConfig(dry_run=dry_run),
    )
