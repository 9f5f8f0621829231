#!/usr/bin/env python3
"""Synchronize a branch from origin and mirror it onto a secondary remote."""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from config import Config, OriginPushFailurePolicy, RemoteConfig
from conflict_resolver import ConflictResolver, Resolution
from git_runner import GitCommandError, GitRunner
from git_status import ahead_behind, is_clean, list_conflicts, ref_exists
from logging_utils import Logger

# Exit codes
EXIT_SUCCESS = 0
EXIT_EXECUTION_ERROR = 1
EXIT_GIT_ERROR = 30
EXIT_ORIGIN_PUSH_ERROR = 31

INITIAL_COMMIT_MESSAGE = "Initial commit"
ORIGIN_RESOLUTION_MESSAGE = (
    "Resolved merge conflicts by choosing local changes from origin"
)
SECONDARY_RESOLUTION_MESSAGE = (
    "Resolved merge conflicts by choosing origin changes over {secondary}"
)

# Markers a previous run may have left behind
IN_PROGRESS_MARKERS = ("rebase-merge", "rebase-apply")


class MergeOutcome(Enum):
    UP_TO_DATE = "up-to-date"
    MERGED = "merged"
    CONFLICTS_RESOLVED = "conflicts-resolved"
    FAILED = "failed"


class PushOutcome(Enum):
    PUSHED = "pushed"
    SKIPPED = "skipped"
    DRY_RUN = "dry-run"
    FAILED = "failed"


@dataclass
class MergeResult:
    remote: str
    outcome: MergeOutcome
    resolved: Dict[str, Resolution] = field(default_factory=dict)
    error: Optional[str] = None


@dataclass
class PublishResult:
    origin: PushOutcome
    secondary: PushOutcome
    origin_error: Optional[str] = None


@dataclass
class SyncReport:
    created: bool = False
    rolled_back: bool = False
    head: Optional[str] = None
    origin_merge: Optional[MergeResult] = None
    secondary_merge: Optional[MergeResult] = None
    publish: Optional[PublishResult] = None


class MirrorSynchronizer:
    """Runs the mirror pipeline against one working directory.

    The steps are public so they can be driven one at a time; ``run`` chains
    them in order and turns the outcome into an exit code.
    """

    STEPS = (
        "ensure repository",
        "configure identity",
        "reset remotes",
        "clear in-progress merge",
        "sync branch",
        "merge origin",
        "merge secondary",
        "publish",
    )

    def __init__(self, cfg: Config, runner: Optional[GitRunner] = None) -> None:
        self.cfg = cfg
        self.runner = runner or GitRunner(cfg.workdir, cfg.git_config)
        self.report = SyncReport()

    @property
    def origin(self) -> RemoteConfig:
        return self.cfg.origin

    @property
    def secondary(self) -> RemoteConfig:
        return self.cfg.secondary

    @property
    def branch(self) -> str:
        return self.cfg.branch

    def run(self) -> int:
        self.report = SyncReport()
        total = len(self.STEPS)
        try:
            Logger.step(1, total, self.STEPS[0])
            self.report.created = self.ensure_repository()

            Logger.step(2, total, self.STEPS[1])
            self.configure_identity()

            Logger.step(3, total, self.STEPS[2])
            self.reset_remotes()

            Logger.step(4, total, self.STEPS[3])
            self.report.rolled_back = self.clear_in_progress_merge()

            Logger.step(5, total, self.STEPS[4])
            self.sync_branch()

            Logger.step(6, total, self.STEPS[5])
            self.report.origin_merge = self.merge_origin()

            Logger.step(7, total, self.STEPS[6])
            self.report.secondary_merge = self.merge_secondary()

            Logger.step(8, total, self.STEPS[7])
            self.report.publish = self.publish()
            self.report.head = self.runner.head()
        except GitCommandError as e:
            Logger.error(f"git failure: {e}")
            return EXIT_GIT_ERROR
        except Exception as e:
            Logger.error(f"unexpected error: {e}")
            return EXIT_EXECUTION_ERROR

        if (
            self.report.publish.origin == PushOutcome.FAILED
            and self.cfg.behavior.origin_push_failure == OriginPushFailurePolicy.FATAL
        ):
            Logger.error(
                f"push to {self.origin.name} failed; mirror was still updated"
            )
            return EXIT_ORIGIN_PUSH_ERROR

        Logger.info(f"mirror synchronized at {self.report.head}")
        return EXIT_SUCCESS

    def ensure_repository(self) -> bool:
        """Initialize a repository with both remotes and an empty root commit.

        Returns False without touching anything when one already exists.
        """
        if self.runner.git_dir.exists():
            Logger.debug(f"using existing repository in {self.runner.workdir}")
            return False

        Logger.info(f"initializing repository in {self.runner.workdir}")
        os.makedirs(self.runner.workdir, exist_ok=True)
        self.runner.run("init", "--quiet")
        for remote in (self.origin, self.secondary):
            self.runner.run("remote", "add", remote.name, remote.url, check=False)
        identity = self.cfg.identity
        self.runner.run(
            "-c", f"user.name={identity.name}",
            "-c", f"user.email={identity.email}",
            "commit", "--allow-empty", "--no-verify", "-m", INITIAL_COMMIT_MESSAGE,
        )
        self.runner.run("branch", "-M", self.branch)
        return True

    def configure_identity(self) -> None:
        identity = self.cfg.identity
        self.runner.bind_identity(identity)
        Logger.info(f"committing as {identity.name} <{identity.email}>")

    def reset_remotes(self) -> None:
        existing = set(self.runner.output("remote").split())
        for remote in (self.origin, self.secondary):
            if remote.name in existing:
                self.runner.run("remote", "remove", remote.name)
            self.runner.run("remote", "add", remote.name, remote.url)

        Logger.security_event(
            "REMOTES_RESET",
            f"remotes {self.origin.name} and {self.secondary.name} re-registered",
        )
        for line in self.runner.output("remote", "-v").splitlines():
            Logger.debug(line)

    def clear_in_progress_merge(self) -> bool:
        """Drop leftovers of an interrupted run; roll back an unfinished merge."""
        for marker in IN_PROGRESS_MARKERS:
            shutil.rmtree(self.runner.git_dir / marker, ignore_errors=True)

        merging = (self.runner.git_dir / "MERGE_HEAD").exists()
        if not list_conflicts(self.runner) and not merging:
            return False

        Logger.warn("cleaning up existing conflicts...")
        self.runner.run("reset", "--hard", "HEAD")
        self.runner.run("clean", "-fd")
        return True

    def sync_branch(self) -> None:
        """Fetch both remotes and point the branch at origin's tip."""
        self.runner.run("fetch", self.origin.name)
        fetched = self.runner.run("fetch", self.secondary.name, check=False)
        if fetched.returncode != 0:
            Logger.warn(
                f"fetch from {self.secondary.name} failed: {fetched.stderr.strip()}"
            )

        upstream = f"{self.origin.name}/{self.branch}"
        if ref_exists(self.runner, f"refs/remotes/{upstream}"):
            self.runner.run("checkout", "--quiet", "-B", self.branch, upstream)
        else:
            Logger.warn(f"{upstream} does not exist; keeping current HEAD")
            self.runner.run("checkout", "--quiet", "-B", self.branch)

    def merge_origin(self) -> MergeResult:
        """Pull origin; conflicts keep the local side."""
        resolver = ConflictResolver(self.runner, remove_when_missing=True)
        return self._merge_from(self.origin, resolver, ORIGIN_RESOLUTION_MESSAGE)

    def merge_secondary(self) -> MergeResult:
        """Pull the secondary remote; conflicts keep the origin-derived side."""
        resolver = ConflictResolver(self.runner)
        message = SECONDARY_RESOLUTION_MESSAGE.format(secondary=self.secondary.name)
        return self._merge_from(self.secondary, resolver, message)

    def _merge_from(
        self, remote: RemoteConfig, resolver: ConflictResolver, message: str
    ) -> MergeResult:
        before = self.runner.head()
        pulled = self.runner.run(
            "pull", "--no-rebase", "--no-edit", remote.name, self.branch, check=False
        )

        conflicts = list_conflicts(self.runner)
        if conflicts:
            Logger.warn(
                f"{len(conflicts)} conflicted path(s) after pulling {remote.name}"
            )
            resolved = resolver.resolve(conflicts)
            head = resolver.commit(message)
            Logger.info(f"resolved conflicts from {remote.name} in {head[:12]}")
            return MergeResult(remote.name, MergeOutcome.CONFLICTS_RESOLVED, resolved)

        if pulled.returncode != 0:
            error = GitCommandError(
                ["git", "pull", remote.name, self.branch],
                pulled.returncode,
                pulled.stdout,
                pulled.stderr,
            )
            Logger.warn(f"merge from {remote.name} skipped: {error}")
            self._abort_merge()
            return MergeResult(remote.name, MergeOutcome.FAILED, error=str(error))

        if self.runner.head() == before:
            Logger.info(f"already up to date with {remote.name}")
            return MergeResult(remote.name, MergeOutcome.UP_TO_DATE)

        Logger.info(f"merged {remote.name}/{self.branch}")
        return MergeResult(remote.name, MergeOutcome.MERGED)

    def _abort_merge(self) -> None:
        if (self.runner.git_dir / "MERGE_HEAD").exists():
            self.runner.run("merge", "--abort", check=False)

    def publish(self) -> PublishResult:
        """Push to origin when there is something to publish, then mirror."""
        dry_run = self.cfg.behavior.dry_run
        result = PublishResult(origin=PushOutcome.SKIPPED, secondary=PushOutcome.DRY_RUN)

        if not self._has_changes_for_origin():
            Logger.info(f"No changes to push to {self.origin.name}")
        elif dry_run:
            Logger.info(f"would push {self.branch} to {self.origin.name}")
            result.origin = PushOutcome.DRY_RUN
        else:
            Logger.info(f"Pushing changes to {self.origin.name}")
            pushed = self.runner.run("push", self.origin.name, self.branch, check=False)
            if pushed.returncode == 0:
                result.origin = PushOutcome.PUSHED
            else:
                error = GitCommandError(
                    ["git", "push", self.origin.name, self.branch],
                    pushed.returncode,
                    pushed.stdout,
                    pushed.stderr,
                )
                Logger.error(f"push to {self.origin.name} failed: {error}")
                result.origin = PushOutcome.FAILED
                result.origin_error = str(error)

        if dry_run:
            Logger.info(f"would force-push {self.branch} to {self.secondary.name}")
            return result

        self.runner.run("push", "--force", self.secondary.name, self.branch)
        result.secondary = PushOutcome.PUSHED
        Logger.info(f"force-pushed {self.branch} to {self.secondary.name}")
        return result

    def _has_changes_for_origin(self) -> bool:
        if not is_clean(self.runner):
            return True
        upstream = f"refs/remotes/{self.origin.name}/{self.branch}"
        if not ref_exists(self.runner, upstream):
            return True
        ahead, _behind = ahead_behind(self.runner, self.branch, upstream)
        return ahead > 0
