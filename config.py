#!/usr/bin/env python3
"""Configuration dataclasses for mirror-sync."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

DEFAULT_ORIGIN_NAME = "origin"
DEFAULT_SECONDARY_NAME = "gitee"
DEFAULT_BRANCH = "master"
DEFAULT_GIT_TIMEOUT_S = 600.0


class OriginPushFailurePolicy(Enum):
    """What a failed (non-forced) push to origin does to the exit code."""
    FATAL = "fatal"
    IGNORE = "ignore"


@dataclass
class RemoteConfig:
    """A named git remote."""
    name: str
    url: str


@dataclass
class IdentityConfig:
    """Commit author and committer identity."""
    name: str
    email: str


@dataclass
class SshConfig:
    """SSH transport options passed to git through GIT_SSH_COMMAND."""
    key_path: Optional[str] = None
    strict_host_key_checking: bool = True


@dataclass
class GitOperationConfig:
    """Git subprocess configuration."""
    timeout_s: Optional[float] = DEFAULT_GIT_TIMEOUT_S
    ssh: SshConfig = field(default_factory=SshConfig)


@dataclass
class SyncBehaviorConfig:
    """Sync behavior configuration."""
    dry_run: bool = False
    origin_push_failure: OriginPushFailurePolicy = OriginPushFailurePolicy.FATAL


@dataclass
class Config:
    """Main configuration for a mirror run."""
    workdir: str
    branch: str
    origin: RemoteConfig
    secondary: RemoteConfig
    identity: IdentityConfig
    git_config: GitOperationConfig = field(default_factory=GitOperationConfig)
    behavior: SyncBehaviorConfig = field(default_factory=SyncBehaviorConfig)
