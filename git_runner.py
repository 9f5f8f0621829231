#!/usr/bin/env python3
"""Thin wrapper around the git command line."""

from __future__ import annotations

import os
import shlex
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from config import GitOperationConfig, IdentityConfig
from logging_utils import Logger
from security import SecurityValidator


class GitCommandError(Exception):
    """A git command failed or timed out. Output is already credential-free."""

    def __init__(
        self,
        argv: Sequence[str],
        returncode: Optional[int],
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.argv = [SecurityValidator.sanitize_for_logging(a) for a in argv]
        self.returncode = returncode
        self.stdout = SecurityValidator.sanitize_for_logging(stdout or "")
        self.stderr = SecurityValidator.sanitize_for_logging(stderr or "")
        detail = self.stderr.strip() or self.stdout.strip() or "no output"
        super().__init__(
            f"'{' '.join(self.argv)}' failed (exit {returncode}): {detail}"
        )


class GitRunner:
    """Runs git in one working directory with explicit identity and transport.

    Nothing here reads or writes global git configuration: identity and SSH
    options travel with each subprocess through its environment.
    """

    def __init__(
        self,
        workdir: str,
        config: GitOperationConfig,
        identity: Optional[IdentityConfig] = None,
    ) -> None:
        self.workdir = Path(workdir)
        self.config = config
        self.identity = identity

    @property
    def git_dir(self) -> Path:
        return self.workdir / ".git"

    def bind_identity(self, identity: IdentityConfig) -> None:
        self.identity = identity

    def _ssh_command(self) -> Optional[str]:
        ssh = self.config.ssh
        if not ssh.key_path and ssh.strict_host_key_checking:
            return None
        parts = ["ssh"]
        if ssh.key_path:
            parts += ["-i", shlex.quote(ssh.key_path), "-o", "IdentitiesOnly=yes"]
        if not ssh.strict_host_key_checking:
            parts += ["-o", "StrictHostKeyChecking=no"]
        return " ".join(parts)

    def build_env(self) -> Dict[str, str]:
        env = os.environ.copy()
        env["GIT_TERMINAL_PROMPT"] = "0"
        if self.identity is not None:
            env.update(
                {
                    "GIT_AUTHOR_NAME": self.identity.name,
                    "GIT_AUTHOR_EMAIL": self.identity.email,
                    "GIT_COMMITTER_NAME": self.identity.name,
                    "GIT_COMMITTER_EMAIL": self.identity.email,
                }
            )
        ssh_command = self._ssh_command()
        if ssh_command:
            env["GIT_SSH_COMMAND"] = ssh_command
        return env

    def run(
        self, *args: str, check: bool = True, quiet: bool = False
    ) -> subprocess.CompletedProcess:
        """Run ``git <args>`` in the working directory.

        With ``check`` a nonzero exit raises GitCommandError; otherwise the
        completed process is returned for the caller to inspect.
        """
        argv: List[str] = ["git", *args]
        if not quiet:
            Logger.command(argv)
        timeout = self.config.timeout_s or None
        try:
            result = subprocess.run(
                argv,
                cwd=str(self.workdir),
                capture_output=True,
                text=True,
                timeout=timeout,
                env=self.build_env(),
            )
        except subprocess.TimeoutExpired as e:
            raise GitCommandError(
                argv, None, "", f"timed out after {e.timeout}s"
            ) from None

        if check and result.returncode != 0:
            raise GitCommandError(argv, result.returncode, result.stdout, result.stderr)
        return result

    def output(self, *args: str) -> str:
        """Run a read-only query and return its stripped stdout."""
        return self.run(*args, quiet=True).stdout.strip()

    def head(self) -> Optional[str]:
        result = self.run(
            "rev-parse", "--verify", "--quiet", "HEAD", check=False, quiet=True
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip()
