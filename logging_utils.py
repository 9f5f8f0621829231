#!/usr/bin/env python3
"""Logging utilities for mirror-sync."""

import os
import sys
import time
from typing import Sequence

import colorama

from security import SecurityValidator

colorama.init(autoreset=True)


class Logger:
    """Console output with colors; every line is scrubbed of credentials."""

    PROCESS_NAME = "mirror-sync"
    verbose = True

    @classmethod
    def debug(cls, *messages: str) -> None:
        if not cls.verbose:
            return
        cls._write_stdout(colorama.Fore.LIGHTBLACK_EX, *cls._sanitize(messages))

    @classmethod
    def info(cls, *messages: str) -> None:
        cls._write_stdout(colorama.Fore.CYAN, *cls._sanitize(messages))

    @classmethod
    def warn(cls, *messages: str) -> None:
        cls._write_stdout(colorama.Fore.YELLOW, *cls._sanitize(messages))

    @classmethod
    def error(cls, *messages: str) -> None:
        cls._write_stderr(colorama.Fore.RED, *cls._sanitize(messages))

    @classmethod
    def step(cls, index: int, total: int, name: str) -> None:
        """Announce a pipeline state transition."""
        cls._write_stdout(
            colorama.Fore.GREEN + colorama.Style.BRIGHT, f"[{index}/{total}] {name}"
        )

    @classmethod
    def command(cls, argv: Sequence[str]) -> None:
        """Echo a command line the way CI job logs do."""
        if not cls.verbose:
            return
        line = SecurityValidator.sanitize_for_logging(" ".join(argv))
        cls._write_stdout(colorama.Fore.LIGHTBLACK_EX, f"$ {line}")

    @classmethod
    def security_event(cls, event_type: str, details: str) -> None:
        """Log security events with appropriate sanitization."""
        sanitized_details = SecurityValidator.sanitize_for_logging(details)
        timestamp = time.strftime("%Y-%m-%d %H:%M:%S")
        cls._write_stderr(
            colorama.Fore.MAGENTA,
            f"[SECURITY:{event_type}] {timestamp}: {sanitized_details}",
        )

    @staticmethod
    def _sanitize(messages: Sequence[str]) -> list:
        return [SecurityValidator.sanitize_for_logging(str(m)) for m in messages]

    @classmethod
    def _write_stdout(cls, color: str, *messages: str) -> None:
        sys.stdout.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _write_stderr(cls, color: str, *messages: str) -> None:
        sys.stderr.write(cls._format_line(color, *messages) + "\n")

    @classmethod
    def _get_header(cls) -> str:
        return f"[{cls.PROCESS_NAME}:{os.getpid()}]"

    @classmethod
    def _format_line(cls, color: str, *messages: str) -> str:
        header = cls._get_header()
        message = " ".join(str(m) for m in messages)
        return f"{color}{header}{colorama.Style.RESET_ALL} {message}"
