#!/usr/bin/env python3
"""Security validation utilities for mirror-sync."""

import os
import re
from typing import List, Optional


class SecurityValidator:
    """Security validation utilities for input sanitization and validation."""

    MAX_URL_LENGTH = 2048
    MAX_BRANCH_LENGTH = 255
    MAX_NAME_LENGTH = 100
    MAX_EMAIL_LENGTH = 254
    MAX_PATH_LENGTH = 500

    DEFAULT_URL_SCHEMES = ["http", "https", "ssh", "git", "file"]

    SAFE_REMOTE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
    SCP_LIKE_URL_PATTERN = re.compile(r"^[A-Za-z0-9._-]+@[A-Za-z0-9.-]+:[^\s]+$")
    EMAIL_PATTERN = re.compile(r"^[^@\s<>]+@[^@\s<>]+$")
    # Characters git refuses in ref names (see git-check-ref-format)
    FORBIDDEN_REF_CHARS = set(" ~^:?*[\\")

    @classmethod
    def validate_url(cls, url: str, allowed_schemes: Optional[List[str]] = None) -> str:
        """Validate a git remote URL.

        Accepts ``scheme://`` URLs, scp-like ``user@host:path`` URLs and
        absolute local paths (treated as the ``file`` scheme).
        """
        if not url or not isinstance(url, str):
            raise ValueError("URL must be a non-empty string")

        if len(url) > cls.MAX_URL_LENGTH:
            raise ValueError(f"URL exceeds maximum length of {cls.MAX_URL_LENGTH}")

        if "\x00" in url or any(ord(c) < 32 for c in url):
            raise ValueError("URL contains null bytes or control characters")

        if "://" in url:
            scheme = url.split("://")[0].lower()
        elif cls.SCP_LIKE_URL_PATTERN.match(url):
            scheme = "ssh"
        elif os.path.isabs(url):
            scheme = "file"
        else:
            raise ValueError(
                "URL must be a scheme URL, an scp-like ssh URL or an absolute path"
            )

        if allowed_schemes is None:
            allowed_schemes = cls.DEFAULT_URL_SCHEMES
        if scheme not in allowed_schemes:
            raise ValueError(
                f"URL scheme '{scheme}' not in allowed schemes: {allowed_schemes}"
            )

        return url

    @classmethod
    def validate_remote_name(cls, name: str) -> str:
        """Validate a git remote name."""
        if not name or not isinstance(name, str):
            raise ValueError("Remote name must be a non-empty string")

        if len(name) > cls.MAX_NAME_LENGTH:
            raise ValueError(
                f"Remote name exceeds maximum length of {cls.MAX_NAME_LENGTH}"
            )

        if name.startswith("-") or not cls.SAFE_REMOTE_NAME_PATTERN.match(name):
            raise ValueError("Remote name contains invalid characters")

        return name

    @classmethod
    def validate_branch_name(cls, branch: str) -> str:
        """Validate a branch name against git's ref naming rules."""
        if not branch or not isinstance(branch, str):
            raise ValueError("Branch name must be a non-empty string")

        if len(branch) > cls.MAX_BRANCH_LENGTH:
            raise ValueError(
                f"Branch name exceeds maximum length of {cls.MAX_BRANCH_LENGTH}"
            )

        if "\x00" in branch or any(ord(c) < 32 or ord(c) == 127 for c in branch):
            raise ValueError("Branch name contains null bytes or control characters")

        if any(c in cls.FORBIDDEN_REF_CHARS for c in branch):
            raise ValueError("Branch name contains characters git does not allow")

        if branch.startswith(("-", "/")) or branch.endswith(("/", ".", ".lock")):
            raise ValueError("Branch name has an invalid prefix or suffix")

        if ".." in branch or "//" in branch or "@{" in branch or branch == "@":
            raise ValueError("Branch name contains an invalid sequence")

        if any(part.startswith(".") for part in branch.split("/")):
            raise ValueError("Branch name components must not start with '.'")

        return branch

    @classmethod
    def validate_author_name(cls, name: str) -> str:
        """Validate a commit author name."""
        if not name or not isinstance(name, str) or not name.strip():
            raise ValueError("Author name must be a non-empty string")

        if len(name) > cls.MAX_NAME_LENGTH:
            raise ValueError(
                f"Author name exceeds maximum length of {cls.MAX_NAME_LENGTH}"
            )

        if "\x00" in name or any(ord(c) < 32 for c in name):
            raise ValueError("Author name contains null bytes or control characters")

        if "<" in name or ">" in name:
            raise ValueError("Author name must not contain angle brackets")

        return name.strip()

    @classmethod
    def validate_email(cls, email: str) -> str:
        """Validate a commit author email."""
        if not email or not isinstance(email, str):
            raise ValueError("Email must be a non-empty string")

        if len(email) > cls.MAX_EMAIL_LENGTH:
            raise ValueError(f"Email exceeds maximum length of {cls.MAX_EMAIL_LENGTH}")

        if not cls.EMAIL_PATTERN.match(email):
            raise ValueError("Email address is malformed")

        return email

    @classmethod
    def validate_file_path(cls, path: str) -> str:
        """Validate file path for security."""
        if not path or not isinstance(path, str):
            raise ValueError("File path must be a non-empty string")

        if len(path) > cls.MAX_PATH_LENGTH:
            raise ValueError(
                f"File path exceeds maximum length of {cls.MAX_PATH_LENGTH}"
            )

        if "\x00" in path:
            raise ValueError("File path contains null bytes")

        if ".." in path.replace("\\", "/").split("/"):
            raise ValueError("File path contains path traversal sequences")

        return os.path.normpath(path)

    @classmethod
    def sanitize_for_logging(cls, message: str) -> str:
        """Sanitize message for safe logging by removing potential credentials."""
        if not message:
            return message

        patterns = [
            # URLs with embedded credentials
            (r"(https?|ssh|git)://[^:/@\s]+:[^@\s]+@", r"\1://[REDACTED]@"),
            (r"token[=:\s]+[^\s]+", "token=[REDACTED]"),
            (r"password[=:\s]+[^\s]+", "password=[REDACTED]"),
            (r"glpat-[A-Za-z0-9_-]+", "[GITLAB_TOKEN_REDACTED]"),
            (r"gh[pousr]_[A-Za-z0-9_]+", "[GITHUB_TOKEN_REDACTED]"),
        ]

        sanitized = message
        for pattern, replacement in patterns:
            sanitized = re.sub(pattern, replacement, sanitized, flags=re.IGNORECASE)

        return sanitized
