"""Denylist and size policy for repository reads."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from pathlib import PurePosixPath

_DENYLISTED_BASENAME_GLOBS = ("*.pem", "*.key", "*.pfx", "*.p12", "id_rsa*", "secrets.*")


@dataclass(slots=True, frozen=True)
class PolicyBlockedError(Exception):
    """Raised when denylist or size policy blocks a read."""

    reason: str
    hint: str


def is_denylisted(relative_path: str) -> bool:
    """Return True when a repository-relative path is denylisted by default policy."""
    lowered = relative_path.lower()
    basename = PurePosixPath(lowered).name

    if basename == ".env" or basename.startswith(".env."):
        return True
    if any(fnmatch.fnmatch(basename, pattern) for pattern in _DENYLISTED_BASENAME_GLOBS):
        return True
    if "/.git/" in f"/{lowered}/" or lowered == ".git":
        return True
    return False


def enforce_file_access_policy(relative_path: str, size: int, max_file_bytes: int) -> None:
    """Raise PolicyBlockedError when a file may not be served."""
    if is_denylisted(relative_path):
        raise PolicyBlockedError(
            reason="File is denylisted by security policy.",
            hint="Use a non-sensitive file path under repo_root.",
        )
    if size > max_file_bytes:
        raise PolicyBlockedError(
            reason="File exceeds max_file_bytes limit.",
            hint="Request a smaller file or increase limits.max_file_bytes.",
        )
