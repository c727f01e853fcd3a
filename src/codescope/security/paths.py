"""Path normalization and repository sandbox checks."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Final

_WINDOWS_DRIVE: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:/")


class PathBlockedError(Exception):
    """Raised when a requested path violates sandbox policy."""

    def __init__(self, reason: str, hint: str) -> None:
        super().__init__(reason)
        self.reason = reason
        self.hint = hint


def _segments(candidate: str) -> tuple[list[str], bool]:
    """Split a client path into segments; the flag marks absolute-style input."""
    slashed = candidate.replace("\\", "/")
    absolute = slashed.startswith("/") or _WINDOWS_DRIVE.match(slashed) is not None
    return [part for part in slashed.split("/") if part not in ("", ".")], absolute


def normalize_index_path(candidate: str) -> str | None:
    """Return the index key for a client path, or None when it cannot name an indexed file.

    Index keys are slash-separated and relative; ``./`` and empty segments are dropped.
    Absolute paths and ``..`` segments never name an indexed file.
    """
    parts, absolute = _segments(candidate.strip())
    if absolute or not parts or ".." in parts:
        return None
    return "/".join(parts)


def resolve_repo_path(repo_root: Path, candidate: str) -> Path:
    """Resolve a repository-relative path to disk, refusing anything outside ``repo_root``."""
    root = repo_root.resolve()
    parts, absolute = _segments(candidate)
    if not parts:
        raise PathBlockedError(
            reason="Path is empty.",
            hint="Provide a repository-relative path such as 'src/module.py'.",
        )
    if absolute:
        raise PathBlockedError(
            reason="Absolute paths are not accepted.",
            hint="Use a path relative to the repository root.",
        )
    if ".." in parts:
        raise PathBlockedError(
            reason="Path traversal is blocked.",
            hint="Remove '..' segments and use a repository-relative path.",
        )
    resolved = root.joinpath(*parts).resolve(strict=False)
    # Symlinks can still point outside the root after resolution.
    if not resolved.is_relative_to(root):
        raise PathBlockedError(
            reason="Resolved path escapes repo_root.",
            hint="Use a path located under the configured repository root.",
        )
    return resolved
