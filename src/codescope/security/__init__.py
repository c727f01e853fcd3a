"""Sandboxing and path safety primitives."""

from .paths import PathBlockedError, normalize_index_path, resolve_repo_path
from .policy import PolicyBlockedError, enforce_file_access_policy, is_denylisted

__all__ = [
    "PathBlockedError",
    "PolicyBlockedError",
    "enforce_file_access_policy",
    "is_denylisted",
    "normalize_index_path",
    "resolve_repo_path",
]
