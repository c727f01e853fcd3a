"""Typed models for the file index."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class IndexedFile:
    """One file in a repository snapshot."""

    path: str
    filename: str
    language: str
    byte_size: int

    @property
    def directory(self) -> str:
        """Parent directory of the file; root files report '.'."""
        head, sep, _ = self.path.rpartition("/")
        return head if sep else "."


@dataclass(slots=True, frozen=True)
class DiscoveryProfile:
    """Deterministic counters for one discovery pass."""

    total_candidates: int
    excluded_by_glob: int
    excluded_by_extension: int
    excluded_hidden: int
    excluded_denylisted: int
    binary_excluded: int
    indexed_files: int
    total_seconds: float
