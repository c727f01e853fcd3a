"""Immutable repository snapshots and the handle that swaps them."""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Protocol, TypeVar

from codescope.config import ServerConfig
from codescope.index.discovery import discover_files, is_binary_sample
from codescope.index.languages import language_for_path
from codescope.index.models import IndexedFile
from codescope.logging import utc_timestamp
from codescope.security import (
    PathBlockedError,
    PolicyBlockedError,
    enforce_file_access_policy,
    resolve_repo_path,
)

T = TypeVar("T")


class ContentSource(Protocol):
    """Reads file text by index path; None means the content is unavailable."""

    def read_text(self, path: str) -> str | None:
        """Return decoded text or None for binary, undecodable or unreadable files."""


def decode_text(data: bytes) -> str | None:
    """Decode UTF-8 text, rejecting binary payloads."""
    if is_binary_sample(data[:4096]):
        return None
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return None


class DiskContentSource:
    """Reads content from the repository working tree under sandbox and size policy."""

    def __init__(self, repo_root: Path, max_file_bytes: int) -> None:
        self._repo_root = repo_root.resolve()
        self._max_file_bytes = max_file_bytes

    def read_text(self, path: str) -> str | None:
        try:
            resolved = resolve_repo_path(repo_root=self._repo_root, candidate=path)
            size = resolved.stat().st_size
            enforce_file_access_policy(path, size, self._max_file_bytes)
            data = resolved.read_bytes()
        except (PathBlockedError, PolicyBlockedError, OSError):
            return None
        return decode_text(data)


class MemoryContentSource:
    """Serves content from an in-memory mapping."""

    def __init__(self, contents: Mapping[str, str | bytes | None]) -> None:
        self._contents = dict(contents)

    def read_text(self, path: str) -> str | None:
        value = self._contents.get(path)
        if value is None:
            return None
        if isinstance(value, bytes):
            return decode_text(value)
        return value


@dataclass(slots=True, frozen=True)
class Snapshot:
    """Point-in-time file index.

    The file tuple and path map never change after construction; derived views
    (dependencies, import graph, manifest) are computed at most once per snapshot.
    """

    snapshot_id: str
    created_at: str
    files: tuple[IndexedFile, ...]
    content: ContentSource
    by_path: Mapping[str, IndexedFile]
    _derived: dict[str, object] = field(default_factory=dict, repr=False, compare=False)
    _derived_lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def get(self, path: str) -> IndexedFile | None:
        """Return the indexed file for a path, if present."""
        return self.by_path.get(path)

    def read_text(self, path: str) -> str | None:
        """Return text content for an indexed path; unknown paths read as None."""
        if path not in self.by_path:
            return None
        return self.content.read_text(path)

    @property
    def total_bytes(self) -> int:
        """Sum of indexed file sizes."""
        return sum(item.byte_size for item in self.files)

    def derived(self, name: str, factory: Callable[[Snapshot], T]) -> T:
        """Compute a derived view once and reuse it for the snapshot lifetime."""
        with self._derived_lock:
            if name not in self._derived:
                self._derived[name] = factory(self)
            return self._derived[name]  # type: ignore[return-value]


def snapshot_identity(files: tuple[IndexedFile, ...]) -> str:
    """Stable identifier derived from indexed paths and sizes."""
    digest = hashlib.sha256()
    for item in files:
        digest.update(f"{item.path}\0{item.byte_size}\n".encode())
    return digest.hexdigest()[:16]


def make_snapshot(files: list[IndexedFile], content: ContentSource) -> Snapshot:
    """Build a snapshot from already-ordered file records."""
    ordered = tuple(files)
    by_path: dict[str, IndexedFile] = {}
    for item in ordered:
        by_path.setdefault(item.path, item)
    return Snapshot(
        snapshot_id=snapshot_identity(ordered),
        created_at=utc_timestamp(),
        files=ordered,
        content=content,
        by_path=MappingProxyType(by_path),
    )


def build_snapshot(config: ServerConfig, profile: dict[str, object] | None = None) -> Snapshot:
    """Discover the repository on disk and build a snapshot over it."""
    files = discover_files(config.repo_root, config.index, profile=profile)
    return make_snapshot(
        files,
        DiskContentSource(config.repo_root, config.limits.max_file_bytes),
    )


def snapshot_from_memory(contents: Mapping[str, str | bytes | None]) -> Snapshot:
    """Build a snapshot from path -> content pairs, ordered by path.

    ``None`` or binary values produce files whose content is unavailable.
    """
    files: list[IndexedFile] = []
    for path in sorted(contents):
        value = contents[path]
        if isinstance(value, str):
            size = len(value.encode("utf-8"))
        elif isinstance(value, bytes):
            size = len(value)
        else:
            size = 0
        files.append(
            IndexedFile(
                path=path,
                filename=PurePosixPath(path).name,
                language=language_for_path(path),
                byte_size=size,
            )
        )
    return make_snapshot(files, MemoryContentSource(contents))


class SnapshotStore:
    """Holds the current snapshot; refresh builds a new one and swaps the handle."""

    def __init__(self, builder: Callable[[], Snapshot]) -> None:
        self._builder = builder
        self._lock = threading.Lock()
        self._current: Snapshot | None = None
        self._generation = 0

    @property
    def generation(self) -> int:
        """Number of snapshots built so far."""
        return self._generation

    def current(self) -> Snapshot:
        """Return the live snapshot, building the first one on demand."""
        snapshot = self._current
        if snapshot is not None:
            return snapshot
        with self._lock:
            if self._current is None:
                self._current = self._builder()
                self._generation += 1
            return self._current

    def refresh(self) -> Snapshot:
        """Build a fresh snapshot and atomically replace the current one."""
        fresh = self._builder()
        with self._lock:
            self._current = fresh
            self._generation += 1
        return fresh
