"""Deterministic file discovery for repository snapshots."""

from __future__ import annotations

import fnmatch
import os
import time
from dataclasses import asdict, dataclass
from pathlib import Path

from codescope.config import IndexConfig
from codescope.index.languages import language_for_path
from codescope.index.models import DiscoveryProfile, IndexedFile
from codescope.security import is_denylisted

_BINARY_SNIFF_BYTES = 4096


@dataclass(slots=True, frozen=True)
class _CandidateFile:
    """Prepared candidate record discovered during traversal."""

    relative_path: str
    full_path: Path
    size: int


@dataclass(slots=True)
class _ScanCounters:
    total_candidates: int = 0
    excluded_by_glob: int = 0
    excluded_by_extension: int = 0
    excluded_hidden: int = 0
    excluded_denylisted: int = 0


def discover_files(
    repo_root: Path,
    config: IndexConfig,
    profile: dict[str, object] | None = None,
) -> list[IndexedFile]:
    """Discover indexable text files ordered by relative path."""
    started = time.perf_counter()
    root = repo_root.resolve()
    counters = _ScanCounters()
    candidates = _discover_candidates(
        root=root,
        include_extensions=frozenset(config.include_extensions),
        exclude_globs=config.exclude_globs,
        excluded_dir_names=_excluded_dir_names(config.exclude_globs),
        include_hidden=config.include_hidden,
        counters=counters,
    )
    candidates.sort(key=lambda item: item.relative_path)

    records: list[IndexedFile] = []
    binary_excluded = 0
    for candidate in candidates:
        try:
            binary = is_binary_file(candidate.full_path)
        except OSError:
            continue
        if binary:
            binary_excluded += 1
            continue
        records.append(
            IndexedFile(
                path=candidate.relative_path,
                filename=candidate.full_path.name,
                language=language_for_path(candidate.relative_path),
                byte_size=candidate.size,
            )
        )

    if profile is not None:
        payload = DiscoveryProfile(
            total_candidates=counters.total_candidates,
            excluded_by_glob=counters.excluded_by_glob,
            excluded_by_extension=counters.excluded_by_extension,
            excluded_hidden=counters.excluded_hidden,
            excluded_denylisted=counters.excluded_denylisted,
            binary_excluded=binary_excluded,
            indexed_files=len(records),
            total_seconds=time.perf_counter() - started,
        )
        profile.update(asdict(payload))
    return records


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured ignore globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def has_allowed_extension(relative_path: str, include_extensions: frozenset[str]) -> bool:
    """Return True when file extension is included."""
    suffix = Path(relative_path).suffix.lower()
    return suffix in include_extensions


def is_hidden_path(relative_path: str) -> bool:
    """Return True when any path segment is a dotfile or dot-directory."""
    return any(part.startswith(".") for part in relative_path.split("/"))


def _excluded_dir_names(exclude_globs: tuple[str, ...]) -> set[str]:
    """Extract directory-name prunes from **/name/** glob patterns."""
    output: set[str] = set()
    for pattern in exclude_globs:
        if not pattern.startswith("**/") or not pattern.endswith("/**"):
            continue
        name = pattern[3:-3].strip("/")
        if not name:
            continue
        if any(char in name for char in "*?[]{}"):
            continue
        output.add(name)
    return output


def _discover_candidates(
    *,
    root: Path,
    include_extensions: frozenset[str],
    exclude_globs: tuple[str, ...],
    excluded_dir_names: set[str],
    include_hidden: bool,
    counters: _ScanCounters,
) -> list[_CandidateFile]:
    """Walk tree deterministically with pruning for excluded and hidden directories."""
    candidates: list[_CandidateFile] = []
    stack: list[Path] = [root]
    while stack:
        current = stack.pop()
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError:
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = full_path.relative_to(root).as_posix()
            if entry.is_dir(follow_symlinks=False):
                if not include_hidden and entry.name.startswith("."):
                    continue
                if entry.name in excluded_dir_names and should_exclude(
                    f"{relative}/", exclude_globs
                ):
                    continue
                stack.append(full_path)
                continue
            if not entry.is_file(follow_symlinks=False):
                continue
            counters.total_candidates += 1
            if not include_hidden and is_hidden_path(relative):
                counters.excluded_hidden += 1
                continue
            if is_denylisted(relative):
                counters.excluded_denylisted += 1
                continue
            if should_exclude(relative, exclude_globs):
                counters.excluded_by_glob += 1
                continue
            if not has_allowed_extension(relative, include_extensions):
                counters.excluded_by_extension += 1
                continue
            try:
                stat = entry.stat(follow_symlinks=False)
            except OSError:
                continue
            candidates.append(
                _CandidateFile(relative_path=relative, full_path=full_path, size=stat.st_size)
            )
    return candidates


def is_binary_file(path: Path) -> bool:
    """Use deterministic content sniffing to exclude binary files."""
    with path.open("rb") as handle:
        sample = handle.read(_BINARY_SNIFF_BYTES)
    return is_binary_sample(sample)


def is_binary_sample(sample: bytes) -> bool:
    """Return True for NUL-bearing or non-UTF-8 leading bytes."""
    if b"\x00" in sample:
        return True
    try:
        sample.decode("utf-8")
    except UnicodeDecodeError as error:
        # A multi-byte character cut at the sniff boundary is still text.
        if error.start >= len(sample) - 3 and error.reason == "unexpected end of data":
            return False
        return True
    return False
