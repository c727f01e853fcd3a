"""Filename search ranking and combined filename/content ranking."""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from codescope.index.models import IndexedFile
from codescope.search.fuzzy import best_normalized_match
from codescope.search.scan import Deadline, ScanExecutor
from codescope.search.terms import normalize_query, query_terms

FILENAME_WEIGHT = 0.6
CONTENT_WEIGHT = 0.4
SCORE_DIGITS = 6


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1] and round so emitted ties compare equal."""
    return round(min(1.0, max(0.0, value)), SCORE_DIGITS)


@dataclass(slots=True, frozen=True)
class FilenameScore:
    path: str
    filename: str
    score: float

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "filename": self.filename, "score": self.score}


@dataclass(slots=True, frozen=True)
class ModuleScore:
    """Directory scored by its best-matching member file."""

    id: str
    name: str
    file_count: int
    score: float

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "fileCount": self.file_count,
            "score": self.score,
        }


@dataclass(slots=True, frozen=True)
class SearchResult:
    files: tuple[FilenameScore, ...]
    modules: tuple[ModuleScore, ...]

    def to_dict(self) -> dict[str, object]:
        return {
            "files": [item.to_dict() for item in self.files],
            "modules": [item.to_dict() for item in self.modules],
        }


@dataclass(slots=True, frozen=True)
class FindResult:
    """Per-file inputs of the combined ranking; the combined score is always derived."""

    path: str
    filename: str
    filename_score: float
    content_score: float
    occurrences: int

    @property
    def combined_score(self) -> float:
        return combined_score(self.filename_score, self.content_score)

    @property
    def match_type(self) -> str:
        if self.filename_score > 0 and self.content_score > 0:
            return "both"
        if self.filename_score > 0:
            return "name"
        return "content"

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "filename": self.filename,
            "filenameScore": self.filename_score,
            "contentScore": self.content_score,
            "combinedScore": self.combined_score,
            "matchType": self.match_type,
            "occurrences": self.occurrences,
        }


def combined_score(filename_score: float, content_score: float) -> float:
    """Weighted blend favoring filename identity over content mentions."""
    return clamp_unit(FILENAME_WEIGHT * filename_score + CONTENT_WEIGHT * content_score)


def content_score(occurrences: int, byte_size: int) -> float:
    """Occurrence count normalized by log2 of file size, capped at 1."""
    normalization = max(1.0, math.log2(byte_size)) if byte_size > 1 else 1.0
    return clamp_unit(occurrences / normalization)


def count_occurrences(text: str, terms: Sequence[str]) -> int:
    """Sum of non-overlapping case-insensitive occurrences of every term."""
    lowered = text.lower()
    return sum(lowered.count(term) for term in terms)


def score_filenames(query: str, files: Sequence[IndexedFile]) -> list[FilenameScore]:
    """Score every file against the query; zero scores are dropped."""
    normalized = normalize_query(query)
    if not normalized:
        return []
    scored: list[FilenameScore] = []
    for item in files:
        found = best_normalized_match(normalized, item)
        if found is None:
            continue
        score = clamp_unit(found.score)
        if score > 0:
            scored.append(FilenameScore(path=item.path, filename=item.filename, score=score))
    scored.sort(key=lambda entry: (-entry.score, entry.path))
    return scored


def search(
    query: str,
    files: Sequence[IndexedFile],
    *,
    file_limit: int,
    module_limit: int,
) -> SearchResult:
    """Rank files by filename match and group them into directory modules."""
    scored = score_filenames(query, files)
    if not scored:
        return SearchResult(files=(), modules=())

    directory_sizes = Counter(item.directory for item in files)
    directory_of = {item.path: item.directory for item in files}
    best_by_directory: dict[str, float] = {}
    for entry in scored:
        directory = directory_of[entry.path]
        if entry.score > best_by_directory.get(directory, 0.0):
            best_by_directory[directory] = entry.score

    modules = [
        ModuleScore(
            id=directory,
            name=directory.rsplit("/", 1)[-1],
            file_count=directory_sizes[directory],
            score=score,
        )
        for directory, score in best_by_directory.items()
    ]
    modules.sort(key=lambda entry: (-entry.score, entry.id))
    return SearchResult(
        files=tuple(scored[: max(0, file_limit)]),
        modules=tuple(modules[: max(0, module_limit)]),
    )


def find(
    query: str,
    files: Sequence[IndexedFile],
    read_text: Callable[[str], str | None],
    *,
    limit: int,
    executor: ScanExecutor | None = None,
    deadline: Deadline | None = None,
) -> list[FindResult]:
    """Rank files by the weighted blend of filename and content relevance.

    Every file is scored before ranking; unreadable files contribute a zero content score.
    """
    normalized = normalize_query(query)
    terms = query_terms(query)
    if not normalized or not terms:
        return []
    scanner = executor or ScanExecutor(workers=1)

    def score_file(item: IndexedFile) -> FindResult:
        found = best_normalized_match(normalized, item)
        name_score = clamp_unit(found.score) if found is not None else 0.0
        text = read_text(item.path)
        occurrences = count_occurrences(text, terms) if text is not None else 0
        return FindResult(
            path=item.path,
            filename=item.filename,
            filename_score=name_score,
            content_score=content_score(occurrences, item.byte_size),
            occurrences=occurrences,
        )

    results = [
        result
        for result in scanner.map_ordered(score_file, files, deadline=deadline, operation="find")
        if result.combined_score > 0
    ]
    results.sort(key=lambda entry: (-entry.combined_score, entry.path))
    return results[: max(0, limit)]
