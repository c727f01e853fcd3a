"""Tiered filename matching.

Each strategy answers one question about a (query, file) pair and returns a score
or None. Strategies are tried in tier order and the first hit wins; scores never
add up across tiers. Tier scores are strictly ordered, so the first hit is also
the best one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from codescope.index.models import IndexedFile
from codescope.search.terms import normalize_query

EXACT_SCORE = 1.0
STEM_SCORE = 0.9
PREFIX_BASE_SCORE = 0.7
PREFIX_PENALTY_PER_CHAR = 0.01
PREFIX_FLOOR_SCORE = 0.6
PATH_SUBSTRING_SCORE = 0.5
SUBSEQUENCE_WEIGHT = 0.4


@dataclass(slots=True, frozen=True)
class TierMatch:
    """Winning tier for one file."""

    tier: int
    strategy: str
    score: float


class MatchStrategy(Protocol):
    """One matching tier."""

    tier: int
    name: str

    def score(self, query: str, file: IndexedFile) -> float | None:
        """Return a score for a normalized query, or None when the tier does not apply."""


def filename_stem(filename: str) -> str:
    """Filename without its last extension; dotfiles keep their full name."""
    head, sep, _ = filename.rpartition(".")
    if not sep or not head:
        return filename
    return head


def is_subsequence(needle: str, haystack: str) -> bool:
    """Return True when needle's characters appear in haystack in order."""
    position = 0
    for char in needle:
        position = haystack.find(char, position)
        if position < 0:
            return False
        position += 1
    return True


class ExactFilenameStrategy:
    tier = 1
    name = "exact_filename"

    def score(self, query: str, file: IndexedFile) -> float | None:
        return EXACT_SCORE if file.filename.lower() == query else None


class StemStrategy:
    tier = 2
    name = "stem"

    def score(self, query: str, file: IndexedFile) -> float | None:
        return STEM_SCORE if filename_stem(file.filename.lower()) == query else None


class PrefixStrategy:
    tier = 3
    name = "prefix"

    def score(self, query: str, file: IndexedFile) -> float | None:
        filename = file.filename.lower()
        if not filename.startswith(query):
            return None
        extra_chars = len(filename) - len(query)
        return max(PREFIX_FLOOR_SCORE, PREFIX_BASE_SCORE - PREFIX_PENALTY_PER_CHAR * extra_chars)


class PathSubstringStrategy:
    tier = 4
    name = "path_substring"

    def score(self, query: str, file: IndexedFile) -> float | None:
        return PATH_SUBSTRING_SCORE if query in file.path.lower() else None


class SubsequenceStrategy:
    tier = 5
    name = "subsequence"

    def score(self, query: str, file: IndexedFile) -> float | None:
        filename = file.filename.lower()
        if not filename or not is_subsequence(query, filename):
            return None
        return SUBSEQUENCE_WEIGHT * (len(query) / len(filename))


DEFAULT_STRATEGIES: tuple[MatchStrategy, ...] = (
    ExactFilenameStrategy(),
    StemStrategy(),
    PrefixStrategy(),
    PathSubstringStrategy(),
    SubsequenceStrategy(),
)


def best_normalized_match(
    query: str,
    file: IndexedFile,
    strategies: tuple[MatchStrategy, ...] = DEFAULT_STRATEGIES,
) -> TierMatch | None:
    """Return the first matching tier for an already-normalized query."""
    if not query:
        return None
    for strategy in strategies:
        score = strategy.score(query, file)
        if score is not None:
            return TierMatch(tier=strategy.tier, strategy=strategy.name, score=score)
    return None


def best_match(query: str, file: IndexedFile) -> TierMatch | None:
    """Return the winning tier for a raw query, or None when nothing matches."""
    return best_normalized_match(normalize_query(query), file)


def match(query: str, file: IndexedFile) -> float:
    """Score how well a query names a file, in [0, 1]."""
    found = best_match(query, file)
    return found.score if found is not None else 0.0
