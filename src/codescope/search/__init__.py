"""Filename matching, grep and ranking engine."""

from .fuzzy import TierMatch, best_match, match
from .filters import FileFilter, parse_extensions
from .grep import GrepMatch, GrepResult, LineMatcher, grep
from .ranking import (
    FilenameScore,
    FindResult,
    ModuleScore,
    SearchResult,
    combined_score,
    content_score,
    find,
    search,
)
from .scan import Deadline, DeadlineExceededError, ScanExecutor
from .terms import normalize_query, query_terms

__all__ = [
    "Deadline",
    "DeadlineExceededError",
    "FileFilter",
    "FilenameScore",
    "FindResult",
    "GrepMatch",
    "GrepResult",
    "LineMatcher",
    "ModuleScore",
    "ScanExecutor",
    "SearchResult",
    "TierMatch",
    "best_match",
    "combined_score",
    "content_score",
    "find",
    "grep",
    "match",
    "normalize_query",
    "parse_extensions",
    "query_terms",
    "search",
]
