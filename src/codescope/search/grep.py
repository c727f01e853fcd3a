"""Multi-term line grep over indexed file content."""

from __future__ import annotations

import re
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from codescope.index.models import IndexedFile
from codescope.search.scan import Deadline, ScanExecutor
from codescope.search.terms import query_terms

MATCH_ALL = "and"
MATCH_ANY = "or"
SNIPPET_ELLIPSIS = "..."


@dataclass(slots=True, frozen=True)
class GrepMatch:
    """One matching line; line and column are 1-based, column counts UTF-8 bytes."""

    path: str
    line: int
    column: int
    snippet: str

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "snippet": self.snippet,
        }


@dataclass(slots=True, frozen=True)
class GrepResult:
    """Collected matches plus scan statistics."""

    matches: tuple[GrepMatch, ...]
    searched_files: int
    truncated: bool

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict[str, object]:
        return {
            "matches": [item.to_dict() for item in self.matches],
            "totalMatches": self.total_matches,
            "searchedFiles": self.searched_files,
            "truncated": self.truncated,
        }


class LineMatcher:
    """Decides whether a line matches the query terms and where the first hit starts."""

    def __init__(self, terms: Sequence[str], mode: str = MATCH_ALL) -> None:
        if mode not in (MATCH_ALL, MATCH_ANY):
            raise ValueError(f"Unsupported grep match mode: {mode}")
        self._patterns = tuple(re.compile(re.escape(term), re.IGNORECASE) for term in terms)
        self._require_all = mode == MATCH_ALL

    def column(self, line: str) -> int | None:
        """Return the 1-based byte column of the leftmost term hit, or None for no match."""
        first: int | None = None
        for pattern in self._patterns:
            found = pattern.search(line)
            if found is None:
                if self._require_all:
                    return None
                continue
            if first is None or found.start() < first:
                first = found.start()
        if first is None:
            return None
        return len(line[:first].encode("utf-8")) + 1


def truncate_snippet(line: str, max_chars: int) -> str:
    """Cap a line for display; lines within the cap are returned unchanged."""
    if len(line) <= max_chars:
        return line
    return line[:max_chars] + SNIPPET_ELLIPSIS


def grep_text(
    path: str,
    text: str,
    matcher: LineMatcher,
    *,
    max_per_file: int,
    snippet_max_chars: int,
) -> list[GrepMatch]:
    """Collect up to ``max_per_file`` matching lines from one file, in line order."""
    matches: list[GrepMatch] = []
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line[:-1] if raw_line.endswith("\r") else raw_line
        column = matcher.column(line)
        if column is None:
            continue
        matches.append(
            GrepMatch(
                path=path,
                line=line_number,
                column=column,
                snippet=truncate_snippet(line, snippet_max_chars),
            )
        )
        if len(matches) >= max_per_file:
            break
    return matches


def grep(
    query: str,
    files: Sequence[IndexedFile],
    read_text: Callable[[str], str | None],
    *,
    limit: int,
    max_per_file: int,
    match_mode: str = MATCH_ALL,
    snippet_max_chars: int = 200,
    executor: ScanExecutor | None = None,
    deadline: Deadline | None = None,
) -> GrepResult:
    """Scan files in index order and return at most ``limit`` matching lines.

    Files whose content is unavailable are skipped and not counted as searched.
    ``truncated`` reports that collection stopped at ``limit``.
    """
    terms = query_terms(query)
    if not terms or limit < 1 or max_per_file < 1:
        return GrepResult(matches=(), searched_files=0, truncated=False)

    matcher = LineMatcher(terms, match_mode)
    scanner = executor or ScanExecutor(workers=1)

    def scan_file(item: IndexedFile) -> list[GrepMatch] | None:
        text = read_text(item.path)
        if text is None:
            return None
        return grep_text(
            item.path,
            text,
            matcher,
            max_per_file=max_per_file,
            snippet_max_chars=snippet_max_chars,
        )

    collected: list[GrepMatch] = []
    searched_files = 0
    truncated = False
    results = scanner.map_ordered(scan_file, files, deadline=deadline, operation="grep")
    try:
        for file_matches in results:
            if file_matches is None:
                continue
            searched_files += 1
            room = limit - len(collected)
            collected.extend(file_matches[:room])
            if len(collected) >= limit:
                truncated = True
                break
    finally:
        results.close()
    return GrepResult(matches=tuple(collected), searched_files=searched_files, truncated=truncated)
