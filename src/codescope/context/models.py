"""Context bundle entries, summary and validation errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

UNIT_TOKENS: Final[str] = "tokens"
UNIT_BYTES: Final[str] = "bytes"
BUDGET_UNITS: Final[tuple[str, ...]] = (UNIT_TOKENS, UNIT_BYTES)


@dataclass(slots=True, frozen=True)
class InvalidParamsError(Exception):
    """Request had the wrong shape: bad unit, negative budget, non-string path."""

    message: str

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True, frozen=True)
class FullEntry:
    """File included verbatim."""

    path: str
    content: str
    tokens: int

    @property
    def truncated(self) -> bool:
        return False

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "content": self.content,
            "stub": None,
            "tokens": self.tokens,
            "truncated": False,
            "kind": "full",
        }


@dataclass(slots=True, frozen=True)
class StubEntry:
    """File replaced by a structural summary.

    ``unavailable`` marks placeholders for files whose content could not be read;
    those never consume budget.
    """

    path: str
    stub: str
    tokens: int
    unavailable: bool = False

    @property
    def truncated(self) -> bool:
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "content": None,
            "stub": self.stub,
            "tokens": self.tokens,
            "truncated": True,
            "kind": "unavailable" if self.unavailable else "stub",
        }


@dataclass(slots=True, frozen=True)
class MissingEntry:
    """Requested path that is not in the index."""

    path: str

    @property
    def tokens(self) -> int:
        return 0

    @property
    def truncated(self) -> bool:
        return True

    def to_dict(self) -> dict[str, object]:
        return {
            "path": self.path,
            "content": None,
            "stub": None,
            "tokens": 0,
            "truncated": True,
            "kind": "missing",
        }


ContextEntry = FullEntry | StubEntry | MissingEntry


@dataclass(slots=True, frozen=True)
class ContextSummary:
    """Totals over one assembled bundle, measured in the request unit."""

    total_files: int
    total_tokens: int
    truncated_files: int
    budget: int
    unit: str
    remaining_budget: int

    def to_dict(self) -> dict[str, object]:
        return {
            "totalFiles": self.total_files,
            "totalTokens": self.total_tokens,
            "truncatedFiles": self.truncated_files,
            "budget": self.budget,
            "unit": self.unit,
            "remainingBudget": self.remaining_budget,
        }


@dataclass(slots=True, frozen=True)
class ContextBundle:
    entries: tuple[ContextEntry, ...]
    summary: ContextSummary

    def to_dict(self) -> dict[str, object]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "summary": self.summary.to_dict(),
        }
