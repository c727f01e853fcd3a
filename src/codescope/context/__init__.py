"""Budget-constrained context bundles."""

from .engine import ContextAssembler, measure, placeholder_stub
from .models import (
    BUDGET_UNITS,
    UNIT_BYTES,
    UNIT_TOKENS,
    ContextBundle,
    ContextEntry,
    ContextSummary,
    FullEntry,
    InvalidParamsError,
    MissingEntry,
    StubEntry,
)

__all__ = [
    "BUDGET_UNITS",
    "ContextAssembler",
    "ContextBundle",
    "ContextEntry",
    "ContextSummary",
    "FullEntry",
    "InvalidParamsError",
    "MissingEntry",
    "StubEntry",
    "UNIT_BYTES",
    "UNIT_TOKENS",
    "measure",
    "placeholder_stub",
]
