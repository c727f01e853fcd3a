"""Budgeted context assembly over a snapshot."""

from __future__ import annotations

import math
from collections.abc import Sequence

from codescope.config import ContextConfig
from codescope.context.models import (
    BUDGET_UNITS,
    UNIT_BYTES,
    ContextBundle,
    ContextEntry,
    ContextSummary,
    FullEntry,
    InvalidParamsError,
    MissingEntry,
    StubEntry,
)
from codescope.index.models import IndexedFile
from codescope.index.snapshot import Snapshot
from codescope.search.scan import Deadline
from codescope.security import normalize_index_path
from codescope.stubs import StubExtractorRegistry
from codescope.stubs.base import comment_style


def utf8_size(text: str) -> int:
    return len(text.encode("utf-8"))


def measure(text: str, unit: str, bytes_per_token: int) -> int:
    """Size of text in the request unit; tokens are estimated from UTF-8 length."""
    size = utf8_size(text)
    if unit == UNIT_BYTES:
        return size
    return math.ceil(size / bytes_per_token)


def placeholder_stub(file: IndexedFile) -> str:
    """Stub text for an indexed file whose content cannot be read."""
    opener, closer = comment_style(file.language)
    return f"{opener} {file.path} (content unavailable, {file.byte_size} bytes){closer}"


class ContextAssembler:
    """Packs requested files into a bundle under a token or byte budget.

    Files are taken in request order. Every file up to the first one that does
    not fit is included in full; that file and every later readable file becomes
    a stub. The full set is therefore always a prefix of the request, so raising
    the budget can only turn stubs into full entries.
    """

    def __init__(
        self,
        snapshot: Snapshot,
        stubs: StubExtractorRegistry,
        *,
        bytes_per_token: int = 4,
        stub_max_bytes: int = 1024,
    ) -> None:
        if bytes_per_token < 1:
            raise ValueError("bytes_per_token must be >= 1.")
        self._snapshot = snapshot
        self._stubs = stubs
        self._bytes_per_token = bytes_per_token
        self._stub_max_bytes = stub_max_bytes

    @classmethod
    def from_config(
        cls,
        snapshot: Snapshot,
        stubs: StubExtractorRegistry,
        config: ContextConfig,
    ) -> ContextAssembler:
        return cls(
            snapshot,
            stubs,
            bytes_per_token=config.bytes_per_token,
            stub_max_bytes=config.stub_max_bytes,
        )

    def assemble(
        self,
        paths: Sequence[str],
        unit: str,
        budget: int,
        *,
        deadline: Deadline | None = None,
    ) -> ContextBundle:
        """Assemble a bundle with exactly one entry per distinct requested path."""
        if unit not in BUDGET_UNITS:
            raise InvalidParamsError(f"context unit must be one of {', '.join(BUDGET_UNITS)}.")
        if isinstance(budget, bool) or not isinstance(budget, int) or budget < 0:
            raise InvalidParamsError("context budget must be a non-negative integer.")
        for value in paths:
            if not isinstance(value, str):
                raise InvalidParamsError("context paths must be strings.")

        active_deadline = deadline or Deadline.unbounded()
        remaining = budget
        packing = True
        entries: list[ContextEntry] = []
        seen: set[str] = set()
        for requested in paths:
            active_deadline.check("context")
            key = normalize_index_path(requested)
            dedupe_key = key if key is not None else requested
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)

            file = self._snapshot.get(key) if key is not None else None
            if file is None:
                entries.append(MissingEntry(path=requested))
                continue

            text = self._snapshot.read_text(file.path)
            if text is None:
                placeholder = placeholder_stub(file)
                entries.append(
                    StubEntry(
                        path=file.path,
                        stub=placeholder,
                        tokens=self._measure(placeholder, unit),
                        unavailable=True,
                    )
                )
                continue

            size = self._measure(text, unit)
            if packing and size <= remaining:
                entries.append(FullEntry(path=file.path, content=text, tokens=size))
                remaining -= size
                continue

            packing = False
            stub = self._render_stub(file, text)
            stub_size = self._measure(stub, unit)
            if stub_size <= remaining:
                remaining -= stub_size
            entries.append(StubEntry(path=file.path, stub=stub, tokens=stub_size))

        summary = ContextSummary(
            total_files=len(entries),
            total_tokens=sum(entry.tokens for entry in entries),
            truncated_files=sum(1 for entry in entries if entry.truncated),
            budget=budget,
            unit=unit,
            remaining_budget=remaining,
        )
        return ContextBundle(entries=tuple(entries), summary=summary)

    def _measure(self, text: str, unit: str) -> int:
        return measure(text, unit, self._bytes_per_token)

    def _render_stub(self, file: IndexedFile, text: str) -> str:
        # A stub is never larger than the content it replaces.
        return self._stubs.render(file, text, min(self._stub_max_bytes, utf8_size(text)))
