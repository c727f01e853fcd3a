"""Extractor selection and failure-tolerant stub rendering."""

from __future__ import annotations

from collections.abc import Iterable

from codescope.config import StubsConfig
from codescope.index.models import IndexedFile
from codescope.stubs.base import StubExtractor, render_stub
from codescope.stubs.braces import build_brace_extractors
from codescope.stubs.fallback import HeaderOnlyStubExtractor
from codescope.stubs.python import PythonAstStubExtractor
from codescope.stubs.structured import (
    JsonStubExtractor,
    MarkdownStubExtractor,
    SectionStubExtractor,
    YamlStubExtractor,
)


class StubExtractorRegistry:
    """Picks an extractor per language and renders stubs with it.

    Extractors are tried in registration order and the first one supporting a
    language wins; the choice is cached per language. The fallback handles
    every other language and also any file its structural extractor fails on.
    """

    __slots__ = ("_extractors", "_fallback", "_chosen")

    def __init__(
        self,
        extractors: Iterable[StubExtractor] = (),
        fallback: StubExtractor | None = None,
    ) -> None:
        self._extractors: list[StubExtractor] = list(extractors)
        self._fallback = fallback or HeaderOnlyStubExtractor()
        self._chosen: dict[str, StubExtractor] = {}

    def select(self, language: str) -> StubExtractor:
        chosen = self._chosen.get(language)
        if chosen is None:
            chosen = next(
                (extractor for extractor in self._extractors if extractor.supports(language)),
                self._fallback,
            )
            self._chosen[language] = chosen
        return chosen

    def render(self, file: IndexedFile, text: str, max_bytes: int) -> str:
        """Stub for ``file`` capped at ``max_bytes``; a failing extractor yields a header-only stub."""
        extractor = self.select(file.language)
        try:
            return render_stub(file, text, extractor, max_bytes)
        except Exception:
            if extractor is self._fallback:
                raise
            return render_stub(file, text, self._fallback, max_bytes)

    def names(self) -> tuple[str, ...]:
        """Extractor names in selection order, fallback last."""
        return (*(extractor.name for extractor in self._extractors), self._fallback.name)


def build_stub_registry(config: StubsConfig | None = None) -> StubExtractorRegistry:
    """Build the extractor registry from effective config."""
    active = config or StubsConfig()
    extractors: list[StubExtractor] = []
    if active.python_ast_enabled:
        extractors.append(PythonAstStubExtractor())
    extractors.extend(build_brace_extractors())
    extractors.extend(
        (SectionStubExtractor(), YamlStubExtractor(), JsonStubExtractor(), MarkdownStubExtractor())
    )
    return StubExtractorRegistry(extractors, fallback=HeaderOnlyStubExtractor())
