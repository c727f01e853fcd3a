"""Fallback stub extractor for languages without structural support."""

from __future__ import annotations

from codescope.stubs.base import Declaration, leading_comment_block


class HeaderOnlyStubExtractor:
    """Keeps only the file header and any leading comment block."""

    name = "header_only"

    def supports(self, language: str) -> bool:
        """Fallback supports any language."""
        _ = language
        return True

    def preamble(self, text: str) -> list[str]:
        return leading_comment_block(text, ("#", "//", "--", ";"))

    def declarations(self, text: str) -> list[Declaration]:
        """Fallback returns no declarations."""
        _ = text
        return []
