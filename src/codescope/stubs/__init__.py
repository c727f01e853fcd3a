"""Structural stub extraction for files that do not fit a context budget."""

from .base import Declaration, StubExtractor, render_stub
from .braces import BraceStubExtractor
from .fallback import HeaderOnlyStubExtractor
from .lexical import LexicalRules, line_depths, mask_comments_and_strings
from .python import PythonAstStubExtractor
from .runtime import StubExtractorRegistry, build_stub_registry

__all__ = [
    "BraceStubExtractor",
    "Declaration",
    "HeaderOnlyStubExtractor",
    "LexicalRules",
    "PythonAstStubExtractor",
    "StubExtractor",
    "StubExtractorRegistry",
    "build_stub_registry",
    "line_depths",
    "mask_comments_and_strings",
    "render_stub",
]
