"""Stub extractor protocol, declaration model and bounded stub rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from codescope.index.models import IndexedFile

MAX_SIGNATURE_CHARS = 160
MAX_PREAMBLE_LINES = 5
INDENT = "    "

_COMMENT_STYLES: dict[str, tuple[str, str]] = {
    "python": ("#", ""),
    "ruby": ("#", ""),
    "shell": ("#", ""),
    "toml": ("#", ""),
    "yaml": ("#", ""),
    "ini": (";", ""),
    "gomod": ("//", ""),
    "sql": ("--", ""),
    "markdown": ("<!--", " -->"),
    "html": ("<!--", " -->"),
    "restructuredtext": ("..", ""),
    "css": ("/*", " */"),
    "text": ("#", ""),
}
_DEFAULT_COMMENT_STYLE = ("//", "")


@dataclass(slots=True, frozen=True)
class Declaration:
    """One declaration line kept in a stub."""

    line: int
    kind: str
    signature: str
    depth: int = 0


class StubExtractor(Protocol):
    """Per-language structure extraction used when a file is replaced by a stub."""

    name: str

    def supports(self, language: str) -> bool:
        """Return True when the extractor handles this language."""

    def preamble(self, text: str) -> list[str]:
        """Return the file's leading comment or docstring lines."""

    def declarations(self, text: str) -> list[Declaration]:
        """Return declarations in any order."""


def comment_style(language: str) -> tuple[str, str]:
    """Return (open, close) markers for a single-line comment in a language."""
    return _COMMENT_STYLES.get(language, _DEFAULT_COMMENT_STYLE)


def compact_signature(line: str) -> str:
    """Collapse whitespace and cap a declaration line."""
    compact = " ".join(line.strip().split())
    if len(compact) <= MAX_SIGNATURE_CHARS:
        return compact
    return compact[: MAX_SIGNATURE_CHARS - 3] + "..."


def sort_declarations(declarations: list[Declaration]) -> list[Declaration]:
    """Order declarations by line, dropping duplicate lines."""
    ordered: list[Declaration] = []
    seen_lines: set[int] = set()
    for item in sorted(declarations, key=lambda entry: (entry.line, entry.depth, entry.kind)):
        if item.line in seen_lines or not item.signature:
            continue
        seen_lines.add(item.line)
        ordered.append(item)
    return ordered


def leading_comment_block(text: str, prefixes: tuple[str, ...]) -> list[str]:
    """Collect the comment lines at the top of a file, skipping blank lines before them."""
    collected: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped:
            if collected:
                break
            continue
        if stripped.startswith("#!") and not collected:
            continue
        if not stripped.startswith(prefixes):
            break
        collected.append(compact_signature(stripped))
        if len(collected) >= MAX_PREAMBLE_LINES:
            break
    return collected


def render_stub(
    file: IndexedFile,
    text: str,
    extractor: StubExtractor,
    max_bytes: int,
) -> str:
    """Render a structural summary of a file no larger than ``max_bytes``.

    Lines are added whole: header, leading comments, then declarations in line
    order. A closing note records how many lines did not fit. When even the
    detailed header is too large a bare path header is used, and when that does
    not fit either the stub is empty.
    """
    opener, closer = comment_style(file.language)
    line_count = text.count("\n") + (0 if text.endswith("\n") or not text else 1)
    headers = (
        f"{opener} {file.path} (stub of {line_count} lines, {file.byte_size} bytes){closer}",
        f"{opener} {file.path}{closer}",
    )
    header = next((item for item in headers if len(item.encode("utf-8")) <= max_bytes), None)
    if header is None:
        return ""
    body: list[str] = list(extractor.preamble(text))
    declarations = sort_declarations(extractor.declarations(text))

    lines = [header]
    used = len(header.encode("utf-8"))

    omitted = 0
    candidates = body + [INDENT * item.depth + item.signature for item in declarations]
    for index, candidate in enumerate(candidates):
        cost = len(candidate.encode("utf-8")) + 1
        if used + cost > max_bytes:
            omitted = len(candidates) - index
            break
        lines.append(candidate)
        used += cost

    if omitted:
        note = f"{opener} ... {omitted} more lines omitted{closer}"
        if used + len(note.encode("utf-8")) + 1 <= max_bytes:
            lines.append(note)
    return "\n".join(lines)
