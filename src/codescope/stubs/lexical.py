"""Lexical masking and brace-depth helpers for non-AST stub extractors."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LexicalRules:
    """Comment and string markers blanked out before structural scanning."""

    line_comment_prefixes: tuple[str, ...] = ("//",)
    block_comment_pairs: tuple[tuple[str, str], ...] = (("/*", "*/"),)
    string_delimiters: tuple[str, ...] = ('"', "'")
    escape_char: str = "\\"


def mask_comments_and_strings(text: str, rules: LexicalRules | None = None) -> str:
    """Blank comments and string literals, keeping line count and character offsets."""
    active_rules = rules or LexicalRules()
    line_prefixes = _longest_first(active_rules.line_comment_prefixes)
    block_pairs = tuple(
        sorted(
            ((start, end) for start, end in active_rules.block_comment_pairs if start and end),
            key=lambda pair: len(pair[0]),
            reverse=True,
        )
    )
    string_delimiters = _longest_first(active_rules.string_delimiters)

    chars = list(text)
    length = len(text)
    index = 0
    mode: str | None = None
    closing = ""

    while index < length:
        if mode is None:
            line_marker = _match_any(text, index, line_prefixes)
            if line_marker is not None:
                _blank(chars, index, len(line_marker))
                mode = "line_comment"
                index += len(line_marker)
                continue

            block_marker = _match_block_start(text, index, block_pairs)
            if block_marker is not None:
                _blank(chars, index, len(block_marker[0]))
                mode, closing = "block_comment", block_marker[1]
                index += len(block_marker[0])
                continue

            string_marker = _match_any(text, index, string_delimiters)
            if string_marker is not None:
                _blank(chars, index, len(string_marker))
                mode, closing = "string", string_marker
                index += len(string_marker)
                continue

            index += 1
            continue

        if mode == "line_comment":
            if text[index] == "\n":
                mode = None
            else:
                chars[index] = " "
            index += 1
            continue

        at_close = text.startswith(closing, index)
        if at_close and mode == "string":
            at_close = not _is_escaped(text, index, closing, active_rules.escape_char)
        if at_close:
            _blank(chars, index, len(closing))
            mode = None
            index += len(closing)
            continue
        if text[index] != "\n":
            chars[index] = " "
        index += 1

    return "".join(chars)


def line_depths(masked_text: str) -> list[int]:
    """Brace depth in effect at the start of each line of masked text."""
    depths: list[int] = []
    depth = 0
    for line in masked_text.split("\n"):
        depths.append(depth)
        for char in line:
            if char == "{":
                depth += 1
            elif char == "}":
                depth = max(0, depth - 1)
    return depths


def _longest_first(markers: tuple[str, ...]) -> tuple[str, ...]:
    return tuple(sorted((marker for marker in markers if marker), key=len, reverse=True))


def _blank(chars: list[str], start: int, count: int) -> None:
    for offset in range(count):
        chars[start + offset] = " "


def _match_any(text: str, index: int, markers: tuple[str, ...]) -> str | None:
    for marker in markers:
        if text.startswith(marker, index):
            return marker
    return None


def _match_block_start(
    text: str,
    index: int,
    pairs: tuple[tuple[str, str], ...],
) -> tuple[str, str] | None:
    for start, end in pairs:
        if text.startswith(start, index):
            return start, end
    return None


def _is_escaped(text: str, index: int, marker: str, escape_char: str) -> bool:
    if len(marker) > 1:
        return False
    backslashes = 0
    cursor = index - 1
    while cursor >= 0 and text[cursor] == escape_char:
        backslashes += 1
        cursor -= 1
    return backslashes % 2 == 1
