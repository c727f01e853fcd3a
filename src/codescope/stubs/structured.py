"""Stub extractors for configuration and markup files."""

from __future__ import annotations

import json
import re

from codescope.stubs.base import Declaration, compact_signature, leading_comment_block

_SECTION_RE = re.compile(r"^\s*\[\[?\s*[^\]]+\]\]?\s*$")
_YAML_KEY_RE = re.compile(r"^([A-Za-z_][\w.-]*|\"[^\"]+\"|'[^']+')\s*:")
_HEADING_RE = re.compile(r"^(#{1,6})\s+\S")


class SectionStubExtractor:
    """TOML and INI table headers."""

    name = "sections"

    def supports(self, language: str) -> bool:
        return language in ("toml", "ini")

    def preamble(self, text: str) -> list[str]:
        return leading_comment_block(text, ("#", ";"))

    def declarations(self, text: str) -> list[Declaration]:
        return [
            Declaration(line=number, kind="section", signature=compact_signature(line))
            for number, line in enumerate(text.splitlines(), start=1)
            if _SECTION_RE.match(line)
        ]


class YamlStubExtractor:
    """Top-level YAML keys."""

    name = "yaml_keys"

    def supports(self, language: str) -> bool:
        return language == "yaml"

    def preamble(self, text: str) -> list[str]:
        return leading_comment_block(text, ("#",))

    def declarations(self, text: str) -> list[Declaration]:
        output: list[Declaration] = []
        for number, line in enumerate(text.splitlines(), start=1):
            matched = _YAML_KEY_RE.match(line)
            if matched is not None:
                output.append(
                    Declaration(line=number, kind="key", signature=f"{matched.group(1)}:")
                )
        return output


class JsonStubExtractor:
    """Top-level JSON object keys with the type of each value."""

    name = "json_keys"

    def supports(self, language: str) -> bool:
        return language == "json"

    def preamble(self, text: str) -> list[str]:
        return []

    def declarations(self, text: str) -> list[Declaration]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return []
        if not isinstance(payload, dict):
            return [
                Declaration(line=1, kind="value", signature=f"<{_json_type(payload)}>"),
            ]
        return [
            Declaration(
                line=position,
                kind="key",
                signature=compact_signature(f"{json.dumps(key)}: <{_json_type(value)}>"),
            )
            for position, (key, value) in enumerate(payload.items(), start=1)
        ]


class MarkdownStubExtractor:
    """Markdown headings, indented by level."""

    name = "markdown_headings"

    def supports(self, language: str) -> bool:
        return language == "markdown"

    def preamble(self, text: str) -> list[str]:
        return []

    def declarations(self, text: str) -> list[Declaration]:
        output: list[Declaration] = []
        in_fence = False
        for number, line in enumerate(text.splitlines(), start=1):
            if line.lstrip().startswith("```"):
                in_fence = not in_fence
                continue
            if in_fence:
                continue
            matched = _HEADING_RE.match(line)
            if matched is not None:
                output.append(
                    Declaration(
                        line=number,
                        kind="heading",
                        signature=compact_signature(line),
                        depth=len(matched.group(1)) - 1,
                    )
                )
        return output


def _json_type(value: object) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, str):
        return "string"
    if isinstance(value, bool):
        return "boolean"
    if value is None:
        return "null"
    return "number"
