"""Lexical stub extractor for brace-delimited languages."""

from __future__ import annotations

import re
from dataclasses import dataclass

from codescope.stubs.base import Declaration, compact_signature, leading_comment_block
from codescope.stubs.lexical import LexicalRules, line_depths, mask_comments_and_strings

_CONTROL_WORDS = frozenset(
    {
        "if",
        "else",
        "for",
        "foreach",
        "while",
        "do",
        "switch",
        "case",
        "catch",
        "try",
        "return",
        "new",
        "throw",
        "await",
        "sizeof",
        "delete",
        "using",
        "lock",
        "match",
        "loop",
        "defer",
        "go",
        "select",
    }
)
_CALLABLE_NAME_RE = re.compile(r"([A-Za-z_$~][\w$]*)\s*(?:<[^()]*>)?\s*\(")


@dataclass(slots=True, frozen=True)
class BraceLanguage:
    """Declaration patterns for one brace-delimited language family."""

    name: str
    languages: tuple[str, ...]
    rules: LexicalRules
    type_pattern: re.Pattern[str]
    callable_pattern: re.Pattern[str] | None
    max_depth: int = 1


GO = BraceLanguage(
    name="go",
    languages=("go",),
    rules=LexicalRules(string_delimiters=('"', "`", "'")),
    type_pattern=re.compile(r"^\s*(package|type|func|const|var)\b"),
    callable_pattern=None,
    max_depth=0,
)
RUST = BraceLanguage(
    name="rust",
    languages=("rust",),
    rules=LexicalRules(string_delimiters=('"',)),
    type_pattern=re.compile(
        r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:async\s+|const\s+|unsafe\s+|extern\s+)*"
        r"(fn|struct|enum|trait|impl|mod|type|union)\b"
    ),
    callable_pattern=None,
)
JVM = BraceLanguage(
    name="jvm",
    languages=("java", "kotlin", "csharp"),
    rules=LexicalRules(string_delimiters=('"', "'")),
    type_pattern=re.compile(
        r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*"
        r"(?:(?:public|private|protected|internal|static|final|abstract|sealed|partial|open|"
        r"data|inner|readonly|override|virtual|async|suspend)\s+)*"
        r"(class|interface|enum|record|struct|namespace|object|fun|package)\b"
    ),
    callable_pattern=re.compile(
        r"^\s*(?:(?:public|private|protected|internal|static|final|abstract|override|"
        r"virtual|async|synchronized|native|extern|unsafe|new)\s+)*"
        r"[\w<>\[\],.?]+(?:\s*<[^>]*>)?\s+[A-Za-z_]\w*\s*\("
    ),
)
TS_JS = BraceLanguage(
    name="ts_js",
    languages=("typescript", "javascript"),
    rules=LexicalRules(string_delimiters=('"', "'", "`")),
    type_pattern=re.compile(
        r"^\s*(?:export\s+(?:default\s+)?)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
        r"(function\*?|class|interface|type|enum|namespace|module)\b"
        r"|^\s*(?:export\s+)?(?:const|let|var)\s+[\w$]+\s*(?::[^=]+)?=\s*(?:async\s*)?"
        r"(?:\([^)]*\)|[\w$]+)\s*(?::[^=]+)?=>"
    ),
    callable_pattern=re.compile(
        r"^\s*(?:(?:public|private|protected|static|async|readonly|get|set|override)\s+)*"
        r"\*?[\w$]+\s*(?:<[^>]*>)?\s*\([^;]*$"
    ),
)
C_FAMILY = BraceLanguage(
    name="c_family",
    languages=("c", "cpp"),
    rules=LexicalRules(string_delimiters=('"', "'")),
    type_pattern=re.compile(
        r"^\s*(?:typedef\s+)?(?:template\s*<[^>]*>\s*)?(struct|class|union|enum|namespace)\b"
        r"|^\s*#\s*define\s+\w+"
    ),
    callable_pattern=re.compile(
        r"^\s*(?:[\w:*&<>,~]+\s+)*[*&]*[\w:~]+\s*\([^;]*\)\s*(?:const\s*)?(?:noexcept\s*)?"
        r"(?:override\s*)?\{?\s*$"
    ),
)
SWIFT = BraceLanguage(
    name="swift",
    languages=("swift",),
    rules=LexicalRules(string_delimiters=('"',)),
    type_pattern=re.compile(
        r"^\s*(?:@\w+\s+)*(?:(?:public|private|fileprivate|internal|open|final|static|"
        r"override|mutating)\s+)*(func|class|struct|enum|protocol|extension|init)\b"
    ),
    callable_pattern=None,
)

BRACE_LANGUAGES: tuple[BraceLanguage, ...] = (GO, RUST, JVM, TS_JS, C_FAMILY, SWIFT)


class BraceStubExtractor:
    """Declarations at the top level and one nesting level down, bodies elided."""

    def __init__(self, language: BraceLanguage) -> None:
        self._language = language
        self.name = f"{language.name}_lexical"

    def supports(self, language: str) -> bool:
        return language in self._language.languages

    def preamble(self, text: str) -> list[str]:
        return leading_comment_block(text, ("//", "/*", "*"))

    def declarations(self, text: str) -> list[Declaration]:
        masked = mask_comments_and_strings(text, self._language.rules)
        masked_lines = masked.split("\n")
        original_lines = text.split("\n")
        depths = line_depths(masked)
        output: list[Declaration] = []
        for index, masked_line in enumerate(masked_lines):
            depth = depths[index]
            if depth > self._language.max_depth or not masked_line.strip():
                continue
            kind = self._classify(masked_line)
            if kind is None:
                continue
            output.append(
                Declaration(
                    line=index + 1,
                    kind=kind,
                    signature=_elide_body(original_lines[index], masked_line),
                    depth=depth,
                )
            )
        return output

    def _classify(self, masked_line: str) -> str | None:
        matched = self._language.type_pattern.match(masked_line)
        if matched is not None:
            keyword = next((group for group in matched.groups() if group), None)
            return keyword.rstrip("*") if keyword else "binding"
        pattern = self._language.callable_pattern
        if pattern is None or pattern.match(masked_line) is None:
            return None
        name = _CALLABLE_NAME_RE.search(masked_line)
        if name is None or name.group(1) in _CONTROL_WORDS:
            return None
        stripped = masked_line.strip()
        if stripped.endswith(";") or "=" in stripped.split("(", 1)[0]:
            return None
        return "callable"


def _elide_body(original_line: str, masked_line: str) -> str:
    """Keep the declaration header and replace an opened body with ``{ ... }``."""
    brace = masked_line.find("{")
    if brace < 0:
        return compact_signature(original_line)
    header = original_line[:brace].rstrip()
    return compact_signature(f"{header} {{ ... }}" if header else original_line)


def build_brace_extractors() -> list[BraceStubExtractor]:
    """One extractor per supported brace language family."""
    return [BraceStubExtractor(language) for language in BRACE_LANGUAGES]
