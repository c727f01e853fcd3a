from __future__ import annotations

from codescope.config import StubsConfig
from codescope.stubs import BraceStubExtractor, PythonAstStubExtractor, build_stub_registry
from codescope.stubs.braces import GO, RUST, TS_JS
from codescope.stubs.structured import (
    JsonStubExtractor,
    MarkdownStubExtractor,
    SectionStubExtractor,
    YamlStubExtractor,
)

PYTHON_SOURCE = '''"""Utility helpers.

More detail here.
"""

import os


class Greeter(Base):
    def greet(self, name: str) -> str:
        def inner():
            return name
        return inner()


async def fetch(url, *, timeout=5):
    pass
'''

GO_SOURCE = """// Package a does things.
package a

import "fmt"

type Server struct {
\tname string
}

func (s *Server) Run() error {
\tfmt.Println("{")
\treturn nil
}
"""


def _signatures(declarations) -> list[str]:
    return [item.signature for item in sorted(declarations, key=lambda item: item.line)]


def test_python_extractor_keeps_signatures_and_skips_function_bodies() -> None:
    extractor = PythonAstStubExtractor()

    declarations = extractor.declarations(PYTHON_SOURCE)

    assert _signatures(declarations) == [
        "class Greeter(Base):",
        "def greet(self, name: str) -> str: ...",
        "async def fetch(url, *, timeout=5): ...",
    ]
    assert [item.depth for item in sorted(declarations, key=lambda item: item.line)] == [0, 1, 0]
    assert extractor.preamble(PYTHON_SOURCE) == ['"""Utility helpers."""']


def test_python_extractor_falls_back_to_regex_on_syntax_errors() -> None:
    extractor = PythonAstStubExtractor()

    declarations = extractor.declarations("def ok(a):\n    return (\n\nclass Broken:\n")

    assert _signatures(declarations) == ["def ok(a):", "class Broken:"]


def test_go_extractor_elides_bodies_and_ignores_braces_in_strings() -> None:
    extractor = BraceStubExtractor(GO)

    declarations = extractor.declarations(GO_SOURCE)

    assert _signatures(declarations) == [
        "package a",
        "type Server struct { ... }",
        "func (s *Server) Run() error { ... }",
    ]
    assert extractor.preamble(GO_SOURCE) == ["// Package a does things."]


def test_rust_extractor_reads_items_and_impl_members() -> None:
    source = (
        "pub struct Config {\n    name: String,\n}\n\n"
        "impl Config {\n    pub fn new() -> Self {\n        Config { name: String::new() }\n    }\n}\n"
    )

    declarations = BraceStubExtractor(RUST).declarations(source)

    assert _signatures(declarations) == [
        "pub struct Config { ... }",
        "impl Config { ... }",
        "pub fn new() -> Self { ... }",
    ]


def test_ts_extractor_finds_exports_and_arrow_functions() -> None:
    source = (
        "export interface Props {\n  name: string;\n}\n"
        "export const render = (props: Props) => {\n  return props.name;\n};\n"
        "export class View {\n  draw(ctx: Context): void {\n    if (ctx) {\n    }\n  }\n}\n"
    )

    declarations = BraceStubExtractor(TS_JS).declarations(source)

    kinds = {item.signature: item.kind for item in declarations}
    assert kinds["export interface Props { ... }"] == "interface"
    assert kinds["export const render = (props: Props) => { ... }"] == "binding"
    assert kinds["export class View { ... }"] == "class"
    assert kinds["draw(ctx: Context): void { ... }"] == "callable"
    assert all(not signature.startswith("if") for signature in kinds)


def test_structured_extractors() -> None:
    toml_text = "# Build settings\n[project]\nname = 'x'\n\n[[tool.items]]\nkey = 1\n"
    yaml_text = "# ci\nname: build\non:\n  push: {}\njobs:\n  test: {}\n"
    json_text = '{"name": "x", "dependencies": {"a": "1"}, "files": [1, 2]}'
    markdown_text = "# Title\n\n```\n# not a heading\n```\n\n## Usage\n"

    assert _signatures(SectionStubExtractor().declarations(toml_text)) == [
        "[project]",
        "[[tool.items]]",
    ]
    assert SectionStubExtractor().preamble(toml_text) == ["# Build settings"]
    assert _signatures(YamlStubExtractor().declarations(yaml_text)) == ["name:", "on:", "jobs:"]
    assert _signatures(JsonStubExtractor().declarations(json_text)) == [
        '"name": <string>',
        '"dependencies": <object>',
        '"files": <array>',
    ]
    assert JsonStubExtractor().declarations("{broken") == []
    headings = MarkdownStubExtractor().declarations(markdown_text)
    assert _signatures(headings) == ["# Title", "## Usage"]
    assert [item.depth for item in headings] == [0, 1]


def test_registry_selects_by_language_with_fallback() -> None:
    registry = build_stub_registry()

    assert registry.select("python").name == "python_ast"
    assert registry.select("go").name == "go_lexical"
    assert registry.select("csharp").name == "jvm_lexical"
    assert registry.select("toml").name == "sections"
    assert registry.select("shell").name == "header_only"
    assert registry.names()[-1] == "header_only"


def test_python_ast_extractor_can_be_disabled() -> None:
    registry = build_stub_registry(StubsConfig(python_ast_enabled=False))

    assert "python_ast" not in registry.names()
    assert registry.select("python").name == "header_only"
