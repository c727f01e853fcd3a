from __future__ import annotations

from codescope.index.models import IndexedFile
from codescope.stubs import PythonAstStubExtractor, render_stub
from codescope.stubs.fallback import HeaderOnlyStubExtractor
from codescope.stubs.lexical import line_depths, mask_comments_and_strings

SOURCE = '''"""Service layer."""


class Service:
    def start(self) -> None:
        pass

    def stop(self, force: bool = False) -> None:
        pass


def main() -> int:
    return 0
'''


def _file(path: str, text: str, language: str) -> IndexedFile:
    return IndexedFile(
        path=path,
        filename=path.rsplit("/", 1)[-1],
        language=language,
        byte_size=len(text.encode("utf-8")),
    )


def test_stub_has_header_preamble_and_indented_declarations() -> None:
    stub = render_stub(_file("app/service.py", SOURCE, "python"), SOURCE, PythonAstStubExtractor(), 1024)

    assert stub.splitlines() == [
        f"# app/service.py (stub of 13 lines, {len(SOURCE)} bytes)",
        '"""Service layer."""',
        "class Service:",
        "    def start(self) -> None: ...",
        "    def stop(self, force: bool=False) -> None: ...",
        "def main() -> int: ...",
    ]


def test_stub_respects_byte_cap_and_notes_omitted_lines() -> None:
    file = _file("app/service.py", SOURCE, "python")

    for cap in (0, 10, 60, 90, 120, 200):
        stub = render_stub(file, SOURCE, PythonAstStubExtractor(), cap)
        assert len(stub.encode("utf-8")) <= cap

    partial = render_stub(file, SOURCE, PythonAstStubExtractor(), 150)
    assert "more lines omitted" in partial.splitlines()[-1]


def test_fallback_stub_keeps_header_and_leading_comments() -> None:
    text = "#!/bin/sh\n# Deploy script\n# Usage: deploy.sh env\nset -e\necho hi\n"

    stub = render_stub(_file("deploy.sh", text, "shell"), text, HeaderOnlyStubExtractor(), 1024)

    assert stub.splitlines() == [
        f"# deploy.sh (stub of 5 lines, {len(text)} bytes)",
        "# Deploy script",
        "# Usage: deploy.sh env",
    ]


def test_markup_stub_uses_block_comment_header() -> None:
    text = "# Title\n\nBody\n"

    stub = render_stub(_file("docs/guide.md", text, "markdown"), text, HeaderOnlyStubExtractor(), 1024)

    assert stub.splitlines()[0] == f"<!-- docs/guide.md (stub of 3 lines, {len(text)} bytes) -->"


def test_masking_keeps_offsets_and_hides_braces_in_literals() -> None:
    text = 'let s = "{";  // }\n/* { */ fn x() {\n}\n'

    masked = mask_comments_and_strings(text)

    assert len(masked) == len(text)
    assert masked.count("\n") == text.count("\n")
    assert "{" not in masked.splitlines()[0]
    assert line_depths(masked) == [0, 0, 1, 0]


def test_tiny_file_gets_short_header_instead_of_a_cut_one() -> None:
    text = "package t\n"
    file = _file("t.go", text, "go")

    assert render_stub(file, text, HeaderOnlyStubExtractor(), len(text)) == "// t.go"


def test_stub_is_empty_when_no_header_fits() -> None:
    text = "x = 1\n"

    assert render_stub(_file("pkg/x.py", text, "python"), text, HeaderOnlyStubExtractor(), 6) == ""


def test_markup_stub_header_is_never_left_unclosed() -> None:
    text = "# T\n"
    file = _file("a.md", text, "markdown")

    for cap in range(0, 40):
        stub = render_stub(file, text, HeaderOnlyStubExtractor(), cap)
        assert stub == "" or stub.splitlines()[0].endswith(" -->")
