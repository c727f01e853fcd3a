from __future__ import annotations

from codescope.index.models import IndexedFile
from codescope.stubs import PythonAstStubExtractor, StubExtractorRegistry
from codescope.stubs.base import Declaration

DEEP_CONCAT = (
    "TABLE = (\n" + "".join(f"    'k{index}' +\n" for index in range(1200)) + "    'end'\n)\n"
)
DEEP_UNARY = "x = " + "-" * 900 + "1\n"


def _file(path: str, text: str) -> IndexedFile:
    return IndexedFile(
        path=path,
        filename=path.rsplit("/", 1)[-1],
        language="python",
        byte_size=len(text.encode("utf-8")),
    )


def test_long_operator_chain_does_not_break_declaration_scan() -> None:
    text = DEEP_CONCAT + "\n\ndef lookup(key: str) -> str:\n    return TABLE\n"

    declarations = PythonAstStubExtractor().declarations(text)

    assert [item.kind for item in declarations] == ["function"]
    assert declarations[0].signature.startswith("def lookup(key: str) -> str:")


def test_deep_unary_nesting_falls_back_without_raising() -> None:
    text = DEEP_UNARY + "class Holder:\n    def value(self):\n        return x\n"

    declarations = PythonAstStubExtractor().declarations(text)

    assert [item.kind for item in declarations][:1] == ["class"]
    assert all(isinstance(item, Declaration) for item in declarations)


def test_classes_inside_conditional_blocks_are_found() -> None:
    text = (
        "import sys\n"
        "if sys.version_info >= (3, 11):\n"
        "    class Fast:\n"
        "        def run(self): ...\n"
        "else:\n"
        "    class Slow:\n"
        "        pass\n"
        "try:\n"
        "    def helper(): ...\n"
        "except ImportError:\n"
        "    helper = None\n"
    )

    signatures = {item.signature for item in PythonAstStubExtractor().declarations(text)}

    assert {"class Fast:", "def run(self): ...", "class Slow:", "def helper(): ..."} <= signatures


def test_registry_render_uses_header_only_stub_when_extractor_fails() -> None:
    class Exploding:
        name = "exploding"

        def supports(self, language: str) -> bool:
            return language == "python"

        def preamble(self, text: str) -> list[str]:
            raise RuntimeError("boom")

        def declarations(self, text: str) -> list[Declaration]:
            return []

    registry = StubExtractorRegistry([Exploding()])
    text = "# Helpers.\nVALUE = 1\n"

    stub = registry.render(_file("helpers.py", text), text, 1024)

    assert stub.splitlines() == [
        f"# helpers.py (stub of 2 lines, {len(text)} bytes)",
        "# Helpers.",
    ]
