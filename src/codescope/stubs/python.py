"""Python stub extractor built on the ast module."""

from __future__ import annotations

import ast
import re

from codescope.stubs.base import Declaration, compact_signature, leading_comment_block

_DEF_LINE_RE = re.compile(r"^(\s*)(async\s+def|def|class)\s+[A-Za-z_]\w*")

# Deeply nested expressions (generated tables, long operator chains) can exhaust
# the interpreter stack in the parser or in ast.unparse.
_PARSE_ERRORS = (SyntaxError, ValueError, RecursionError, MemoryError)


class PythonAstStubExtractor:
    """Classes, functions and methods with full signatures."""

    name = "python_ast"

    def supports(self, language: str) -> bool:
        return language == "python"

    def preamble(self, text: str) -> list[str]:
        tree = _parse(text)
        doc = ast.get_docstring(tree, clean=True) if tree is not None else None
        if doc:
            first = doc.strip().splitlines()[0].strip()
            return [compact_signature(f'"""{first}"""')]
        return leading_comment_block(text, ("#",))

    def declarations(self, text: str) -> list[Declaration]:
        tree = _parse(text)
        if tree is None:
            return _regex_declarations(text)
        lines = text.splitlines()
        output: list[Declaration] = []
        # Statement bodies are walked iteratively; expressions and function bodies are never entered.
        pending: list[tuple[list[ast.stmt], int]] = [(tree.body, 0)]
        while pending:
            body, depth = pending.pop()
            for node in body:
                if isinstance(node, ast.ClassDef):
                    output.append(
                        Declaration(
                            line=node.lineno,
                            kind="class",
                            signature=_signature(node, lines),
                            depth=depth,
                        )
                    )
                    pending.append((node.body, depth + 1))
                elif isinstance(node, (ast.FunctionDef, ast.AsyncFunctionDef)):
                    output.append(
                        Declaration(
                            line=node.lineno,
                            kind="method" if depth else "function",
                            signature=_signature(node, lines),
                            depth=depth,
                        )
                    )
                else:
                    pending.extend((block, depth) for block in _nested_blocks(node))
        return output


def _nested_blocks(node: ast.stmt) -> list[list[ast.stmt]]:
    """Statement blocks of if/try/with/loop statements; function bodies are excluded."""
    if isinstance(node, (ast.If, ast.For, ast.AsyncFor, ast.While)):
        return [node.body, node.orelse]
    if isinstance(node, (ast.With, ast.AsyncWith)):
        return [node.body]
    if isinstance(node, (ast.Try, ast.TryStar)):
        return [node.body, *(handler.body for handler in node.handlers), node.orelse, node.finalbody]
    return []


def _parse(text: str) -> ast.Module | None:
    try:
        return ast.parse(text)
    except _PARSE_ERRORS:
        return None


def _signature(node: ast.ClassDef | ast.FunctionDef | ast.AsyncFunctionDef, lines: list[str]) -> str:
    try:
        if isinstance(node, ast.ClassDef):
            return compact_signature(f"class {node.name}{_class_bases(node)}:")
        keyword = "async def" if isinstance(node, ast.AsyncFunctionDef) else "def"
        returns = f" -> {ast.unparse(node.returns)}" if node.returns is not None else ""
        return compact_signature(f"{keyword} {node.name}({ast.unparse(node.args)}){returns}: ...")
    except _PARSE_ERRORS:
        return compact_signature(lines[node.lineno - 1]) if node.lineno <= len(lines) else node.name


def _class_bases(node: ast.ClassDef) -> str:
    parts = [ast.unparse(base) for base in node.bases]
    parts.extend(ast.unparse(keyword) for keyword in node.keywords)
    if not parts:
        return ""
    return f"({', '.join(parts)})"


def _regex_declarations(text: str) -> list[Declaration]:
    """Line-based fallback for files that do not parse."""
    output: list[Declaration] = []
    for line_number, line in enumerate(text.splitlines(), start=1):
        matched = _DEF_LINE_RE.match(line)
        if matched is None:
            continue
        indent = len(matched.group(1).expandtabs(4))
        output.append(
            Declaration(
                line=line_number,
                kind="class" if matched.group(2) == "class" else "function",
                signature=compact_signature(line),
                depth=indent // 4,
            )
        )
    return output
