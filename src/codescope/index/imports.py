"""Line-level import extraction and resolution into an import graph."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable
from dataclasses import dataclass

from codescope.index.snapshot import Snapshot

IMPORT_DIRECTIONS = ("imports", "imported_by", "both")

_PY_IMPORT_RE = re.compile(r"^\s*import\s+([\w.]+(?:\s*,\s*[\w.]+)*)")
_PY_FROM_RE = re.compile(r"^\s*from\s+(\.*[\w.]*)\s+import\b")
_JS_FROM_RE = re.compile(r"""\bfrom\s+['"]([^'"]+)['"]""")
_JS_BARE_RE = re.compile(r"""^\s*import\s+['"]([^'"]+)['"]""")
_JS_REQUIRE_RE = re.compile(r"""\b(?:require|import)\s*\(\s*['"]([^'"]+)['"]\s*\)""")
_GO_SINGLE_RE = re.compile(r'^\s*import\s+(?:[\w.]+\s+)?"([^"]+)"')
_GO_BLOCK_ENTRY_RE = re.compile(r'^\s*(?:[\w.]+\s+)?"([^"]+)"')
_GO_MODULE_RE = re.compile(r"^\s*module\s+(\S+)")
_RUST_USE_RE = re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?use\s+([\w:]+)")
_RUST_MOD_RE = re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?mod\s+(\w+)\s*;")
_C_INCLUDE_RE = re.compile(r"""^\s*#\s*include\s*([<"])([^>"]+)[>"]""")
_JAVA_IMPORT_RE = re.compile(r"^\s*import\s+(?:static\s+)?([\w.]+)")

_JS_RESOLVE_SUFFIXES = (
    "",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    "/index.ts",
    "/index.tsx",
    "/index.js",
)


@dataclass(slots=True, frozen=True)
class ImportEdge:
    """Directed import from one indexed file to a path or external module name."""

    source: str
    target: str
    resolved: bool

    def to_dict(self) -> dict[str, object]:
        """Wire form."""
        return {"from": self.source, "to": self.target, "resolved": self.resolved}


@dataclass(slots=True, frozen=True)
class RawImport:
    """Import specifier as written, before resolution."""

    specifier: str
    kind: str


@dataclass(slots=True, frozen=True)
class ImportGraph:
    """Forward edges per file and the reverse index of resolved edges."""

    edges: dict[str, tuple[ImportEdge, ...]]
    imported_by: dict[str, tuple[str, ...]]

    def query(self, path: str, direction: str = "both") -> dict[str, object]:
        """Return the import neighbourhood of one file."""
        imports: list[dict[str, object]] = []
        importers: list[str] = []
        if direction in ("imports", "both"):
            imports = [edge.to_dict() for edge in self.edges.get(path, ())]
        if direction in ("imported_by", "both"):
            importers = list(self.imported_by.get(path, ()))
        return {"path": path, "direction": direction, "imports": imports, "importedBy": importers}


def extract_python_imports(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    for line in text.splitlines():
        matched = _PY_FROM_RE.match(line)
        if matched is not None:
            output.append(RawImport(specifier=matched.group(1), kind="python"))
            continue
        matched = _PY_IMPORT_RE.match(line)
        if matched is not None:
            for name in matched.group(1).split(","):
                output.append(RawImport(specifier=name.strip(), kind="python"))
    return output


def extract_js_imports(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    for line in text.splitlines():
        for pattern in (_JS_FROM_RE, _JS_BARE_RE, _JS_REQUIRE_RE):
            for matched in pattern.finditer(line):
                output.append(RawImport(specifier=matched.group(1), kind="js"))
    return output


def extract_go_imports(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    in_block = False
    for line in text.splitlines():
        stripped = line.strip()
        if in_block:
            if stripped.startswith(")"):
                in_block = False
                continue
            entry = _GO_BLOCK_ENTRY_RE.match(stripped)
            if entry is not None:
                output.append(RawImport(specifier=entry.group(1), kind="go"))
            continue
        if stripped.startswith("import") and stripped.endswith("("):
            in_block = True
            continue
        single = _GO_SINGLE_RE.match(stripped)
        if single is not None:
            output.append(RawImport(specifier=single.group(1), kind="go"))
    return output


def extract_rust_imports(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    for line in text.splitlines():
        matched = _RUST_MOD_RE.match(line)
        if matched is not None:
            output.append(RawImport(specifier=matched.group(1), kind="rust_mod"))
            continue
        matched = _RUST_USE_RE.match(line)
        if matched is not None:
            output.append(RawImport(specifier=matched.group(1).rstrip(":"), kind="rust_use"))
    return output


def extract_c_includes(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    for line in text.splitlines():
        matched = _C_INCLUDE_RE.match(line)
        if matched is not None:
            kind = "c_local" if matched.group(1) == '"' else "c_system"
            output.append(RawImport(specifier=matched.group(2), kind=kind))
    return output


def extract_java_imports(text: str) -> list[RawImport]:
    output: list[RawImport] = []
    for line in text.splitlines():
        matched = _JAVA_IMPORT_RE.match(line)
        if matched is not None:
            output.append(RawImport(specifier=matched.group(1), kind="java"))
    return output


_EXTRACTORS: dict[str, Callable[[str], list[RawImport]]] = {
    "python": extract_python_imports,
    "javascript": extract_js_imports,
    "typescript": extract_js_imports,
    "go": extract_go_imports,
    "rust": extract_rust_imports,
    "c": extract_c_includes,
    "cpp": extract_c_includes,
    "java": extract_java_imports,
    "kotlin": extract_java_imports,
}


class _Resolver:
    """Maps raw specifiers to indexed paths using only the snapshot's path set."""

    def __init__(self, snapshot: Snapshot) -> None:
        self._paths = snapshot.by_path
        self._go_module = _go_module_path(snapshot)
        self._by_suffix: dict[str, list[str]] = {}
        for item in snapshot.files:
            self._by_suffix.setdefault(item.filename, []).append(item.path)

    def resolve(self, source: str, raw: RawImport) -> list[str]:
        directory = posixpath.dirname(source)
        if raw.kind == "python":
            return self._python(directory, raw.specifier)
        if raw.kind == "js":
            return self._js(directory, raw.specifier)
        if raw.kind == "go":
            return self._go(raw.specifier)
        if raw.kind == "rust_mod":
            stem = f"{directory}/{raw.specifier}"
            return self._first([f"{stem}.rs", f"{stem}/mod.rs"])
        if raw.kind == "rust_use":
            return self._rust_use(source, raw.specifier)
        if raw.kind == "c_local":
            local = self._first([_join(directory, raw.specifier)])
            return local or self._by_trailing(raw.specifier)
        if raw.kind == "java":
            return self._by_trailing(raw.specifier.replace(".", "/") + ".java")
        return []

    def _first(self, candidates: list[str | None]) -> list[str]:
        for candidate in candidates:
            if candidate is None:
                continue
            normalized = candidate.lstrip("/")
            if normalized in self._paths:
                return [normalized]
        return []

    def _by_trailing(self, suffix: str) -> list[str]:
        filename = posixpath.basename(suffix)
        matches = [
            path
            for path in self._by_suffix.get(filename, [])
            if path == suffix or path.endswith(f"/{suffix}")
        ]
        return sorted(matches)[:1]

    def _python(self, directory: str, specifier: str) -> list[str]:
        dots = len(specifier) - len(specifier.lstrip("."))
        module = specifier[dots:]
        module_path = module.replace(".", "/")
        if dots:
            base = directory
            for _ in range(dots - 1):
                base = posixpath.dirname(base)
            stem = _join(base, module_path) if module_path else base
            if stem is None:
                return []
            return self._first([f"{stem}.py", f"{stem}/__init__.py"])
        if not module_path:
            return []
        return self._first(
            [
                f"{module_path}.py",
                f"{module_path}/__init__.py",
                f"src/{module_path}.py",
                f"src/{module_path}/__init__.py",
            ]
        )

    def _js(self, directory: str, specifier: str) -> list[str]:
        if not specifier.startswith("."):
            return []
        stem = _join(directory, specifier)
        if stem is None:
            return []
        return self._first([f"{stem}{suffix}" for suffix in _JS_RESOLVE_SUFFIXES])

    def _go(self, specifier: str) -> list[str]:
        if self._go_module is None:
            return []
        if specifier != self._go_module and not specifier.startswith(f"{self._go_module}/"):
            return []
        package_dir = specifier[len(self._go_module) :].strip("/")
        return sorted(
            path
            for path in self._paths
            if path.endswith(".go")
            and not path.endswith("_test.go")
            and posixpath.dirname(path) == package_dir
        )

    def _rust_use(self, source: str, specifier: str) -> list[str]:
        parts = [part for part in specifier.split("::") if part]
        if not parts or parts[0] != "crate":
            return []
        prefix, marker, _ = source.partition("src/")
        crate_src = f"{prefix}src" if marker else posixpath.dirname(source)
        segments = parts[1:]
        while segments:
            stem = "/".join(segments)
            found = self._first([f"{crate_src}/{stem}.rs", f"{crate_src}/{stem}/mod.rs"])
            if found:
                return found
            segments = segments[:-1]
        return []


def build_import_graph(snapshot: Snapshot) -> ImportGraph:
    """Extract and resolve imports for every supported file in the snapshot."""
    resolver = _Resolver(snapshot)
    edges: dict[str, tuple[ImportEdge, ...]] = {}
    reverse: dict[str, set[str]] = {}
    for item in snapshot.files:
        extractor = _EXTRACTORS.get(item.language)
        if extractor is None:
            continue
        text = snapshot.read_text(item.path)
        if text is None:
            continue
        file_edges: list[ImportEdge] = []
        seen: set[str] = set()
        for raw in extractor(text):
            targets = resolver.resolve(item.path, raw)
            if not targets:
                if raw.specifier not in seen:
                    seen.add(raw.specifier)
                    file_edges.append(
                        ImportEdge(source=item.path, target=raw.specifier, resolved=False)
                    )
                continue
            for target in targets:
                if target in seen or target == item.path:
                    continue
                seen.add(target)
                file_edges.append(ImportEdge(source=item.path, target=target, resolved=True))
                reverse.setdefault(target, set()).add(item.path)
        if file_edges:
            edges[item.path] = tuple(file_edges)
    return ImportGraph(
        edges=edges,
        imported_by={target: tuple(sorted(sources)) for target, sources in reverse.items()},
    )


def _join(directory: str, relative: str) -> str | None:
    joined = posixpath.normpath(posixpath.join(directory, relative))
    if joined.startswith("..") or joined.startswith("/"):
        return None
    return "" if joined == "." else joined


def _go_module_path(snapshot: Snapshot) -> str | None:
    if "go.mod" not in snapshot.by_path:
        return None
    text = snapshot.read_text("go.mod")
    if text is None:
        return None
    for line in text.splitlines():
        matched = _GO_MODULE_RE.match(line)
        if matched is not None:
            return matched.group(1)
    return None
