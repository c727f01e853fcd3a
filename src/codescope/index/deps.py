"""Dependency manifest parsers producing a name -> version map."""

from __future__ import annotations

import fnmatch
import json
import re
import tomllib
from dataclasses import dataclass
from typing import Protocol

from codescope.index.snapshot import Snapshot

UNSPECIFIED_VERSION = "*"

_PEP508_RE = re.compile(r"^\s*([A-Za-z0-9][A-Za-z0-9._-]*)\s*(?:\[[^\]]*\])?\s*(.*)$")
_GO_REQUIRE_SINGLE_RE = re.compile(r"^\s*require\s+(\S+)\s+(\S+)")
_GO_REQUIRE_ENTRY_RE = re.compile(r"^\s*(\S+)\s+(\S+)")


@dataclass(slots=True, frozen=True)
class Dependency:
    """Single declared dependency."""

    name: str
    version: str


class DependencyParser(Protocol):
    """Parses one kind of dependency manifest."""

    name: str

    def matches(self, filename: str) -> bool:
        """Return True when the parser handles files with this basename."""

    def parse(self, text: str) -> list[Dependency]:
        """Return declared dependencies in declaration order."""


def parse_requirement(line: str) -> Dependency | None:
    """Parse a PEP 508 requirement string; URLs, options and comments yield None."""
    stripped = line.split("#", 1)[0].strip()
    if not stripped or stripped.startswith("-") or "://" in stripped:
        return None
    matched = _PEP508_RE.match(stripped)
    if matched is None:
        return None
    name, spec = matched.groups()
    spec = spec.split(";", 1)[0].strip()
    return Dependency(name=name, version=spec or UNSPECIFIED_VERSION)


class RequirementsParser:
    name = "requirements"

    def matches(self, filename: str) -> bool:
        return fnmatch.fnmatch(filename.lower(), "requirements*.txt")

    def parse(self, text: str) -> list[Dependency]:
        output: list[Dependency] = []
        for line in text.splitlines():
            dependency = parse_requirement(line)
            if dependency is not None:
                output.append(dependency)
        return output


class PyprojectParser:
    """PEP 621 project tables and Poetry dependency tables."""

    name = "pyproject"

    def matches(self, filename: str) -> bool:
        return filename == "pyproject.toml"

    def parse(self, text: str) -> list[Dependency]:
        payload = _load_toml(text)
        output: list[Dependency] = []
        project = payload.get("project", {})
        if isinstance(project, dict):
            for item in _string_items(project.get("dependencies")):
                dependency = parse_requirement(item)
                if dependency is not None:
                    output.append(dependency)
            optional = project.get("optional-dependencies", {})
            if isinstance(optional, dict):
                for group in sorted(optional):
                    for item in _string_items(optional[group]):
                        dependency = parse_requirement(item)
                        if dependency is not None:
                            output.append(dependency)
        tool = payload.get("tool", {})
        poetry = tool.get("poetry", {}) if isinstance(tool, dict) else {}
        if isinstance(poetry, dict):
            for table_name in ("dependencies", "dev-dependencies"):
                output.extend(
                    item
                    for item in _table_dependencies(poetry.get(table_name))
                    if item.name.lower() != "python"
                )
        return output


class PackageJsonParser:
    name = "package_json"

    def matches(self, filename: str) -> bool:
        return filename == "package.json"

    def parse(self, text: str) -> list[Dependency]:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return []
        if not isinstance(payload, dict):
            return []
        output: list[Dependency] = []
        for table_name in ("dependencies", "devDependencies", "peerDependencies"):
            table = payload.get(table_name)
            if not isinstance(table, dict):
                continue
            for name, version in table.items():
                value = version if isinstance(version, str) and version else UNSPECIFIED_VERSION
                output.append(Dependency(name=str(name), version=value))
        return output


class CargoTomlParser:
    name = "cargo"

    def matches(self, filename: str) -> bool:
        return filename == "Cargo.toml"

    def parse(self, text: str) -> list[Dependency]:
        payload = _load_toml(text)
        output: list[Dependency] = []
        for table_name in ("dependencies", "dev-dependencies", "build-dependencies"):
            output.extend(_table_dependencies(payload.get(table_name)))
        workspace = payload.get("workspace", {})
        if isinstance(workspace, dict):
            output.extend(_table_dependencies(workspace.get("dependencies")))
        return output


class GoModParser:
    name = "go_mod"

    def matches(self, filename: str) -> bool:
        return filename == "go.mod"

    def parse(self, text: str) -> list[Dependency]:
        output: list[Dependency] = []
        in_block = False
        for raw_line in text.splitlines():
            line = raw_line.split("//", 1)[0].strip()
            if not line:
                continue
            if in_block:
                if line == ")":
                    in_block = False
                    continue
                entry = _GO_REQUIRE_ENTRY_RE.match(line)
                if entry is not None:
                    output.append(Dependency(name=entry.group(1), version=entry.group(2)))
                continue
            if line.startswith("require") and line.endswith("("):
                in_block = True
                continue
            single = _GO_REQUIRE_SINGLE_RE.match(line)
            if single is not None:
                output.append(Dependency(name=single.group(1), version=single.group(2)))
        return output


DEFAULT_PARSERS: tuple[DependencyParser, ...] = (
    RequirementsParser(),
    PyprojectParser(),
    PackageJsonParser(),
    CargoTomlParser(),
    GoModParser(),
)


def collect_dependencies(
    snapshot: Snapshot,
    parsers: tuple[DependencyParser, ...] = DEFAULT_PARSERS,
) -> dict[str, object]:
    """Scan manifests in index order; the first declaration of a name wins."""
    dependencies: dict[str, str] = {}
    sources: list[str] = []
    for item in snapshot.files:
        parser = next((entry for entry in parsers if entry.matches(item.filename)), None)
        if parser is None:
            continue
        text = snapshot.read_text(item.path)
        if text is None:
            continue
        sources.append(item.path)
        for dependency in parser.parse(text):
            dependencies.setdefault(dependency.name, dependency.version)
    return {"dependencies": dict(sorted(dependencies.items())), "sources": sources}


def _load_toml(text: str) -> dict[str, object]:
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError:
        return {}


def _string_items(value: object) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def _table_dependencies(value: object) -> list[Dependency]:
    if not isinstance(value, dict):
        return []
    output: list[Dependency] = []
    for name, spec in value.items():
        if isinstance(spec, str) and spec:
            version = spec
        elif isinstance(spec, dict) and isinstance(spec.get("version"), str):
            version = spec["version"]
        else:
            version = UNSPECIFIED_VERSION
        output.append(Dependency(name=str(name), version=version))
    return output
