"""Categorized file listing and hierarchical tree views over a snapshot."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field

from codescope.index.models import IndexedFile

ROOT_CATEGORY = "(root)"


def category_for_path(path: str) -> str:
    """Top-level directory of a path; root files share one category."""
    head, sep, _ = path.partition("/")
    return head if sep else ROOT_CATEGORY


def build_manifest(files: tuple[IndexedFile, ...]) -> dict[str, object]:
    """Group files by category with counts, byte totals and language counts."""
    grouped: dict[str, list[IndexedFile]] = {}
    for item in files:
        grouped.setdefault(category_for_path(item.path), []).append(item)

    categories: list[dict[str, object]] = []
    for name in sorted(grouped, key=lambda value: (value == ROOT_CATEGORY, value)):
        members = sorted(grouped[name], key=lambda item: item.path)
        languages = Counter(item.language for item in members)
        categories.append(
            {
                "name": name,
                "fileCount": len(members),
                "totalBytes": sum(item.byte_size for item in members),
                "languages": dict(sorted(languages.items())),
                "files": [
                    {"path": item.path, "language": item.language, "size": item.byte_size}
                    for item in members
                ],
            }
        )
    return {
        "categories": categories,
        "totalFiles": len(files),
        "totalBytes": sum(item.byte_size for item in files),
    }


@dataclass(slots=True)
class _DirectoryNode:
    name: str
    path: str
    directories: dict[str, _DirectoryNode] = field(default_factory=dict)
    files: list[IndexedFile] = field(default_factory=list)


def build_tree(files: tuple[IndexedFile, ...]) -> dict[str, object]:
    """Build a nested directory tree; directories sort before files, then by name."""
    root = _DirectoryNode(name="", path="")
    for item in files:
        parts = item.path.split("/")
        node = root
        for depth, part in enumerate(parts[:-1]):
            child = node.directories.get(part)
            if child is None:
                child = _DirectoryNode(name=part, path="/".join(parts[: depth + 1]))
                node.directories[part] = child
            node = child
        node.files.append(item)
    return _tree_payload(root)


def _tree_payload(node: _DirectoryNode) -> dict[str, object]:
    children: list[dict[str, object]] = [
        _tree_payload(node.directories[name]) for name in sorted(node.directories)
    ]
    for item in sorted(node.files, key=lambda entry: entry.filename):
        children.append(
            {
                "name": item.filename,
                "path": item.path,
                "type": "file",
                "language": item.language,
                "size": item.byte_size,
            }
        )
    return {"name": node.name, "path": node.path, "type": "directory", "children": children}
