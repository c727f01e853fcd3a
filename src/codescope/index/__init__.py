"""File index, snapshots and collaborator views."""

from .deps import collect_dependencies
from .discovery import discover_files, is_binary_file
from .imports import IMPORT_DIRECTIONS, ImportEdge, ImportGraph, build_import_graph
from .languages import language_for_path
from .manifest import build_manifest, build_tree
from .models import DiscoveryProfile, IndexedFile
from .snapshot import (
    ContentSource,
    DiskContentSource,
    MemoryContentSource,
    Snapshot,
    SnapshotStore,
    build_snapshot,
    make_snapshot,
    snapshot_from_memory,
)

__all__ = [
    "ContentSource",
    "DiscoveryProfile",
    "DiskContentSource",
    "IMPORT_DIRECTIONS",
    "ImportEdge",
    "ImportGraph",
    "IndexedFile",
    "MemoryContentSource",
    "Snapshot",
    "SnapshotStore",
    "build_import_graph",
    "build_manifest",
    "build_snapshot",
    "build_tree",
    "collect_dependencies",
    "discover_files",
    "is_binary_file",
    "language_for_path",
    "make_snapshot",
    "snapshot_from_memory",
]
