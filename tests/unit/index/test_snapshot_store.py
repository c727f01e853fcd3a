from __future__ import annotations

import threading
from pathlib import Path

from codescope.config import default_config
from codescope.index import SnapshotStore, build_snapshot, snapshot_from_memory
from codescope.index.snapshot import DiskContentSource


def test_store_builds_lazily_and_swaps_on_refresh() -> None:
    versions = iter([{"a.py": "a = 1\n"}, {"a.py": "a = 1\n", "b.py": "b = 2\n"}])
    store = SnapshotStore(lambda: snapshot_from_memory(next(versions)))

    assert store.generation == 0
    first = store.current()
    assert store.current() is first
    assert store.generation == 1

    second = store.refresh()

    assert store.current() is second
    assert store.generation == 2
    assert [item.path for item in first.files] == ["a.py"]
    assert [item.path for item in second.files] == ["a.py", "b.py"]
    assert first.snapshot_id != second.snapshot_id


def test_derived_views_are_computed_once() -> None:
    snapshot = snapshot_from_memory({"a.py": "a = 1\n"})
    calls: list[int] = []
    lock = threading.Lock()

    def factory(_snapshot) -> int:
        with lock:
            calls.append(1)
        return 42

    threads = [threading.Thread(target=snapshot.derived, args=("view", factory)) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert snapshot.derived("view", factory) == 42
    assert len(calls) == 1


def test_disk_content_source_applies_size_and_denylist_policy(tmp_path: Path) -> None:
    (tmp_path / "small.py").write_text("x = 1\n", encoding="utf-8")
    (tmp_path / "large.py").write_text("y = 2\n" * 100, encoding="utf-8")
    (tmp_path / "secrets.json").write_text("{}", encoding="utf-8")
    source = DiskContentSource(tmp_path, max_file_bytes=64)

    assert source.read_text("small.py") == "x = 1\n"
    assert source.read_text("large.py") is None
    assert source.read_text("secrets.json") is None
    assert source.read_text("../outside.py") is None
    assert source.read_text("missing.py") is None


def test_oversized_files_stay_indexed_with_unavailable_content(tmp_path: Path) -> None:
    (tmp_path / "big.txt").write_text("z" * 5000, encoding="utf-8")
    config = default_config(tmp_path)
    limited = type(config)(
        repo_root=config.repo_root,
        data_dir=config.data_dir,
        limits=type(config.limits)(max_file_bytes=1000),
        index=config.index,
        grep=config.grep,
        context=config.context,
        stubs=config.stubs,
    )

    snapshot = build_snapshot(limited)

    assert [item.path for item in snapshot.files] == ["big.txt"]
    assert snapshot.read_text("big.txt") is None
    assert snapshot.read_text("not-indexed.txt") is None
