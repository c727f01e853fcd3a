from __future__ import annotations

from pathlib import Path

from codescope.config import default_config
from codescope.index import discover_files


def _write(root: Path, relative: str, content: str | bytes) -> None:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        target.write_bytes(content)
    else:
        target.write_text(content, encoding="utf-8")


def test_discovery_is_sorted_and_filters_noise(tmp_path: Path) -> None:
    _write(tmp_path, "src/b.py", "b = 1\n")
    _write(tmp_path, "src/a.py", "a = 1\n")
    _write(tmp_path, "README.md", "# Readme\n")
    _write(tmp_path, "node_modules/pkg/index.js", "module.exports = {}\n")
    _write(tmp_path, ".hidden/tool.py", "x = 1\n")
    _write(tmp_path, ".env", "TOKEN=1\n")
    _write(tmp_path, "certs/server.pem", "-----BEGIN-----\n")
    _write(tmp_path, "image.png", b"\x89PNG\r\n\x1a\n\x00\x00")
    _write(tmp_path, "data/blob.txt", b"\x00\x01\x02binary")

    profile: dict[str, object] = {}
    files = discover_files(tmp_path, default_config(tmp_path).index, profile=profile)

    assert [item.path for item in files] == ["README.md", "src/a.py", "src/b.py"]
    assert [item.language for item in files] == ["markdown", "python", "python"]
    assert files[1].filename == "a.py"
    assert files[1].byte_size == len(b"a = 1\n")
    assert files[1].directory == "src"
    assert files[0].directory == "."
    assert profile["indexed_files"] == 3
    assert profile["binary_excluded"] == 1
    assert profile["excluded_denylisted"] == 1


def test_hidden_files_can_be_included(tmp_path: Path) -> None:
    _write(tmp_path, ".github/workflows/ci.yml", "name: ci\n")
    config = default_config(tmp_path).index
    hidden_config = type(config)(
        include_extensions=config.include_extensions,
        exclude_globs=config.exclude_globs,
        include_hidden=True,
    )

    assert discover_files(tmp_path, config) == []
    assert [item.path for item in discover_files(tmp_path, hidden_config)] == [
        ".github/workflows/ci.yml"
    ]
