from __future__ import annotations

from pathlib import Path


def test_required_package_paths_exist() -> None:
    root = Path(__file__).resolve().parents[1]
    required = [
        "src/codescope/server.py",
        "src/codescope/http.py",
        "src/codescope/config.py",
        "src/codescope/endpoints/__init__.py",
        "src/codescope/index/__init__.py",
        "src/codescope/search/__init__.py",
        "src/codescope/context/__init__.py",
        "src/codescope/stubs/__init__.py",
        "src/codescope/security/__init__.py",
        "src/codescope/logging/__init__.py",
    ]
    for rel in required:
        assert (root / rel).exists(), rel
