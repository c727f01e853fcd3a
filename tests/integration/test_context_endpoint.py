from __future__ import annotations

from pathlib import Path

from codescope.config import CliOverrides
from codescope.server import create_server

BIG_PY = "".join(f"def handler_{index}(request):\n    return {index}\n\n" for index in range(200))


def _repo(root: Path) -> Path:
    (root / "small.py").write_text("x = 1\n", encoding="utf-8")
    (root / "big.py").write_text(BIG_PY, encoding="utf-8")
    (root / "after.py").write_text("y = 2\n", encoding="utf-8")
    return root


def test_context_packs_prefix_then_stubs_and_reports_missing(tmp_path: Path) -> None:
    server = create_server(repo_root=str(_repo(tmp_path)))

    response = server.handle_payload(
        {
            "id": "ctx",
            "method": "context",
            "params": {
                "paths": ["small.py", "./small.py", "big.py", "after.py", "nope.py"],
                "unit": "tokens",
                "budget": 2,
            },
        }
    )

    assert response["ok"] is True
    assert response["warnings"] == ["1 requested path(s) are not in the index."]
    entries = response["result"]["entries"]
    assert [(entry["path"], entry["kind"]) for entry in entries] == [
        ("small.py", "full"),
        ("big.py", "stub"),
        ("after.py", "stub"),
        ("nope.py", "missing"),
    ]
    assert entries[0]["content"] == "x = 1\n"
    assert entries[0]["tokens"] == 2
    assert entries[1]["stub"].startswith("# big.py (stub of 600 lines")
    assert "def handler_0(request):" in entries[1]["stub"]
    assert entries[3] == {
        "path": "nope.py",
        "content": None,
        "stub": None,
        "tokens": 0,
        "truncated": True,
        "kind": "missing",
    }
    summary = response["result"]["summary"]
    assert summary["totalFiles"] == 4
    assert summary["truncatedFiles"] == 3
    assert summary["budget"] == 2
    assert summary["remainingBudget"] == 0
    assert summary["totalTokens"] == sum(entry["tokens"] for entry in entries)


def test_context_uses_default_budget_and_bytes_unit(tmp_path: Path) -> None:
    server = create_server(repo_root=str(_repo(tmp_path)))

    response = server.handle_payload(
        {"id": "ctx", "method": "context", "params": {"paths": ["small.py", "big.py"], "unit": "bytes"}}
    )

    entries = response["result"]["entries"]
    assert [entry["kind"] for entry in entries] == ["full", "full"]
    assert entries[0]["tokens"] == 6
    assert response["result"]["summary"]["remainingBudget"] == 50_000 - 6 - len(BIG_PY.encode("utf-8"))


def test_oversized_file_gets_unavailable_placeholder(tmp_path: Path) -> None:
    server = create_server(
        repo_root=str(_repo(tmp_path)), cli_overrides=CliOverrides(max_file_bytes=100)
    )

    response = server.handle_payload(
        {"id": "ctx", "method": "context", "params": {"paths": ["big.py"], "budget": 0}}
    )

    entry = response["result"]["entries"][0]
    assert entry["kind"] == "unavailable"
    size = len(BIG_PY.encode("utf-8"))
    assert entry["stub"] == f"# big.py (content unavailable, {size} bytes)"
    assert response["result"]["summary"]["remainingBudget"] == 0


def test_context_rejects_bad_params(tmp_path: Path) -> None:
    (tmp_path / "codescope.toml").write_text("[limits]\nmax_context_paths = 2\n", encoding="utf-8")
    server = create_server(repo_root=str(_repo(tmp_path)))

    too_many = server.handle_payload(
        {"id": "a", "method": "context", "params": {"paths": ["a", "b", "c"]}}
    )
    bad_unit = server.handle_payload(
        {"id": "b", "method": "context", "params": {"paths": [], "unit": "lines"}}
    )
    negative = server.handle_payload(
        {"id": "c", "method": "context", "params": {"paths": [], "budget": -1}}
    )

    assert too_many["error"] == {"code": "INVALID_PARAMS", "message": "context accepts at most 2 paths."}
    assert bad_unit["error"] == {
        "code": "INVALID_PARAMS",
        "message": "context unit must be one of tokens, bytes.",
    }
    assert negative["error"] == {"code": "INVALID_PARAMS", "message": "budget must be >= 0."}
