from __future__ import annotations

from pathlib import Path

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient

from codescope.http import create_app, unwrap
from codescope.search import Deadline
from codescope.server import create_server


@pytest.fixture()
def client(tmp_path: Path) -> TestClient:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.py").write_text("import src.util\nneedle = 1\n", encoding="utf-8")
    (tmp_path / "src" / "util.py").write_text("def helper():\n    return 'needle'\n", encoding="utf-8")
    (tmp_path / "requirements.txt").write_text("requests==2.31\n", encoding="utf-8")
    server = create_server(repo_root=str(tmp_path))
    return TestClient(create_app(server))


def test_get_routes_return_bare_results(client: TestClient) -> None:
    search = client.get("/api/search", params={"q": "main", "fileLimit": "5"})
    grep = client.get("/api/grep", params={"q": "needle", "limit": "10", "maxPerFile": "1"})
    find = client.get("/api/find", params={"q": "util"})

    assert search.status_code == 200
    assert search.json()["files"][0]["path"] == "src/main.py"
    assert grep.status_code == 200
    assert [match["path"] for match in grep.json()["matches"]] == ["src/main.py", "src/util.py"]
    assert find.json()["results"][0]["path"] == "src/util.py"


def test_structure_routes(client: TestClient) -> None:
    assert client.get("/api/deps").json()["dependencies"] == {"requests": "==2.31"}
    assert client.get("/api/manifest").json()["totalFiles"] == 3
    assert client.get("/api/tree").json()["type"] == "directory"
    imports = client.get("/api/imports", params={"path": "src/util.py", "direction": "imported_by"})
    assert imports.json()["importedBy"] == ["src/main.py"]
    status = client.get("/api/status").json()
    assert status["indexed_file_count"] == 3
    assert status["effective_config"]["grep"] == {"match_mode": "and"}


def test_post_context_and_refresh(client: TestClient) -> None:
    context = client.post(
        "/api/context", json={"paths": ["src/main.py", "missing.py"], "unit": "bytes", "budget": 1000}
    )
    refresh = client.post("/api/refresh")

    assert context.status_code == 200
    body = context.json()
    assert [entry["kind"] for entry in body["entries"]] == ["full", "missing"]
    assert body["summary"]["unit"] == "bytes"
    assert refresh.status_code == 200
    assert refresh.json()["snapshot_generation"] == 2


def test_audit_route_lists_prior_requests(client: TestClient) -> None:
    client.get("/api/status")
    client.get("/api/grep", params={"q": "needle"})

    entries = client.get("/api/audit", params={"limit": "2"}).json()["entries"]

    assert [entry["endpoint"] for entry in entries] == ["status", "grep"]


def test_invalid_params_map_to_400(client: TestClient) -> None:
    response = client.get("/api/grep", params={"q": "needle", "limit": "many"})

    assert response.status_code == 400
    assert response.json()["detail"]["code"] == "INVALID_PARAMS"
    assert response.json()["detail"]["message"] == "limit must be an integer."
    assert client.get("/api/imports").status_code == 400
    assert client.post("/api/context", json={"paths": "src/main.py"}).status_code == 400


def test_deadline_maps_to_504(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        "codescope.endpoints.handlers.new_deadline",
        lambda config: Deadline(expires_at=0.0, timeout_ms=1),
    )

    response = client.get("/api/grep", params={"q": "needle"})

    assert response.status_code == 504
    assert response.json()["detail"]["code"] == "DEADLINE_EXCEEDED"


@pytest.mark.parametrize(
    ("code", "status"),
    [("UNKNOWN_ENDPOINT", 404), ("PATH_BLOCKED", 403), ("INVALID_REQUEST", 400), ("INTERNAL_ERROR", 500)],
)
def test_unwrap_maps_error_codes(code: str, status: int) -> None:
    envelope = {"request_id": "r", "ok": False, "error": {"code": code, "message": "m"}}

    with pytest.raises(HTTPException) as error:
        unwrap(envelope)

    assert error.value.status_code == status
    assert error.value.detail == {"code": code, "message": "m", "request_id": "r"}


def test_grep_and_find_honor_extension_and_category_filters(client: TestClient) -> None:
    only_main = client.get("/api/grep", params={"q": "needle", "ext": "py", "cat": "src"})
    no_python = client.get("/api/grep", params={"q": "needle", "ext": ".txt"})
    root_only = client.get("/api/find", params={"q": "requirements", "cat": "(root)"})

    assert [match["path"] for match in only_main.json()["matches"]] == ["src/main.py", "src/util.py"]
    assert no_python.json()["matches"] == []
    assert [entry["path"] for entry in root_only.json()["results"]] == ["requirements.txt"]


def test_file_route_reads_one_indexed_file(client: TestClient) -> None:
    response = client.get("/api/file", params={"path": "src/util.py"})

    assert response.status_code == 200
    assert response.json() == {
        "path": "src/util.py",
        "content": "def helper():\n    return 'needle'\n",
        "lines": 2,
        "size": 34,
        "truncated": False,
    }


def test_file_route_errors_map_to_status_codes(client: TestClient) -> None:
    assert client.get("/api/file", params={"path": "../etc/passwd"}).status_code == 403
    missing = client.get("/api/file", params={"path": "src/absent.py"})
    assert missing.status_code == 404
    assert missing.json()["detail"]["code"] == "NOT_FOUND"
    assert client.get("/api/file").status_code == 400


def test_files_route_reads_batches_in_full_or_stub_mode(client: TestClient) -> None:
    full = client.post("/api/files", json={"paths": ["src/main.py", "nope.py"]})
    stubs = client.post("/api/files", json={"paths": ["src/util.py"], "mode": "stubs"})

    assert full.status_code == 200
    files = full.json()["files"]
    assert files["src/main.py"] == {
        "content": "import src.util\nneedle = 1\n",
        "size": 27,
        "truncated": False,
    }
    assert files["nope.py"] == {"error": "File not found: nope.py"}
    assert stubs.json()["files"]["src/util.py"]["content"].startswith("# src/util.py")
    assert client.post("/api/files", json={"paths": [], "mode": "outline"}).status_code == 400
