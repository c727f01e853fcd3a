from __future__ import annotations

from pathlib import Path

import pytest

from codescope.config import CliOverrides
from codescope.search import Deadline
from codescope.server import create_server


@pytest.fixture()
def repo(tmp_path: Path) -> Path:
    (tmp_path / "a.py").write_text("needle = 1\n", encoding="utf-8")
    (tmp_path / "b.py").write_text("other = 2\n", encoding="utf-8")
    return tmp_path


def test_malformed_json_returns_invalid_json_error(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_json_line("{not-json")

    assert response["ok"] is False
    assert response["error"] == {"code": "INVALID_JSON", "message": "Request must be valid JSON."}
    assert response["request_id"] == "req-000001"


@pytest.mark.parametrize(
    ("payload", "code", "message"),
    [
        (["grep"], "INVALID_REQUEST", "Request must be an object."),
        ({"id": "x", "params": {}}, "INVALID_REQUEST", "Request method must be a non-empty string."),
        ({"id": "x", "method": ""}, "INVALID_REQUEST", "Request method must be a non-empty string."),
        ({"id": "x", "method": "grep", "params": [1]}, "INVALID_PARAMS", "Request params must be an object."),
    ],
)
def test_malformed_requests_are_rejected(
    repo: Path, payload: object, code: str, message: str
) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_payload(payload)

    assert response["ok"] is False
    assert response["blocked"] is False
    assert response["result"] == {}
    assert response["error"] == {"code": code, "message": message}


def test_unknown_endpoint_keeps_request_id(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_payload({"id": "abc-123", "method": "nope", "params": {"k": "v"}})

    assert response["request_id"] == "abc-123"
    assert response["error"] == {"code": "UNKNOWN_ENDPOINT", "message": "Unknown endpoint: nope"}


def test_numeric_ids_are_stringified_and_missing_ids_are_synthesized(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    numbered = server.handle_payload({"id": 7, "method": "status"})
    first = server.handle_payload({"method": "status", "params": None})
    second = server.handle_payload({"id": True, "method": "status"})

    assert numbered["request_id"] == "7"
    assert numbered["ok"] is True
    assert first["request_id"] == "req-000001"
    assert second["request_id"] == "req-000002"


def test_success_envelope_shape(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_payload({"id": "g", "method": "grep", "params": {"q": "needle"}})

    assert set(response) == {"request_id", "ok", "result", "warnings", "blocked"}
    assert response["ok"] is True
    assert response["warnings"] == []
    assert response["result"]["matches"] == [
        {"path": "a.py", "line": 1, "column": 1, "snippet": "needle = 1"}
    ]


def test_non_integer_limit_is_invalid_params(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_payload({"id": "g", "method": "grep", "params": {"q": "x", "limit": "ten"}})

    assert response["error"] == {"code": "INVALID_PARAMS", "message": "limit must be an integer."}


def test_truncated_grep_carries_warning(repo: Path) -> None:
    server = create_server(repo_root=str(repo))

    response = server.handle_payload(
        {"id": "g", "method": "grep", "params": {"q": "=", "limit": 1}}
    )

    assert response["ok"] is True
    assert response["result"]["truncated"] is True
    assert response["warnings"] == ["grep stopped at the match limit; raise limit to see more."]


def test_expired_deadline_returns_deadline_exceeded(
    repo: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    server = create_server(
        repo_root=str(repo), cli_overrides=CliOverrides(request_timeout_ms=5, scan_workers=1)
    )
    monkeypatch.setattr(
        "codescope.endpoints.handlers.new_deadline",
        lambda config: Deadline(expires_at=0.0, timeout_ms=config.limits.request_timeout_ms),
    )

    response = server.handle_payload({"id": "slow", "method": "find", "params": {"q": "needle"}})

    assert response["ok"] is False
    assert response["error"] == {
        "code": "DEADLINE_EXCEEDED",
        "message": "find exceeded the 5 ms request deadline.",
    }


def test_handler_crash_is_internal_error(repo: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    server = create_server(repo_root=str(repo))

    def explode(*args: object, **kwargs: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr("codescope.endpoints.handlers.build_tree", explode)

    response = server.handle_payload({"id": "t", "method": "tree"})

    assert response["error"] == {
        "code": "INTERNAL_ERROR",
        "message": "Unhandled server error while executing endpoint.",
    }
