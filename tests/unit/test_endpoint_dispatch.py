from __future__ import annotations

from pathlib import Path

import pytest

from codescope.endpoints import (
    EndpointDispatchError,
    EndpointRegistry,
    parse_int_param,
    parse_query,
)
from codescope.server import create_server


def test_registry_preserves_registration_order_and_dispatches() -> None:
    registry = EndpointRegistry()
    registry.register("b", lambda arguments: {"name": "b", **arguments})
    registry.register("a", lambda arguments: {"name": "a"})

    assert registry.names() == ("b", "a")
    assert registry.dispatch("b", {"x": 1}) == {"name": "b", "x": 1}
    assert "a" in registry
    assert "c" not in registry


def test_registry_rejects_duplicate_names() -> None:
    registry = EndpointRegistry()
    registry.register("search", lambda arguments: {})

    with pytest.raises(ValueError, match="already registered: search"):
        registry.register("search", lambda arguments: {})


def test_unknown_endpoint_raises_typed_error() -> None:
    registry = EndpointRegistry()

    with pytest.raises(EndpointDispatchError) as error:
        registry.dispatch("missing", {})

    assert error.value.code == "UNKNOWN_ENDPOINT"
    assert error.value.message == "Unknown endpoint: missing"


def test_server_registers_every_builtin_endpoint(tmp_path: Path) -> None:
    server = create_server(repo_root=str(tmp_path))

    assert server.endpoint_names == (
        "search",
        "grep",
        "find",
        "context",
        "imports",
        "deps",
        "manifest",
        "tree",
        "status",
        "refresh",
        "audit_log",
        "file",
        "files",
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, 50), ("", 50), (7, 7), ("12", 12), (" 3 ", 3), (0, 0), (5000, 200)],
)
def test_parse_int_param_accepts_ints_and_numeric_strings(value: object, expected: int) -> None:
    assert parse_int_param({"limit": value}, "limit", 50, maximum=200) == expected


@pytest.mark.parametrize(
    ("value", "message"),
    [
        ("abc", "limit must be an integer."),
        (True, "limit must be an integer."),
        (1.5, "limit must be an integer."),
        (-1, "limit must be >= 0."),
    ],
)
def test_parse_int_param_rejects_invalid_values(value: object, message: str) -> None:
    with pytest.raises(EndpointDispatchError) as error:
        parse_int_param({"limit": value}, "limit", 50)

    assert error.value.code == "INVALID_PARAMS"
    assert error.value.message == message


def test_parse_query_defaults_to_empty_and_rejects_non_strings() -> None:
    assert parse_query({}) == ""
    assert parse_query({"q": "Foo Bar"}) == "Foo Bar"
    with pytest.raises(EndpointDispatchError):
        parse_query({"q": ["foo"]})
