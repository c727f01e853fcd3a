"""Server seam shared by the JSON-lines stdio transport and the HTTP app."""

from __future__ import annotations

import argparse
import json
import sys
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TextIO

import uvicorn

from codescope.config import CliOverrides, ServerConfig, load_effective_config
from codescope.context import InvalidParamsError
from codescope.endpoints import EndpointDispatchError, EndpointRegistry, register_builtin_endpoints
from codescope.http import create_app
from codescope.index import Snapshot, SnapshotStore, build_snapshot
from codescope.logging import AuditEvent, JsonlAuditLogger, sanitize_arguments, utc_timestamp
from codescope.search import DeadlineExceededError, ScanExecutor
from codescope.security import PathBlockedError, PolicyBlockedError
from codescope.stubs import StubExtractorRegistry, build_stub_registry


@dataclass(slots=True, frozen=True)
class Request:
    """Normalized incoming request."""

    request_id: str
    method: str
    params: dict[str, object]


def build_arg_parser() -> argparse.ArgumentParser:
    """Build argument parser for server startup configuration."""
    parser = argparse.ArgumentParser(prog="codescope")
    parser.add_argument("--repo-root", required=False, default=".")
    parser.add_argument("--data-dir", required=False, default=None)
    parser.add_argument("--max-file-bytes", type=int, required=False, default=None)
    parser.add_argument("--default-limit", type=int, required=False, default=None)
    parser.add_argument("--max-limit", type=int, required=False, default=None)
    parser.add_argument("--scan-workers", type=int, required=False, default=None)
    parser.add_argument("--request-timeout-ms", type=int, required=False, default=None)
    parser.add_argument("--bytes-per-token", type=int, required=False, default=None)
    parser.add_argument("--match-mode", choices=("and", "or"), required=False, default=None)
    parser.add_argument(
        "--python-ast-enabled", choices=("true", "false"), required=False, default=None
    )
    parser.add_argument("--http", action="store_true", help="Serve HTTP instead of stdio.")
    parser.add_argument("--host", required=False, default="127.0.0.1")
    parser.add_argument("--port", type=int, required=False, default=8000)
    return parser


class CodeScopeServer:
    """Routes requests to endpoints and wraps every outcome in an envelope."""

    def __init__(self, config: ServerConfig) -> None:
        self._config = config
        self._stubs: StubExtractorRegistry = build_stub_registry(config.stubs)
        self._executor = ScanExecutor(workers=config.limits.scan_workers)
        self._audit_logger = JsonlAuditLogger(path=config.data_dir / "audit.jsonl")
        self._last_discovery: dict[str, object] = {}
        self._snapshots = SnapshotStore(self._build_snapshot)
        self._registry = EndpointRegistry()
        register_builtin_endpoints(
            self._registry,
            config=config,
            snapshots=self._snapshots,
            stubs=self._stubs,
            executor=self._executor,
            refresh_snapshot=self._refresh_snapshot,
            read_audit_entries=self._audit_logger.read,
        )
        self._request_counter_lock = threading.Lock()
        self._fallback_request_counter = 0

    @property
    def config(self) -> ServerConfig:
        return self._config

    @property
    def endpoint_names(self) -> tuple[str, ...]:
        return self._registry.names()

    def close(self) -> None:
        self._executor.shutdown()

    def serve(self, in_stream: TextIO, out_stream: TextIO) -> None:
        """Process JSON-line requests from stdin and write JSON-line responses."""
        for raw_line in in_stream:
            line = raw_line.strip()
            if not line:
                continue
            response = self.handle_json_line(line)
            out_stream.write(f"{json.dumps(response, sort_keys=True)}\n")
            out_stream.flush()

    def handle_json_line(self, raw_line: str) -> dict[str, object]:
        """Handle a single JSON-line request."""
        try:
            payload = json.loads(raw_line)
        except json.JSONDecodeError:
            request_id = self.next_request_id()
            response = self.error_response(
                request_id=request_id,
                code="INVALID_JSON",
                message="Request must be valid JSON.",
            )
            self.log_request(
                request_id=request_id,
                endpoint="invalid_json",
                arguments={"raw_line_length": len(raw_line)},
                response=response,
                started=time.perf_counter(),
            )
            return response
        return self.handle_payload(payload)

    def handle_payload(self, payload: object) -> dict[str, object]:
        """Validate and dispatch a parsed payload."""
        started = time.perf_counter()
        parsed = self.parse_request(payload)
        if isinstance(parsed, dict):
            request_id_value = parsed.get("request_id")
            request_id = (
                request_id_value if isinstance(request_id_value, str) else self.next_request_id()
            )
            self.log_request(
                request_id=request_id,
                endpoint="invalid_request",
                arguments={},
                response=parsed,
                started=started,
            )
            return parsed
        return self.dispatch(parsed.method, parsed.params, request_id=parsed.request_id)

    def dispatch(
        self,
        endpoint: str,
        arguments: dict[str, object],
        request_id: str | None = None,
    ) -> dict[str, object]:
        """Run one endpoint and return its envelope; failures never escape."""
        started = time.perf_counter()
        active_id = request_id or self.next_request_id()
        try:
            result = self._registry.dispatch(name=endpoint, arguments=arguments)
        except (PathBlockedError, PolicyBlockedError) as error:
            response = self.blocked_response(
                request_id=active_id, reason=error.reason, hint=error.hint
            )
        except EndpointDispatchError as error:
            response = self.error_response(
                request_id=active_id, code=error.code, message=error.message
            )
        except InvalidParamsError as error:
            response = self.error_response(
                request_id=active_id, code="INVALID_PARAMS", message=error.message
            )
        except DeadlineExceededError as error:
            response = self.error_response(
                request_id=active_id, code="DEADLINE_EXCEEDED", message=str(error)
            )
        except Exception:
            response = self.error_response(
                request_id=active_id,
                code="INTERNAL_ERROR",
                message="Unhandled server error while executing endpoint.",
            )
        else:
            response = self.success_response(
                request_id=active_id,
                result=result,
                warnings=result_warnings(endpoint, result),
            )
        self.log_request(
            request_id=active_id,
            endpoint=endpoint,
            arguments=arguments,
            response=response,
            started=started,
        )
        return response

    def parse_request(self, payload: object) -> Request | dict[str, object]:
        """Validate request payload and return normalized Request."""
        if not isinstance(payload, dict):
            return self.error_response(
                request_id=self.next_request_id(),
                code="INVALID_REQUEST",
                message="Request must be an object.",
            )

        request_id = self.extract_request_id(payload.get("id"))
        method = payload.get("method")
        params = payload.get("params", {})
        if params is None:
            params = {}

        if not isinstance(method, str) or not method:
            return self.error_response(
                request_id=request_id,
                code="INVALID_REQUEST",
                message="Request method must be a non-empty string.",
            )
        if not isinstance(params, dict):
            return self.error_response(
                request_id=request_id,
                code="INVALID_PARAMS",
                message="Request params must be an object.",
            )
        return Request(request_id=request_id, method=method, params=params)

    def extract_request_id(self, request_id: object) -> str:
        """Extract request ID from payload or synthesize deterministic fallback."""
        if isinstance(request_id, str) and request_id:
            return request_id
        if isinstance(request_id, int) and not isinstance(request_id, bool):
            return str(request_id)
        return self.next_request_id()

    def next_request_id(self) -> str:
        """Generate deterministic fallback request IDs for invalid/missing IDs."""
        with self._request_counter_lock:
            self._fallback_request_counter += 1
            return f"req-{self._fallback_request_counter:06d}"

    @staticmethod
    def success_response(
        request_id: str,
        result: dict[str, object],
        warnings: list[str] | None = None,
    ) -> dict[str, object]:
        """Build success envelope."""
        return {
            "request_id": request_id,
            "ok": True,
            "result": result,
            "warnings": warnings or [],
            "blocked": False,
        }

    @staticmethod
    def error_response(request_id: str, code: str, message: str) -> dict[str, object]:
        """Build explicit error envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {},
            "warnings": [],
            "blocked": False,
            "error": {"code": code, "message": message},
        }

    @staticmethod
    def blocked_response(request_id: str, reason: str, hint: str) -> dict[str, object]:
        """Build explicit blocked response envelope."""
        return {
            "request_id": request_id,
            "ok": False,
            "result": {"reason": reason, "hint": hint},
            "warnings": [],
            "blocked": True,
            "error": {"code": "PATH_BLOCKED", "message": reason},
        }

    def log_request(
        self,
        request_id: str,
        endpoint: str,
        arguments: dict[str, object],
        response: dict[str, object],
        started: float,
    ) -> None:
        """Log one sanitized request event."""
        error_payload = response.get("error")
        error_code: str | None = None
        if isinstance(error_payload, dict):
            code_value = error_payload.get("code")
            if isinstance(code_value, str):
                error_code = code_value
        event = AuditEvent(
            timestamp=utc_timestamp(),
            request_id=request_id,
            endpoint=endpoint,
            ok=bool(response.get("ok", False)),
            blocked=bool(response.get("blocked", False)),
            error_code=error_code,
            duration_ms=round((time.perf_counter() - started) * 1000.0, 3),
            metadata=sanitize_arguments(arguments),
        )
        self._audit_logger.append(event)

    def _build_snapshot(self) -> Snapshot:
        profile: dict[str, object] = {}
        snapshot = build_snapshot(self._config, profile=profile)
        self._last_discovery = profile
        return snapshot

    def _refresh_snapshot(self) -> dict[str, object]:
        snapshot = self._snapshots.refresh()
        return {
            "snapshot_id": snapshot.snapshot_id,
            "snapshot_created_at": snapshot.created_at,
            "snapshot_generation": self._snapshots.generation,
            "indexed_file_count": len(snapshot.files),
            "indexed_bytes": snapshot.total_bytes,
            "discovery": dict(self._last_discovery),
        }


def result_warnings(endpoint: str, result: dict[str, object]) -> list[str]:
    """Non-fatal conditions worth surfacing next to a successful result."""
    warnings: list[str] = []
    if endpoint == "grep" and result.get("truncated") is True:
        warnings.append("grep stopped at the match limit; raise limit to see more.")
    if endpoint == "context":
        entries = result.get("entries")
        if isinstance(entries, list):
            missing = sum(
                1 for entry in entries if isinstance(entry, dict) and entry.get("kind") == "missing"
            )
            if missing:
                warnings.append(f"{missing} requested path(s) are not in the index.")
    if endpoint == "file" and result.get("truncated") is True:
        warnings.append("file content was cut at limits.max_read_bytes.")
    return warnings


def create_server(
    repo_root: str,
    data_dir: str | None = None,
    cli_overrides: CliOverrides | None = None,
) -> CodeScopeServer:
    """Create a configured server instance."""
    overrides = cli_overrides or CliOverrides()
    if data_dir is not None and overrides.data_dir is None:
        overrides = CliOverrides(
            data_dir=Path(data_dir).resolve(),
            max_file_bytes=overrides.max_file_bytes,
            default_limit=overrides.default_limit,
            max_limit=overrides.max_limit,
            scan_workers=overrides.scan_workers,
            request_timeout_ms=overrides.request_timeout_ms,
            bytes_per_token=overrides.bytes_per_token,
            match_mode=overrides.match_mode,
            python_ast_enabled=overrides.python_ast_enabled,
        )
    config = load_effective_config(repo_root=Path(repo_root).resolve(), overrides=overrides)
    return CodeScopeServer(config=config)


def main(argv: list[str] | None = None) -> int:
    """Entrypoint for the codescope server process."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    python_ast_enabled: bool | None = None
    if args.python_ast_enabled == "true":
        python_ast_enabled = True
    if args.python_ast_enabled == "false":
        python_ast_enabled = False
    overrides = CliOverrides(
        data_dir=Path(args.data_dir).resolve() if args.data_dir is not None else None,
        max_file_bytes=args.max_file_bytes,
        default_limit=args.default_limit,
        max_limit=args.max_limit,
        scan_workers=args.scan_workers,
        request_timeout_ms=args.request_timeout_ms,
        bytes_per_token=args.bytes_per_token,
        match_mode=args.match_mode,
        python_ast_enabled=python_ast_enabled,
    )
    server = create_server(repo_root=args.repo_root, cli_overrides=overrides)
    try:
        if args.http:
            uvicorn.run(create_app(server), host=args.host, port=args.port)
        else:
            server.serve(in_stream=sys.stdin, out_stream=sys.stdout)
    finally:
        server.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
