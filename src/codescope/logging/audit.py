"""Append-only JSONL request log with argument sanitizing."""

from __future__ import annotations

import json
import threading
from collections import deque
from collections.abc import Iterator
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path

# Argument values safe to record as-is; everything else is reduced to its shape.
_VERBATIM_STRING_KEYS = frozenset(
    {"path", "unit", "direction", "match_mode", "mode", "ext", "cat"}
)


@dataclass(slots=True, frozen=True)
class AuditEvent:
    """One endpoint request as written to the audit log."""

    timestamp: str
    request_id: str
    endpoint: str
    ok: bool
    blocked: bool
    error_code: str | None
    duration_ms: float
    metadata: dict[str, object]


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def sanitize_arguments(arguments: dict[str, object]) -> dict[str, object]:
    """Reduce request arguments to shapes and sizes; query text and path lists stay out."""
    sanitized: dict[str, object] = {}
    for key in sorted(arguments):
        sanitized.update(_describe(key, arguments[key]))
    return sanitized


def _describe(key: str, value: object) -> dict[str, object]:
    if isinstance(value, str):
        if key in _VERBATIM_STRING_KEYS:
            return {key: value}
        return {f"{key}_present": True, f"{key}_length": len(value)}
    if value is None or isinstance(value, (bool, int, float)):
        return {key: value}
    if isinstance(value, list):
        return {f"{key}_type": "list", f"{key}_length": len(value)}
    if isinstance(value, dict):
        return {f"{key}_type": "dict", f"{key}_keys": sorted(str(item) for item in value)}
    return {f"{key}_type": type(value).__name__}


class JsonlAuditLogger:
    """Thread-safe appender and tail reader for ``audit.jsonl``."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def append(self, event: AuditEvent) -> None:
        line = json.dumps(asdict(event), sort_keys=True)
        with self._lock, self._path.open("a", encoding="utf-8") as handle:
            handle.write(f"{line}\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Return the newest ``limit`` events with ``timestamp >= since``, oldest first."""
        if limit < 1 or not self._path.exists():
            return []
        tail: deque[dict[str, object]] = deque(maxlen=limit)
        for record in self._records():
            if since is not None:
                timestamp = record.get("timestamp")
                if not isinstance(timestamp, str) or timestamp < since:
                    continue
            tail.append(record)
        return list(tail)

    def _records(self) -> Iterator[dict[str, object]]:
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if isinstance(record, dict):
                    yield record
