"""Built-in endpoint handlers shared by the stdio and HTTP transports."""

from __future__ import annotations

from collections.abc import Callable

from codescope.config import ServerConfig
from codescope.context import BUDGET_UNITS, UNIT_TOKENS, ContextAssembler
from codescope.endpoints.registry import EndpointDispatchError, EndpointHandler, EndpointRegistry
from codescope.index import (
    IMPORT_DIRECTIONS,
    SnapshotStore,
    build_import_graph,
    build_manifest,
    build_tree,
    collect_dependencies,
)
from codescope.index.models import IndexedFile
from codescope.index.snapshot import Snapshot
from codescope.search import Deadline, FileFilter, ScanExecutor, find, grep, search
from codescope.security import (
    PathBlockedError,
    PolicyBlockedError,
    enforce_file_access_policy,
    normalize_index_path,
    resolve_repo_path,
)
from codescope.stubs import StubExtractorRegistry


def register_builtin_endpoints(
    registry: EndpointRegistry,
    config: ServerConfig,
    snapshots: SnapshotStore,
    stubs: StubExtractorRegistry,
    executor: ScanExecutor,
    refresh_snapshot: Callable[[], dict[str, object]],
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> None:
    """Register every endpoint in route order."""
    registry.register("search", _search_handler(config, snapshots))
    registry.register("grep", _grep_handler(config, snapshots, executor))
    registry.register("find", _find_handler(config, snapshots, executor))
    registry.register("context", _context_handler(config, snapshots, stubs))
    registry.register("imports", _imports_handler(snapshots))
    registry.register("deps", _deps_handler(snapshots))
    registry.register("manifest", _manifest_handler(snapshots))
    registry.register("tree", _tree_handler(snapshots))
    registry.register("status", _status_handler(config, snapshots, stubs, executor))
    registry.register("refresh", _refresh_handler(refresh_snapshot))
    registry.register("audit_log", _audit_log_handler(config, read_audit_entries))
    registry.register("file", _file_handler(config, snapshots))
    registry.register("files", _files_handler(config, snapshots, stubs))


def parse_int_param(
    arguments: dict[str, object],
    name: str,
    default: int,
    *,
    minimum: int = 0,
    maximum: int | None = None,
) -> int:
    """Read an integer parameter; numeric strings are accepted, values above maximum clamp."""
    value = arguments.get(name)
    if value is None or value == "":
        parsed = default
    elif isinstance(value, bool):
        raise _invalid(f"{name} must be an integer.")
    elif isinstance(value, int):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = int(value.strip(), 10)
        except ValueError:
            raise _invalid(f"{name} must be an integer.") from None
    else:
        raise _invalid(f"{name} must be an integer.")
    if parsed < minimum:
        raise _invalid(f"{name} must be >= {minimum}.")
    if maximum is not None and parsed > maximum:
        return maximum
    return parsed


def parse_query(arguments: dict[str, object], name: str = "q") -> str:
    """Return the query text; a missing query reads as empty."""
    value = arguments.get(name)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise _invalid(f"{name} must be a string.")
    return value


def new_deadline(config: ServerConfig) -> Deadline:
    return Deadline.after_ms(config.limits.request_timeout_ms)


def _invalid(message: str) -> EndpointDispatchError:
    return EndpointDispatchError(code="INVALID_PARAMS", message=message)


def parse_file_filter(arguments: dict[str, object]) -> FileFilter:
    return FileFilter.parse(parse_query(arguments, "ext"), parse_query(arguments, "cat"))


def _search_handler(config: ServerConfig, snapshots: SnapshotStore) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        query = parse_query(arguments)
        file_limit = parse_int_param(
            arguments, "fileLimit", config.limits.default_limit, maximum=config.limits.max_limit
        )
        module_limit = parse_int_param(
            arguments, "moduleLimit", config.limits.module_limit, maximum=config.limits.max_limit
        )
        snapshot = snapshots.current()
        result = search(
            query,
            snapshot.files,
            file_limit=file_limit,
            module_limit=module_limit,
        )
        return result.to_dict()

    return handler


def _grep_handler(
    config: ServerConfig,
    snapshots: SnapshotStore,
    executor: ScanExecutor,
) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        query = parse_query(arguments)
        limit = parse_int_param(
            arguments, "limit", config.limits.default_limit, maximum=config.limits.max_limit
        )
        max_per_file = parse_int_param(
            arguments,
            "maxPerFile",
            config.limits.max_per_file,
            minimum=1,
            maximum=config.limits.max_limit,
        )
        snapshot = snapshots.current()
        result = grep(
            query,
            parse_file_filter(arguments).apply(snapshot.files),
            snapshot.read_text,
            limit=limit,
            max_per_file=max_per_file,
            match_mode=config.grep.match_mode,
            snippet_max_chars=config.limits.snippet_max_chars,
            executor=executor,
            deadline=new_deadline(config),
        )
        return result.to_dict()

    return handler


def _find_handler(
    config: ServerConfig,
    snapshots: SnapshotStore,
    executor: ScanExecutor,
) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        query = parse_query(arguments)
        limit = parse_int_param(
            arguments, "limit", config.limits.default_limit, maximum=config.limits.max_limit
        )
        snapshot = snapshots.current()
        results = find(
            query,
            parse_file_filter(arguments).apply(snapshot.files),
            snapshot.read_text,
            limit=limit,
            executor=executor,
            deadline=new_deadline(config),
        )
        return {"results": [entry.to_dict() for entry in results]}

    return handler


def _context_handler(
    config: ServerConfig,
    snapshots: SnapshotStore,
    stubs: StubExtractorRegistry,
) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        paths_value = arguments.get("paths", [])
        if not isinstance(paths_value, list) or not all(
            isinstance(item, str) for item in paths_value
        ):
            raise _invalid("context paths must be a list of strings.")
        if len(paths_value) > config.limits.max_context_paths:
            raise _invalid(
                f"context accepts at most {config.limits.max_context_paths} paths."
            )
        unit = arguments.get("unit", UNIT_TOKENS)
        if unit is None:
            unit = UNIT_TOKENS
        if not isinstance(unit, str) or unit not in BUDGET_UNITS:
            raise _invalid(f"context unit must be one of {', '.join(BUDGET_UNITS)}.")
        budget = parse_int_param(arguments, "budget", config.context.default_budget)

        assembler = ContextAssembler.from_config(snapshots.current(), stubs, config.context)
        bundle = assembler.assemble(paths_value, unit, budget, deadline=new_deadline(config))
        return bundle.to_dict()

    return handler


def _imports_handler(snapshots: SnapshotStore) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path_value = arguments.get("path")
        if not isinstance(path_value, str) or not path_value.strip():
            raise _invalid("imports path must be a non-empty string.")
        direction = arguments.get("direction", "both")
        if direction is None:
            direction = "both"
        if not isinstance(direction, str) or direction not in IMPORT_DIRECTIONS:
            raise _invalid(f"imports direction must be one of {', '.join(IMPORT_DIRECTIONS)}.")

        snapshot = snapshots.current()
        key = normalize_index_path(path_value)
        if key is None or snapshot.get(key) is None:
            return {"path": path_value, "direction": direction, "imports": [], "importedBy": []}
        graph = snapshot.derived("imports", build_import_graph)
        return graph.query(key, direction)

    return handler


def _deps_handler(snapshots: SnapshotStore) -> EndpointHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return snapshots.current().derived("dependencies", collect_dependencies)

    return handler


def _manifest_handler(snapshots: SnapshotStore) -> EndpointHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return snapshots.current().derived("manifest", lambda item: build_manifest(item.files))

    return handler


def _tree_handler(snapshots: SnapshotStore) -> EndpointHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return snapshots.current().derived("tree", lambda item: build_tree(item.files))

    return handler


def _status_handler(
    config: ServerConfig,
    snapshots: SnapshotStore,
    stubs: StubExtractorRegistry,
    executor: ScanExecutor,
) -> EndpointHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        snapshot = snapshots.current()
        return {
            "repo_root": str(config.repo_root),
            "snapshot_id": snapshot.snapshot_id,
            "snapshot_created_at": snapshot.created_at,
            "snapshot_generation": snapshots.generation,
            "indexed_file_count": len(snapshot.files),
            "indexed_bytes": snapshot.total_bytes,
            "scan_workers": executor.workers,
            "stub_extractors": list(stubs.names()),
            "effective_config": config.to_public_dict(),
        }

    return handler


def _refresh_handler(refresh_snapshot: Callable[[], dict[str, object]]) -> EndpointHandler:
    def handler(_: dict[str, object]) -> dict[str, object]:
        return refresh_snapshot()

    return handler


def _audit_log_handler(
    config: ServerConfig,
    read_audit_entries: Callable[[str | None, int], list[dict[str, object]]],
) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        since_value = arguments.get("since")
        since = since_value if isinstance(since_value, str) else None
        limit = parse_int_param(
            arguments,
            "limit",
            config.limits.default_limit,
            minimum=1,
            maximum=config.limits.max_limit,
        )
        return {"entries": read_audit_entries(since, limit)}

    return handler


FILE_READ_MODES = ("full", "stubs")


def read_capped(text: str, max_bytes: int) -> tuple[str, bool]:
    """Cut text to at most ``max_bytes`` UTF-8 bytes on a character boundary."""
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text, False
    return encoded[:max_bytes].decode("utf-8", errors="ignore"), True


def lookup_readable_file(config: ServerConfig, snapshot: Snapshot, requested: str) -> IndexedFile:
    """Resolve a client path to an indexed file that policy allows serving."""
    key = normalize_index_path(requested)
    if key is None:
        resolve_repo_path(config.repo_root, requested)
        raise EndpointDispatchError("NOT_FOUND", f"File not found: {requested}")
    file = snapshot.get(key)
    enforce_file_access_policy(
        key, file.byte_size if file is not None else 0, config.limits.max_file_bytes
    )
    if file is None:
        raise EndpointDispatchError("NOT_FOUND", f"File not found: {requested}")
    return file


def _file_handler(config: ServerConfig, snapshots: SnapshotStore) -> EndpointHandler:
    def handler(arguments: dict[str, object]) -> dict[str, object]:
        path_value = arguments.get("path")
        if not isinstance(path_value, str) or not path_value.strip():
            raise _invalid("file path must be a non-empty string.")
        snapshot = snapshots.current()
        file = lookup_readable_file(config, snapshot, path_value)
        text = snapshot.read_text(file.path)
        if text is None:
            raise EndpointDispatchError(
                "CONTENT_UNAVAILABLE", f"File content is not readable as text: {file.path}"
            )
        content, truncated = read_capped(text, config.limits.max_read_bytes)
        return {
            "path": file.path,
            "content": content,
            "lines": len(content.splitlines()),
            "size": file.byte_size,
            "truncated": truncated,
        }

    return handler


def _files_handler(
    config: ServerConfig,
    snapshots: SnapshotStore,
    stubs: StubExtractorRegistry,
) -> EndpointHandler:
    """Batch read; one bad path becomes an error entry instead of failing the request."""

    def handler(arguments: dict[str, object]) -> dict[str, object]:
        paths_value = arguments.get("paths", [])
        if not isinstance(paths_value, list) or not all(
            isinstance(item, str) for item in paths_value
        ):
            raise _invalid("files paths must be a list of strings.")
        if len(paths_value) > config.limits.max_context_paths:
            raise _invalid(f"files accepts at most {config.limits.max_context_paths} paths.")
        mode = arguments.get("mode") or "full"
        if not isinstance(mode, str) or mode not in FILE_READ_MODES:
            raise _invalid(f"files mode must be one of {', '.join(FILE_READ_MODES)}.")

        snapshot = snapshots.current()
        deadline = new_deadline(config)
        files: dict[str, dict[str, object]] = {}
        for requested in paths_value:
            deadline.check("files")
            if requested in files:
                continue
            try:
                file = lookup_readable_file(config, snapshot, requested)
            except (PathBlockedError, PolicyBlockedError) as error:
                files[requested] = {"error": error.reason}
                continue
            except EndpointDispatchError as error:
                files[requested] = {"error": error.message}
                continue
            text = snapshot.read_text(file.path)
            if text is None:
                files[requested] = {"error": "File content is not readable as text."}
                continue
            if mode == "stubs":
                size = len(text.encode("utf-8"))
                content = stubs.render(file, text, min(config.context.stub_max_bytes, size))
                truncated = False
            else:
                content, truncated = read_capped(text, config.limits.max_read_bytes)
            files[requested] = {
                "content": content,
                "size": len(content.encode("utf-8")),
                "truncated": truncated,
            }
        return {"mode": mode, "files": files}

    return handler
