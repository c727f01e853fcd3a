"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path

MAX_FILE_BYTES_CAP = 16 * 1024 * 1024
MAX_LIMIT_CAP = 1_000
MAX_PER_FILE_CAP = 100
MODULE_LIMIT_CAP = 200
MAX_CONTEXT_PATHS_CAP = 5_000
SCAN_WORKERS_CAP = 64
REQUEST_TIMEOUT_MS_CAP = 600_000
SNIPPET_MAX_CHARS_CAP = 2_000
BYTES_PER_TOKEN_CAP = 16
STUB_MAX_BYTES_CAP = 64 * 1024
DEFAULT_BUDGET_CAP = 10_000_000

GREP_MATCH_MODES = ("and", "or")

DEFAULT_INCLUDE_EXTENSIONS = (
    ".py",
    ".pyi",
    ".go",
    ".mod",
    ".rs",
    ".ts",
    ".tsx",
    ".js",
    ".jsx",
    ".mjs",
    ".cjs",
    ".java",
    ".kt",
    ".cs",
    ".c",
    ".h",
    ".cc",
    ".cpp",
    ".hpp",
    ".swift",
    ".rb",
    ".php",
    ".sh",
    ".sql",
    ".html",
    ".css",
    ".md",
    ".rst",
    ".txt",
    ".toml",
    ".yaml",
    ".yml",
    ".json",
    ".ini",
    ".cfg",
)
DEFAULT_EXCLUDE_GLOBS = (
    "**/.git/**",
    "**/__pycache__/**",
    "**/.venv/**",
    "**/node_modules/**",
    "**/target/**",
    "**/dist/**",
    "**/build/**",
)


@dataclass(slots=True, frozen=True)
class LimitsConfig:
    """Per-request work and result caps."""

    max_file_bytes: int = 1024 * 1024
    default_limit: int = 50
    max_limit: int = 200
    max_per_file: int = 5
    module_limit: int = 8
    max_context_paths: int = 500
    scan_workers: int = 8
    request_timeout_ms: int = 0
    snippet_max_chars: int = 200
    max_read_bytes: int = 512 * 1024


@dataclass(slots=True, frozen=True)
class IndexConfig:
    """Deterministic indexing settings."""

    include_extensions: tuple[str, ...]
    exclude_globs: tuple[str, ...]
    include_hidden: bool = False


@dataclass(slots=True, frozen=True)
class GrepConfig:
    """Grep term semantics."""

    match_mode: str = "and"


@dataclass(slots=True, frozen=True)
class ContextConfig:
    """Context assembly sizing."""

    bytes_per_token: int = 4
    stub_max_bytes: int = 1024
    default_budget: int = 50_000


@dataclass(slots=True, frozen=True)
class StubsConfig:
    """Stub extractor feature toggles."""

    python_ast_enabled: bool = True


@dataclass(slots=True, frozen=True)
class ServerConfig:
    """Fully merged server configuration."""

    repo_root: Path
    data_dir: Path
    limits: LimitsConfig
    index: IndexConfig
    grep: GrepConfig
    context: ContextConfig
    stubs: StubsConfig

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot for status responses."""
        return {
            "repo_root": str(self.repo_root),
            "data_dir": str(self.data_dir),
            "limits": {
                "max_file_bytes": self.limits.max_file_bytes,
                "default_limit": self.limits.default_limit,
                "max_limit": self.limits.max_limit,
                "max_per_file": self.limits.max_per_file,
                "module_limit": self.limits.module_limit,
                "max_context_paths": self.limits.max_context_paths,
                "scan_workers": self.limits.scan_workers,
                "request_timeout_ms": self.limits.request_timeout_ms,
                "snippet_max_chars": self.limits.snippet_max_chars,
                "max_read_bytes": self.limits.max_read_bytes,
            },
            "index": {
                "include_extensions": list(self.index.include_extensions),
                "exclude_globs": list(self.index.exclude_globs),
                "include_hidden": self.index.include_hidden,
            },
            "grep": {"match_mode": self.grep.match_mode},
            "context": {
                "bytes_per_token": self.context.bytes_per_token,
                "stub_max_bytes": self.context.stub_max_bytes,
                "default_budget": self.context.default_budget,
            },
            "stubs": {"python_ast_enabled": self.stubs.python_ast_enabled},
        }


@dataclass(slots=True, frozen=True)
class CliOverrides:
    """Optional startup overrides applied at highest precedence."""

    data_dir: Path | None = None
    max_file_bytes: int | None = None
    default_limit: int | None = None
    max_limit: int | None = None
    scan_workers: int | None = None
    request_timeout_ms: int | None = None
    bytes_per_token: int | None = None
    match_mode: str | None = None
    python_ast_enabled: bool | None = None


def default_config(repo_root: Path) -> ServerConfig:
    """Build default config for a given repository root."""
    resolved_root = repo_root.resolve()
    return ServerConfig(
        repo_root=resolved_root,
        data_dir=resolved_root / ".codescope",
        limits=LimitsConfig(),
        index=IndexConfig(
            include_extensions=DEFAULT_INCLUDE_EXTENSIONS,
            exclude_globs=DEFAULT_EXCLUDE_GLOBS,
        ),
        grep=GrepConfig(),
        context=ContextConfig(),
        stubs=StubsConfig(),
    )


def load_repo_config_file(repo_root: Path) -> dict[str, object]:
    """Load optional codescope.toml from repo root."""
    config_path = repo_root / "codescope.toml"
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError("codescope.toml must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def _tuple_of_strings(value: object, section: str, field: str) -> tuple[str, ...]:
    if not isinstance(value, list):
        raise ValueError(f"Config field '{section}.{field}' must be a list of strings.")
    output: list[str] = []
    for item in value:
        if not isinstance(item, str):
            raise ValueError(f"Config field '{section}.{field}' must contain only strings.")
        output.append(item)
    return tuple(output)


def _optional_bool(value: object, name: str, default: bool) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"Config field '{name}' must be a boolean.")
    return value


def _optional_match_mode(value: object, name: str, default: str) -> str:
    if value is None:
        return default
    if not isinstance(value, str) or value.lower() not in GREP_MATCH_MODES:
        raise ValueError(f"Config field '{name}' must be one of: {', '.join(GREP_MATCH_MODES)}.")
    return value.lower()


def _merge_limits(payload: dict[str, object], base: LimitsConfig, prefix: str) -> LimitsConfig:
    limits = LimitsConfig(
        max_file_bytes=_optional_positive_int_with_cap(
            payload.get("max_file_bytes"),
            f"{prefix}.max_file_bytes",
            base.max_file_bytes,
            MAX_FILE_BYTES_CAP,
        ),
        default_limit=_optional_positive_int_with_cap(
            payload.get("default_limit"),
            f"{prefix}.default_limit",
            base.default_limit,
            MAX_LIMIT_CAP,
        ),
        max_limit=_optional_positive_int_with_cap(
            payload.get("max_limit"),
            f"{prefix}.max_limit",
            base.max_limit,
            MAX_LIMIT_CAP,
        ),
        max_per_file=_optional_positive_int_with_cap(
            payload.get("max_per_file"),
            f"{prefix}.max_per_file",
            base.max_per_file,
            MAX_PER_FILE_CAP,
        ),
        module_limit=_optional_positive_int_with_cap(
            payload.get("module_limit"),
            f"{prefix}.module_limit",
            base.module_limit,
            MODULE_LIMIT_CAP,
        ),
        max_context_paths=_optional_positive_int_with_cap(
            payload.get("max_context_paths"),
            f"{prefix}.max_context_paths",
            base.max_context_paths,
            MAX_CONTEXT_PATHS_CAP,
        ),
        scan_workers=_optional_positive_int_with_cap(
            payload.get("scan_workers"),
            f"{prefix}.scan_workers",
            base.scan_workers,
            SCAN_WORKERS_CAP,
        ),
        request_timeout_ms=_optional_non_negative_int_with_cap(
            payload.get("request_timeout_ms"),
            f"{prefix}.request_timeout_ms",
            base.request_timeout_ms,
            REQUEST_TIMEOUT_MS_CAP,
        ),
        snippet_max_chars=_optional_positive_int_with_cap(
            payload.get("snippet_max_chars"),
            f"{prefix}.snippet_max_chars",
            base.snippet_max_chars,
            SNIPPET_MAX_CHARS_CAP,
        ),
        max_read_bytes=_optional_positive_int_with_cap(
            payload.get("max_read_bytes"),
            f"{prefix}.max_read_bytes",
            base.max_read_bytes,
            MAX_FILE_BYTES_CAP,
        ),
    )
    if limits.default_limit > limits.max_limit:
        raise ValueError(f"Config field '{prefix}.default_limit' must be <= {prefix}.max_limit.")
    return limits


def merge_config(
    base: ServerConfig, repo_payload: dict[str, object], overrides: CliOverrides
) -> ServerConfig:
    """Merge defaults, repo config, then CLI/startup overrides."""
    limits_payload = _get_table(repo_payload, "limits")
    index_payload = _get_table(repo_payload, "index")
    grep_payload = _get_table(repo_payload, "grep")
    context_payload = _get_table(repo_payload, "context")
    stubs_payload = _get_table(repo_payload, "stubs")

    limits = _merge_limits(limits_payload, base.limits, "limits")

    include_extensions = base.index.include_extensions
    if "include_extensions" in index_payload:
        include_extensions = tuple(
            item.lower()
            for item in _tuple_of_strings(
                index_payload["include_extensions"], "index", "include_extensions"
            )
        )
    exclude_globs = base.index.exclude_globs
    if "exclude_globs" in index_payload:
        exclude_globs = _tuple_of_strings(index_payload["exclude_globs"], "index", "exclude_globs")
    include_hidden = _optional_bool(
        index_payload.get("include_hidden"), "index.include_hidden", base.index.include_hidden
    )

    context = ContextConfig(
        bytes_per_token=_optional_positive_int_with_cap(
            context_payload.get("bytes_per_token"),
            "context.bytes_per_token",
            base.context.bytes_per_token,
            BYTES_PER_TOKEN_CAP,
        ),
        stub_max_bytes=_optional_positive_int_with_cap(
            context_payload.get("stub_max_bytes"),
            "context.stub_max_bytes",
            base.context.stub_max_bytes,
            STUB_MAX_BYTES_CAP,
        ),
        default_budget=_optional_positive_int_with_cap(
            context_payload.get("default_budget"),
            "context.default_budget",
            base.context.default_budget,
            DEFAULT_BUDGET_CAP,
        ),
    )

    merged = ServerConfig(
        repo_root=base.repo_root,
        data_dir=base.data_dir,
        limits=limits,
        index=IndexConfig(
            include_extensions=include_extensions,
            exclude_globs=exclude_globs,
            include_hidden=include_hidden,
        ),
        grep=GrepConfig(
            match_mode=_optional_match_mode(
                grep_payload.get("match_mode"), "grep.match_mode", base.grep.match_mode
            )
        ),
        context=context,
        stubs=StubsConfig(
            python_ast_enabled=_optional_bool(
                stubs_payload.get("python_ast_enabled"),
                "stubs.python_ast_enabled",
                base.stubs.python_ast_enabled,
            )
        ),
    )
    return apply_cli_overrides(merged, overrides)


def apply_cli_overrides(config: ServerConfig, overrides: CliOverrides) -> ServerConfig:
    """Apply startup overrides at highest precedence."""
    limits = _merge_limits(
        {
            "max_file_bytes": overrides.max_file_bytes,
            "default_limit": overrides.default_limit,
            "max_limit": overrides.max_limit,
            "scan_workers": overrides.scan_workers,
            "request_timeout_ms": overrides.request_timeout_ms,
        },
        config.limits,
        "overrides",
    )
    context = ContextConfig(
        bytes_per_token=_optional_positive_int_with_cap(
            overrides.bytes_per_token,
            "overrides.bytes_per_token",
            config.context.bytes_per_token,
            BYTES_PER_TOKEN_CAP,
        ),
        stub_max_bytes=config.context.stub_max_bytes,
        default_budget=config.context.default_budget,
    )
    grep = GrepConfig(
        match_mode=_optional_match_mode(
            overrides.match_mode, "overrides.match_mode", config.grep.match_mode
        )
    )
    stubs = StubsConfig(
        python_ast_enabled=(
            overrides.python_ast_enabled
            if overrides.python_ast_enabled is not None
            else config.stubs.python_ast_enabled
        )
    )
    data_dir = overrides.data_dir or config.data_dir
    return ServerConfig(
        repo_root=config.repo_root,
        data_dir=data_dir.resolve(),
        limits=limits,
        index=config.index,
        grep=grep,
        context=context,
        stubs=stubs,
    )


def load_effective_config(repo_root: Path, overrides: CliOverrides | None = None) -> ServerConfig:
    """Load effective config using merge order defaults -> repo config -> overrides."""
    resolved_root = repo_root.resolve()
    base = default_config(resolved_root)
    payload = load_repo_config_file(resolved_root)
    return merge_config(base, payload, overrides or CliOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value


def _optional_non_negative_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"Config field '{name}' must be a non-negative integer.")
    if value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
