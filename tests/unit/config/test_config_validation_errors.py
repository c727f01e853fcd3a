from __future__ import annotations

from pathlib import Path

import pytest

from codescope.config import CliOverrides, load_effective_config
from codescope.server import create_server


def _write_config(root: Path, *lines: str) -> None:
    (root / "codescope.toml").write_text("\n".join(lines), encoding="utf-8")


@pytest.mark.parametrize(
    ("lines", "field"),
    [
        (("[limits]", 'max_limit = "lots"'), "limits.max_limit"),
        (("[limits]", "scan_workers = 0"), "limits.scan_workers"),
        (("[limits]", "scan_workers = 65"), "limits.scan_workers"),
        (("[limits]", "request_timeout_ms = -1"), "limits.request_timeout_ms"),
        (("[limits]", "default_limit = 300", "max_limit = 200"), "limits.default_limit"),
        (("[grep]", 'match_mode = "xor"'), "grep.match_mode"),
        (("[context]", "bytes_per_token = true"), "context.bytes_per_token"),
        (("[index]", "include_extensions = [1]"), "index.include_extensions"),
        (("[stubs]", 'python_ast_enabled = "yes"'), "stubs.python_ast_enabled"),
    ],
)
def test_invalid_repo_config_names_the_field(tmp_path: Path, lines: tuple[str, ...], field: str) -> None:
    _write_config(tmp_path, *lines)

    with pytest.raises(ValueError, match=field):
        load_effective_config(tmp_path)


def test_non_table_section_is_rejected(tmp_path: Path) -> None:
    _write_config(tmp_path, 'limits = "nope"')

    with pytest.raises(ValueError, match="Config section 'limits' must be a table."):
        create_server(repo_root=str(tmp_path))


def test_invalid_cli_override_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.scan_workers"):
        load_effective_config(tmp_path, CliOverrides(scan_workers=-2))
