"""File extension to language mapping."""

from __future__ import annotations

from pathlib import PurePosixPath

UNKNOWN_LANGUAGE = "text"

_EXTENSION_LANGUAGES: dict[str, str] = {
    ".py": "python",
    ".pyi": "python",
    ".go": "go",
    ".rs": "rust",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "javascript",
    ".jsx": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".java": "java",
    ".kt": "kotlin",
    ".cs": "csharp",
    ".c": "c",
    ".h": "c",
    ".cc": "cpp",
    ".cpp": "cpp",
    ".hpp": "cpp",
    ".swift": "swift",
    ".rb": "ruby",
    ".php": "php",
    ".sh": "shell",
    ".sql": "sql",
    ".html": "html",
    ".css": "css",
    ".md": "markdown",
    ".rst": "restructuredtext",
    ".txt": "text",
    ".toml": "toml",
    ".yaml": "yaml",
    ".yml": "yaml",
    ".json": "json",
    ".ini": "ini",
    ".cfg": "ini",
}

_FILENAME_LANGUAGES: dict[str, str] = {
    "go.mod": "gomod",
    "dockerfile": "dockerfile",
    "makefile": "makefile",
}


def language_for_path(path: str) -> str:
    """Return the language name for a repository path."""
    name = PurePosixPath(path).name.lower()
    by_name = _FILENAME_LANGUAGES.get(name)
    if by_name is not None:
        return by_name
    return _EXTENSION_LANGUAGES.get(PurePosixPath(name).suffix, UNKNOWN_LANGUAGE)
