"""Extension and category filters applied before grep and find scans."""

from __future__ import annotations

from dataclasses import dataclass

from codescope.index.manifest import category_for_path
from codescope.index.models import IndexedFile


def parse_extensions(value: str | None) -> frozenset[str]:
    """Parse ``"py, .ts,RS"`` into ``{"py", "ts", "rs"}``; blank input means no filter."""
    if not value:
        return frozenset()
    parts = (item.strip().lstrip(".").lower() for item in value.split(","))
    return frozenset(item for item in parts if item)


def file_extension(path: str) -> str:
    name = path.rpartition("/")[2]
    stem, dot, suffix = name.rpartition(".")
    return suffix.lower() if dot and stem else ""


@dataclass(slots=True, frozen=True)
class FileFilter:
    """Keeps files whose extension is listed and whose category starts with a prefix."""

    extensions: frozenset[str] = frozenset()
    category: str = ""

    @classmethod
    def parse(cls, ext: str | None, cat: str | None) -> FileFilter:
        return cls(extensions=parse_extensions(ext), category=(cat or "").strip())

    @property
    def active(self) -> bool:
        return bool(self.extensions or self.category)

    def accepts(self, file: IndexedFile) -> bool:
        if self.extensions and file_extension(file.path) not in self.extensions:
            return False
        return not self.category or category_for_path(file.path).startswith(self.category)

    def apply(self, files: tuple[IndexedFile, ...]) -> tuple[IndexedFile, ...]:
        if not self.active:
            return files
        return tuple(item for item in files if self.accepts(item))
