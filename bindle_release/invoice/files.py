"""Filesystem access and glob resolution for manifest entries."""

from __future__ import annotations

from pathlib import Path
from typing import List, Protocol

from ..exceptions import MissingFileError


class FileSystem(Protocol):
    def exists(self, path: Path) -> bool:  # pragma: no cover - interface
        ...

    def list_matching_glob(self, root: Path, pattern: str) -> List[str]:  # pragma: no cover - interface
        ...

    def read_bytes(self, path: Path) -> bytes:  # pragma: no cover - interface
        ...


class LocalFileSystem:
    """``FileSystem`` backed by the local disk."""

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def list_matching_glob(self, root: Path, pattern: str) -> List[str]:
        if not root.is_dir():
            return []
        return [
            candidate.relative_to(root).as_posix()
            for candidate in root.glob(pattern)
            if candidate.is_file()
        ]

    def read_bytes(self, path: Path) -> bytes:
        return path.read_bytes()


def resolve_pattern(filesystem: FileSystem, root: Path, pattern: str) -> List[str]:
    """Return the sorted relative paths under ``root`` matching ``pattern``.

    ``**`` segments recurse into subdirectories. A pattern that matches nothing
    yields an empty list.
    """

    return sorted(set(filesystem.list_matching_glob(root, pattern)))


def resolve_module(filesystem: FileSystem, root: Path, path: str, *, entry: str) -> Path:
    """Return the absolute path of a module, which must exist."""

    absolute = root / path
    if not filesystem.exists(absolute):
        raise MissingFileError(path, entry=entry)
    return absolute


__all__ = ["FileSystem", "LocalFileSystem", "resolve_module", "resolve_pattern"]
