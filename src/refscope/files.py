"""Raw file primitives and source file discovery."""

from __future__ import annotations

import os
from fnmatch import fnmatch
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable


class FileSystem(Protocol):
    """Read/write primitives the engine performs all file I/O through.

    Implementations raise OSError (or UnicodeDecodeError) on failure.
    """

    def read_text(self, path: str) -> str:
        ...

    def write_text(self, path: str, text: str) -> None:
        ...


class LocalFileSystem:
    """UTF-8 file access that preserves line endings byte-for-byte."""

    def read_text(self, path: str) -> str:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, path: str, text: str) -> None:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)


def _is_within_root(path: Path, root: Path) -> bool:
    """Return True when the resolved path stays within the resolved root."""
    try:
        path.resolve().relative_to(root.resolve())
    except (OSError, ValueError):
        return False
    return True


def make_file_filter(
    root: Path,
    extensions: Iterable[str],
    exclude_patterns: Iterable[str] = (),
) -> Callable[[Path], bool]:
    """Build an inclusion predicate from extensions and exclude globs.

    Exclude patterns are fnmatch globs matched against the root-relative
    POSIX path, e.g. ``"Assets/Plugins/*"``.
    """
    exts = {ext.lower() for ext in extensions}
    patterns = list(exclude_patterns)

    def include(path: Path) -> bool:
        if path.suffix.lower() not in exts:
            return False
        try:
            rel = path.relative_to(root).as_posix()
        except ValueError:
            return False
        return not any(fnmatch(rel, pat) for pat in patterns)

    return include


def discover_source_files(
    root: Path,
    include: Callable[[Path], bool],
) -> list[Path]:
    """Return all files under root accepted by ``include``, sorted by path.

    Hidden directories (``.git``, ``.vs``, ...) and symlinks are skipped.
    """
    root = Path(root)
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if path.is_symlink() or not _is_within_root(path, root):
                continue
            if include(path):
                found.append(path)
    return found
