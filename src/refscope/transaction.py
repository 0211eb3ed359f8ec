"""Transactional multi-file commit with restore-from-backup.

The backup set is an explicit ``Transaction`` value: ``begin`` snapshots
files, ``commit`` writes edits and returns the transaction with the files
it wrote, and ``rollback`` restores every snapshot from that value alone.
Restoration is best-effort; a crash while restoring can leave files
partially written.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

from .errors import ApplyFailureError
from .models import ChangeKind, FileChange

if TYPE_CHECKING:
    from .files import FileSystem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transaction:
    """Pre-apply content of every target file, plus the files written so far."""

    backups: Mapping[str, str] = field(default_factory=dict)
    written: tuple[str, ...] = ()


@dataclass(frozen=True)
class RestoreOutcome:
    restored: tuple[str, ...] = ()
    failed: tuple[str, ...] = ()


def group_changes(changes: Iterable[FileChange]) -> dict[str, list[FileChange]]:
    """Group changes by file, preserving first-seen file order."""
    grouped: dict[str, list[FileChange]] = {}
    for change in changes:
        grouped.setdefault(change.file_path, []).append(change)
    return grouped


def apply_changes(text: str, changes: Iterable[FileChange]) -> str:
    """
    Apply offset-addressed changes to one file's text.

    Changes are applied in descending start order so earlier offsets stay
    valid. Replace/Delete changes must still find their ``old_text`` at the
    recorded offsets.

    Raises:
        ApplyFailureError: If a change is out of bounds or its old text no
            longer matches.
    """
    for change in sorted(changes, key=lambda c: c.start, reverse=True):
        if not 0 <= change.start <= change.end <= len(text):
            raise ApplyFailureError(
                change.file_path,
                f"offsets {change.start}-{change.end} out of bounds "
                f"(length {len(text)})",
            )

        if change.kind == ChangeKind.INSERT:
            text = text[: change.start] + change.new_text + text[change.start :]
            continue

        current = text[change.start : change.end]
        if change.old_text and current != change.old_text:
            raise ApplyFailureError(
                change.file_path,
                f"content at offset {change.start} changed since the preview "
                f"(expected {change.old_text!r}, found {current!r})",
            )

        if change.kind == ChangeKind.REPLACE:
            text = text[: change.start] + change.new_text + text[change.end :]
        else:
            text = text[: change.start] + text[change.end :]
    return text


def begin(fs: FileSystem, paths: Iterable[str]) -> Transaction:
    """
    Snapshot the current content of every distinct path.

    Raises:
        ApplyFailureError: If a file cannot be read. Nothing has been
            written at this point, so there is nothing to restore.
    """
    backups: dict[str, str] = {}
    for path in paths:
        if path in backups:
            continue
        try:
            backups[path] = fs.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            raise ApplyFailureError(path, f"cannot read file for backup: {e}") from e
    return Transaction(backups=backups)


def commit(
    fs: FileSystem,
    tx: Transaction,
    changes_by_file: Mapping[str, list[FileChange]],
) -> Transaction:
    """
    Compute each file's final text from its snapshot and write it.

    Returns:
        The transaction with ``written`` listing every file written.

    Raises:
        CommitError: Wrapping the first failure, carrying the transaction
            as it stood, so the caller can roll back.
    """
    written: list[str] = []
    try:
        for path, file_changes in changes_by_file.items():
            new_text = apply_changes(tx.backups[path], file_changes)
            try:
                fs.write_text(path, new_text)
            except OSError as e:
                raise ApplyFailureError(path, str(e)) from e
            written.append(path)
    except ApplyFailureError as e:
        raise CommitError(e, replace(tx, written=tuple(written))) from e
    return replace(tx, written=tuple(written))


def rollback(fs: FileSystem, tx: Transaction) -> RestoreOutcome:
    """Write every snapshot in the backup set back to disk.

    Keeps going after a failed restore so as many files as possible end up
    with their pre-apply content.
    """
    restored: list[str] = []
    failed: list[str] = []
    for path, content in tx.backups.items():
        try:
            fs.write_text(path, content)
            restored.append(path)
        except OSError as e:
            logger.error("Failed to restore %s from backup: %s", path, e)
            failed.append(path)
    return RestoreOutcome(restored=tuple(restored), failed=tuple(failed))


class CommitError(Exception):
    """A failed commit, with the transaction state needed for rollback."""

    def __init__(self, cause: ApplyFailureError, tx: Transaction):
        self.cause = cause
        self.tx = tx
        super().__init__(str(cause))
