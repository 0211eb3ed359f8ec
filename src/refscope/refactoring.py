"""Refactoring operations: prepare a preview, then apply it transactionally."""

from __future__ import annotations

import logging
import re
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from .errors import ApplyFailureError
from .models import (
    ApplyResult,
    ChangeKind,
    CodeSymbol,
    DiffPreview,
    FileChange,
    OperationKind,
    RefactoringPreview,
    SafetyReport,
)
from .safety import SafetyAnalyzer, is_valid_identifier
from .transaction import CommitError, apply_changes, begin, commit, group_changes, rollback
from .utils import detect_newline, line_start_offset, whole_word_pattern

if TYPE_CHECKING:
    from collections.abc import Callable

    from .files import FileSystem
    from .symbol_index import SymbolIndex

    ProjectChangedCallback = Callable[[tuple[str, ...]], None]

logger = logging.getLogger(__name__)

_LEADING_INDENT = re.compile(r"^[ \t]*")
_TRAILING_SPACE = re.compile(r"\s*$")


class OperationState(str, Enum):
    CREATED = "created"
    PREPARED = "prepared"
    APPLIED = "applied"
    FAILED = "failed"


class RefactoringOperation:
    """
    Base class for operations with a prepare/apply lifecycle.

    ``prepare()`` computes the pending changes and a preview without writing
    anything; it can be called again to recompute. ``apply()`` commits the
    pending changes, restoring every touched file if any write fails.

    Subclasses set ``kind`` and implement ``_compute``.
    """

    kind: OperationKind

    def __init__(
        self,
        index: SymbolIndex,
        symbol: CodeSymbol,
        safety: SafetyAnalyzer | None = None,
        fs: FileSystem | None = None,
        on_project_changed: ProjectChangedCallback | None = None,
    ):
        self.index = index
        self.symbol = symbol
        self.fs = fs or index.fs
        if safety is None:
            root = index.root or Path.cwd()
            safety = SafetyAnalyzer(
                root, index.config, self.fs, file_filter=index.default_file_filter(root)
            )
        self.safety = safety
        self.on_project_changed = on_project_changed
        self.state = OperationState.CREATED
        self.preview: RefactoringPreview | None = None
        self._changes: list[FileChange] = []

    @property
    def changes(self) -> tuple[FileChange, ...]:
        """Pending changes from the last ``prepare()``."""
        return tuple(self._changes)

    def prepare(self) -> RefactoringPreview:
        """Compute pending changes and return a preview. Performs no writes."""
        self._changes = []
        report, changes, diffs = self._compute()
        if not report.can_proceed:
            changes, diffs = [], []
        self._changes = changes

        self.preview = RefactoringPreview(
            operation=self.kind,
            target_symbol=self.symbol,
            safety_report=report,
            affected_files=tuple(d.file_path for d in diffs),
            diffs=tuple(diffs),
            total_changes=len(changes),
        )
        self.state = OperationState.PREPARED
        logger.debug("Prepared %s", self.preview.summary())
        return self.preview

    def apply(self) -> ApplyResult:
        """
        Commit the pending changes to disk.

        Every target file is snapshotted first. If any change fails to
        apply or any write fails, all snapshotted files are written back
        and a failed result is returned. On success the project-changed
        callback is invoked with the written files.
        """
        if not self._changes:
            return ApplyResult(success=False, error="No changes to apply")

        change_count = len(self._changes)
        changes_by_file = group_changes(self._changes)

        try:
            tx = begin(self.fs, changes_by_file)
        except ApplyFailureError as e:
            logger.error("Apply aborted before writing: %s", e)
            self.state = OperationState.FAILED
            return ApplyResult(success=False, change_count=change_count, error=str(e))

        try:
            tx = commit(self.fs, tx, changes_by_file)
        except CommitError as e:
            outcome = rollback(self.fs, e.tx)
            logger.error(
                "Apply failed, restored %d of %d file(s): %s",
                len(outcome.restored),
                len(e.tx.backups),
                e.cause,
            )
            self._changes = []
            self.state = OperationState.FAILED
            return ApplyResult(
                success=False,
                change_count=change_count,
                error=str(e.cause),
                restored_files=outcome.restored,
                restore_errors=outcome.failed,
            )

        self._changes = []
        self.state = OperationState.APPLIED
        logger.info(
            "Applied %s: %d change(s) in %d file(s)",
            self.kind.label,
            change_count,
            len(tx.written),
        )
        if self.on_project_changed is not None:
            self.on_project_changed(tx.written)
        return ApplyResult(success=True, files_changed=tx.written, change_count=change_count)

    def _compute(self) -> tuple[SafetyReport, list[FileChange], list[DiffPreview]]:
        raise NotImplementedError


class RenameOperation(RefactoringOperation):
    """Rename a symbol at its definition and at every whole-word reference."""

    kind = OperationKind.RENAME

    def __init__(self, index: SymbolIndex, symbol: CodeSymbol, new_name: str, **kwargs):
        super().__init__(index, symbol, **kwargs)
        self.new_name = new_name

    def _compute(self) -> tuple[SafetyReport, list[FileChange], list[DiffPreview]]:
        report = self.safety.check_safety(self.symbol, self.kind, self.new_name)
        if not is_valid_identifier(self.new_name):
            report = report.with_blocker(f"'{self.new_name}' is not a valid identifier")
        if not report.can_proceed:
            return report, [], []

        paths = [self.symbol.file_path]
        paths.extend(r.file_path for r in self.index.get_references(self.symbol.name))

        pattern = whole_word_pattern(self.symbol.name)
        changes: list[FileChange] = []
        diffs: list[DiffPreview] = []
        for path in dict.fromkeys(paths):
            try:
                content = self.fs.read_text(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Skipping unreadable file %s: %s", path, e)
                report = report.with_warning(f"Could not read {path}: {e}")
                continue

            file_changes = [
                FileChange(
                    file_path=path,
                    kind=ChangeKind.REPLACE,
                    start=m.start(),
                    end=m.end(),
                    old_text=m.group(0),
                    new_text=self.new_name,
                )
                for m in pattern.finditer(content)
            ]
            if not file_changes:
                continue
            changes.extend(file_changes)
            diffs.append(DiffPreview(path, content, apply_changes(content, file_changes)))

        return report, changes, diffs


class ExtractMethodOperation(RefactoringOperation):
    """
    Move a code fragment into a new parameterless method.

    The new method is inserted after the containing method; the first
    occurrence of the fragment in the file is replaced by a call to it.
    """

    kind = OperationKind.EXTRACT_METHOD

    def __init__(
        self,
        index: SymbolIndex,
        containing_method: CodeSymbol,
        selection: str,
        new_method_name: str,
        **kwargs,
    ):
        super().__init__(index, containing_method, **kwargs)
        self.selection = selection
        self.new_method_name = new_method_name

    def _compute(self) -> tuple[SafetyReport, list[FileChange], list[DiffPreview]]:
        report = self.safety.check_safety(self.symbol, self.kind)
        if not is_valid_identifier(self.new_method_name):
            report = report.with_blocker(
                f"'{self.new_method_name}' is not a valid identifier"
            )
        if not self.selection.strip():
            report = report.with_blocker("No code selected to extract")
        if not report.can_proceed:
            return report, [], []

        path = self.symbol.file_path
        try:
            content = self.fs.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            return report.with_blocker(f"Could not read {path}: {e}"), [], []

        selection_start = content.find(self.selection)
        if selection_start < 0:
            return (
                report.with_blocker(f"Selected code not found in {Path(path).name}"),
                [],
                [],
            )
        selection_end = selection_start + len(self.selection)

        insert_at = line_start_offset(content.split("\n"), self.symbol.end_line)
        if selection_start < insert_at < selection_end:
            return (
                report.with_blocker(
                    f"Selection crosses the end of '{self.symbol.name}'"
                ),
                [],
                [],
            )

        indent = _LEADING_INDENT.match(self.selection).group(0)
        trailing = _TRAILING_SPACE.search(self.selection).group(0)
        call = f"{indent}{self.new_method_name}();{trailing}"

        # Replace is listed first so it applies before an insert at the same offset
        changes = [
            FileChange(
                file_path=path,
                kind=ChangeKind.REPLACE,
                start=selection_start,
                end=selection_end,
                old_text=self.selection,
                new_text=call,
            ),
            FileChange(
                file_path=path,
                kind=ChangeKind.INSERT,
                start=insert_at,
                end=insert_at,
                new_text=self._build_method(detect_newline(content)),
            ),
        ]
        modified = apply_changes(content, changes)
        return report, changes, [DiffPreview(path, content, modified)]

    def _build_method(self, newline: str) -> str:
        base = self.index.config.extract_indent
        out = [
            "",
            f"{base}private void {self.new_method_name}()",
            f"{base}{{",
        ]
        for line in self.selection.split("\n"):
            text = line.rstrip("\r").lstrip()
            if text.strip():
                out.append(f"{base}    {text}")
        out.append(f"{base}}}")
        return newline.join(out) + newline
