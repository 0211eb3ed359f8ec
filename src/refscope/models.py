"""Data models for refscope."""

import difflib
from dataclasses import dataclass, field, replace
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any


class SymbolKind(str, Enum):
    """Kind of a parsed structural element."""

    CLASS = "class"
    STRUCT = "struct"
    INTERFACE = "interface"
    ENUM = "enum"
    METHOD = "method"
    FIELD = "field"
    PROPERTY = "property"
    EVENT = "event"


class ChangeKind(str, Enum):
    REPLACE = "replace"
    INSERT = "insert"
    DELETE = "delete"


class OperationKind(str, Enum):
    """Refactoring operations a safety assessment can be requested for.

    Only RENAME and EXTRACT_METHOD have operation classes; the remaining
    kinds exist so callers can ask for a risk assessment up front.
    """

    RENAME = "rename"
    EXTRACT_METHOD = "extract_method"
    INLINE_METHOD = "inline_method"
    SIMPLIFY_LOGIC = "simplify_logic"
    REMOVE_UNUSED = "remove_unused"

    @property
    def label(self) -> str:
        """CamelCase display name, e.g. "ExtractMethod"."""
        return "".join(part.capitalize() for part in self.value.split("_"))


class RiskLevel(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2

    @property
    def label(self) -> str:
        return self.name.capitalize()


@dataclass(frozen=True)
class CodeSymbol:
    """A parsed structural element (class, method, field, ...).

    Symbols are created fresh on every index rebuild and never mutated.
    The enclosing class is held by name only and resolved on demand
    against the current symbol table.

    Attributes:
        name: Bare identifier, e.g. "Update".
        kind: Structural kind.
        file_path: Path of the file the symbol was parsed from.
        start_line: 1-based line of the declaration (attributes included).
        end_line: 1-based line where the declaration's braces balance.
        parent_class: Name of the enclosing class-like declaration, if any.
        signature: Declaration text without the body.
        body: Full declaration text through its closing brace (methods only).
        modifiers: Modifier keywords in source order.
        attributes: Inner text of each ``[...]`` attribute group.
        is_framework_lifecycle_method: Name is reserved by the host runtime.
        is_serialization_exposed_field: Field carries a serialization marker.
    """

    name: str
    kind: SymbolKind
    file_path: str
    start_line: int  # 1-based inclusive
    end_line: int  # 1-based inclusive
    parent_class: str | None = None
    signature: str = ""
    body: str | None = None
    modifiers: tuple[str, ...] = ()
    attributes: tuple[str, ...] = ()
    is_framework_lifecycle_method: bool = False
    is_serialization_exposed_field: bool = False

    @property
    def key(self) -> str:
        """Symbol table key: "Parent.name" when the parent is known."""
        if self.parent_class:
            return f"{self.parent_class}.{self.name}"
        return self.name

    @property
    def is_public(self) -> bool:
        return "public" in self.modifiers

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind.value,
            "file_path": self.file_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "parent_class": self.parent_class,
            "signature": self.signature,
            "modifiers": list(self.modifiers),
            "attributes": list(self.attributes),
            "is_framework_lifecycle_method": self.is_framework_lifecycle_method,
            "is_serialization_exposed_field": self.is_serialization_exposed_field,
        }
        return result


@dataclass(frozen=True)
class SymbolReference:
    """A whole-word textual occurrence of a name."""

    file_path: str
    line: int  # 1-based
    column: int  # 0-based
    context: str  # trimmed source line

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "line": self.line,
            "column": self.column,
            "context": self.context,
        }


@dataclass
class CallHierarchyNode:
    """A method with its direct callers and callees."""

    symbol: CodeSymbol
    callers: list["CallHierarchyNode"] = field(default_factory=list)
    callees: list["CallHierarchyNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol.to_dict(),
            "callers": [c.to_dict() for c in self.callers],
            "callees": [c.to_dict() for c in self.callees],
        }


@dataclass(frozen=True)
class FileChange:
    """One offset-addressed edit against a file.

    Offsets index into the file's text as read at prepare time.
    INSERT changes have ``start == end``.
    """

    file_path: str
    kind: ChangeKind
    start: int
    end: int
    old_text: str = ""
    new_text: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "kind": self.kind.value,
            "start": self.start,
            "end": self.end,
            "old_text": self.old_text,
            "new_text": self.new_text,
        }


@dataclass(frozen=True)
class StringReference:
    """A line that likely invokes a method by its name as a string."""

    file_path: str
    line: int
    call_type: str  # e.g. "SendMessage"
    context: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_path": self.file_path,
            "line": self.line,
            "call_type": self.call_type,
            "context": self.context,
        }


@dataclass(frozen=True)
class SafetyReport:
    """Risk assessment for a proposed operation.

    The operation may proceed only when ``blockers`` is empty.
    """

    symbol: CodeSymbol
    operation: OperationKind
    risk_level: RiskLevel = RiskLevel.LOW
    warnings: tuple[str, ...] = ()
    blockers: tuple[str, ...] = ()

    @property
    def can_proceed(self) -> bool:
        return not self.blockers

    def with_blocker(self, message: str) -> "SafetyReport":
        return replace(self, blockers=self.blockers + (message,))

    def with_warning(self, message: str) -> "SafetyReport":
        return replace(self, warnings=self.warnings + (message,))

    def summary(self) -> str:
        if self.blockers:
            return f"BLOCKED: {self.blockers[0]}"
        if self.warnings:
            return f"Risk: {self.risk_level.label} - {len(self.warnings)} warning(s)"
        return f"Risk: {self.risk_level.label} - Safe to proceed"

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol.key,
            "operation": self.operation.value,
            "risk_level": self.risk_level.label,
            "warnings": list(self.warnings),
            "blockers": list(self.blockers),
            "can_proceed": self.can_proceed,
            "summary": self.summary(),
        }


@dataclass(frozen=True)
class DiffPreview:
    """Full before/after text of one affected file."""

    file_path: str
    original: str
    modified: str

    def simple_diff(self, context_lines: int = 3) -> str:
        """Render a line-oriented unified diff for display."""
        name = Path(self.file_path).name
        old_lines = [line.rstrip("\r") for line in self.original.split("\n")]
        new_lines = [line.rstrip("\r") for line in self.modified.split("\n")]
        diff = difflib.unified_diff(
            old_lines,
            new_lines,
            fromfile=f"{name} (original)",
            tofile=f"{name} (modified)",
            n=context_lines,
            lineterm="",
        )
        return "\n".join(diff)


@dataclass(frozen=True)
class RefactoringPreview:
    """Immutable snapshot returned by ``prepare()``."""

    operation: OperationKind
    target_symbol: CodeSymbol
    safety_report: SafetyReport
    affected_files: tuple[str, ...] = ()
    diffs: tuple[DiffPreview, ...] = ()
    total_changes: int = 0

    @property
    def can_proceed(self) -> bool:
        return self.safety_report.can_proceed

    def summary(self) -> str:
        return (
            f"{self.operation.label} '{self.target_symbol.name}' - "
            f"{len(self.affected_files)} file(s), {self.total_changes} change(s)"
        )


@dataclass(frozen=True)
class ApplyResult:
    """Outcome of ``apply()``.

    On failure, ``restored_files`` lists the files written back from the
    backup set and ``restore_errors`` any file that could not be restored.
    """

    success: bool
    files_changed: tuple[str, ...] = ()
    change_count: int = 0
    error: str | None = None
    restored_files: tuple[str, ...] = ()
    restore_errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "files_changed": list(self.files_changed),
            "change_count": self.change_count,
            "error": self.error,
            "restored_files": list(self.restored_files),
            "restore_errors": list(self.restore_errors),
        }
