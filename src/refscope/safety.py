"""Risk assessment for proposed refactorings."""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path
from typing import TYPE_CHECKING

from .config_store import AnalyzerConfig
from .files import LocalFileSystem, discover_source_files, make_file_filter
from .models import (
    CodeSymbol,
    OperationKind,
    RiskLevel,
    SafetyReport,
    StringReference,
    SymbolKind,
)
from .semantic import extensions_for

if TYPE_CHECKING:
    from collections.abc import Callable

    from .files import FileSystem

logger = logging.getLogger(__name__)


def is_valid_identifier(name: str | None) -> bool:
    """Check that ``name`` is a letter/underscore followed by letters, digits or underscores.

    Digits are decimal digits only (category Nd); superscripts and other
    numeric characters are rejected.
    """
    if not name:
        return False
    if not (name[0].isalpha() or name[0] == "_"):
        return False
    return all(
        c.isalpha() or c == "_" or unicodedata.category(c) == "Nd" for c in name
    )


class SafetyAnalyzer:
    """Scores the risk of an operation from symbol flags and project scans.

    Holds no state between calls. String-invocation scans read the project
    files directly instead of going through an index cache.
    """

    def __init__(
        self,
        project_root: str | Path,
        config: AnalyzerConfig | None = None,
        fs: FileSystem | None = None,
        file_filter: Callable[[Path], bool] | None = None,
    ):
        self.project_root = Path(project_root).absolute()
        self.config = config or AnalyzerConfig()
        self.fs = fs or LocalFileSystem()
        self.file_filter = file_filter or make_file_filter(
            self.project_root,
            extensions_for(self.config.language),
            self.config.exclude_patterns,
        )

    def check_safety(
        self,
        symbol: CodeSymbol,
        operation: OperationKind,
        new_name: str | None = None,
    ) -> SafetyReport:
        """
        Assess a proposed operation on ``symbol``.

        The risk level is the maximum over all triggered rules. Blockers
        make the report non-proceedable; warnings are informational.

        Args:
            symbol: The target symbol.
            operation: Operation being proposed.
            new_name: Proposed name for renames. Identifier validity is
                checked by the operation, not here.
        """
        risk = RiskLevel.LOW
        warnings: list[str] = []
        blockers: list[str] = []
        renaming = operation == OperationKind.RENAME

        if renaming and symbol.is_framework_lifecycle_method:
            risk = max(risk, RiskLevel.HIGH)
            blockers.append(
                f"'{symbol.name}' is a framework lifecycle method. "
                "Renaming will break its automatic invocation by the runtime."
            )

        if renaming and symbol.is_serialization_exposed_field:
            risk = max(risk, RiskLevel.HIGH)
            warnings.append(
                f"'{symbol.name}' is a serialized field. "
                "Renaming will orphan existing serialized data that uses the old name."
            )

        if renaming and symbol.kind == SymbolKind.METHOD:
            string_refs = self.find_string_based_references(symbol)
            if string_refs:
                risk = max(risk, RiskLevel.MEDIUM)
                call_types = sorted({r.call_type for r in string_refs})
                warnings.append(
                    f"Found {len(string_refs)} potential string-based call(s) to "
                    f"'{symbol.name}' ({', '.join(call_types)})"
                )

        if renaming and symbol.is_public:
            risk = max(risk, RiskLevel.MEDIUM)
            warnings.append(
                f"'{symbol.name}' is public. External code may depend on this name."
            )

        if self.has_reflection_usage(symbol.file_path):
            warnings.append(
                "This file uses reflection. Refactoring may break runtime lookups."
            )

        return SafetyReport(
            symbol=symbol,
            operation=operation,
            risk_level=risk,
            warnings=tuple(warnings),
            blockers=tuple(blockers),
        )

    def find_string_based_references(self, method: CodeSymbol) -> list[StringReference]:
        """
        Find lines that may invoke ``method`` by name through a string.

        A line counts when it contains one of the configured indirect-call
        patterns, not preceded by an identifier character, and the method
        name in double quotes. Each line is reported once, under the first
        configured pattern that matches.
        """
        quoted = f'"{method.name}"'
        patterns = [
            (pattern, re.compile(r"(?<!\w)" + re.escape(pattern)))
            for pattern in self.config.indirect_call_patterns
        ]
        references: list[StringReference] = []

        for path in discover_source_files(self.project_root, self.file_filter):
            try:
                content = self.fs.read_text(str(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.debug("Skipping unreadable file %s: %s", path, e)
                continue

            for line_idx, line in enumerate(content.split("\n")):
                if quoted not in line:
                    continue
                for pattern, regex in patterns:
                    if regex.search(line):
                        references.append(
                            StringReference(
                                file_path=str(path),
                                line=line_idx + 1,
                                call_type=pattern.rstrip('("'),
                                context=line.strip(),
                            )
                        )
                        break

        return references

    def has_reflection_usage(self, file_path: str) -> bool:
        """Check whether a file contains any configured reflection marker."""
        try:
            content = self.fs.read_text(file_path)
        except (OSError, UnicodeDecodeError):
            return False
        return any(marker in content for marker in self.config.reflection_markers)
