"""Protocol definition for source analyzers."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..models import CodeSymbol, SymbolReference


class SourceAnalyzer(Protocol):
    """Protocol for language-specific source analyzers.

    Implementations turn one file's text into structural symbols and
    find whole-word textual references. They hold no cross-file state.
    """

    def analyze(self, path: str) -> list[CodeSymbol]:
        """Read and analyze one file.

        Never raises for unreadable files: the failure is logged and an
        empty list is returned.
        """
        ...

    def analyze_source(self, source: str, path: str) -> list[CodeSymbol]:
        """Extract all symbols from already-loaded source text.

        Args:
            source: The complete source code content.
            path: File path recorded on each symbol.

        Returns:
            Class-like declarations first, then methods, fields,
            properties and events. An empty list when nothing matches.
        """
        ...

    def find_references(self, name: str, paths: Iterable[str]) -> list[SymbolReference]:
        """Find every whole-word occurrence of ``name`` in ``paths``.

        Not scope-aware: any identical token counts.
        """
        ...
