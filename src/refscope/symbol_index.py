"""Project-wide symbol table, reference cache and call hierarchy."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from .config_store import AnalyzerConfig
from .errors import UnsupportedLanguageError
from .files import LocalFileSystem, discover_source_files, make_file_filter
from .models import CallHierarchyNode, CodeSymbol, SymbolKind, SymbolReference
from .semantic import create_analyzer, detect_language, extensions_for

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from .files import FileSystem
    from .semantic import SourceAnalyzer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1024)
def _call_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"\b{re.escape(name)}\(")


@dataclass
class ReferenceCache:
    """Reference lists keyed by name, tagged with the generation that built them.

    An entry from an older generation is treated as a miss, so staleness
    after a rebuild is explicit rather than dependent on clearing order.
    """

    generation: int = 0
    _entries: dict[str, tuple[int, list[SymbolReference]]] = field(default_factory=dict)

    def get(self, name: str) -> list[SymbolReference] | None:
        entry = self._entries.get(name)
        if entry is None or entry[0] != self.generation:
            return None
        return entry[1]

    def put(self, name: str, references: list[SymbolReference]) -> None:
        self._entries[name] = (self.generation, references)

    def invalidate(self) -> None:
        """Start a new generation and drop every cached entry."""
        self.generation += 1
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class SymbolIndex:
    """Holds the symbol table for one project.

    The table is rebuilt wholesale by ``build_symbol_table``; edits made to
    source files afterwards are not seen until the next rebuild.
    """

    def __init__(
        self,
        config: AnalyzerConfig | None = None,
        fs: FileSystem | None = None,
        analyzer: SourceAnalyzer | None = None,
    ):
        self.config = config or AnalyzerConfig()
        self.fs = fs or LocalFileSystem()
        self.analyzer = analyzer or create_analyzer(self.config, self.fs)
        self.root: Path | None = None
        self._symbols: dict[str, CodeSymbol] = {}
        self._call_graph: dict[str, CallHierarchyNode] = {}
        self._references = ReferenceCache()
        self._files: list[str] = []

    @property
    def generation(self) -> int:
        """Number of rebuilds performed; bumps on every ``build_symbol_table``."""
        return self._references.generation

    @property
    def project_files(self) -> tuple[str, ...]:
        return tuple(self._files)

    @property
    def symbol_count(self) -> int:
        return len(self._symbols)

    def default_file_filter(self, root: Path) -> Callable[[Path], bool]:
        """Inclusion predicate from the language's extensions and config excludes."""
        return make_file_filter(
            root, extensions_for(self.config.language), self.config.exclude_patterns
        )

    def build_symbol_table(
        self,
        root: str | Path,
        file_filter: Callable[[Path], bool] | None = None,
    ) -> None:
        """
        Scan the project and rebuild the symbol table.

        Clears the symbol table, call-graph cache and reference cache before
        rescanning. On key collisions the file scanned last wins.

        Args:
            root: Project root directory.
            file_filter: Inclusion predicate for discovered files. Defaults
                to the configured language's extensions minus excludes.
        """
        self.root = Path(root).absolute()
        self._symbols.clear()
        self._call_graph.clear()
        self._references.invalidate()

        include = file_filter or self.default_file_filter(self.root)
        self._files = [
            str(p) for p in discover_source_files(self.root, include) if self._handles(p)
        ]

        for path in self._files:
            for symbol in self.analyzer.analyze(path):
                self._symbols[symbol.key] = symbol

        logger.info(
            "Built symbol table with %d symbols from %d files (generation %d)",
            len(self._symbols),
            len(self._files),
            self.generation,
        )

    def _handles(self, path: Path) -> bool:
        """Whether ``path`` belongs to the configured language."""
        try:
            language = detect_language(str(path))
        except UnsupportedLanguageError:
            logger.warning("Skipping %s: no analyzer for its extension", path)
            return False
        if language != self.config.language:
            logger.warning(
                "Skipping %s: %s file, index language is %s",
                path,
                language,
                self.config.language,
            )
            return False
        return True

    def resolve_path(self, path: str | Path) -> str:
        """Turn a root-relative path into the form stored on symbols."""
        candidate = Path(path)
        if not candidate.is_absolute() and self.root is not None:
            candidate = self.root / candidate
        return str(candidate)

    def symbols(self) -> Iterator[CodeSymbol]:
        return iter(self._symbols.values())

    def find_symbol(self, name: str) -> CodeSymbol | None:
        """
        Find a symbol by key or name.

        Tries an exact key match, then keys ending in ``.name``, then bare
        names. With several candidates the first in table order wins, which
        is not a relevance ranking.
        """
        if name in self._symbols:
            return self._symbols[name]

        suffix = f".{name}"
        for key, symbol in self._symbols.items():
            if key.endswith(suffix):
                return symbol

        for symbol in self._symbols.values():
            if symbol.name == name:
                return symbol

        return None

    def search_symbols(
        self, pattern: str, kind: SymbolKind | None = None
    ) -> list[CodeSymbol]:
        """Case-insensitive substring search on names, sorted by name."""
        needle = pattern.lower()
        results = [
            s
            for s in self._symbols.values()
            if (kind is None or s.kind == kind) and needle in s.name.lower()
        ]
        return sorted(results, key=lambda s: s.name)

    def get_references(self, name: str) -> list[SymbolReference]:
        """Get all whole-word references to ``name`` across project files.

        Results are memoized until the next rebuild.
        """
        cached = self._references.get(name)
        if cached is not None:
            logger.debug("Reference cache hit for %s", name)
            return cached

        logger.debug("Reference cache miss for %s", name)
        references = self.analyzer.find_references(name, self._files)
        self._references.put(name, references)
        return references

    def get_call_hierarchy(
        self, method: CodeSymbol, max_depth: int = 3
    ) -> CallHierarchyNode:
        """
        Build the call hierarchy of a method.

        Expands one level of callers and one level of callees. ``max_depth``
        is accepted for API compatibility; deeper expansion is not performed.

        Callers are the methods whose line range contains a reference to the
        method's name (the definition line itself excluded). Callees are the
        other methods whose name appears in the body followed by ``(``.
        """
        node = CallHierarchyNode(symbol=method)
        if method.kind != SymbolKind.METHOD:
            return node

        cached = self._call_graph.get(method.key)
        if cached is not None:
            return cached

        seen_callers: set[str] = set()
        for reference in self.get_references(method.name):
            if reference.file_path == method.file_path and reference.line == method.start_line:
                continue
            caller = self.find_containing_method(reference.file_path, reference.line)
            if caller is None or caller.name == method.name or caller.key in seen_callers:
                continue
            seen_callers.add(caller.key)
            node.callers.append(CallHierarchyNode(symbol=caller))

        if method.body:
            for symbol in self._symbols.values():
                if symbol.kind != SymbolKind.METHOD or symbol.name == method.name:
                    continue
                if _call_pattern(symbol.name).search(method.body):
                    node.callees.append(CallHierarchyNode(symbol=symbol))

        self._call_graph[method.key] = node
        return node

    def find_containing_method(self, file_path: str, line: int) -> CodeSymbol | None:
        """Find the first method in the table whose line range contains ``line``."""
        for symbol in self._symbols.values():
            if (
                symbol.kind == SymbolKind.METHOD
                and symbol.file_path == file_path
                and symbol.start_line <= line <= symbol.end_line
            ):
                return symbol
        return None

    def symbols_in_file(self, file_path: str) -> list[CodeSymbol]:
        """Get all symbols in a file, ordered by start line."""
        path = self.resolve_path(file_path)
        return sorted(
            (s for s in self._symbols.values() if s.file_path == path),
            key=lambda s: s.start_line,
        )

    def class_methods(self, class_name: str) -> list[CodeSymbol]:
        return self._members_of(class_name, SymbolKind.METHOD)

    def class_fields(self, class_name: str) -> list[CodeSymbol]:
        return self._members_of(class_name, SymbolKind.FIELD)

    def _members_of(self, class_name: str, kind: SymbolKind) -> list[CodeSymbol]:
        return sorted(
            (
                s
                for s in self._symbols.values()
                if s.parent_class == class_name and s.kind == kind
            ),
            key=lambda s: s.name,
        )
