"""C# symbol extraction using text patterns."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

from ..files import LocalFileSystem
from ..models import CodeSymbol, SymbolKind, SymbolReference
from ..utils import find_block_end, find_closing_line, line_number_at, whole_word_pattern

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..config_store import AnalyzerConfig
    from ..files import FileSystem

logger = logging.getLogger(__name__)

# A declaration starts at a line start or right after ; { }
_BOUNDARY = r"(?:^|(?<=[;{}]))\s*"
_ATTRS = r"(?P<attrs>(?:\[[^\]]+\]\s*)*)"
_TYPE_CHARS = r"[\w<>\[\],.?\s]"

CLASS_PATTERN = re.compile(
    _BOUNDARY
    + r"(?P<decl>"
    + _ATTRS
    + r"(?P<mods>(?:(?:public|private|protected|internal|abstract|sealed|static"
    r"|partial|readonly|unsafe|new)\s+)*)"
    r"(?P<keyword>class|struct|interface|enum)\s+(?P<name>\w+)(?:<[^>]+>)?"
    r"(?:\s*:\s*(?P<bases>[^{]+))?\s*\{)",
    re.MULTILINE,
)

METHOD_PATTERN = re.compile(
    _BOUNDARY
    + r"(?P<decl>"
    + _ATTRS
    + r"(?P<mods>(?:(?:public|private|protected|internal|virtual|override|abstract"
    r"|static|async|sealed|extern|unsafe|new|partial)\s+)*)"
    r"(?P<ret>" + _TYPE_CHARS + r"+?)\s+(?P<name>\w+)(?:<[^>(]+>)?\s*\((?P<params>[^)]*)\)"
    r"(?:\s*:\s*(?:base|this)\s*\([^)]*\))?\s*(?:where[^{]+)?\s*\{)",
    re.MULTILINE,
)

FIELD_PATTERN = re.compile(
    _BOUNDARY
    + r"(?P<decl>"
    + _ATTRS
    + r"(?P<mods>(?:(?:public|private|protected|internal|static|readonly|const"
    r"|volatile|new)\s+)*)"
    r"(?P<type>" + _TYPE_CHARS + r"+?)\s+(?P<name>\w+)\s*(?:=\s*[^;]+)?;)",
    re.MULTILINE,
)

PROPERTY_PATTERN = re.compile(
    _BOUNDARY
    + r"(?P<decl>"
    + _ATTRS
    + r"(?P<mods>(?:(?:public|private|protected|internal|virtual|override|abstract"
    r"|static|sealed|new)\s+)*)"
    r"(?P<type>" + _TYPE_CHARS + r"+?)\s+(?P<name>\w+)\s*\{\s*(?:get|set|init)\b)",
    re.MULTILINE,
)

EVENT_PATTERN = re.compile(
    _BOUNDARY
    + r"(?P<decl>"
    + _ATTRS
    + r"(?P<mods>(?:(?:public|private|protected|internal|static|virtual|override"
    r"|abstract|sealed|new)\s+)*)"
    r"event\s+(?P<type>" + _TYPE_CHARS + r"+?)\s+(?P<name>\w+)\s*(?:=\s*[^;]+)?[;{])",
    re.MULTILINE,
)

_ATTRIBUTE_GROUP = re.compile(r"\[([^\]]+)\]")
_ARROW = re.compile(r"\s*=>")

_CLASS_KINDS = {
    "class": SymbolKind.CLASS,
    "struct": SymbolKind.STRUCT,
    "interface": SymbolKind.INTERFACE,
    "enum": SymbolKind.ENUM,
}

_MODIFIERS = frozenset({
    "public", "private", "protected", "internal", "virtual", "override",
    "abstract", "static", "async", "sealed", "extern", "unsafe", "new",
    "partial", "readonly", "const", "volatile",
})

# Words that start statements or expressions, never declarations
_KEYWORDS = frozenset({
    "if", "else", "for", "foreach", "while", "do", "switch", "case", "default",
    "try", "catch", "finally", "using", "lock", "fixed", "return", "new",
    "throw", "yield", "await", "goto", "break", "continue", "in", "is", "as",
    "typeof", "sizeof", "nameof", "checked", "unchecked", "namespace",
    "operator", "delegate", "this", "base", "null", "true", "false", "var",
    "when", "where", "event", "class", "struct", "interface", "enum",
    "get", "set", "init",
})


def _parse_modifiers(mods: str) -> list[str]:
    return mods.split()


def _parse_attributes(attrs: str) -> tuple[str, ...]:
    if not attrs.strip():
        return ()
    return tuple(m.group(1).strip() for m in _ATTRIBUTE_GROUP.finditer(attrs))


def _squash(text: str) -> str:
    """Collapse runs of whitespace to single spaces."""
    return " ".join(text.split())


def _has_keyword(*texts: str) -> bool:
    return any(word in _KEYWORDS for text in texts for word in re.findall(r"\w+", text))


def _not_a_member(name: str, type_text: str) -> bool:
    """Reject matches that are statements or accessor fragments.

    A type whose first word is a modifier means the modifier list was
    split wrongly, e.g. `private set;` inside a property.
    """
    words = type_text.split()
    return (
        name in _KEYWORDS
        or _has_keyword(type_text)
        or not words
        or words[0] in _MODIFIERS
    )


def _peel_modifiers(ret: str, modifiers: list[str]) -> str:
    """Move leading modifier words captured as part of a return type.

    Constructors such as ``public Player()`` have no return type, so the
    pattern captures ``public`` as one.
    """
    words = ret.split()
    while words and words[0] in _MODIFIERS:
        modifiers.append(words.pop(0))
    return " ".join(words)


class CSharpAnalyzer:
    """Extracts symbols from C# source with regular expressions.

    Supports:
    - Class-like declarations: class, struct, interface, enum
    - Methods and constructors with block bodies
    - Fields, auto/accessor properties and events

    Known approximations:
    - Every member in a file is attributed to the first class-like
      declaration found in that file.
    - Braces inside strings and comments count toward brace balance.
    - Field/property/event matches inside a method body, or indented
      deeper than ``config.max_field_indent``, are treated as locals.
    """

    def __init__(self, config: AnalyzerConfig, fs: FileSystem | None = None) -> None:
        self.config = config
        self.fs = fs or LocalFileSystem()
        self._marker_patterns = [
            whole_word_pattern(marker) for marker in config.serialization_markers
        ]

    def analyze(self, path: str) -> list[CodeSymbol]:
        """Read and analyze one file; unreadable files yield no symbols."""
        try:
            source = self.fs.read_text(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable file %s: %s", path, e)
            return []
        return self.analyze_source(source, path)

    def analyze_source(self, source: str, path: str) -> list[CodeSymbol]:
        """Extract all symbols from source code."""
        lines = source.split("\n")

        classes = self._extract_classes(source, lines, path)
        parent = classes[0].name if classes else None

        method_spans: list[tuple[int, int]] = []
        methods = self._extract_methods(source, lines, path, parent, method_spans)

        symbols: list[CodeSymbol] = []
        symbols.extend(classes)
        symbols.extend(methods)
        symbols.extend(self._extract_fields(source, lines, path, parent, method_spans))
        symbols.extend(
            self._extract_members(
                PROPERTY_PATTERN, SymbolKind.PROPERTY, source, path, parent, method_spans
            )
        )
        symbols.extend(
            self._extract_members(
                EVENT_PATTERN, SymbolKind.EVENT, source, path, parent, method_spans
            )
        )
        return symbols

    def find_references(self, name: str, paths: Iterable[str]) -> list[SymbolReference]:
        """Find whole-word occurrences of ``name`` in every readable file."""
        pattern = whole_word_pattern(name)
        references: list[SymbolReference] = []
        for path in paths:
            try:
                content = self.fs.read_text(path)
            except (OSError, UnicodeDecodeError) as e:
                logger.warning("Error scanning %s: %s", path, e)
                continue
            for line_idx, text in enumerate(content.split("\n")):
                for match in pattern.finditer(text):
                    references.append(
                        SymbolReference(
                            file_path=path,
                            line=line_idx + 1,
                            column=match.start(),
                            context=text.strip(),
                        )
                    )
        return references

    def _extract_classes(
        self, source: str, lines: list[str], path: str
    ) -> list[CodeSymbol]:
        symbols: list[CodeSymbol] = []
        for match in CLASS_PATTERN.finditer(source):
            start_line = line_number_at(source, match.start("decl"))
            close_index = find_block_end(source, match.end("decl") - 1)
            if close_index is not None:
                end_line = line_number_at(source, close_index)
            else:
                end_line = find_closing_line(lines, start_line)
            attrs = match.group("attrs")
            signature = match.group("decl")[len(attrs):].rstrip("{")
            symbols.append(
                CodeSymbol(
                    name=match.group("name"),
                    kind=_CLASS_KINDS[match.group("keyword")],
                    file_path=path,
                    start_line=start_line,
                    end_line=end_line,
                    signature=_squash(signature),
                    modifiers=tuple(_parse_modifiers(match.group("mods"))),
                    attributes=_parse_attributes(attrs),
                )
            )
        return symbols

    def _extract_methods(
        self,
        source: str,
        lines: list[str],
        path: str,
        parent: str | None,
        spans: list[tuple[int, int]],
    ) -> list[CodeSymbol]:
        symbols: list[CodeSymbol] = []
        for match in METHOD_PATTERN.finditer(source):
            name = match.group("name")
            modifiers = _parse_modifiers(match.group("mods"))
            ret = _peel_modifiers(match.group("ret"), modifiers)
            if name in _KEYWORDS or _has_keyword(ret):
                continue

            start_line = line_number_at(source, match.start("decl"))

            # Balance from the declaration's own brace
            open_index = match.end("decl") - 1
            close_index = find_block_end(source, open_index)
            if close_index is not None:
                end_line = line_number_at(source, close_index)
                body = source[match.start("decl") : close_index + 1]
                spans.append((open_index, close_index))
            else:
                end_line = find_closing_line(lines, start_line)
                body = "\n".join(lines[start_line - 1 : end_line])

            signature = f"{_squash(ret)} {name}({_squash(match.group('params'))})"
            symbols.append(
                CodeSymbol(
                    name=name,
                    kind=SymbolKind.METHOD,
                    file_path=path,
                    start_line=start_line,
                    end_line=end_line,
                    parent_class=parent,
                    signature=signature.strip(),
                    body=body,
                    modifiers=tuple(modifiers),
                    attributes=_parse_attributes(match.group("attrs")),
                    is_framework_lifecycle_method=name in self.config.lifecycle_methods,
                )
            )
        return symbols

    def _extract_fields(
        self,
        source: str,
        lines: list[str],
        path: str,
        parent: str | None,
        spans: list[tuple[int, int]],
    ) -> list[CodeSymbol]:
        symbols: list[CodeSymbol] = []
        for match in FIELD_PATTERN.finditer(source):
            name = match.group("name")
            type_text = match.group("type")
            if _not_a_member(name, type_text):
                continue
            if _inside_any(match.start("decl"), spans):
                continue

            line_num = line_number_at(source, match.start("decl"))
            line = lines[line_num - 1]
            # Deeply indented declarations are most likely locals
            if len(line) - len(line.lstrip()) > self.config.max_field_indent:
                continue

            attrs = match.group("attrs")
            # "int Count => _items.Count;" is an expression-bodied property
            is_property = bool(_ARROW.match(source, match.end("name")))
            symbols.append(
                CodeSymbol(
                    name=name,
                    kind=SymbolKind.PROPERTY if is_property else SymbolKind.FIELD,
                    file_path=path,
                    start_line=line_num,
                    end_line=line_num,
                    parent_class=parent,
                    signature=f"{_squash(type_text)} {name}",
                    modifiers=tuple(_parse_modifiers(match.group("mods"))),
                    attributes=_parse_attributes(attrs),
                    is_serialization_exposed_field=(
                        not is_property
                        and any(p.search(attrs) for p in self._marker_patterns)
                    ),
                )
            )
        return symbols

    def _extract_members(
        self,
        pattern: re.Pattern[str],
        kind: SymbolKind,
        source: str,
        path: str,
        parent: str | None,
        spans: list[tuple[int, int]],
    ) -> list[CodeSymbol]:
        """Extract single-line members (properties, events)."""
        symbols: list[CodeSymbol] = []
        for match in pattern.finditer(source):
            name = match.group("name")
            type_text = match.group("type")
            if _not_a_member(name, type_text):
                continue
            if _inside_any(match.start("decl"), spans):
                continue

            start_line = line_number_at(source, match.start("decl"))
            symbols.append(
                CodeSymbol(
                    name=name,
                    kind=kind,
                    file_path=path,
                    start_line=start_line,
                    end_line=start_line,
                    parent_class=parent,
                    signature=f"{_squash(type_text)} {name}",
                    modifiers=tuple(_parse_modifiers(match.group("mods"))),
                    attributes=_parse_attributes(match.group("attrs")),
                )
            )
        return symbols


def _inside_any(index: int, spans: list[tuple[int, int]]) -> bool:
    return any(open_idx < index < close_idx for open_idx, close_idx in spans)
