"""Source analysis for refscope."""

from ..errors import UnsupportedLanguageError
from .analyzer_protocol import SourceAnalyzer
from .csharp_analyzer import CSharpAnalyzer
from .registry import (
    clear_registry,
    create_analyzer,
    detect_language,
    extensions_for,
    register_analyzer,
    supported_languages,
)

# Register built-in analyzers
register_analyzer("csharp", [".cs"], CSharpAnalyzer)

__all__ = [
    # Core types
    "SourceAnalyzer",
    # Analyzers
    "CSharpAnalyzer",
    # Registry functions
    "register_analyzer",
    "clear_registry",
    "create_analyzer",
    "detect_language",
    "extensions_for",
    "supported_languages",
    "UnsupportedLanguageError",
]
