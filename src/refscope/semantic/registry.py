"""Registry for source analyzers."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable

from ..errors import UnsupportedLanguageError

if TYPE_CHECKING:
    from ..config_store import AnalyzerConfig
    from ..files import FileSystem
    from .analyzer_protocol import SourceAnalyzer

AnalyzerFactory = Callable[["AnalyzerConfig", "FileSystem | None"], "SourceAnalyzer"]

# Global registry state
_language_factories: dict[str, AnalyzerFactory] = {}
_language_extensions: dict[str, list[str]] = {}
_extension_to_language: dict[str, str] = {}


def register_analyzer(
    language: str,
    extensions: list[str],
    factory: AnalyzerFactory,
) -> None:
    """Register an analyzer factory for a language.

    Args:
        language: Language identifier (e.g., "csharp").
        extensions: File extensions to associate (e.g., [".cs"]).
        factory: Callable taking (config, file_system) and returning a
            SourceAnalyzer instance.
    """
    _language_factories[language] = factory
    _language_extensions[language] = [ext.lower() for ext in extensions]
    for ext in extensions:
        _extension_to_language[ext.lower()] = language


def detect_language(path: str) -> str:
    """Detect the programming language from a file path.

    Raises:
        UnsupportedLanguageError: If the file extension is not recognized.
    """
    ext = Path(path).suffix.lower()
    if ext not in _extension_to_language:
        raise UnsupportedLanguageError(
            language=ext or "<no extension>",
            supported=sorted(_language_factories.keys()),
            hint=f"File '{path}' has no registered analyzer.",
        )
    return _extension_to_language[ext]


def extensions_for(language: str) -> list[str]:
    """Get the file extensions registered for a language.

    Raises:
        UnsupportedLanguageError: If the language is not supported.
    """
    if language not in _language_extensions:
        raise UnsupportedLanguageError(
            language=language,
            supported=sorted(_language_factories.keys()),
        )
    return list(_language_extensions[language])


def create_analyzer(
    config: AnalyzerConfig,
    fs: FileSystem | None = None,
) -> SourceAnalyzer:
    """Create an analyzer for the config's language.

    Raises:
        UnsupportedLanguageError: If the language is not supported.
    """
    if config.language not in _language_factories:
        raise UnsupportedLanguageError(
            language=config.language,
            supported=sorted(_language_factories.keys()),
        )
    return _language_factories[config.language](config, fs)


def supported_languages() -> list[str]:
    """Get sorted list of language identifiers."""
    return sorted(_language_factories.keys())


def clear_registry() -> None:
    """Clear the registry. Mainly for testing."""
    _language_factories.clear()
    _language_extensions.clear()
    _extension_to_language.clear()
