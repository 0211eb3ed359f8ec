"""Custom exceptions for refscope."""


class RefscopeError(Exception):
    """Base exception for all refscope errors."""

    pass


class ConfigNotFoundError(RefscopeError):
    """Raised when refscope.json doesn't exist."""

    def __init__(self, path: str | None = None):
        self.path = path
        msg = "Config not initialized. Run 'refscope init' first."
        if path:
            msg = f"Config not found at {path}. Run 'refscope init' first."
        super().__init__(msg)


class ConfigExistsError(RefscopeError):
    """Raised when trying to init but config already exists."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Config already exists at {path}. Use --force to overwrite.")


class InvalidSchemaVersionError(RefscopeError):
    """Raised when config has an unsupported schema version."""

    def __init__(self, found: int, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported schema version {found}. This tool supports version {supported}."
        )


class InvalidConfigError(RefscopeError):
    """Raised when a config file is malformed or has wrongly typed fields."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Invalid config at {path}: {reason}")


class UnsupportedLanguageError(RefscopeError):
    """Raised when no source analyzer is registered for a language or extension."""

    def __init__(
        self,
        language: str,
        supported: list[str] | None = None,
        hint: str | None = None,
    ):
        self.language = language
        self.supported = supported or []
        msg = f"Unsupported language: {language}"
        if self.supported:
            msg += f". Supported: {', '.join(self.supported)}"
        if hint:
            msg += f". {hint}"
        super().__init__(msg)


class SymbolNotFoundError(RefscopeError):
    """Raised when a symbol lookup by name finds nothing."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Symbol not found: {name}")


class InvalidLocationError(RefscopeError):
    """Raised when a location spec is invalid."""

    def __init__(self, location: str, reason: str | None = None):
        self.location = location
        msg = f"Invalid location: {location}"
        if reason:
            msg = f"{msg} ({reason})"
        super().__init__(msg)


class InvalidLineRangeError(RefscopeError):
    """Raised when line range is invalid."""

    def __init__(self, start: int, end: int, reason: str):
        self.start = start
        self.end = end
        super().__init__(f"Invalid line range {start}-{end}: {reason}")


class PreviewNotFoundError(RefscopeError):
    """Raised when a prepared refactoring ID doesn't exist."""

    def __init__(self, preview_id: str):
        self.preview_id = preview_id
        super().__init__(f"Prepared refactoring not found: {preview_id}")


class ApplyFailureError(RefscopeError):
    """Raised when a file edit cannot be committed during apply."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to apply changes to {path}: {reason}")
