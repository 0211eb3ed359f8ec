"""Analyzer configuration and its storage."""

import json
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from .errors import (
    ConfigExistsError,
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidSchemaVersionError,
)

SCHEMA_VERSION = 1

CONFIG_FILE = "refscope.json"

# Overrides the config file location for every project
CONFIG_ENV_VAR = "REFSCOPE_CONFIG"

# Messages the Unity engine invokes on MonoBehaviours by name
UNITY_LIFECYCLE_METHODS = (
    "Awake", "Start", "Update", "FixedUpdate", "LateUpdate",
    "OnEnable", "OnDisable", "OnDestroy",
    "OnCollisionEnter", "OnCollisionExit", "OnCollisionStay",
    "OnCollisionEnter2D", "OnCollisionExit2D", "OnCollisionStay2D",
    "OnTriggerEnter", "OnTriggerExit", "OnTriggerStay",
    "OnTriggerEnter2D", "OnTriggerExit2D", "OnTriggerStay2D",
    "OnMouseDown", "OnMouseUp", "OnMouseEnter", "OnMouseExit", "OnMouseOver", "OnMouseDrag",
    "OnGUI", "OnDrawGizmos", "OnDrawGizmosSelected",
    "OnValidate", "Reset", "OnApplicationQuit", "OnApplicationPause", "OnApplicationFocus",
    "OnBecameVisible", "OnBecameInvisible",
    "OnPreCull", "OnPreRender", "OnPostRender", "OnRenderImage", "OnRenderObject",
    "OnAnimatorMove", "OnAnimatorIK",
    "OnControllerColliderHit", "OnJointBreak", "OnJointBreak2D",
    "OnParticleCollision", "OnParticleTrigger", "OnParticleSystemStopped",
    "OnTransformParentChanged", "OnTransformChildrenChanged",
    "OnWillRenderObject", "OnServerInitialized", "OnConnectedToServer",
    "OnPlayerConnected", "OnPlayerDisconnected", "OnDisconnectedFromServer",
)

UNITY_SERIALIZATION_MARKERS = ("SerializeField",)

UNITY_INDIRECT_CALL_PATTERNS = (
    'Invoke("',
    'InvokeRepeating("',
    'CancelInvoke("',
    'SendMessage("',
    'SendMessageUpwards("',
    'BroadcastMessage("',
    'StartCoroutine("',
    'StopCoroutine("',
)

REFLECTION_MARKERS = (
    "System.Reflection",
    "GetType()",
    "typeof(",
    ".GetMethod(",
    ".GetField(",
    ".GetProperty(",
)


@dataclass
class AnalyzerConfig:
    """Runtime-specific knowledge the analyzers need.

    The defaults describe a Unity project; a different target runtime
    supplies its own lifecycle names and markers.
    """

    language: str = "csharp"
    lifecycle_methods: frozenset[str] = field(
        default_factory=lambda: frozenset(UNITY_LIFECYCLE_METHODS)
    )
    serialization_markers: tuple[str, ...] = UNITY_SERIALIZATION_MARKERS
    indirect_call_patterns: tuple[str, ...] = UNITY_INDIRECT_CALL_PATTERNS
    reflection_markers: tuple[str, ...] = REFLECTION_MARKERS
    exclude_patterns: tuple[str, ...] = ()
    max_field_indent: int = 12
    extract_indent: str = " " * 8

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "language": self.language,
            "lifecycle_methods": sorted(self.lifecycle_methods),
            "serialization_markers": list(self.serialization_markers),
            "indirect_call_patterns": list(self.indirect_call_patterns),
            "reflection_markers": list(self.reflection_markers),
            "exclude_patterns": list(self.exclude_patterns),
            "max_field_indent": self.max_field_indent,
            "extract_indent": self.extract_indent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnalyzerConfig":
        """Build a config from a document; raises pydantic's ValidationError."""
        doc = ConfigDocument.model_validate(data)
        return cls(
            language=doc.language,
            lifecycle_methods=frozenset(doc.lifecycle_methods),
            serialization_markers=tuple(doc.serialization_markers),
            indirect_call_patterns=tuple(doc.indirect_call_patterns),
            reflection_markers=tuple(doc.reflection_markers),
            exclude_patterns=tuple(doc.exclude_patterns),
            max_field_indent=doc.max_field_indent,
            extract_indent=doc.extract_indent,
        )


class ConfigDocument(BaseModel):
    """Shape of refscope.json. Missing keys take the Unity preset."""

    schema_version: int = 0
    language: str = "csharp"
    lifecycle_methods: list[str] = list(UNITY_LIFECYCLE_METHODS)
    serialization_markers: list[str] = list(UNITY_SERIALIZATION_MARKERS)
    indirect_call_patterns: list[str] = list(UNITY_INDIRECT_CALL_PATTERNS)
    reflection_markers: list[str] = list(REFLECTION_MARKERS)
    exclude_patterns: list[str] = []
    max_field_indent: int = Field(default=12, ge=0, strict=True)
    extract_indent: str = " " * 8


def _describe(error: ValidationError) -> str:
    """Summarize failing fields as "'<field>': <message>" entries."""
    parts = []
    for err in error.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "document"
        parts.append(f"'{loc}': {err['msg']}")
    return "; ".join(parts)


class ConfigStore:
    """Manages reading and writing a project's analyzer configuration."""

    def __init__(self, project_root: Path, config_path: Path | None = None):
        """
        Initialize ConfigStore.

        Args:
            project_root: Root directory of the analyzed project.
            config_path: Override config file location (for testing).
                Falls back to $REFSCOPE_CONFIG, then <root>/refscope.json.
        """
        self.project_root = Path(project_root)
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if config_path is not None:
            self.config_path = Path(config_path)
        elif env_path:
            self.config_path = Path(env_path)
        else:
            self.config_path = self.project_root / CONFIG_FILE

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def load(self) -> AnalyzerConfig:
        """
        Load configuration from disk.

        Raises:
            ConfigNotFoundError: If config doesn't exist.
            InvalidSchemaVersionError: If schema version is unsupported.
            InvalidConfigError: If the file is not valid JSON or has bad fields.
        """
        if not self.exists():
            raise ConfigNotFoundError(str(self.config_path))

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidConfigError(str(self.config_path), str(e)) from e

        try:
            config = AnalyzerConfig.from_dict(data)
        except ValidationError as e:
            raise InvalidConfigError(str(self.config_path), _describe(e)) from e

        version = data.get("schema_version", 0)
        if version != SCHEMA_VERSION:
            raise InvalidSchemaVersionError(version, SCHEMA_VERSION)

        return config

    def load_or_default(self) -> AnalyzerConfig:
        """Load the config, or return the built-in preset when none exists."""
        if not self.exists():
            return AnalyzerConfig()
        return self.load()

    def save(self, config: AnalyzerConfig) -> None:
        """
        Save configuration to disk atomically.

        Uses write-to-temp-then-rename for atomicity.
        """
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = config.to_dict()
        fd, temp_path = tempfile.mkstemp(
            dir=self.config_path.parent, prefix=".refscope_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")  # trailing newline
            os.replace(temp_path, self.config_path)
        except Exception:
            # Clean up temp file on failure (ignore errors if already removed)
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def init(self, force: bool = False) -> AnalyzerConfig:
        """
        Write the default configuration.

        Args:
            force: If True, overwrite existing config.

        Returns:
            The created AnalyzerConfig.

        Raises:
            ConfigExistsError: If config exists and force=False.
        """
        if self.exists() and not force:
            raise ConfigExistsError(str(self.config_path))

        config = AnalyzerConfig()
        self.save(config)
        return config
