"""Tests for ConfigStore and AnalyzerConfig."""

import json

import pytest
from pydantic import ValidationError

from refscope.config_store import (
    CONFIG_ENV_VAR,
    SCHEMA_VERSION,
    UNITY_LIFECYCLE_METHODS,
    AnalyzerConfig,
    ConfigStore,
)
from refscope.errors import (
    ConfigExistsError,
    ConfigNotFoundError,
    InvalidConfigError,
    InvalidSchemaVersionError,
)


@pytest.fixture(autouse=True)
def no_config_override(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


class TestConfigStore:
    """Tests for ConfigStore class."""

    def test_init_creates_config(self, temp_dir):
        store = ConfigStore(temp_dir)
        config = store.init()

        assert store.exists()
        assert store.config_path == temp_dir / "refscope.json"
        assert config.language == "csharp"
        assert "Update" in config.lifecycle_methods

    def test_init_without_force_raises(self, temp_dir):
        store = ConfigStore(temp_dir)
        store.init()

        with pytest.raises(ConfigExistsError):
            store.init(force=False)

    def test_init_force_overwrites(self, temp_dir):
        store = ConfigStore(temp_dir)
        store.save(AnalyzerConfig(max_field_indent=4))

        config = store.init(force=True)

        assert config.max_field_indent == 12
        assert store.load().max_field_indent == 12

    def test_load_not_found_raises(self, temp_dir):
        store = ConfigStore(temp_dir)

        with pytest.raises(ConfigNotFoundError):
            store.load()

    def test_load_or_default(self, temp_dir):
        config = ConfigStore(temp_dir).load_or_default()

        assert config.lifecycle_methods == frozenset(UNITY_LIFECYCLE_METHODS)

    def test_roundtrip_preserves_data(self, temp_dir):
        store = ConfigStore(temp_dir)
        original = AnalyzerConfig(
            lifecycle_methods=frozenset({"_Ready", "_Process"}),
            serialization_markers=("Export",),
            exclude_patterns=("Library/*",),
            extract_indent="\t",
        )
        store.save(original)

        assert store.load() == original

    def test_saved_file_is_json_with_schema_version(self, temp_dir):
        store = ConfigStore(temp_dir)
        store.init()

        with open(store.config_path, encoding="utf-8") as f:
            data = json.load(f)

        assert data["schema_version"] == SCHEMA_VERSION
        assert data["lifecycle_methods"] == sorted(data["lifecycle_methods"])
        assert not list(temp_dir.glob(".refscope_*"))

    def test_schema_version_mismatch(self, temp_dir):
        (temp_dir / "refscope.json").write_text(json.dumps({"schema_version": 99}))

        with pytest.raises(InvalidSchemaVersionError):
            ConfigStore(temp_dir).load()

    def test_malformed_json(self, temp_dir):
        (temp_dir / "refscope.json").write_text("{not json")

        with pytest.raises(InvalidConfigError):
            ConfigStore(temp_dir).load()

    @pytest.mark.parametrize(
        "field,value",
        [
            ("lifecycle_methods", "Update"),
            ("serialization_markers", [1, 2]),
            ("max_field_indent", -1),
            ("max_field_indent", True),
            ("language", 3),
        ],
    )
    def test_wrongly_typed_fields(self, temp_dir, field, value):
        data = {"schema_version": SCHEMA_VERSION, field: value}
        (temp_dir / "refscope.json").write_text(json.dumps(data))

        with pytest.raises(InvalidConfigError, match=field):
            ConfigStore(temp_dir).load()

    def test_non_object_document(self, temp_dir):
        (temp_dir / "refscope.json").write_text(json.dumps(["csharp"]))

        with pytest.raises(InvalidConfigError) as exc_info:
            ConfigStore(temp_dir).load()

        assert isinstance(exc_info.value.__cause__, ValidationError)

    def test_partial_document_takes_preset(self, temp_dir):
        data = {"schema_version": SCHEMA_VERSION, "exclude_patterns": ["Library/*"]}
        (temp_dir / "refscope.json").write_text(json.dumps(data))

        config = ConfigStore(temp_dir).load()

        assert config.exclude_patterns == ("Library/*",)
        assert config.lifecycle_methods == frozenset(UNITY_LIFECYCLE_METHODS)
        assert config.max_field_indent == 12

    def test_env_var_overrides_location(self, temp_dir, monkeypatch):
        custom = temp_dir / "elsewhere" / "custom.json"
        monkeypatch.setenv(CONFIG_ENV_VAR, str(custom))

        store = ConfigStore(temp_dir / "project")
        store.init()

        assert custom.exists()
        assert store.load().language == "csharp"

    def test_explicit_path_wins_over_env(self, temp_dir, monkeypatch):
        monkeypatch.setenv(CONFIG_ENV_VAR, str(temp_dir / "env.json"))
        explicit = temp_dir / "explicit.json"

        store = ConfigStore(temp_dir, config_path=explicit)

        assert store.config_path == explicit
