"""Tests for configuration loading."""

from pathlib import Path

import pytest

from tangle_export.config import (
    Config,
    ConfigValidationError,
    ExportConfig,
    StoreConfig,
    create_default_config,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "TANGLE_DB_PATH",
        "TANGLE_EXPORT_OUTPUT",
        "TANGLE_EXPORT_TRUNCATE",
        "TANGLE_EXPORT_CONFIRMATION_INDEX",
    ):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Tests for default values."""

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config.store.db_path is None
        assert config.export.output_path == Path("output.txt")
        assert config.export.truncate is False
        assert config.export.include_confirmation_index is True
        assert config.export.indent == 4
        assert config.export.limit is None

    def test_db_path_is_required(self):
        errors = Config().validate()
        assert "store.db_path is required" in errors

    def test_ensure_valid_raises(self):
        with pytest.raises(ConfigValidationError, match="db_path"):
            Config().ensure_valid()

    def test_valid_config(self, tmp_path):
        config = Config(
            store=StoreConfig(db_path=tmp_path),
            export=ExportConfig(output_path=tmp_path / "out.txt"),
        )
        assert config.validate() == []

    def test_output_directory_rejected(self, tmp_path):
        config = Config(
            store=StoreConfig(db_path=tmp_path),
            export=ExportConfig(output_path=tmp_path),
        )
        assert any("output_path" in error for error in config.validate())

    def test_negative_limit_rejected(self, tmp_path):
        config = Config(store=StoreConfig(db_path=tmp_path), export=ExportConfig(limit=-1))
        assert "export.limit must be >= 0" in config.validate()


class TestYamlAndEnv:
    """Tests for file and environment loading."""

    def test_loads_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            """
store:
  db_path: /data/mainnetdb
export:
  output_path: dump.txt
  truncate: true
  include_confirmation_index: false
  indent: 2
  limit: 10
"""
        )

        config = load_config(path)

        assert config.store.db_path == Path("/data/mainnetdb")
        assert config.export.output_path == Path("dump.txt")
        assert config.export.truncate is True
        assert config.export.include_confirmation_index is False
        assert config.export.indent == 2
        assert config.export.limit == 10

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("store:\n  db_path: /from/file\n")
        monkeypatch.setenv("TANGLE_DB_PATH", "/from/env")
        monkeypatch.setenv("TANGLE_EXPORT_OUTPUT", "env.txt")
        monkeypatch.setenv("TANGLE_EXPORT_TRUNCATE", "true")
        monkeypatch.setenv("TANGLE_EXPORT_CONFIRMATION_INDEX", "false")

        config = load_config(path)

        assert config.store.db_path == Path("/from/env")
        assert config.export.output_path == Path("env.txt")
        assert config.export.truncate is True
        assert config.export.include_confirmation_index is False

    def test_invalid_yaml_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("store: [unclosed\n")

        with pytest.raises(ConfigValidationError, match="invalid YAML"):
            load_config(path)

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")

        with pytest.raises(ConfigValidationError, match="mapping"):
            load_config(path)

    def test_bad_types_raise(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("export:\n  indent: wide\n")

        with pytest.raises(ConfigValidationError, match="invalid export settings"):
            load_config(path)

    def test_quoted_booleans(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            """
export:
  truncate: "false"
  include_confirmation_index: "no"
"""
        )

        config = load_config(path)

        assert config.export.truncate is False
        assert config.export.include_confirmation_index is False

    def test_quoted_true(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('export:\n  truncate: "yes"\n')

        assert load_config(path).export.truncate is True

    def test_unknown_boolean_raises(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("export:\n  truncate: maybe\n")

        with pytest.raises(ConfigValidationError, match="not a boolean"):
            load_config(path)

    def test_bad_env_boolean_keeps_file_value(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        path.write_text("export:\n  truncate: true\n")
        monkeypatch.setenv("TANGLE_EXPORT_TRUNCATE", "maybe")

        assert load_config(path).export.truncate is True


class TestOverrides:
    """Tests for CLI-level overrides."""

    def test_none_keeps_values(self):
        config = Config(export=ExportConfig(truncate=True))
        assert config.with_overrides() == config

    def test_overrides_apply(self):
        config = Config().with_overrides(
            db_path=Path("/db"),
            output_path=Path("o.txt"),
            truncate=True,
            include_confirmation_index=False,
            limit=5,
        )

        assert config.store.db_path == Path("/db")
        assert config.export.output_path == Path("o.txt")
        assert config.export.truncate is True
        assert config.export.include_confirmation_index is False
        assert config.export.limit == 5

    def test_overrides_do_not_mutate_original(self):
        original = Config()
        original.with_overrides(db_path=Path("/db"))
        assert original.store.db_path is None


class TestDefaultConfigFile:
    """Tests for create_default_config."""

    def test_default_file_loads(self, tmp_path):
        path = tmp_path / "sub" / "tangle-export.yaml"
        create_default_config(path)

        config = load_config(path)

        assert config.store.db_path is None
        assert config.export.output_path == Path("output.txt")
        assert config.export.truncate is False
