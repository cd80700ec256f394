"""
Configuration management (SSOT).

This module defines ALL configuration for the exporter.
All config keys are defined here; no other module should invent config keys.

Precedence (highest first): CLI flags, environment variables, YAML file,
defaults. The resulting Config is built once at start-up and passed
explicitly to whatever needs it.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("tangle-export.yaml")
DEFAULT_OUTPUT_PATH = Path("output.txt")


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class StoreConfig:
    """Location of the tangle replica.

    db_path may point at the database file itself or at the directory
    that contains tangle.db. It has no default: an export without a store
    location is a configuration error.
    """

    db_path: Path | None = None


@dataclass
class ExportConfig:
    """Output settings."""

    output_path: Path = field(default_factory=lambda: DEFAULT_OUTPUT_PATH)
    # Append (False) keeps earlier runs' rows; True starts a clean file
    truncate: bool = False
    # Emit ConfirmationIndex (null when unconfirmed)
    include_confirmation_index: bool = True
    indent: int = 4
    # Stop after this many index entries (None = whole index)
    limit: int | None = None


@dataclass
class Config:
    """Application configuration (SSOT)."""

    store: StoreConfig = field(default_factory=StoreConfig)
    export: ExportConfig = field(default_factory=ExportConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.store.db_path:
            errors.append("store.db_path is required")
        if self.export.output_path.is_dir():
            errors.append("export.output_path must be a file, not a directory")
        if self.export.indent < 0:
            errors.append("export.indent must be >= 0")
        if self.export.limit is not None and self.export.limit < 0:
            errors.append("export.limit must be >= 0")

        return errors

    def ensure_valid(self) -> "Config":
        """Raise ConfigValidationError listing every problem, or return self."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))
        return self

    def with_overrides(
        self,
        db_path: Path | None = None,
        output_path: Path | None = None,
        truncate: bool | None = None,
        include_confirmation_index: bool | None = None,
        limit: int | None = None,
    ) -> "Config":
        """Return a copy with CLI-level overrides applied (None = keep)."""
        store = self.store
        if db_path is not None:
            store = replace(store, db_path=Path(db_path))

        export_changes: dict = {}
        if output_path is not None:
            export_changes["output_path"] = Path(output_path)
        if truncate is not None:
            export_changes["truncate"] = truncate
        if include_confirmation_index is not None:
            export_changes["include_confirmation_index"] = include_confirmation_index
        if limit is not None:
            export_changes["limit"] = limit

        return replace(self, store=store, export=replace(self.export, **export_changes))


_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


def _parse_bool(value: Any, default: bool) -> bool:
    """Parse a YAML or environment flag. Quoted strings follow the env rules."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name, "").strip()
    if not value:
        return default
    try:
        return _parse_bool(value, default)
    except ValueError:
        logger.warning(f"Ignoring {name}={value!r}: not a boolean")
        return default


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    A missing file is not an error (defaults apply). Environment variables
    override file values:
    - TANGLE_DB_PATH
    - TANGLE_EXPORT_OUTPUT
    - TANGLE_EXPORT_TRUNCATE (true/false)
    - TANGLE_EXPORT_CONFIRMATION_INDEX (true/false)

    Raises:
        ConfigValidationError: if the file is not a YAML mapping or holds
            values of the wrong type
    """
    if config_path.exists():
        with open(config_path) as f:
            try:
                data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigValidationError(f"invalid YAML in {config_path}: {e}") from e
    else:
        data = {}

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    # Store config
    store_data = data.get("store") or {}
    db_path = os.environ.get("TANGLE_DB_PATH") or store_data.get("db_path")
    store = StoreConfig(db_path=Path(db_path) if db_path else None)

    # Export config
    export_data = data.get("export") or {}
    try:
        limit = export_data.get("limit")
        export = ExportConfig(
            output_path=Path(
                os.environ.get(
                    "TANGLE_EXPORT_OUTPUT",
                    export_data.get("output_path", str(DEFAULT_OUTPUT_PATH)),
                )
            ),
            truncate=_env_bool(
                "TANGLE_EXPORT_TRUNCATE",
                _parse_bool(export_data.get("truncate"), False),
            ),
            include_confirmation_index=_env_bool(
                "TANGLE_EXPORT_CONFIRMATION_INDEX",
                _parse_bool(export_data.get("include_confirmation_index"), True),
            ),
            indent=int(export_data.get("indent", 4)),
            limit=int(limit) if limit is not None else None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"invalid export settings in {config_path}: {e}") from e

    return Config(store=store, export=export)


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Tangle export configuration
#
# CLI flags override environment variables, which override this file.

store:
  db_path: null                      # tangle.db file, or the directory containing it (required)

export:
  output_path: "output.txt"          # Rows are appended as indented JSON documents
  truncate: false                    # true: start a clean file; false: append to earlier runs
  include_confirmation_index: true   # false: omit ConfirmationIndex from every row
  indent: 4
  limit: null                        # Stop after N index entries (null = whole index)
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
