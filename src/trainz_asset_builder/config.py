"""User configuration for the asset builder."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from trainz_asset_builder.discovery import DEFAULT_MAX_DEPTH, Discovery
from trainz_asset_builder.identity import AssetIdentity, parse_kuid
from trainz_asset_builder.install import DEFAULT_SETTLE_DELAY
from trainz_asset_builder.staging import DEFAULT_PLACEHOLDER
from trainz_asset_builder.trainzutil import DEFAULT_TRAINZUTIL

# Default configuration location
CONFIG_DIR = Path.home() / ".tzbuildasset"
CONFIG_FILE = "config.yaml"

# Environment variables read by the CLI
ENV_TRAINZUTIL = "TZBUILDASSET_TRAINZUTIL"
ENV_TEMP_DIR = "TZBUILDASSET_TEMP_DIR"


class ConfigError(ValueError):
    """Configuration file or value is invalid."""

    pass


class BuilderConfig(BaseModel):
    """Settings for build and install runs."""

    model_config = ConfigDict(populate_by_name=True, validate_assignment=True)

    trainzutil: str = DEFAULT_TRAINZUTIL
    temp_dir: Path | None = Field(default=None, alias="tempDir")
    placeholder: str = str(DEFAULT_PLACEHOLDER)
    settle_delay: float = Field(default=DEFAULT_SETTLE_DELAY, ge=0, alias="settleDelay")
    command_timeout: float | None = Field(default=None, gt=0, alias="commandTimeout")
    max_depth: int = Field(default=DEFAULT_MAX_DEPTH, ge=1, alias="maxDepth")
    skip_dirs: list[str] = Field(
        default_factory=lambda: sorted(Discovery.SKIP_DIRS), alias="skipDirs"
    )

    @field_validator("placeholder")
    @classmethod
    def check_placeholder(cls, value: str) -> str:
        parse_kuid(value.strip().strip("<>"))
        return value.strip().strip("<>")

    @property
    def placeholder_identity(self) -> AssetIdentity:
        return parse_kuid(self.placeholder)


# Keys accepted by `config set`, mapped to model fields
SETTABLE_KEYS = {
    "trainzutil": "trainzutil",
    "temp-dir": "temp_dir",
    "placeholder": "placeholder",
    "settle-delay": "settle_delay",
    "command-timeout": "command_timeout",
    "max-depth": "max_depth",
    "skip-dirs": "skip_dirs",
}


class ConfigManager:
    """Loads and saves the configuration file."""

    def __init__(self, config_dir: Path | None = None) -> None:
        """Initialize the config manager.

        Args:
            config_dir: Directory holding config.yaml. Defaults to ~/.tzbuildasset.

        Note:
            Prefer using factory methods `create()` or `create_default()` for construction.
        """
        self.config_dir = config_dir or CONFIG_DIR
        self.config_file = self.config_dir / CONFIG_FILE

    @classmethod
    def create(cls, config_dir: Path) -> ConfigManager:
        """Create a config manager with a custom directory."""
        return cls(config_dir=config_dir)

    @classmethod
    def create_default(cls) -> ConfigManager:
        """Create a config manager using ~/.tzbuildasset."""
        return cls()

    def load(self) -> BuilderConfig:
        """Load configuration from disk.

        Returns:
            BuilderConfig, with defaults if the file does not exist.

        Raises:
            ConfigError: If the file is not valid YAML or has invalid values.
        """
        if not self.config_file.exists():
            return BuilderConfig()

        try:
            data = yaml.safe_load(self.config_file.read_text()) or {}
            return BuilderConfig.model_validate(data)
        except (yaml.YAMLError, ValidationError, ValueError) as e:
            raise ConfigError(f"Invalid configuration in {self.config_file}: {e}") from e

    def save(self, config: BuilderConfig) -> None:
        """Save configuration to disk."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        data = config.model_dump(mode="json", by_alias=True, exclude_none=True)
        self.config_file.write_text(yaml.safe_dump(data, sort_keys=False))

    def set(self, key: str, value: str) -> BuilderConfig:
        """Update a single setting and save it.

        Args:
            key: Setting name as used on the command line (e.g. "temp-dir").
            value: New value. Comma-separated for list settings; empty clears
                optional settings.

        Returns:
            The updated configuration.

        Raises:
            ConfigError: If the key is unknown or the value is invalid.
        """
        if key not in SETTABLE_KEYS:
            raise ConfigError(
                f"Unknown configuration key: {key}. Supported: {', '.join(SETTABLE_KEYS)}"
            )

        field_name = SETTABLE_KEYS[key]
        parsed: Any = value
        if field_name == "skip_dirs":
            parsed = [part.strip() for part in value.split(",") if part.strip()]
        elif field_name in ("temp_dir", "command_timeout") and not value:
            parsed = None

        config = self.load()
        try:
            setattr(config, field_name, parsed)
        except (ValidationError, ValueError) as e:
            raise ConfigError(f"Invalid value for {key}: {e}") from e
        self.save(config)
        return config
