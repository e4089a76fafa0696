"""Application context for dependency injection.

Separates object creation from object use so CLI commands can be tested
with doubles instead of a real TrainzUtil.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from trainz_asset_builder.builder import AssetBuilder
from trainz_asset_builder.config import BuilderConfig, ConfigManager


@dataclass
class AppContext:
    """Container for application dependencies.

    Provides a single injection point for the services used by CLI commands.
    """

    config_manager: ConfigManager
    config: BuilderConfig
    builder: AssetBuilder


def create_context(
    config_dir: Path | None = None,
    trainzutil: str | None = None,
    temp_dir: Path | None = None,
) -> AppContext:
    """Factory for application dependencies.

    Command-line values take precedence over the configuration file.

    Args:
        config_dir: Override configuration directory (for testing).
        trainzutil: TrainzUtil executable from the command line or environment.
        temp_dir: Staging parent directory from the command line or environment.

    Returns:
        Configured AppContext with all dependencies.

    Raises:
        ConfigError: If the configuration file is invalid.
    """
    config_manager = (
        ConfigManager.create(config_dir) if config_dir else ConfigManager.create_default()
    )
    config = config_manager.load()
    if trainzutil:
        config.trainzutil = trainzutil
    if temp_dir:
        config.temp_dir = temp_dir

    builder = AssetBuilder.create(
        trainzutil=config.trainzutil,
        temp_base=config.temp_dir,
        placeholder=config.placeholder_identity,
        timeout=config.command_timeout,
        settle_delay=config.settle_delay,
        skip_dirs=config.skip_dirs,
        max_depth=config.max_depth,
    )

    return AppContext(config_manager=config_manager, config=config, builder=builder)
