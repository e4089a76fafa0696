"""Batch builder and installer for Trainz content assets."""

__version__ = "0.1.0"

# Export protocol interfaces for type hints and dependency injection
from trainz_asset_builder.protocols import (
    AssetLocator,
    CommandRunner,
    FileSystem,
)

__all__ = [
    "__version__",
    "AssetLocator",
    "CommandRunner",
    "FileSystem",
]
