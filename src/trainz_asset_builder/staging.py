"""Staging of assets into disposable temporary copies.

A staged asset is a full copy of an asset directory whose marker file
declares a placeholder identity instead of the real one. Installing the copy
exercises the asset through TrainzUtil without touching the catalog entry of
the real asset.
"""

from __future__ import annotations

import logging
import re
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from trainz_asset_builder.discovery import MARKER_ENCODING, MARKER_FILE, AssetRoot
from trainz_asset_builder.filesystem import RealFileSystem
from trainz_asset_builder.identity import AssetIdentity, IdentityError, replace_identity
from trainz_asset_builder.protocols import FileSystem
from trainz_asset_builder.types import AssetBuilderError

logger = logging.getLogger(__name__)

STAGING_PREFIX = "tzassetbuild-"

# Reserved identity no real catalog entry uses
DEFAULT_PLACEHOLDER = AssetIdentity("kuid", (298469, 999999, 0))


class StagingIOError(AssetBuilderError, OSError):
    """Copying or rewriting a staged asset failed.

    Attributes:
        path: Staging directory that may hold partial content, if one was
            created. Callers are responsible for removing it.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        return self.args[0]


@dataclass(frozen=True)
class StagedAsset:
    """A temporary copy of an asset carrying the placeholder identity."""

    source: AssetRoot
    path: Path
    identity: AssetIdentity


def _staging_prefix(asset: AssetRoot) -> str:
    """Directory name prefix that keeps the asset recognizable in the temp dir."""
    name = re.sub(r"[^A-Za-z0-9_.-]", "_", asset.path.name)[:32]
    return f"{STAGING_PREFIX}{name}-" if name else STAGING_PREFIX


class StageBuilder:
    """Creates and removes staged copies of assets.

    Follows Separate Use from Creation: use `create()` for production
    instantiation with defaults.
    """

    def __init__(
        self,
        temp_base: Path,
        placeholder: AssetIdentity,
        filesystem: FileSystem,
    ) -> None:
        """Initialize the stage builder.

        Args:
            temp_base: Directory under which staging directories are created.
            placeholder: Identity written into every staged marker file.
            filesystem: Filesystem abstraction.
        """
        self.temp_base = temp_base
        self.placeholder = placeholder
        self.fs = filesystem

    @classmethod
    def create(
        cls,
        temp_base: Path | None = None,
        placeholder: AssetIdentity | None = None,
        filesystem: FileSystem | None = None,
    ) -> StageBuilder:
        """Factory method for production instantiation.

        Args:
            temp_base: Staging parent directory. Defaults to the system temp dir.
            placeholder: Placeholder identity. Defaults to DEFAULT_PLACEHOLDER.
            filesystem: Filesystem abstraction (created if not provided).

        Returns:
            Configured StageBuilder instance.
        """
        return cls(
            temp_base=temp_base or Path(tempfile.gettempdir()),
            placeholder=placeholder or DEFAULT_PLACEHOLDER,
            filesystem=filesystem or RealFileSystem(),
        )

    def prepare(self) -> None:
        """Make sure the staging parent directory exists.

        Raises:
            StagingIOError: If the directory cannot be created.
        """
        try:
            self.fs.mkdir(self.temp_base, parents=True, exist_ok=True)
        except OSError as e:
            raise StagingIOError(
                f"Cannot create temporary directory {self.temp_base}: {e}"
            ) from e

    def stage(self, asset: AssetRoot) -> StagedAsset:
        """Copy an asset into a new staging directory and swap its identity.

        Args:
            asset: Asset to stage.

        Returns:
            The staged copy.

        Raises:
            StagingIOError: If anything fails. ``path`` is set once the
                staging directory exists, even if its content is partial.
        """
        try:
            staged_path = self.fs.mkdtemp(self.temp_base, _staging_prefix(asset))
        except OSError as e:
            raise StagingIOError(f"Cannot create staging directory: {e}") from e

        logger.debug("Copying %s to %s", asset.path, staged_path)
        try:
            self.fs.copytree(asset.path, staged_path)

            marker = staged_path / MARKER_FILE
            text = self.fs.read_bytes(marker).decode(MARKER_ENCODING)
            rewritten = replace_identity(text, self.placeholder)
            self.fs.write_bytes(marker, rewritten.encode(MARKER_ENCODING))
        except (OSError, IdentityError) as e:
            raise StagingIOError(f"Staging {asset.path} failed: {e}", path=staged_path) from e

        logger.debug("Replaced %s with %s", asset.identity.tag, self.placeholder.tag)
        return StagedAsset(source=asset, path=staged_path, identity=self.placeholder)

    def release(self, path: Path) -> None:
        """Remove a staging directory. Failures are logged, not raised."""
        if not self.fs.exists(path):
            return
        logger.debug("Removing staging directory %s", path)
        try:
            self.fs.rmtree(path)
        except OSError as e:
            logger.warning("Could not remove staging directory %s: %s", path, e)

    @contextmanager
    def staged(self, asset: AssetRoot) -> Iterator[StagedAsset]:
        """Stage an asset for the duration of a ``with`` block.

        The staging directory is removed on every exit path, including a
        failed stage() call that left partial content behind.
        """
        try:
            staged = self.stage(asset)
        except StagingIOError as e:
            if e.path is not None:
                self.release(e.path)
            raise

        try:
            yield staged
        finally:
            self.release(staged.path)
