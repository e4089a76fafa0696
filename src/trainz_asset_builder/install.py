"""Installation of assets through TrainzUtil."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from trainz_asset_builder.discovery import AssetRoot
from trainz_asset_builder.identity import AssetIdentity
from trainz_asset_builder.protocols import CommandRunner
from trainz_asset_builder.staging import StagedAsset
from trainz_asset_builder.trainzutil import DEFAULT_TRAINZUTIL, TrainzUtil, TrainzUtilError
from trainz_asset_builder.types import InstallOutcome

logger = logging.getLogger(__name__)

# Seconds TrainzUtil needs after a commit before validation sees the asset
DEFAULT_SETTLE_DELAY = 2.0


class InstallDriver:
    """Drives TrainzUtil for a single asset.

    Follows Separate Use from Creation: constructor requires all dependencies.
    Use factory method `create()` for production instantiation with defaults.
    """

    def __init__(
        self,
        runner: CommandRunner,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Initialize the driver.

        Args:
            runner: TrainzUtil command runner.
            settle_delay: Pause between commit and validate during a build.
            sleep: Sleep function, replaceable in tests.
        """
        self.runner = runner
        self.settle_delay = settle_delay
        self._sleep = sleep

    @classmethod
    def create(
        cls,
        trainzutil: str | Path = DEFAULT_TRAINZUTIL,
        timeout: float | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ) -> InstallDriver:
        """Factory method for production instantiation.

        Args:
            trainzutil: Path or command name of the TrainzUtil executable.
            timeout: Per-command timeout in seconds.
            settle_delay: Pause between commit and validate during a build.

        Returns:
            Configured InstallDriver instance.
        """
        return cls(runner=TrainzUtil(trainzutil, timeout=timeout), settle_delay=settle_delay)

    def check_available(self) -> str:
        """Make sure TrainzUtil can be run at all.

        Returns:
            TrainzUtil version line.

        Raises:
            TrainzUtilError: If TrainzUtil cannot be launched or reports failure.
        """
        result = self.runner.execute("version")
        version = result.lines[0] if result.lines else ""
        logger.debug("TrainzUtil version: %s", version)
        return version

    def install_asset(self, asset: AssetRoot) -> InstallOutcome:
        """Install an asset under its real identity.

        Runs ``installfrompath`` on the asset directory, then ``commit``.

        Args:
            asset: Asset to install.

        Returns:
            InstallOutcome for the asset.
        """
        logger.info("Installing asset %s", asset.identity.tag)
        try:
            self.runner.execute("installfrompath", str(asset.path))
            self.runner.execute("commit", str(asset.identity))
        except TrainzUtilError as e:
            logger.info("Failed to install asset %s: %s", asset.identity.tag, e)
            return InstallOutcome.failed(asset.path, asset.identity, str(e))
        return InstallOutcome.succeeded(asset.path, asset.identity)

    def build_asset(self, staged: StagedAsset) -> InstallOutcome:
        """Test-build a staged asset under its placeholder identity.

        Runs ``installfrompath`` on the staged copy, then ``commit`` and
        ``validate`` on the placeholder, and finally ``delete`` so the
        placeholder does not stay in the catalog. The delete is attempted
        whenever the install step succeeded.

        Args:
            staged: Staged copy of the asset.

        Returns:
            InstallOutcome for the original asset.
        """
        source = staged.source
        logger.info("Building asset %s", source.identity.tag)
        try:
            self._build(staged.path, staged.identity)
        except TrainzUtilError as e:
            logger.info("Failed to build asset %s: %s", source.identity.tag, e)
            return InstallOutcome.failed(source.path, source.identity, str(e), staged.path)
        return InstallOutcome.succeeded(source.path, source.identity, staged.path)

    def _build(self, path: Path, identity: AssetIdentity) -> None:
        kuid = str(identity)
        self.runner.execute("installfrompath", str(path))
        try:
            self.runner.execute("commit", kuid)
            if self.settle_delay > 0:
                self._sleep(self.settle_delay)
            self.runner.execute("validate", kuid)
        except TrainzUtilError:
            self._delete_after_failure(kuid)
            raise
        self.runner.execute("delete", kuid)

    def _delete_after_failure(self, kuid: str) -> None:
        """Remove the placeholder after a failed step; the original error wins."""
        try:
            self.runner.execute("delete", kuid)
        except TrainzUtilError as e:
            logger.error("Could not delete placeholder <%s>: %s", kuid, e)
