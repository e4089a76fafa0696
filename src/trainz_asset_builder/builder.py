"""Batch processing of every asset found under a directory."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from pathlib import Path

from trainz_asset_builder.discovery import (
    DEFAULT_MAX_DEPTH,
    AssetRoot,
    Discovery,
    DiscoveryProblem,
)
from trainz_asset_builder.identity import AssetIdentity
from trainz_asset_builder.install import DEFAULT_SETTLE_DELAY, InstallDriver
from trainz_asset_builder.protocols import AssetLocator
from trainz_asset_builder.staging import StageBuilder, StagingIOError
from trainz_asset_builder.trainzutil import DEFAULT_TRAINZUTIL
from trainz_asset_builder.types import AssetBuilderError, BatchResult, InstallOutcome, Verb

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[InstallOutcome], None]


class NoAssetsFound(AssetBuilderError):
    """Discovery found nothing to process."""

    def __init__(self, root: Path) -> None:
        self.root = root
        super().__init__(f"No assets found in {root}")


class AssetBuilder:
    """Runs discovery, staging and installation over a content tree.

    Assets are processed one at a time, in discovery order, because
    TrainzUtil works on a single shared catalog. A failing asset never
    stops the batch.
    """

    def __init__(
        self,
        locator: AssetLocator,
        stager: StageBuilder,
        driver: InstallDriver,
    ) -> None:
        """Initialize the builder with its pipeline stages.

        Note:
            Use factory method `create()` for production code.
        """
        self.locator = locator
        self.stager = stager
        self.driver = driver

    @classmethod
    def create(
        cls,
        trainzutil: str | Path = DEFAULT_TRAINZUTIL,
        temp_base: Path | None = None,
        placeholder: AssetIdentity | None = None,
        timeout: float | None = None,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
        skip_dirs: Iterable[str] | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> AssetBuilder:
        """Factory method for production instantiation.

        Args:
            trainzutil: Path or command name of the TrainzUtil executable.
            temp_base: Parent directory for staged copies.
            placeholder: Identity used for staged copies.
            timeout: Per-command TrainzUtil timeout in seconds.
            settle_delay: Pause between commit and validate during a build.
            skip_dirs: Directory names never scanned.
            max_depth: Deepest directory level examined.

        Returns:
            Configured AssetBuilder instance.
        """
        return cls(
            locator=Discovery.create(skip_dirs=skip_dirs, max_depth=max_depth),
            stager=StageBuilder.create(temp_base=temp_base, placeholder=placeholder),
            driver=InstallDriver.create(trainzutil, timeout=timeout, settle_delay=settle_delay),
        )

    def run(
        self,
        verb: Verb | str,
        root: Path,
        recursive: bool = True,
        on_outcome: OutcomeCallback | None = None,
    ) -> BatchResult:
        """Build or install every asset under ``root``.

        Args:
            verb: "build" to test-build staged copies, "install" to install
                assets under their real identity.
            root: Directory to scan.
            recursive: Descend into subdirectories that are not assets.
            on_outcome: Called with each outcome as soon as it is known.

        Returns:
            BatchResult with one outcome per discovered asset, in discovery
            order. If interrupted, the asset in flight and every remaining
            asset are reported as interrupted.

        Raises:
            TrainzUtilError: If TrainzUtil cannot be run at all.
            StagingIOError: If the staging parent directory cannot be created.
            FileNotFoundError: If ``root`` is not a directory.
            NoAssetsFound: If discovery finds nothing and was not interrupted.
        """
        verb = Verb(verb)
        self.driver.check_available()
        if verb is Verb.BUILD:
            self.stager.prepare()

        result = BatchResult()
        entries = self.locator.locate(root, recursive)
        try:
            for entry in entries:
                try:
                    outcome = self._process(verb, entry)
                except KeyboardInterrupt:
                    logger.warning("Interrupted while processing %s", entry.path)
                    self._record(result, _interrupted(entry), on_outcome)
                    raise
                self._record(result, outcome, on_outcome)
        except KeyboardInterrupt:
            result.interrupted = True
            # A generator interrupted mid-walk is finished and yields nothing more
            for remaining in entries:
                self._record(result, _interrupted(remaining), on_outcome)

        if not result.outcomes and not result.interrupted:
            raise NoAssetsFound(root)
        return result

    def discover(
        self, root: Path, recursive: bool = True
    ) -> Iterator[AssetRoot | DiscoveryProblem]:
        """Discover assets without processing them."""
        return self.locator.locate(root, recursive)

    def _process(self, verb: Verb, entry: AssetRoot | DiscoveryProblem) -> InstallOutcome:
        if isinstance(entry, DiscoveryProblem):
            return InstallOutcome.failed(entry.path, None, entry.message)

        try:
            if verb is Verb.INSTALL:
                return self.driver.install_asset(entry)
            with self.stager.staged(entry) as staged:
                return self.driver.build_asset(staged)
        except StagingIOError as e:
            logger.info("Failed to stage asset %s: %s", entry.identity.tag, e)
            return InstallOutcome.failed(entry.path, entry.identity, str(e), e.path)
        except Exception as e:
            logger.exception("Processing failed for %s", entry.path)
            return InstallOutcome.failed(entry.path, entry.identity, f"Unexpected error: {e}")

    @staticmethod
    def _record(
        result: BatchResult, outcome: InstallOutcome, on_outcome: OutcomeCallback | None
    ) -> None:
        result.outcomes.append(outcome)
        if on_outcome is not None:
            on_outcome(outcome)


def _interrupted(entry: AssetRoot | DiscoveryProblem) -> InstallOutcome:
    identity = entry.identity if isinstance(entry, AssetRoot) else None
    return InstallOutcome.interrupted(entry.path, identity)


def run_batch(
    verb: Verb | str,
    input_path: Path,
    recursive: bool = True,
    temp_base: Path | None = None,
    installer_path: str | Path = DEFAULT_TRAINZUTIL,
    on_outcome: OutcomeCallback | None = None,
    **options,
) -> BatchResult:
    """Build or install every asset under ``input_path`` with default wiring.

    Args:
        verb: "build" or "install".
        input_path: Directory to scan.
        recursive: Descend into subdirectories that are not assets.
        temp_base: Parent directory for staged copies.
        installer_path: Path or command name of the TrainzUtil executable.
        on_outcome: Called with each outcome as soon as it is known.
        **options: Extra keyword arguments for AssetBuilder.create().

    Returns:
        BatchResult of the run.
    """
    builder = AssetBuilder.create(trainzutil=installer_path, temp_base=temp_base, **options)
    return builder.run(verb, input_path, recursive=recursive, on_outcome=on_outcome)
