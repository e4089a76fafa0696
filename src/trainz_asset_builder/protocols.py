"""Protocol definitions for core abstractions.

Designing to interfaces keeps the pipeline stages loosely coupled and lets
tests substitute doubles for the filesystem and for TrainzUtil without
spawning real processes.

All concrete implementations satisfy these protocols structurally (duck typing).
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from trainz_asset_builder.discovery import AssetRoot, DiscoveryProblem
    from trainz_asset_builder.trainzutil import CommandOutput


@runtime_checkable
class AssetLocator(Protocol):
    """Protocol for asset discovery.

    Implementations walk a content tree and report asset roots in a
    deterministic order.
    """

    def locate(
        self, root: Path, recursive: bool = True
    ) -> Iterator[AssetRoot | DiscoveryProblem]:
        """Lazily yield asset roots and discovery problems under ``root``.

        Args:
            root: Directory to scan.
            recursive: Descend into subdirectories that are not assets.

        Returns:
            Iterator over discovered assets and problems, in discovery order.
        """
        ...


@runtime_checkable
class CommandRunner(Protocol):
    """Protocol for the external installer process.

    This is the only seam through which TrainzUtil is reached.
    """

    def execute(self, *args: str) -> CommandOutput:
        """Run the installer with the given arguments and wait for it.

        Args:
            args: Command-line arguments, e.g. ("installfrompath", "/tmp/x").

        Returns:
            Captured output of a successful run.

        Raises:
            InstallerLaunchError: If the process could not be started.
            InstallerExitNonZero: If the process exited with a non-zero code.
            InstallerTimeout: If the process did not finish in time.
        """
        ...


@runtime_checkable
class FileSystem(Protocol):
    """Protocol for filesystem operations used while staging assets."""

    def read_bytes(self, path: Path) -> bytes:
        """Read raw content from a file.

        Raises:
            FileNotFoundError: If file does not exist.
        """
        ...

    def write_bytes(self, path: Path, content: bytes) -> None:
        """Write raw content to a file."""
        ...

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        ...

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        ...

    def mkdtemp(self, base: Path, prefix: str) -> Path:
        """Create a new, uniquely named directory under ``base``.

        Args:
            base: Parent directory.
            prefix: Name prefix for the new directory.

        Returns:
            Path to the created directory.
        """
        ...

    def rmtree(self, path: Path) -> None:
        """Remove a directory tree."""
        ...

    def copytree(self, src: Path, dst: Path) -> None:
        """Copy the contents of ``src`` into the existing directory ``dst``."""
        ...
