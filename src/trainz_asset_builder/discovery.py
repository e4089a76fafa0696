"""Discovery of assets in a content tree."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from trainz_asset_builder.identity import AssetIdentity, IdentityError, parse_identity

logger = logging.getLogger(__name__)

# Marker file that turns a directory into an asset root
MARKER_FILE = "config.txt"
# Marker files are not guaranteed to be UTF-8; latin-1 maps every byte.
MARKER_ENCODING = "latin-1"

DEFAULT_MAX_DEPTH = 64


@dataclass(frozen=True)
class AssetRoot:
    """A directory holding one asset."""

    path: Path
    identity: AssetIdentity


@dataclass(frozen=True)
class DiscoveryProblem:
    """A directory that looks like an asset but could not be read as one."""

    path: Path
    error: Exception

    @property
    def message(self) -> str:
        return str(self.error)


def read_marker(path: Path) -> str:
    """Read a marker file as text without altering any byte."""
    return path.read_bytes().decode(MARKER_ENCODING)


class Discovery:
    """Finds asset roots below a directory.

    A directory containing ``config.txt`` is an asset root. Asset roots are
    leaves: nothing below them is scanned, so assemblies shipped inside an
    asset's payload are never picked up as separate assets.
    """

    # Directories to skip during discovery
    SKIP_DIRS = frozenset({".git", ".hg", ".svn"})

    def __init__(
        self,
        skip_dirs: Iterable[str] | None = None,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialize discovery.

        Args:
            skip_dirs: Directory names never scanned. Defaults to SKIP_DIRS.
            max_depth: Deepest directory level examined below the root.

        Note:
            Prefer using factory method `create()` for construction.
        """
        self.skip_dirs = frozenset(skip_dirs) if skip_dirs is not None else self.SKIP_DIRS
        self.max_depth = max_depth

    @classmethod
    def create(
        cls, skip_dirs: Iterable[str] | None = None, max_depth: int = DEFAULT_MAX_DEPTH
    ) -> Discovery:
        """Create a discovery instance.

        Returns:
            Configured Discovery instance.
        """
        return cls(skip_dirs=skip_dirs, max_depth=max_depth)

    def locate(
        self, root: Path, recursive: bool = True
    ) -> Iterator[AssetRoot | DiscoveryProblem]:
        """Lazily yield asset roots and discovery problems under ``root``.

        The root and its immediate subdirectories are always examined. Deeper
        directories are only examined when ``recursive`` is set. Entries are
        visited depth-first in lexical order of their names, so the same tree
        always produces the same sequence.

        Args:
            root: Directory to scan.
            recursive: Descend into subdirectories that are not assets.

        Yields:
            AssetRoot for each asset, DiscoveryProblem for each directory whose
            marker file could not be parsed or which could not be listed.

        Raises:
            FileNotFoundError: If ``root`` is not a directory.
        """
        if not root.is_dir():
            raise FileNotFoundError(f"Not a directory: {root}")

        stack: list[tuple[Path, int]] = [(root, 0)]
        visited: set[Path] = set()

        while stack:
            path, depth = stack.pop()
            logger.debug("Entering directory: %s", path)

            real_path = path.resolve()
            if real_path in visited:
                logger.debug("Already visited %s, skipping", real_path)
                continue
            visited.add(real_path)

            marker = path / MARKER_FILE
            if marker.is_file():
                yield self._read_asset(path, marker)
                continue

            if depth > 0 and not recursive:
                continue
            if depth >= self.max_depth:
                logger.warning("Maximum depth %d reached at %s, not descending", depth, path)
                continue

            try:
                children = self._list_subdirs(path)
            except OSError as e:
                logger.info("Cannot list %s: %s", path, e)
                yield DiscoveryProblem(path=path, error=e)
                continue

            stack.extend((child, depth + 1) for child in reversed(children))

    def _list_subdirs(self, path: Path) -> list[Path]:
        """List subdirectories of ``path`` worth scanning, sorted by name."""
        subdirs = [
            entry
            for entry in path.iterdir()
            if entry.name not in self.skip_dirs and entry.is_dir()
        ]
        return sorted(subdirs, key=lambda p: p.name)

    def _read_asset(self, path: Path, marker: Path) -> AssetRoot | DiscoveryProblem:
        """Parse the marker file of an asset directory."""
        logger.debug("Found %s: %s", MARKER_FILE, marker)
        try:
            identity = parse_identity(read_marker(marker))
        except IdentityError as e:
            logger.info("Invalid asset %s: %s", path, e)
            return DiscoveryProblem(path=path, error=e)
        except OSError as e:
            logger.info("Cannot read %s: %s", marker, e)
            return DiscoveryProblem(path=path, error=e)

        logger.info("Found asset: %s, %s", identity.tag, path)
        return AssetRoot(path=path, identity=identity)
