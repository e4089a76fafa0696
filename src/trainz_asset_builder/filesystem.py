"""Filesystem abstraction for testability.

The RealFileSystem implementation wraps standard library operations and
satisfies the FileSystem protocol structurally.
"""

from __future__ import annotations

import shutil
import tempfile
from pathlib import Path


class RealFileSystem:
    """Production filesystem implementation."""

    def read_bytes(self, path: Path) -> bytes:
        """Read raw content from a file."""
        return path.read_bytes()

    def write_bytes(self, path: Path, content: bytes) -> None:
        """Write raw content to a file."""
        path.write_bytes(content)

    def exists(self, path: Path) -> bool:
        """Check if a path exists."""
        return path.exists()

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        """Create a directory."""
        path.mkdir(parents=parents, exist_ok=exist_ok)

    def mkdtemp(self, base: Path, prefix: str) -> Path:
        """Create a uniquely named directory under ``base``."""
        return Path(tempfile.mkdtemp(prefix=prefix, dir=base))

    def rmtree(self, path: Path) -> None:
        """Remove a directory tree."""
        shutil.rmtree(path)

    def copytree(self, src: Path, dst: Path) -> None:
        """Copy the contents of ``src`` into ``dst``, which may already exist."""
        shutil.copytree(src, dst, dirs_exist_ok=True)
