"""Shared test fixtures."""

from __future__ import annotations

import logging
import stat
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from trainz_asset_builder.discovery import AssetRoot
from trainz_asset_builder.identity import parse_identity
from trainz_asset_builder.trainzutil import CommandOutput

AssetFactory = Callable[..., Path]


@pytest.fixture(autouse=True)
def reset_package_logger() -> Iterator[None]:
    """Undo logging setup done by CLI commands."""
    package_logger = logging.getLogger("trainz_asset_builder")
    yield
    package_logger.handlers = []
    package_logger.setLevel(logging.NOTSET)


def marker_text(kuid: str, username: str = "test asset") -> str:
    """Build a minimal config.txt body."""
    return (
        f'kuid <{kuid}>\n'
        f'username "{username}"\n'
        'kind "scenery"\n'
        'trainz-build 4.6\n'
        'kuid-table\n'
        '{\n'
        '  0 <kuid:30501:1001>\n'
        '}\n'
    )


@pytest.fixture
def make_asset(tmp_path: Path) -> AssetFactory:
    """Factory creating an asset directory below tmp_path/content."""

    def _make(relative: str, kuid: str = "kuid:1:2:3", marker: str | None = None) -> Path:
        path = tmp_path / "content" / relative
        path.mkdir(parents=True, exist_ok=True)
        (path / "config.txt").write_text(marker if marker is not None else marker_text(kuid))
        return path

    return _make


@pytest.fixture
def content_root(tmp_path: Path) -> Path:
    """Empty content tree root."""
    root = tmp_path / "content"
    root.mkdir(exist_ok=True)
    return root


@pytest.fixture
def two_assets(make_asset: AssetFactory, content_root: Path) -> Path:
    """content/A with a kuid and content/B with a kuid2."""
    make_asset("A", "kuid:1:2:3")
    make_asset("B", "kuid2:9:8:7:6")
    (content_root / "A" / "mesh.im").write_bytes(bytes(range(256)))
    return content_root


@pytest.fixture
def temp_base(tmp_path: Path) -> Path:
    """Staging parent directory (not created yet)."""
    return tmp_path / "staging"


def asset_root(path: Path) -> AssetRoot:
    """AssetRoot for an existing asset directory."""
    return AssetRoot(path=path, identity=parse_identity((path / "config.txt").read_text()))


# ============================================================================
# TrainzUtil Doubles
# ============================================================================


def ok_output(*args: str) -> CommandOutput:
    return CommandOutput(args=args, returncode=0, output="OK (0 Errors, 0 Warnings)\n")


@pytest.fixture
def mock_runner() -> MagicMock:
    """A CommandRunner whose commands all succeed."""
    runner = MagicMock()
    runner.execute.side_effect = ok_output
    return runner


@pytest.fixture
def stub_trainzutil(tmp_path: Path) -> Path:
    """Executable standing in for TrainzUtil.

    Every call is appended to ``calls.log`` next to the script. installfrompath
    fails for directories containing a file named FAIL, and reports whether
    the directory existed at the time.
    """
    if sys.platform == "win32":
        pytest.skip("stub executable needs a shebang")

    script = tmp_path / "bin" / "TrainzUtil"
    script.parent.mkdir()
    log = tmp_path / "bin" / "calls.log"
    script.write_text(
        f"#!{sys.executable}\n"
        "import os, sys\n"
        "args = sys.argv[1:]\n"
        f"with open({str(log)!r}, 'a') as f:\n"
        "    f.write('\\t'.join(args) + '\\n')\n"
        "if args[:1] == ['version']:\n"
        "    print('TrainzUtil stub 1.0')\n"
        "    sys.exit(0)\n"
        "if args[:1] == ['installfrompath']:\n"
        "    if not os.path.isdir(args[1]):\n"
        "        print('missing directory', args[1])\n"
        "        sys.exit(2)\n"
        "    if os.path.exists(os.path.join(args[1], 'FAIL')):\n"
        "        print('- <kuid:298469:999999:0> : broken asset')\n"
        "        print('OK (1 Errors, 0 Warnings)')\n"
        "        sys.exit(1)\n"
        "print('OK (0 Errors, 0 Warnings)')\n"
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


def stub_calls(stub: Path) -> list[list[str]]:
    """Commands the stub executable has received, in order."""
    log = stub.parent / "calls.log"
    if not log.exists():
        return []
    return [line.split("\t") for line in log.read_text().splitlines()]
