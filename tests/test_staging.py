"""Tests for staging module."""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from conftest import asset_root

from trainz_asset_builder.discovery import AssetRoot
from trainz_asset_builder.filesystem import RealFileSystem
from trainz_asset_builder.identity import AssetIdentity, parse_identity
from trainz_asset_builder.staging import (
    DEFAULT_PLACEHOLDER,
    STAGING_PREFIX,
    StageBuilder,
    StagingIOError,
)


def _digest(root: Path) -> dict[str, str]:
    """Hash every file under root, keyed by relative path."""
    return {
        path.relative_to(root).as_posix(): hashlib.sha256(path.read_bytes()).hexdigest()
        for path in sorted(root.rglob("*"))
        if path.is_file()
    }


@pytest.fixture
def stager(temp_base: Path) -> StageBuilder:
    """Create a StageBuilder writing below temp_base."""
    builder = StageBuilder.create(temp_base=temp_base)
    builder.prepare()
    return builder


@pytest.fixture
def asset(two_assets: Path) -> AssetRoot:
    """Asset A, with a binary payload file."""
    (two_assets / "A" / "textures").mkdir()
    (two_assets / "A" / "textures" / "body.texture.txt").write_text("Primary=body.tga\n")
    return asset_root(two_assets / "A")


class TestStage:
    """Tests for StageBuilder.stage."""

    def test_copies_payload_byte_for_byte(
        self, stager: StageBuilder, asset: AssetRoot
    ) -> None:
        """Test every file except the marker is copied unchanged."""
        staged = stager.stage(asset)

        original = _digest(asset.path)
        copy = _digest(staged.path)
        assert set(copy) == set(original)
        for name in original:
            if name != "config.txt":
                assert copy[name] == original[name], name

    def test_rewrites_marker_identity(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test the staged marker declares the placeholder and nothing else changes."""
        staged = stager.stage(asset)

        original = (asset.path / "config.txt").read_text()
        rewritten = (staged.path / "config.txt").read_text()
        assert parse_identity(rewritten) == DEFAULT_PLACEHOLDER
        assert rewritten == original.replace("<kuid:1:2:3>", "<kuid:298469:999999:0>")
        assert staged.identity == DEFAULT_PLACEHOLDER
        assert staged.source is asset

    def test_original_untouched(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test staging leaves the source tree identical."""
        before = _digest(asset.path)

        staged = stager.stage(asset)
        stager.release(staged.path)

        assert _digest(asset.path) == before

    def test_staging_dir_location_and_name(
        self, stager: StageBuilder, asset: AssetRoot, temp_base: Path
    ) -> None:
        """Test staging directories live under temp_base and carry the prefix."""
        staged = stager.stage(asset)

        assert staged.path.parent == temp_base
        assert staged.path.name.startswith(f"{STAGING_PREFIX}A-")

    def test_distinct_dirs_per_call(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test staging the same asset twice never reuses a directory."""
        first = stager.stage(asset)
        second = stager.stage(asset)

        assert first.path != second.path
        assert first.path.is_dir() and second.path.is_dir()

    def test_custom_placeholder(self, temp_base: Path, asset: AssetRoot) -> None:
        """Test a configured placeholder is written instead of the default."""
        placeholder = AssetIdentity("kuid2", (1, 1, 1, 1))
        stager = StageBuilder.create(temp_base=temp_base, placeholder=placeholder)
        stager.prepare()

        staged = stager.stage(asset)

        assert parse_identity((staged.path / "config.txt").read_text()) == placeholder

    def test_non_utf8_marker(self, stager: StageBuilder, tmp_path: Path) -> None:
        """Test CRLF and latin-1 bytes survive the rewrite."""
        source = tmp_path / "content" / "legacy"
        source.mkdir(parents=True)
        raw = b'username "Caf\xe9 \xff"\r\nkuid <kuid:10:20:30>\r\ndescription "\x80"\r\n'
        (source / "config.txt").write_bytes(raw)
        asset = AssetRoot(path=source, identity=AssetIdentity("kuid", (10, 20, 30)))

        staged = stager.stage(asset)

        assert (staged.path / "config.txt").read_bytes() == raw.replace(
            b"kuid:10:20:30", b"kuid:298469:999999:0"
        )

    def test_sanitizes_directory_name(self, stager: StageBuilder, tmp_path: Path) -> None:
        """Test unusual characters in the asset name do not leak into the prefix."""
        source = tmp_path / "content" / "my asset (v2)"
        source.mkdir(parents=True)
        (source / "config.txt").write_text("kuid <kuid:1:2:3>\n")

        staged = stager.stage(asset_root(source))

        assert staged.path.name.startswith(f"{STAGING_PREFIX}my_asset__v2_-")

    def test_marker_changed_since_discovery(
        self, stager: StageBuilder, asset: AssetRoot
    ) -> None:
        """Test a marker that lost its kuid line fails with the partial copy path."""
        (asset.path / "config.txt").write_text('username "edited"\n')

        with pytest.raises(StagingIOError) as exc_info:
            stager.stage(asset)

        assert exc_info.value.path is not None
        assert exc_info.value.path.is_dir()

    def test_copy_failure(self, temp_base: Path, asset: AssetRoot) -> None:
        """Test a copy error is wrapped with the staging path."""
        fs = MagicMock(wraps=RealFileSystem())
        fs.copytree.side_effect = OSError(28, "No space left on device")
        stager = StageBuilder(temp_base, DEFAULT_PLACEHOLDER, fs)
        stager.prepare()

        with pytest.raises(StagingIOError) as exc_info:
            stager.stage(asset)

        assert "No space left on device" in str(exc_info.value)
        assert exc_info.value.path.parent == temp_base

    def test_mkdtemp_failure(self, tmp_path: Path, asset: AssetRoot) -> None:
        """Test a missing staging parent fails without a path."""
        stager = StageBuilder.create(temp_base=tmp_path / "never-created")

        with pytest.raises(StagingIOError) as exc_info:
            stager.stage(asset)

        assert exc_info.value.path is None

    def test_is_oserror(self) -> None:
        """Test StagingIOError can be handled as an OSError."""
        assert issubclass(StagingIOError, OSError)


class TestPrepare:
    """Tests for StageBuilder.prepare."""

    def test_creates_parents(self, tmp_path: Path) -> None:
        """Test the staging parent is created with its parents."""
        base = tmp_path / "a" / "b" / "c"
        StageBuilder.create(temp_base=base).prepare()
        assert base.is_dir()

    def test_existing_is_fine(self, tmp_path: Path) -> None:
        """Test preparing an existing directory does nothing."""
        StageBuilder.create(temp_base=tmp_path).prepare()
        assert tmp_path.is_dir()

    def test_failure(self, tmp_path: Path) -> None:
        """Test a path blocked by a file raises StagingIOError."""
        blocker = tmp_path / "file"
        blocker.write_text("x")

        with pytest.raises(StagingIOError, match="Cannot create temporary directory"):
            StageBuilder.create(temp_base=blocker / "sub").prepare()

    def test_default_temp_base(self) -> None:
        """Test the system temp directory is used by default."""
        import tempfile

        assert StageBuilder.create().temp_base == Path(tempfile.gettempdir())


class TestStagedContext:
    """Tests for StageBuilder.staged and release."""

    def test_removed_on_exit(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test the staging directory is gone after the block."""
        with stager.staged(asset) as staged:
            path = staged.path
            assert (path / "config.txt").exists()

        assert not path.exists()

    def test_removed_on_exception(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test the staging directory is removed when the block raises."""
        with pytest.raises(RuntimeError):
            with stager.staged(asset) as staged:
                path = staged.path
                raise RuntimeError("boom")

        assert not path.exists()

    def test_removed_on_interrupt(self, stager: StageBuilder, asset: AssetRoot) -> None:
        """Test the staging directory is removed on KeyboardInterrupt."""
        with pytest.raises(KeyboardInterrupt):
            with stager.staged(asset) as staged:
                path = staged.path
                raise KeyboardInterrupt

        assert not path.exists()

    def test_partial_stage_removed(
        self, stager: StageBuilder, asset: AssetRoot, temp_base: Path
    ) -> None:
        """Test a failed stage leaves nothing behind."""
        (asset.path / "config.txt").write_text("no identity\n")

        with pytest.raises(StagingIOError):
            with stager.staged(asset):
                pytest.fail("block must not run")

        assert list(temp_base.iterdir()) == []

    def test_release_missing_is_noop(self, stager: StageBuilder, tmp_path: Path) -> None:
        """Test releasing a path that no longer exists does nothing."""
        stager.release(tmp_path / "gone")

    def test_release_failure_is_logged(
        self, temp_base: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Test a cleanup failure is logged and not raised."""
        fs = MagicMock()
        fs.exists.return_value = True
        fs.rmtree.side_effect = PermissionError("in use")
        stager = StageBuilder(temp_base, DEFAULT_PLACEHOLDER, fs)

        with caplog.at_level(logging.WARNING, logger="trainz_asset_builder"):
            stager.release(temp_base / "x")

        assert "Could not remove staging directory" in caplog.text
