"""Invocation of the TrainzUtil command-line tool.

TrainzUtil is treated as opaque: a run succeeds when it exits with code 0,
and its output is only captured for diagnostics, never interpreted.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from trainz_asset_builder.types import AssetBuilderError

logger = logging.getLogger(__name__)

DEFAULT_TRAINZUTIL = "TrainzUtil"


def with_prefix(prefix: str, text: str) -> str:
    """Prefix every line of ``text``."""
    return "\n".join(f"{prefix}{line}" for line in text.splitlines())


@dataclass(frozen=True)
class CommandOutput:
    """Captured result of one TrainzUtil run."""

    args: tuple[str, ...]
    returncode: int
    output: str

    @property
    def lines(self) -> list[str]:
        return self.output.splitlines()


class TrainzUtilError(AssetBuilderError):
    """TrainzUtil could not complete a command."""

    pass


class InstallerLaunchError(TrainzUtilError):
    """The TrainzUtil process could not be started."""

    def __init__(self, executable: str, reason: str) -> None:
        self.executable = executable
        self.reason = reason
        super().__init__(f"Cannot run TrainzUtil ({executable}): {reason}")


class InstallerExitNonZero(TrainzUtilError):
    """TrainzUtil exited with a non-zero code."""

    def __init__(self, result: CommandOutput) -> None:
        self.result = result
        command = result.args[0] if result.args else "command"
        message = f"TrainzUtil {command} failed with exit code {result.returncode}"
        if result.output.strip():
            message += f", output:\n{with_prefix('> ', result.output.rstrip())}"
        super().__init__(message)

    @property
    def returncode(self) -> int:
        return self.result.returncode


class InstallerTimeout(TrainzUtilError):
    """TrainzUtil did not finish within the configured timeout."""

    def __init__(self, args: Sequence[str], timeout: float) -> None:
        self.command = tuple(args)
        self.timeout = timeout
        super().__init__(f"TrainzUtil {' '.join(args)} timed out after {timeout:g} seconds")


class TrainzUtil:
    """Runs TrainzUtil commands. Satisfies the CommandRunner protocol."""

    def __init__(
        self, executable: str | Path = DEFAULT_TRAINZUTIL, timeout: float | None = None
    ) -> None:
        """Initialize the runner.

        Args:
            executable: Path or command name of the TrainzUtil executable.
            timeout: Seconds to wait for a single command (None waits forever).
        """
        self.executable = str(executable)
        self.timeout = timeout

    def execute(self, *args: str) -> CommandOutput:
        """Run TrainzUtil with ``args`` and wait for it to finish.

        Standard error is merged into standard output so diagnostics keep the
        order TrainzUtil printed them in. An interrupt while waiting kills the
        child process before propagating.

        Returns:
            Captured output of a successful run.

        Raises:
            InstallerLaunchError: If the process could not be started.
            InstallerExitNonZero: If the process exited with a non-zero code.
            InstallerTimeout: If the process ran longer than ``timeout``.
        """
        command = [self.executable, *args]
        logger.debug("Running %s", subprocess.list2cmdline(command))
        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            raise InstallerTimeout(args, e.timeout) from e
        except OSError as e:
            raise InstallerLaunchError(self.executable, e.strerror or str(e)) from e

        result = CommandOutput(
            args=tuple(args), returncode=completed.returncode, output=completed.stdout or ""
        )
        if result.output:
            logger.debug("TrainzUtil output:\n%s", with_prefix("> ", result.output.rstrip()))
        if completed.returncode != 0:
            raise InstallerExitNonZero(result)
        return result
