"""Shared data types for the asset builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from trainz_asset_builder.identity import AssetIdentity

__all__ = [
    "AssetBuilderError",
    "BatchResult",
    "InstallOutcome",
    "OutcomeStatus",
    "Verb",
]


class AssetBuilderError(Exception):
    """Base class for all asset builder errors."""

    pass


class Verb(str, Enum):
    """What to do with each discovered asset."""

    BUILD = "build"
    INSTALL = "install"


class OutcomeStatus(str, Enum):
    """Final state of one asset in a batch."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass(frozen=True)
class InstallOutcome:
    """Result of processing a single asset.

    Attributes:
        path: Asset root directory in the source tree.
        identity: Identity parsed from the marker file (None if it did not parse).
        status: Final state of the asset.
        message: Diagnostic text (None on success).
        staged_path: Temporary directory used for a build (None for install).
    """

    path: Path
    identity: AssetIdentity | None
    status: OutcomeStatus
    message: str | None = None
    staged_path: Path | None = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if self.status is OutcomeStatus.SUCCEEDED and self.message is not None:
            raise ValueError("succeeded outcome cannot carry a message")
        if self.status is not OutcomeStatus.SUCCEEDED and not self.message:
            raise ValueError(f"{self.status.value} outcome requires a message")

    @property
    def success(self) -> bool:
        """True if the asset was processed successfully."""
        return self.status is OutcomeStatus.SUCCEEDED

    @classmethod
    def succeeded(
        cls, path: Path, identity: AssetIdentity | None, staged_path: Path | None = None
    ) -> InstallOutcome:
        return cls(path, identity, OutcomeStatus.SUCCEEDED, staged_path=staged_path)

    @classmethod
    def failed(
        cls,
        path: Path,
        identity: AssetIdentity | None,
        message: str,
        staged_path: Path | None = None,
    ) -> InstallOutcome:
        return cls(path, identity, OutcomeStatus.FAILED, message, staged_path)

    @classmethod
    def interrupted(cls, path: Path, identity: AssetIdentity | None) -> InstallOutcome:
        return cls(path, identity, OutcomeStatus.INTERRUPTED, "Interrupted")


@dataclass
class BatchResult:
    """Ordered outcomes of one batch run.

    Outcomes appear in discovery order. The batch succeeds only if at least
    one asset was processed, every outcome succeeded and the run was not
    interrupted.
    """

    outcomes: list[InstallOutcome] = field(default_factory=list)
    interrupted: bool = False

    @property
    def success(self) -> bool:
        return bool(self.outcomes) and not self.interrupted and all(
            o.success for o in self.outcomes
        )

    @property
    def failed(self) -> list[InstallOutcome]:
        """Outcomes that did not succeed."""
        return [o for o in self.outcomes if not o.success]

    def count(self, status: OutcomeStatus) -> int:
        return sum(1 for o in self.outcomes if o.status is status)
