"""Rich console output for the command line."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from trainz_asset_builder.discovery import AssetRoot, DiscoveryProblem
from trainz_asset_builder.types import OutcomeStatus

if TYPE_CHECKING:
    from trainz_asset_builder.config import BuilderConfig
    from trainz_asset_builder.identity import AssetIdentity
    from trainz_asset_builder.types import BatchResult, InstallOutcome


class Reporter:
    """Prints per-asset outcomes and batch summaries."""

    def __init__(self, console: Console | None = None) -> None:
        """Initialize reporter.

        Args:
            console: Console to print to. Defaults to a new stdout console.
        """
        self.console = console or Console()

    def show_success(self, message: str) -> None:
        """Display success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def show_error(self, message: str) -> None:
        """Display error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def show_warning(self, message: str) -> None:
        """Display warning message."""
        self.console.print(f"[yellow]![/yellow] {message}")

    def show_info(self, message: str) -> None:
        """Display info message."""
        self.console.print(f"[blue]i[/blue] {message}")

    def show_outcome(self, outcome: InstallOutcome) -> None:
        """Display the one-line result of an asset, with diagnostics on failure."""
        label = _asset_label(outcome.path, outcome.identity)
        if outcome.status is OutcomeStatus.SUCCEEDED:
            self.show_success(label)
        elif outcome.status is OutcomeStatus.INTERRUPTED:
            self.show_warning(f"{label}: interrupted")
        else:
            self.show_error(label)
            for line in (outcome.message or "").splitlines():
                self.console.print(f"    {escape(line)}", highlight=False)

    def show_summary(self, result: BatchResult) -> None:
        """Display batch totals."""
        table = Table(title="Summary", show_header=False)
        table.add_column("Status")
        table.add_column("Assets", justify="right")
        table.add_row("[green]Succeeded[/green]", str(result.count(OutcomeStatus.SUCCEEDED)))
        table.add_row("[red]Failed[/red]", str(result.count(OutcomeStatus.FAILED)))
        if result.interrupted:
            table.add_row(
                "[yellow]Interrupted[/yellow]", str(result.count(OutcomeStatus.INTERRUPTED))
            )
        self.console.print(table)

    def show_discovered(self, entries: Iterable[AssetRoot | DiscoveryProblem]) -> int:
        """Display discovered assets as a table.

        Args:
            entries: Discovery results.

        Returns:
            Number of entries shown.
        """
        table = Table(title="Assets")
        table.add_column("KUID", style="cyan")
        table.add_column("Path")
        table.add_column("Status")

        count = 0
        for entry in entries:
            count += 1
            if isinstance(entry, AssetRoot):
                table.add_row(
                    escape(entry.identity.tag), escape(str(entry.path)), "[green]ok[/green]"
                )
            else:
                table.add_row(
                    "-", escape(str(entry.path)), f"[red]{escape(entry.message)}[/red]"
                )

        if count:
            self.console.print(table)
        return count

    def show_config(self, config: BuilderConfig, config_file: Path) -> None:
        """Display effective configuration."""
        timeout = f"{config.command_timeout:g}s" if config.command_timeout else "(none)"
        lines = [
            f"Config file: {config_file}",
            f"TrainzUtil: {config.trainzutil}",
            f"Temp directory: {config.temp_dir or '(system default)'}",
            f"Placeholder KUID: <{config.placeholder}>",
            f"Settle delay: {config.settle_delay:g}s",
            f"Command timeout: {timeout}",
            f"Max depth: {config.max_depth}",
            f"Skipped directories: {', '.join(config.skip_dirs) or '(none)'}",
        ]
        self.console.print(
            Panel(escape("\n".join(lines)), title="Configuration", border_style="blue")
        )


def _asset_label(path: Path, identity: AssetIdentity | None) -> str:
    if identity is None:
        return escape(str(path))
    return f"{escape(identity.tag)} {escape(str(path))}"
