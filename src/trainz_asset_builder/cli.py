"""CLI commands using Typer."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from trainz_asset_builder import __version__
from trainz_asset_builder.builder import NoAssetsFound
from trainz_asset_builder.config import ENV_TEMP_DIR, ENV_TRAINZUTIL, ConfigError
from trainz_asset_builder.console import Reporter
from trainz_asset_builder.context import create_context
from trainz_asset_builder.staging import StagingIOError
from trainz_asset_builder.trainzutil import TrainzUtilError
from trainz_asset_builder.types import Verb

if TYPE_CHECKING:
    from trainz_asset_builder.context import AppContext

app = typer.Typer(
    name="tzbuildasset",
    help="Build and install Trainz assets through TrainzUtil",
    no_args_is_help=True,
)

config_app = typer.Typer(help="Configuration commands")
app.add_typer(config_app, name="config")

console = Console()
err_console = Console(stderr=True)
reporter = Reporter(console)

# Process exit codes
EXIT_FAILED = 1
EXIT_ENVIRONMENT = 2
EXIT_NO_ASSETS = 3
EXIT_INTERRUPTED = 130

PathArgument = Annotated[
    Path, typer.Argument(help="Directory to search for assets", show_default=False)
]
RecursiveOption = Annotated[
    bool,
    typer.Option(
        "--recursive/--no-recursive",
        help="Search subdirectories that are not assets themselves",
    ),
]
TempDirOption = Annotated[
    Path | None,
    typer.Option("--temp-dir", envvar=ENV_TEMP_DIR, help="Parent directory for staged copies"),
]
TrainzUtilOption = Annotated[
    str | None,
    typer.Option("--trainzutil", envvar=ENV_TRAINZUTIL, help="Path to TrainzUtil executable"),
]
VerboseOption = Annotated[
    int, typer.Option("--verbose", "-v", count=True, help="Detailed output (repeat for more)")
]
QuietOption = Annotated[bool, typer.Option("--quiet", "-q", help="Only report errors")]


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        console.print(f"tzbuildasset v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Build and install Trainz assets through TrainzUtil."""
    pass


def setup_logging(verbose: int = 0, quiet: bool = False) -> None:
    """Route package logs to stderr through rich.

    Args:
        verbose: 1 shows progress, 2 or more shows every TrainzUtil call.
        quiet: Only show errors.
    """
    if quiet:
        level = logging.ERROR
    elif verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    package_logger = logging.getLogger("trainz_asset_builder")
    package_logger.handlers = [
        RichHandler(console=err_console, show_path=False, show_time=verbose >= 2)
    ]
    package_logger.setLevel(level)


def _load_context(trainzutil: str | None = None, temp_dir: Path | None = None) -> AppContext:
    """Create the application context, exiting on a broken configuration."""
    try:
        return create_context(trainzutil=trainzutil, temp_dir=temp_dir)
    except ConfigError as e:
        reporter.show_error(escape(str(e)))
        raise typer.Exit(EXIT_ENVIRONMENT) from e


def _run_batch(
    verb: Verb,
    path: Path,
    recursive: bool,
    temp_dir: Path | None,
    trainzutil: str | None,
    verbose: int,
    quiet: bool,
    _context: AppContext | None,
) -> None:
    """Run a batch and map its result to the process exit code."""
    setup_logging(verbose, quiet)
    ctx = _context or _load_context(trainzutil, temp_dir)

    try:
        result = ctx.builder.run(verb, path, recursive=recursive, on_outcome=reporter.show_outcome)
    except NoAssetsFound as e:
        reporter.show_warning(escape(str(e)))
        raise typer.Exit(EXIT_NO_ASSETS) from e
    except (TrainzUtilError, StagingIOError, FileNotFoundError) as e:
        reporter.show_error(escape(str(e)))
        raise typer.Exit(EXIT_ENVIRONMENT) from e

    reporter.show_summary(result)
    if result.interrupted:
        raise typer.Exit(EXIT_INTERRUPTED)
    if not result.success:
        raise typer.Exit(EXIT_FAILED)


# ============================================================================
# Batch Commands
# ============================================================================


@app.command()
def build(
    path: PathArgument,
    recursive: RecursiveOption = True,
    temp_dir: TempDirOption = None,
    trainzutil: TrainzUtilOption = None,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    _context=None,
) -> None:
    """Test-build every asset under a placeholder KUID."""
    _run_batch(Verb.BUILD, path, recursive, temp_dir, trainzutil, verbose, quiet, _context)


@app.command()
def install(
    path: PathArgument,
    recursive: RecursiveOption = True,
    trainzutil: TrainzUtilOption = None,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    _context=None,
) -> None:
    """Install and commit every asset under its real KUID."""
    _run_batch(Verb.INSTALL, path, recursive, None, trainzutil, verbose, quiet, _context)


@app.command("list")
def list_assets(
    path: PathArgument,
    recursive: RecursiveOption = True,
    verbose: VerboseOption = 0,
    _context=None,
) -> None:
    """List assets without running TrainzUtil."""
    setup_logging(verbose)
    ctx = _context or _load_context()

    try:
        count = reporter.show_discovered(ctx.builder.discover(path, recursive))
    except FileNotFoundError as e:
        reporter.show_error(escape(str(e)))
        raise typer.Exit(EXIT_ENVIRONMENT) from e

    if not count:
        reporter.show_warning(escape(f"No assets found in {path}"))
        raise typer.Exit(EXIT_NO_ASSETS)
    reporter.show_info(escape(f"{count} asset directories found in {path}"))


# ============================================================================
# Config Commands
# ============================================================================


@config_app.command("show")
def config_show(
    _context=None,
) -> None:
    """Show current configuration."""
    ctx = _context or _load_context()
    reporter.show_config(ctx.config, ctx.config_manager.config_file)


@config_app.command("set")
def config_set(
    key: Annotated[str, typer.Argument(help="Configuration key, e.g. trainzutil or temp-dir")],
    value: Annotated[str, typer.Argument(help="Configuration value")],
    _context=None,
) -> None:
    """Set a configuration value."""
    ctx = _context or _load_context()
    try:
        ctx.config_manager.set(key, value)
    except ConfigError as e:
        reporter.show_error(escape(str(e)))
        raise typer.Exit(1) from e
    reporter.show_success(escape(f"Set {key} to {value}"))


if __name__ == "__main__":
    app()
