"""Shared CLI utilities — Rich console, logging, error handling, config loading."""

from __future__ import annotations

import functools
import logging
import traceback
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn

if TYPE_CHECKING:
    from nucring.core.config import AnalysisConfig
    from nucring.pipeline import BatchResult

console = Console()

# Set by the --verbose flag on the top-level CLI group.
verbose: bool = False


def configure_logging(debug: bool) -> None:
    """Route nucring log records through Rich on the CLI console."""
    logger = logging.getLogger("nucring")
    logger.setLevel(logging.DEBUG if debug else logging.WARNING)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=console, show_path=False))


def parse_channels(value: str | None) -> tuple[int, ...] | None:
    """Parse a comma-separated channel list such as ``"2,3"``.

    Raises:
        click.BadParameter: If an entry is not an integer.
    """
    if value is None:
        return None
    try:
        return tuple(int(c) for c in value.split(",") if c.strip())
    except ValueError:
        raise click.BadParameter(f"expected comma-separated integers, got {value!r}")


def load_config(config_path: str | None, **overrides: Any) -> AnalysisConfig:
    """Build an AnalysisConfig from an optional YAML file plus CLI overrides.

    Options left unset on the command line (None) keep the file's value.
    """
    from nucring.core.config import AnalysisConfig

    base = AnalysisConfig.from_yaml(Path(config_path)) if config_path else AnalysisConfig()
    return base.with_overrides(**overrides)


def error_handler(func: Callable[..., Any]) -> Callable[..., Any]:
    """Decorator wrapping CLI commands with standard error handling.

    Catches NucRingError and a missing input path (exit 1) and unexpected
    exceptions (exit 2). Click usage errors pass through to Click.
    With --verbose, unexpected errors include the full traceback.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        from nucring.core.exceptions import NucRingError

        try:
            return func(*args, **kwargs)
        except (SystemExit, click.ClickException):
            raise
        except (NucRingError, FileNotFoundError) as e:
            console.print(f"[red]Error:[/red] {escape(str(e))}")
            raise SystemExit(1)
        except Exception as e:
            if verbose:
                console.print(f"[red]Internal error:[/red] {e}")
                console.print(traceback.format_exc())
            else:
                console.print(
                    f"[red]Internal error:[/red] {type(e).__name__}: {e}\n"
                    "[dim]Use --verbose for the full traceback.[/dim]"
                )
            raise SystemExit(2)

    return wrapper


def make_progress() -> Progress:
    """Create a Rich progress bar for CLI operations."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        console=console,
    )


def print_summary(title: str, result: BatchResult) -> None:
    """Print the end-of-run summary and any warnings."""
    console.print()
    console.print(f"[green]{title}[/green]")
    console.print(f"  Images found: {result.images_found}")
    console.print(f"  Images processed: {result.images_processed}")
    console.print(f"  Total nuclei: {result.cell_count}")
    console.print(f"  Rows written: {result.rows_written}")
    console.print(f"  Elapsed: {result.elapsed_seconds:.1f}s")

    if result.warnings:
        console.print()
        console.print(f"[yellow]Warnings ({len(result.warnings)}):[/yellow]")
        for w in result.warnings:
            console.print(f"  [dim]- {escape(w)}[/dim]")
