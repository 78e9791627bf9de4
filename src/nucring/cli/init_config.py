"""nucring init-config — write a settings template."""

from __future__ import annotations

from pathlib import Path

import click

from nucring.cli.utils import console, error_handler


@click.command("init-config")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
@error_handler
def init_config(path: str, force: bool) -> None:
    """Write the default analysis settings to a YAML file."""
    from nucring.core.config import AnalysisConfig

    target = Path(path)
    if target.exists() and not force:
        console.print(f"[red]Error:[/red] {target} already exists (use --force)")
        raise SystemExit(1)

    AnalysisConfig().to_yaml(target)
    console.print(f"[green]Wrote default settings to {target}[/green]")
