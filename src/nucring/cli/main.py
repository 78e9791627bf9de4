"""nucring CLI — top-level Click group."""

from __future__ import annotations

import click


@click.group()
@click.version_option(package_name="nucring")
@click.option("--verbose", "-v", is_flag=True, help="Show full tracebacks and debug logging.")
def cli(verbose: bool) -> None:
    """Nuclear and cytoplasmic ring intensity analysis."""
    from nucring.cli import utils

    utils.verbose = verbose
    utils.configure_logging(verbose)


def _register_commands() -> None:
    """Register all subcommands; imports deferred to keep startup light."""
    from nucring.cli.init_config import init_config
    from nucring.cli.run import measure, run, segment

    cli.add_command(init_config)
    cli.add_command(measure)
    cli.add_command(run)
    cli.add_command(segment)


_register_commands()
