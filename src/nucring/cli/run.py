"""nucring run / segment / measure — batch analysis of a directory tree."""

from __future__ import annotations

from typing import Any, Callable

import click

from nucring.cli.utils import (
    console,
    error_handler,
    load_config,
    make_progress,
    parse_channels,
    print_summary,
)


def analysis_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every batch command."""
    options = [
        click.option(
            "-i", "--input", "input_dir", type=click.Path(exists=True, file_okay=False),
            default=None, help="Directory scanned recursively for channel files.",
        ),
        click.option(
            "-o", "--output", "output_dir", type=click.Path(file_okay=False),
            default=None, help="Directory for Results.csv and region archives.",
        ),
        click.option(
            "--config", "config_path", type=click.Path(exists=True, dir_okay=False),
            default=None, help="YAML settings file; command-line options win.",
        ),
        click.option("--suffix", "file_suffix", default=None, help="File suffix filter (.tif)."),
        click.option("--block-size", type=int, default=None, help="CLAHE tile size (pixels)."),
        click.option(
            "--local-radius", type=int, default=None, help="Adaptive-threshold radius (pixels).",
        ),
        click.option("--min-area", type=float, default=None, help="Minimum nucleus area (µm²)."),
        click.option("--max-area", type=float, default=None, help="Maximum nucleus area (µm²)."),
        click.option(
            "--thickness", "cytoplasm_thickness", type=float, default=None,
            help="Cytoplasmic ring width (µm).",
        ),
        click.option(
            "--threshold-method", type=click.Choice(["phansalkar", "sauvola"]), default=None,
            help="Adaptive local threshold.",
        ),
        click.option("--nuclear-channel", type=int, default=None, help="Nuclear channel index."),
        click.option(
            "--channels", "measure_channels", default=None,
            help="Comma-separated channels to measure (e.g. 2,3).",
        ),
        click.option(
            "--exclusive/--overlapping", "exclusive_cytoplasm", default=None,
            help="Split contested ring pixels between neighbouring nuclei.",
        ),
        click.option("--pixel-size", "pixel_size_um", type=float, default=None,
                     help="Pixel size override (µm)."),
        click.option("--workers", type=int, default=None, help="Images processed concurrently."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run_stage(stage_name: str, title: str, append: bool, **options: Any) -> None:
    from nucring.pipeline import AnalysisEngine, Stage

    config_path = options.pop("config_path")
    options["measure_channels"] = parse_channels(options.get("measure_channels"))
    config = load_config(config_path, **options)
    engine = AnalysisEngine(config)

    with make_progress() as progress:
        task = progress.add_task("Analysing...", total=None)

        def on_progress(current: int, total: int, filename: str) -> None:
            progress.update(
                task, total=total, completed=current, description=f"Processed {filename}",
            )

        result = engine.run(Stage(stage_name), append=append, progress_callback=on_progress)

    print_summary(title, result)
    if result.images_found == 0:
        console.print(f"[yellow]No *{config.file_suffix} files found under {config.input_dir}[/yellow]")


@click.command()
@analysis_options
@click.option("--reuse/--no-reuse", "reuse_archive", default=None,
              help="Load existing region archives instead of segmenting again.")
@click.option("--append", is_flag=True, help="Append to an existing Results.csv.")
@error_handler
def run(append: bool, **options: Any) -> None:
    """Segment nuclei, derive rings, measure, and write Results.csv."""
    _run_stage("all", "Analysis complete", append, **options)


@click.command()
@analysis_options
@error_handler
def segment(**options: Any) -> None:
    """Segment nuclei and write region archives only."""
    _run_stage("segment", "Segmentation complete", False, **options)


@click.command()
@analysis_options
@click.option("--append", is_flag=True, help="Append to an existing Results.csv.")
@error_handler
def measure(append: bool, **options: Any) -> None:
    """Measure channels using previously archived regions."""
    _run_stage("measure", "Measurement complete", append, **options)
