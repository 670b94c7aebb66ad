from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
import requests

from geo_counts.config import NORMALIZATION_METHODS, PipelineConfig
from geo_counts.counts import SampleCountMismatchError, read_table, write_table
from geo_counts.geo import DownloadError
from geo_counts.normalize import NormalizationError, normalize_counts
from geo_counts.pipeline import run_geo_pipeline
from geo_counts.summary import sample_summary
from geo_counts.symbols import SymbolLookupError

FATAL_ERRORS = (
    SampleCountMismatchError,
    DownloadError,
    FileNotFoundError,
    SymbolLookupError,
    NormalizationError,
    ValueError,
    requests.RequestException,
)


@click.group()
@click.option("--verbose", is_flag=True, help="Enable verbose logging.")
def cli(verbose: bool) -> None:
    """Prepare GEO RNA-seq counts: annotate, clean, aggregate and normalize."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@cli.command("run")
@click.option("--accession", required=True, help="GEO series accession (e.g. GSE12345).")
@click.option(
    "--expected-samples",
    type=click.IntRange(1, None),
    default=None,
    help="Abort unless the count table has exactly this many samples.",
)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Download directory [default: data, or $GEO_COUNTS_DATA_DIR].",
)
@click.option(
    "--output-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Artifact directory [default: output, or $GEO_COUNTS_OUTPUT_DIR].",
)
@click.option(
    "--count-file",
    default=None,
    help="Supplementary file name of the count table (picked automatically if omitted).",
)
@click.option(
    "--method",
    type=click.Choice(NORMALIZATION_METHODS),
    default="deseq2",
    show_default=True,
    help="Normalization method.",
)
@click.option(
    "--offset",
    type=click.FloatRange(0, None, min_open=True),
    default=1.0,
    show_default=True,
    help="Additive offset applied before log2.",
)
def run_command(
    accession: str,
    expected_samples: Optional[int],
    data_dir: Optional[Path],
    output_dir: Optional[Path],
    count_file: Optional[str],
    method: str,
    offset: float,
) -> None:
    """Download a GEO series and write aggregated and normalized counts."""
    try:
        config = PipelineConfig.from_env(
            accession,
            expected_samples=expected_samples,
            data_dir=data_dir,
            output_dir=output_dir,
            count_file=count_file,
            normalization_method=method,
            log_offset=offset,
        )
        paths = run_geo_pipeline(config)
    except FATAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo("=" * 60)
    click.echo(f"Artifacts for {config.accession}:")
    for name, path in paths.items():
        click.echo(f"  {name}: {path}")
    click.echo("=" * 60)


@cli.command("normalize")
@click.argument("counts", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file [default: <counts stem>_normalized.tsv next to the input].",
)
@click.option(
    "--method",
    type=click.Choice(NORMALIZATION_METHODS),
    default="deseq2",
    show_default=True,
)
@click.option(
    "--offset",
    type=click.FloatRange(0, None, min_open=True),
    default=1.0,
    show_default=True,
)
def normalize_command(counts: Path, output: Optional[Path], method: str, offset: float) -> None:
    """Normalize an existing aggregated count table."""
    try:
        table = read_table(counts)
        result = normalize_counts(table, method=method, offset=offset)
    except FATAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc

    output = output or counts.with_name(f"{counts.name.split('.')[0]}_normalized.tsv")
    write_table(result.normalized, output)
    click.echo(f"Normalized {result.normalized.shape[0]} genes x "
               f"{result.normalized.shape[1]} samples -> {output}")


@cli.command("summarize")
@click.argument("counts", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--normalized",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Matching normalized table, for per-sample medians and means.",
)
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Write the summary here instead of printing it.",
)
def summarize_command(counts: Path, normalized: Optional[Path], output: Optional[Path]) -> None:
    """Print per-sample statistics for a count table."""
    try:
        table = read_table(counts)
        norm_table = read_table(normalized) if normalized else None
        summary = sample_summary(table, norm_table)
    except FATAL_ERRORS as exc:
        raise click.ClickException(str(exc)) from exc

    click.echo(f"{table.shape[0]} genes x {table.shape[1]} samples")
    if output:
        write_table(summary, output)
        click.echo(f"Summary saved to {output}")
    else:
        click.echo(summary.to_string())


def main() -> None:  # pragma: no cover
    cli()


if __name__ == "__main__":  # pragma: no cover
    main()
