"""CLI entry point for minthresh."""

import logging
import sys
from collections.abc import Callable
from typing import TypeVar

import click

from minthresh.utils.exceptions import MinthreshError
from minthresh.utils.logging import setup_logging

logger = logging.getLogger("minthresh")

F = TypeVar("F", bound=Callable[..., None])

# click parameter name -> ThresholdParameters.from_mapping key
_OPTION_KEYS = {
    "window": "window",
    "kmer": "kmer",
    "shape": "shape",
    "pattern": "pattern",
    "error": "error",
    "threshold": "threshold",
    "tau": "tau",
    "p_max": "p_max",
    "fpr": "fpr",
    "cache_dir": "cache_dir",
}


def threshold_options(func: F) -> F:
    """Options shared by every command that builds a threshold."""
    options = [
        click.option("--config", "config_path", default=None, help="YAML config with a 'threshold' section."),
        click.option("--window", type=click.IntRange(min=1), default=None, help="The window size.  [default: 20]"),
        click.option(
            "--kmer",
            type=click.IntRange(1, 32),
            default=None,
            help="The k-mer size. Mutually exclusive with --shape.  [default: 20]",
        ),
        click.option("--shape", default=None, help="The shape to use for k-mers. Mutually exclusive with --kmer."),
        click.option("--pattern", type=click.IntRange(min=1), default=None, help="The pattern size."),
        click.option("--error", type=click.IntRange(min=0), default=None, help="The number of errors.  [default: 0]"),
        click.option(
            "--threshold",
            type=click.FloatRange(0, 1),
            default=None,
            help="If set, this threshold is used instead of the probabilistic models.",
        ),
        click.option(
            "--tau",
            type=click.FloatRange(0, 1),
            default=None,
            help="Used in the dynamic thresholding. The higher tau, the lower the threshold.  [default: 0.9999]",
        ),
        click.option(
            "--p-max",
            "p_max",
            type=click.FloatRange(0, 1),
            default=None,
            help="Used in the dynamic thresholding. The higher p_max, the lower the threshold.  [default: 0.15]",
        ),
        click.option(
            "--fpr",
            type=click.FloatRange(0, 1),
            default=None,
            help="The false positive rate used for building the index.  [default: 0.05]",
        ),
        click.option(
            "--cache-thresholds",
            is_flag=True,
            help="Store computed tables in --cache-dir and reuse them on the next call. "
            "threshold_*.bin depends on pattern, window, kmer/shape, errors, and tau; "
            "correction_*.bin depends on pattern, window, kmer/shape, p_max, and fpr.",
        ),
        click.option("--cache-dir", default=None, help="Directory for cached tables."),
        click.option("--log-level", default="INFO", show_default=True, help="Logging level."),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _build_parameters(options: dict, default_pattern: int | None = None):
    """Merge the optional YAML config with command-line overrides.

    ``default_pattern`` is used only if neither the config nor the command
    line sets a pattern size.
    """
    from minthresh.threshold.parameters import ThresholdParameters
    from minthresh.utils.config import load_config, threshold_section

    values: dict = {}
    if options.get("config_path"):
        values.update(threshold_section(load_config(options["config_path"])))

    # An explicit --kmer or --shape replaces whichever the config chose
    if options.get("kmer") is not None or options.get("shape") is not None:
        values.pop("kmer", None)
        values.pop("shape", None)
    for option_name, key in _OPTION_KEYS.items():
        if options.get(option_name) is not None:
            values[key] = options[option_name]
    if options.get("cache_thresholds"):
        values["cache_thresholds"] = True
    if values.get("pattern") is None and default_pattern is not None:
        values["pattern"] = default_pattern

    params = ThresholdParameters.from_mapping(values)

    if (
        not params.has_percentage
        and params.kmers_per_window != 1
        and values.get("fpr") is None
    ):
        logger.warning(
            "The search needs the FPR that was used for building the index. "
            "Currently, the default value of %.4g is used. If the index was built "
            "with a different FPR, the search results are not reliable. "
            "To disable this warning, explicitly pass the FPR (--fpr 0.05).",
            params.fpr,
        )
    return params


@click.group()
def cli() -> None:
    """minthresh: minimizer thresholds for approximate sequence search."""


@cli.command("thresholds")
@threshold_options
def thresholds(**options) -> None:
    """Print the selected threshold policy and its precomputed table."""
    from minthresh.threshold.report import threshold_table
    from minthresh.threshold.threshold import Threshold, ThresholdKind

    setup_logging(options["log_level"])

    try:
        params = _build_parameters(options)
        threshold = Threshold.from_parameters(params)
    except MinthreshError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    click.echo(f"Policy: {threshold.kind.value}")
    if threshold.kind is ThresholdKind.LEMMA:
        click.echo(f"k-mer lemma: {threshold.kmer_lemma}")
    elif threshold.kind is ThresholdKind.PERCENTAGE:
        click.echo(f"Percentage: {threshold.percentage}")
    else:
        click.echo(
            f"Minimizers: {threshold.minimal_number_of_minimizers}"
            f"-{threshold.maximal_number_of_minimizers}"
        )
        click.echo(threshold_table(threshold).to_csv(index=False), nl=False)


@cli.command("lookup")
@click.argument("counts", nargs=-1, required=True, type=click.IntRange(min=0))
@threshold_options
def lookup(counts: tuple[int, ...], **options) -> None:
    """Print the threshold for each observed minimizer COUNT."""
    from minthresh.threshold.threshold import Threshold

    setup_logging(options["log_level"])

    try:
        threshold = Threshold.from_parameters(_build_parameters(options))
    except MinthreshError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    for count in counts:
        click.echo(f"{count}\t{threshold.get(count)}")


@cli.command("threshold-info")
@click.option("--query", "query_path", required=True, help="Provide a path to the query file.")
@click.option("--output", "output_path", required=True, help="Provide a path to the output.")
@threshold_options
def threshold_info(query_path: str, output_path: str, **options) -> None:
    """Report t(x), t_p(x) and t_c(x) for the minimizer counts of a query file.

    The pattern size defaults to the median of the query sequence lengths.
    """
    from minthresh.sequence.reader import median_pattern_size, read_sequences
    from minthresh.threshold.report import (
        minimizer_histogram,
        threshold_report,
        write_threshold_info,
    )
    from minthresh.threshold.threshold import Threshold

    setup_logging(options["log_level"])

    # The query file is streamed: once for the lengths, once for the histogram
    try:
        default_pattern = None
        if options.get("pattern") is None:
            default_pattern = median_pattern_size(
                [len(sequence) for sequence in read_sequences(query_path)]
            )
        params = _build_parameters(options, default_pattern)
        threshold = Threshold.probabilistic(params)
        histogram = minimizer_histogram(read_sequences(query_path), params)
    except MinthreshError as e:
        click.echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    report = threshold_report(threshold, histogram)
    metadata = {
        "query": query_path,
        "output": output_path,
        "kmer": params.kmer_size,
        "shape": str(params.shape),
        "window": params.window_size,
        "error": params.errors,
        "tau": params.tau,
        "p_max": params.p_max,
        "fpr": params.fpr,
        "pattern": params.pattern_size,
        "#minimal_number_of_minimizers": params.minimal_number_of_minimizers,
        "#maximal_number_of_minimizers": params.maximal_number_of_minimizers,
    }
    out = write_threshold_info(report, output_path, metadata)
    click.echo(f"Wrote {len(report)} rows to {out}")
