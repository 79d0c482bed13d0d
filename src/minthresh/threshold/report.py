"""Diagnostic reports of the probabilistic thresholds.

Given the minimizer-count histogram of a query file, lists for each
observed count ``x`` the total threshold ``t(x)`` and its two parts,
``t_p(x)`` (probabilistic) and ``t_c(x)`` (correction).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import numpy as np
import pandas as pd

from minthresh.sequence.encoding import encode_dna
from minthresh.sequence.minimizers import count_minimizers
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.threshold.threshold import Threshold

logger = logging.getLogger(__name__)

REPORT_COLUMNS = ["x", "#x", "t(x)", "t_p(x)", "t_c(x)"]

COLUMN_LEGEND = [
    "x: Number of minimizers",
    "#x: Number reads with x minimizers",
    "t(x): Total threshold = t_p(x) + t_c(x)",
    "t_p(x): Probabilistic threshold",
    "t_c(x): Correction term",
]


def minimizer_histogram(
    sequences: Iterable[str], params: ThresholdParameters
) -> np.ndarray:
    """Count how many sequences have each number of minimizers.

    Returns:
        int64 array; entry ``x`` is the number of sequences with ``x``
        minimizers. Trailing zeros are dropped.
    """
    histogram = np.zeros(params.maximal_number_of_minimizers + 1, dtype=np.int64)
    n_sequences = 0
    for sequence in sequences:
        count = count_minimizers(encode_dna(sequence), params.shape, params.window_size)
        if count >= histogram.size:
            histogram = np.pad(histogram, (0, count + 1 - histogram.size))
        histogram[count] += 1
        n_sequences += 1

    logger.info("Counted minimizers of %d sequences", n_sequences)
    nonzero = np.flatnonzero(histogram)
    return histogram[: nonzero[-1] + 1] if nonzero.size else histogram[:0]


def threshold_table(threshold: Threshold) -> pd.DataFrame:
    """All table rows of a probabilistic threshold."""
    rows = []
    for x in range(
        threshold.minimal_number_of_minimizers, threshold.maximal_number_of_minimizers + 1
    ):
        rows.append((x, *threshold.components(x)))
    return pd.DataFrame(rows, columns=["x", "t(x)", "t_p(x)", "t_c(x)"])


def threshold_report(threshold: Threshold, histogram) -> pd.DataFrame:
    """Rows for every observed count ``x >= minimal`` in ``histogram``.

    Counts above the maximal number of minimizers use the clamped table
    entry, exactly like ``Threshold.get``.
    """
    rows = []
    for x, frequency in enumerate(np.asarray(histogram)):
        if x < threshold.minimal_number_of_minimizers or not frequency:
            continue
        rows.append((x, int(frequency), *threshold.components(x)))
    return pd.DataFrame(rows, columns=REPORT_COLUMNS)


def write_threshold_info(
    report: pd.DataFrame,
    output_path: str | Path,
    metadata: dict,
) -> Path:
    """Write ``report`` as CSV preceded by ``#key: value`` comment lines."""
    out = Path(output_path)
    out.parent.mkdir(parents=True, exist_ok=True)

    with open(out, "w") as f:
        for key, value in metadata.items():
            f.write(f"#{key}: {value}\n")
        for line in COLUMN_LEGEND:
            f.write(f"##{line}\n")
        report.to_csv(f, index=False)

    logger.info("Wrote %d threshold rows to %s", len(report), out)
    return out
