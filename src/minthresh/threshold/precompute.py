"""Precomputed threshold and correction tables for the probabilistic policy.

Both tables have one entry per feasible minimizer count
``x in [minimal, maximal]`` and are indexed by ``x - minimal``.
"""

import logging

import numpy as np
from scipy.stats import binom

from minthresh.threshold.cache import FileTableStore, TableStore, cached_table
from minthresh.threshold.error_model import (
    multiple_error_model,
    one_error_model,
    one_indirect_error_model,
)
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.utils.exceptions import ModelDomainError

logger = logging.getLogger(__name__)

THRESHOLD_KIND = "threshold"
CORRECTION_KIND = "correction"


def resolve_store(params: ThresholdParameters, store: TableStore | None = None) -> TableStore | None:
    """Pick the store to use for ``params``.

    Caching has to be requested via ``params.cache_thresholds``. An explicit
    ``store`` wins over ``params.cache_directory``.
    """
    if not params.cache_thresholds:
        return None
    if store is not None:
        return store
    if params.cache_directory is not None:
        return FileTableStore(params.cache_directory)
    return None


def _minimizer_counts(params: ThresholdParameters) -> np.ndarray:
    return np.arange(
        params.minimal_number_of_minimizers, params.maximal_number_of_minimizers + 1
    )


def compute_threshold_table(params: ThresholdParameters) -> tuple[int, ...]:
    """Probabilistic thresholds t_p(x), without caching.

    For ``x`` minimizers, ``i*`` is the smallest number of affected
    minimizers whose cumulative probability exceeds ``tau``; the threshold
    is ``x - i*``. The table is made non-decreasing in ``x``.

    Raises:
        ModelDomainError: If ``params.errors`` exceeds the number of k-mers
            in the pattern.
    """
    if params.errors > params.kmers_per_pattern:
        raise ModelDomainError(
            f"{params.errors} errors cannot be placed on a pattern with "
            f"{params.kmers_per_pattern} k-mers"
        )

    indirect = one_indirect_error_model(params.pattern_size, params.window_size, params.shape)

    thresholds = []
    for number_of_minimizers in _minimizer_counts(params):
        number_of_minimizers = int(number_of_minimizers)
        p_mean = number_of_minimizers / params.kmers_per_pattern
        proba_x = one_error_model(params.kmer_size, p_mean, indirect)
        proba_error = multiple_error_model(
            number_of_minimizers,
            params.errors,
            proba_x,
            kmers_per_pattern=params.kmers_per_pattern,
        )

        exceeding = np.flatnonzero(np.cumsum(proba_error) > params.tau)
        if exceeding.size:
            thresholds.append(number_of_minimizers - int(exceeding[0]))
        else:
            thresholds.append(0)

    table = np.maximum.accumulate(np.asarray(thresholds, dtype=np.int64))
    return tuple(int(v) for v in table)


def compute_correction_table(params: ThresholdParameters) -> tuple[int, ...]:
    """Correction terms t_c(x), without caching.

    The number of minimizers hitting a bin by chance is modelled as
    ``Binomial(x, fpr)``. The correction is the smallest ``c`` such that more
    than ``c`` false hits occur with probability at most ``p_max``. The table
    is made non-decreasing in ``x``.

    All rows are bisected together, so memory stays linear in the table
    length even for long patterns.
    """
    counts = _minimizer_counts(params)
    low = np.zeros_like(counts)
    # c = x always qualifies: more than x hits among x minimizers is impossible
    high = counts.copy()

    while np.any(low < high):
        active = low < high
        middle = (low + high) // 2
        within_tolerance = binom.sf(middle, counts, params.fpr) <= params.p_max
        high = np.where(active & within_tolerance, middle, high)
        low = np.where(active & ~within_tolerance, middle + 1, low)

    table = np.maximum.accumulate(low.astype(np.int64))
    return tuple(int(v) for v in table)


def precompute_threshold(
    params: ThresholdParameters, store: TableStore | None = None
) -> tuple[int, ...]:
    """Threshold table for ``params``, loaded from or saved to the cache if enabled."""
    logger.debug(
        "Threshold table for pattern=%d window=%d shape=%s errors=%d tau=%g",
        params.pattern_size,
        params.window_size,
        params.shape,
        params.errors,
        params.tau,
    )
    return cached_table(
        THRESHOLD_KIND,
        params.threshold_key(),
        params.table_length,
        lambda: compute_threshold_table(params),
        resolve_store(params, store),
    )


def precompute_correction(
    params: ThresholdParameters, store: TableStore | None = None
) -> tuple[int, ...]:
    """Correction table for ``params``, loaded from or saved to the cache if enabled."""
    logger.debug(
        "Correction table for pattern=%d window=%d shape=%s p_max=%g fpr=%g",
        params.pattern_size,
        params.window_size,
        params.shape,
        params.p_max,
        params.fpr,
    )
    return cached_table(
        CORRECTION_KIND,
        params.correction_key(),
        params.table_length,
        lambda: compute_correction_table(params),
        resolve_store(params, store),
    )
