"""Probability models for how sequencing errors destroy minimizers.

All vectors returned here are distributions over the number of affected
minimizers: entry ``i`` is the probability that exactly ``i`` minimizers
are lost.

The one-error model combines two effects of a single substitution:
  1. Direct: every k-mer whose span covers the error changes its hash. Each
     of these ``kmer_size`` k-mers is a minimizer with probability
     ``p_mean``, giving a binomial.
  2. Indirect: a changed hash can also shift which k-mer wins a window, so
     minimizers that do not cover the error can disappear. This is estimated
     by simulation on random sequences.

The multiple-error model treats errors as independent and convolves the
one-error distribution with itself.
"""

import logging

import numpy as np
from scipy.stats import binom

from minthresh.sequence.encoding import random_dna
from minthresh.sequence.minimizers import minimizer_mask
from minthresh.sequence.shape import Shape
from minthresh.utils.exceptions import ModelDomainError

logger = logging.getLogger(__name__)

SIMULATION_ITERATIONS = 10_000
SIMULATION_SEED = 42
SIMULATION_BATCH_SIZE = 1_000
# Upper bound on simulated bases held per batch
SIMULATION_BATCH_BASES = 2_000_000

# Float noise from convolutions may nudge values just past [0, 1]
_PROBABILITY_TOLERANCE = 1e-9


def _check_probability(name: str, value: float) -> None:
    if not -_PROBABILITY_TOLERANCE <= value <= 1.0 + _PROBABILITY_TOLERANCE:
        raise ModelDomainError(f"{name} must be a probability in [0, 1], got {value}")


def _as_probabilities(name: str, values) -> np.ndarray:
    probabilities = np.asarray(values, dtype=np.float64).ravel()
    if probabilities.size and (
        np.isnan(probabilities).any()
        or probabilities.min() < -_PROBABILITY_TOLERANCE
        or probabilities.max() > 1.0 + _PROBABILITY_TOLERANCE
    ):
        raise ModelDomainError(f"{name} must only hold probabilities in [0, 1]")
    return np.clip(probabilities, 0.0, 1.0)


def _fold(distribution: np.ndarray, number_of_minimizers: int) -> np.ndarray:
    """Resize to ``number_of_minimizers + 1`` entries, merging the tail into the last."""
    size = number_of_minimizers + 1
    if distribution.size <= size:
        return np.pad(distribution, (0, size - distribution.size))
    folded = distribution[:size].copy()
    folded[-1] += distribution[size:].sum()
    return folded


def _batch_size(pattern_size: int) -> int:
    """Patterns simulated at once; fewer for long patterns to bound memory."""
    return max(1, min(SIMULATION_BATCH_SIZE, SIMULATION_BATCH_BASES // pattern_size))


def one_error_model(
    kmer_size: int,
    p_mean: float,
    affected_by_one_error_indirectly_prob,
) -> np.ndarray:
    """Distribution of minimizers affected by one randomly placed error.

    Args:
        kmer_size: Span of the k-mer shape.
        p_mean: Probability that a k-mer is a minimizer.
        affected_by_one_error_indirectly_prob: Distribution of minimizers
            lost without covering the error (see ``one_indirect_error_model``).
            An empty sequence means no indirect effect.

    Returns:
        Float array of length ``kmer_size + len(indirect)`` (or
        ``kmer_size + 1`` without indirect effect).

    Raises:
        ModelDomainError: If ``kmer_size`` is 0 or a probability is outside [0, 1].
    """
    if kmer_size < 1:
        raise ModelDomainError(f"kmer_size must be positive, got {kmer_size}")
    _check_probability("p_mean", p_mean)
    indirect = _as_probabilities(
        "affected_by_one_error_indirectly_prob", affected_by_one_error_indirectly_prob
    )

    direct = binom.pmf(np.arange(kmer_size + 1), kmer_size, min(max(p_mean, 0.0), 1.0))
    if indirect.size == 0:
        return direct
    return np.convolve(direct, indirect)


def multiple_error_model(
    number_of_minimizers: int,
    errors: int,
    affected_by_one_error_prob,
    kmers_per_pattern: int | None = None,
) -> np.ndarray:
    """Distribution of minimizers affected by ``errors`` independent errors.

    The result has ``number_of_minimizers + 1`` entries; mass for losing
    more minimizers than exist is folded into the last entry. With
    ``errors == 0`` all mass is at 0, with ``errors == 1`` the (resized)
    one-error distribution is returned unchanged.

    Args:
        number_of_minimizers: Minimizers in the pattern; sets the output length.
        errors: Number of independent errors.
        affected_by_one_error_prob: Output of ``one_error_model``.
        kmers_per_pattern: Number of k-mers in the pattern. Every error needs
            a k-mer to land on, so ``errors`` may not exceed it. Without it,
            ``errors`` may not exceed ``number_of_minimizers``.

    Raises:
        ModelDomainError: On negative arguments, more errors than the pattern
            can hold, or probabilities outside [0, 1].
    """
    if number_of_minimizers < 0:
        raise ModelDomainError(
            f"number_of_minimizers must be non-negative, got {number_of_minimizers}"
        )
    if errors < 0:
        raise ModelDomainError(f"errors must be non-negative, got {errors}")
    if kmers_per_pattern is None:
        if errors > number_of_minimizers:
            raise ModelDomainError(
                f"{errors} errors exceed the {number_of_minimizers} minimizers of the pattern"
            )
    elif errors > kmers_per_pattern:
        raise ModelDomainError(
            f"{errors} errors cannot be placed on a pattern with {kmers_per_pattern} k-mers"
        )

    one_error = _fold(
        _as_probabilities("affected_by_one_error_prob", affected_by_one_error_prob),
        number_of_minimizers,
    )

    result = np.zeros(number_of_minimizers + 1)
    result[0] = 1.0
    for _ in range(errors):
        result = _fold(np.convolve(result, one_error), number_of_minimizers)
    return result


def one_indirect_error_model(
    pattern_size: int,
    window_size: int,
    shape: Shape,
    iterations: int = SIMULATION_ITERATIONS,
    seed: int = SIMULATION_SEED,
) -> np.ndarray:
    """Estimate how many minimizers one error removes without covering it.

    Random patterns of ``pattern_size`` bases receive one substitution at a
    uniformly random position. A minimizer counts as indirectly affected if
    it disappears although its k-mer span does not contain the error.

    Returns:
        Probability vector indexed by the number of indirectly affected
        minimizers, with trailing zeros removed.

    Raises:
        ModelDomainError: If the sizes are inconsistent or iterations < 1.
    """
    if iterations < 1:
        raise ModelDomainError(f"iterations must be positive, got {iterations}")
    if not shape.size <= window_size <= pattern_size:
        raise ModelDomainError(
            f"Need kmer size ({shape.size}) <= window ({window_size}) "
            f"<= pattern ({pattern_size})"
        )

    rng = np.random.default_rng(seed)
    n_kmers = pattern_size - shape.size + 1
    kmer_starts = np.arange(n_kmers)
    counts = np.zeros(n_kmers + 1, dtype=np.int64)

    remaining = iterations
    while remaining > 0:
        batch = min(_batch_size(pattern_size), remaining)
        rows = np.arange(batch)

        original = random_dna(rng, batch, pattern_size)
        error_positions = rng.integers(0, pattern_size, size=batch)
        shifts = rng.integers(1, 4, size=batch, dtype=np.uint8)
        mutated = original.copy()
        mutated[rows, error_positions] = (original[rows, error_positions] + shifts) % 4

        before = minimizer_mask(original, shape, window_size)
        after = minimizer_mask(mutated, shape, window_size)
        relative = error_positions[:, None] - kmer_starts
        covers_error = (relative >= 0) & (relative < shape.size)

        lost = before & ~after & ~covers_error
        counts += np.bincount(lost.sum(axis=1), minlength=counts.size)
        remaining -= batch

    probabilities = counts / iterations
    nonzero = np.flatnonzero(probabilities)
    probabilities = probabilities[: nonzero[-1] + 1]
    logger.debug(
        "Indirect error model (pattern=%d, window=%d, shape=%s): %s",
        pattern_size,
        window_size,
        shape,
        np.round(probabilities, 4).tolist(),
    )
    return probabilities
