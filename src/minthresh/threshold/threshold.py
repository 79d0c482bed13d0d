"""Threshold dispatcher: choose a policy once, answer lookups in O(1).

Policies, in order of precedence:
  - percentage:    a fixed fraction of the observed minimizer count
  - lemma:         k-mer lemma when every window holds exactly one k-mer
  - probabilistic: precomputed threshold + correction tables
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from minthresh.threshold.cache import TableStore
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.threshold.precompute import precompute_correction, precompute_threshold

logger = logging.getLogger(__name__)


class ThresholdKind(Enum):
    PROBABILISTIC = "probabilistic"
    LEMMA = "lemma"
    PERCENTAGE = "percentage"


def kmer_lemma(pattern_size: int, kmer_size: int, errors: int) -> int:
    """Minimum number of error-free k-mers in a pattern with ``errors`` errors."""
    minuend = pattern_size + 1
    subtrahend = (errors + 1) * kmer_size
    return minuend - subtrahend if minuend > subtrahend else 0


@dataclass(frozen=True)
class Threshold:
    """Immutable threshold state; only the fields of ``kind`` are meaningful.

    Safe to share between threads: ``get`` only reads.
    """

    kind: ThresholdKind
    kmer_lemma: int = 0
    percentage: float = 0.0
    minimal_number_of_minimizers: int = 0
    maximal_number_of_minimizers: int = 0
    thresholds: tuple[int, ...] = ()
    corrections: tuple[int, ...] = ()

    @classmethod
    def from_parameters(
        cls, params: ThresholdParameters, store: TableStore | None = None
    ) -> Threshold:
        """Select the policy for ``params`` and precompute what it needs.

        Args:
            params: Threshold parameters.
            store: Optional table store; only consulted for the probabilistic
                policy and only if ``params.cache_thresholds`` is set.
        """
        if params.has_percentage:
            logger.info("Using percentage threshold (%g)", params.percentage)
            return cls(kind=ThresholdKind.PERCENTAGE, percentage=params.percentage)

        if params.kmers_per_window == 1:
            lemma = kmer_lemma(params.pattern_size, params.kmer_size, params.errors)
            logger.info("Using k-mer lemma threshold (%d)", lemma)
            return cls(kind=ThresholdKind.LEMMA, kmer_lemma=lemma)

        return cls.probabilistic(params, store)

    @classmethod
    def probabilistic(
        cls, params: ThresholdParameters, store: TableStore | None = None
    ) -> Threshold:
        """Build the probabilistic policy regardless of the other settings."""
        corrections = precompute_correction(params, store)
        thresholds = precompute_threshold(params, store)
        logger.info(
            "Using probabilistic threshold for %d-%d minimizers",
            params.minimal_number_of_minimizers,
            params.maximal_number_of_minimizers,
        )
        return cls(
            kind=ThresholdKind.PROBABILISTIC,
            minimal_number_of_minimizers=params.minimal_number_of_minimizers,
            maximal_number_of_minimizers=params.maximal_number_of_minimizers,
            thresholds=thresholds,
            corrections=corrections,
        )

    def _index(self, minimizer_count: int) -> int:
        clamped = min(
            max(minimizer_count, self.minimal_number_of_minimizers),
            self.maximal_number_of_minimizers,
        )
        return clamped - self.minimal_number_of_minimizers

    def get(self, minimizer_count: int) -> int:
        """Minimum number of shared minimizers for a bin to count as a match."""
        if self.kind is ThresholdKind.LEMMA:
            return self.kmer_lemma
        if self.kind is ThresholdKind.PERCENTAGE:
            return int(minimizer_count * self.percentage)
        index = self._index(minimizer_count)
        return self.thresholds[index] + self.corrections[index]

    def components(self, minimizer_count: int) -> tuple[int, int, int]:
        """(t(x), t_p(x), t_c(x)) for a probabilistic threshold.

        Raises:
            ValueError: If the policy is not probabilistic.
        """
        if self.kind is not ThresholdKind.PROBABILISTIC:
            raise ValueError(f"{self.kind.value} thresholds have no table components")
        index = self._index(minimizer_count)
        threshold = self.thresholds[index]
        correction = self.corrections[index]
        return threshold + correction, threshold, correction
