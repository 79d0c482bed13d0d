"""Threshold parameters: the configuration record shared by every policy.

A ``ThresholdParameters`` instance is built once per search invocation and
never mutated. All quantities the policies need (k-mers per window, the
feasible minimizer-count range, table length) are derived from it.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from minthresh.sequence.shape import Shape
from minthresh.utils.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SIZE = 20
DEFAULT_KMER_SIZE = 20
DEFAULT_ERRORS = 0
DEFAULT_TAU = 0.9999
DEFAULT_P_MAX = 0.15
DEFAULT_FPR = 0.05


def _check_fraction(name: str, value: float) -> None:
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        raise ConfigError(f"{name} must be in [0, 1], got {value}")


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _as_int(key: str, value) -> int:
    """Whole number from a YAML or CLI value; fractional values are rejected."""
    if isinstance(value, bool):
        raise ConfigError(f"{key} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigError(f"{key} must be an integer, got {value!r}")


def _as_bool(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
    raise ConfigError(f"{key} must be true or false, got {value!r}")


@dataclass(frozen=True)
class ThresholdParameters:
    """Immutable configuration for building a ``Threshold``.

    Attributes:
        window_size: Minimizer window size (w).
        shape: k-mer shape; ``shape.size`` is the k-mer size.
        pattern_size: Query length the tables are computed for.
        errors: Number of tolerated errors (lemma and probabilistic policies).
        percentage: Fraction in [0, 1]; NaN means unset. If set, it overrides
            the other two policies.
        p_max: Tolerated probability of exceeding the correction term.
        fpr: False-positive rate of the membership index.
        tau: Confidence parameter. The higher tau, the lower the threshold.
        cache_thresholds: Whether precomputed tables are persisted.
        cache_directory: Where persisted tables live.
    """

    window_size: int
    shape: Shape
    pattern_size: int
    errors: int = DEFAULT_ERRORS
    percentage: float = math.nan
    p_max: float = DEFAULT_P_MAX
    fpr: float = DEFAULT_FPR
    tau: float = DEFAULT_TAU
    cache_thresholds: bool = False
    cache_directory: Path | None = field(default=None)

    def __post_init__(self) -> None:
        kmer_size = self.shape.size

        if not isinstance(self.window_size, int) or self.window_size < 1:
            raise ConfigError(
                f"window_size must be a positive integer, got {self.window_size}"
            )
        if self.window_size < kmer_size:
            raise ConfigError(
                f"window_size ({self.window_size}) must be at least the "
                f"k-mer size ({kmer_size})"
            )
        if not isinstance(self.pattern_size, int) or self.pattern_size < self.window_size:
            raise ConfigError(
                f"pattern_size ({self.pattern_size}) must be an integer of at "
                f"least window_size ({self.window_size})"
            )
        if not isinstance(self.errors, int) or self.errors < 0:
            raise ConfigError(f"errors must be a non-negative integer, got {self.errors}")

        if not math.isnan(self.percentage):
            _check_fraction("percentage", self.percentage)
        _check_fraction("p_max", self.p_max)
        _check_fraction("fpr", self.fpr)
        _check_fraction("tau", self.tau)

        if self.cache_directory is not None and not isinstance(self.cache_directory, Path):
            object.__setattr__(self, "cache_directory", Path(self.cache_directory))

    @property
    def kmer_size(self) -> int:
        return self.shape.size

    @property
    def kmers_per_window(self) -> int:
        return self.window_size - self.kmer_size + 1

    @property
    def kmers_per_pattern(self) -> int:
        return self.pattern_size - self.kmer_size + 1

    @property
    def minimal_number_of_minimizers(self) -> int:
        return self.kmers_per_pattern // self.kmers_per_window

    @property
    def maximal_number_of_minimizers(self) -> int:
        return self.pattern_size - self.window_size + 1

    @property
    def table_length(self) -> int:
        return self.maximal_number_of_minimizers - self.minimal_number_of_minimizers + 1

    @property
    def has_percentage(self) -> bool:
        return not math.isnan(self.percentage)

    def threshold_key(self) -> dict:
        """Fields the probabilistic threshold table depends on."""
        return {
            "pattern": self.pattern_size,
            "window": self.window_size,
            "shape": str(self.shape),
            "errors": self.errors,
            "tau": self.tau,
        }

    def correction_key(self) -> dict:
        """Fields the correction table depends on."""
        return {
            "pattern": self.pattern_size,
            "window": self.window_size,
            "shape": str(self.shape),
            "p_max": self.p_max,
            "fpr": self.fpr,
        }

    @classmethod
    def from_mapping(cls, values: Mapping) -> ThresholdParameters:
        """Build parameters from a flat mapping (YAML section or CLI options).

        Recognised keys: window, kmer, shape, pattern, error, threshold, tau,
        p_max, fpr, cache_thresholds, cache_dir. Keys mapped to None are
        treated as absent.

        Raises:
            ConfigError: If both ``kmer`` and ``shape`` are set, ``pattern``
                is missing, a size is not a whole number, ``cache_thresholds``
                is not a boolean, or any value is out of range.
        """
        present = {k: v for k, v in values.items() if v is not None}

        if "shape" in present and "kmer" in present:
            raise ConfigError("You cannot set both shape and k-mer arguments.")
        if "pattern" not in present:
            raise ConfigError("Pattern size is required")

        try:
            if "shape" in present:
                shape = Shape.from_string(str(present["shape"]))
            else:
                shape = Shape.ungapped(_as_int("kmer", present.get("kmer", DEFAULT_KMER_SIZE)))
            params = cls(
                window_size=_as_int("window", present.get("window", DEFAULT_WINDOW_SIZE)),
                shape=shape,
                pattern_size=_as_int("pattern", present["pattern"]),
                errors=_as_int("error", present.get("error", DEFAULT_ERRORS)),
                percentage=float(present.get("threshold", math.nan)),
                p_max=float(present.get("p_max", DEFAULT_P_MAX)),
                fpr=float(present.get("fpr", DEFAULT_FPR)),
                tau=float(present.get("tau", DEFAULT_TAU)),
                cache_thresholds=_as_bool(
                    "cache_thresholds", present.get("cache_thresholds", False)
                ),
                cache_directory=present.get("cache_dir"),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid threshold parameter: {e}") from e

        logger.debug("Threshold parameters: %s", params)
        return params
