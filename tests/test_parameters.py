"""Tests for k-mer shapes and threshold parameters."""

import math
from pathlib import Path

import pytest

from minthresh.sequence.shape import Shape
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.utils.exceptions import ConfigError


class TestShape:
    def test_ungapped(self):
        """Ungapped shape of size k has weight k."""
        shape = Shape.ungapped(20)
        assert shape.size == 20
        assert shape.count == 20
        assert str(shape) == "1" * 20

    def test_gapped_from_string(self):
        """Gapped shape reports span, weight, and informative offsets."""
        shape = Shape.from_string("11011")
        assert shape.size == 5
        assert shape.count == 4
        assert shape.offsets == (0, 1, 3, 4)
        assert str(shape) == "11011"

    @pytest.mark.parametrize("text", ["", "1021", "0110", "1100"])
    def test_invalid_strings_raise(self, text):
        """Non-binary strings and shapes with outer gaps are rejected."""
        with pytest.raises(ConfigError):
            Shape.from_string(text)

    def test_span_above_32_raises(self):
        """Shapes longer than 32 positions do not fit a 64-bit hash."""
        with pytest.raises(ConfigError, match="at most 32"):
            Shape.ungapped(33)

    def test_zero_kmer_size_raises(self):
        with pytest.raises(ConfigError):
            Shape.ungapped(0)


class TestDerivedValues:
    def test_probabilistic_setup(self, probabilistic_params):
        """Pattern 100, window 24, k 20."""
        p = probabilistic_params
        assert p.kmer_size == 20
        assert p.kmers_per_window == 5
        assert p.kmers_per_pattern == 81
        assert p.minimal_number_of_minimizers == 16
        assert p.maximal_number_of_minimizers == 77
        assert p.table_length == 62

    def test_window_equals_kmer(self):
        """Window == k gives one k-mer per window."""
        p = ThresholdParameters(window_size=20, shape=Shape.ungapped(20), pattern_size=100)
        assert p.kmers_per_window == 1
        assert p.minimal_number_of_minimizers == p.maximal_number_of_minimizers == 81

    def test_percentage_unset_by_default(self, probabilistic_params):
        assert math.isnan(probabilistic_params.percentage)
        assert not probabilistic_params.has_percentage

    def test_cache_keys_split_dependencies(self, probabilistic_params):
        """Threshold key carries errors and tau; correction key carries p_max and fpr."""
        assert set(probabilistic_params.threshold_key()) == {
            "pattern", "window", "shape", "errors", "tau",
        }
        assert set(probabilistic_params.correction_key()) == {
            "pattern", "window", "shape", "p_max", "fpr",
        }


class TestValidation:
    def test_window_smaller_than_kmer_raises(self):
        with pytest.raises(ConfigError, match="at least the k-mer size"):
            ThresholdParameters(window_size=19, shape=Shape.ungapped(20), pattern_size=100)

    def test_pattern_smaller_than_window_raises(self):
        with pytest.raises(ConfigError, match="pattern_size"):
            ThresholdParameters(window_size=24, shape=Shape.ungapped(20), pattern_size=23)

    def test_negative_errors_raise(self):
        with pytest.raises(ConfigError, match="errors"):
            ThresholdParameters(
                window_size=24, shape=Shape.ungapped(20), pattern_size=100, errors=-1
            )

    @pytest.mark.parametrize("field", ["tau", "p_max", "fpr", "percentage"])
    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_fractions_outside_unit_interval_raise(self, field, value):
        with pytest.raises(ConfigError, match=field):
            ThresholdParameters(
                window_size=24, shape=Shape.ungapped(20), pattern_size=100, **{field: value}
            )

    def test_nan_tau_raises(self):
        with pytest.raises(ConfigError, match="tau"):
            ThresholdParameters(
                window_size=24, shape=Shape.ungapped(20), pattern_size=100, tau=math.nan
            )


class TestFromMapping:
    def test_defaults(self):
        """Only the pattern size is required."""
        p = ThresholdParameters.from_mapping({"pattern": 100})
        assert p.window_size == 20
        assert p.kmer_size == 20
        assert p.errors == 0
        assert p.tau == 0.9999
        assert p.p_max == 0.15
        assert p.fpr == 0.05
        assert not p.has_percentage
        assert not p.cache_thresholds

    def test_all_keys(self, tmp_path):
        p = ThresholdParameters.from_mapping(
            {
                "window": 32,
                "shape": "11011",
                "pattern": 150,
                "error": 3,
                "threshold": 0.5,
                "tau": 0.9,
                "p_max": 0.2,
                "fpr": 0.01,
                "cache_thresholds": True,
                "cache_dir": str(tmp_path),
            }
        )
        assert p.window_size == 32
        assert str(p.shape) == "11011"
        assert p.pattern_size == 150
        assert p.errors == 3
        assert p.percentage == 0.5
        assert p.cache_thresholds
        assert p.cache_directory == Path(tmp_path)

    def test_none_values_are_ignored(self):
        p = ThresholdParameters.from_mapping({"pattern": 100, "tau": None, "kmer": None})
        assert p.tau == 0.9999
        assert p.kmer_size == 20

    def test_shape_and_kmer_are_exclusive(self):
        with pytest.raises(ConfigError, match="both shape and k-mer"):
            ThresholdParameters.from_mapping({"pattern": 100, "kmer": 20, "shape": "111"})

    def test_missing_pattern_raises(self):
        with pytest.raises(ConfigError, match="Pattern size is required"):
            ThresholdParameters.from_mapping({"window": 24})

    def test_non_numeric_value_raises(self):
        with pytest.raises(ConfigError, match="Invalid threshold parameter"):
            ThresholdParameters.from_mapping({"pattern": 100, "tau": "high"})

    def test_fractional_size_raises(self):
        with pytest.raises(ConfigError, match="pattern must be an integer"):
            ThresholdParameters.from_mapping({"pattern": 100.7})

    def test_whole_float_and_numeric_string_sizes(self):
        p = ThresholdParameters.from_mapping({"pattern": 100.0, "window": "24", "error": 2})
        assert p.pattern_size == 100
        assert p.window_size == 24

    @pytest.mark.parametrize("key", ["window", "kmer", "error"])
    def test_boolean_size_raises(self, key):
        with pytest.raises(ConfigError, match=f"{key} must be an integer"):
            ThresholdParameters.from_mapping({"pattern": 100, key: True})

    @pytest.mark.parametrize(
        "value, expected",
        [(True, True), (False, False), ("false", False), ("No", False), ("true", True)],
    )
    def test_cache_flag_values(self, value, expected):
        p = ThresholdParameters.from_mapping({"pattern": 100, "cache_thresholds": value})
        assert p.cache_thresholds is expected

    @pytest.mark.parametrize("value", ["maybe", 1, 0.0])
    def test_invalid_cache_flag_raises(self, value):
        with pytest.raises(ConfigError, match="cache_thresholds must be true or false"):
            ThresholdParameters.from_mapping({"pattern": 100, "cache_thresholds": value})
