"""Tests for the one-error, multiple-error and indirect-error models."""

import numpy as np
import pytest

from minthresh.sequence.shape import Shape
from minthresh.threshold.error_model import (
    multiple_error_model,
    one_error_model,
    one_indirect_error_model,
)
from minthresh.utils.exceptions import ModelDomainError


class TestOneErrorModel:
    def test_binomial_without_indirect_effect(self):
        """4 covering k-mers, each a minimizer with probability 1/2."""
        proba = one_error_model(4, 0.5, [])
        np.testing.assert_allclose(proba, np.array([1, 4, 6, 4, 1]) / 16)

    def test_point_mass_indirect_keeps_binomial(self):
        proba = one_error_model(4, 0.25, [1.0])
        np.testing.assert_allclose(proba, one_error_model(4, 0.25, []))

    def test_indirect_effect_shifts_mass(self):
        """Half of the time one more minimizer is lost."""
        proba = one_error_model(3, 0.0, [0.5, 0.5])
        np.testing.assert_allclose(proba, [0.5, 0.5, 0.0, 0.0, 0.0])

    def test_is_distribution(self):
        proba = one_error_model(20, 0.2, [0.7, 0.2, 0.1])
        assert proba.size == 23
        assert proba.sum() == pytest.approx(1.0)
        assert (proba >= 0).all()

    def test_zero_kmer_size_raises(self):
        with pytest.raises(ModelDomainError, match="kmer_size"):
            one_error_model(0, 0.5, [])

    @pytest.mark.parametrize("p_mean", [-0.5, 1.5])
    def test_p_mean_outside_unit_interval_raises(self, p_mean):
        with pytest.raises(ModelDomainError, match="p_mean"):
            one_error_model(20, p_mean, [])

    def test_invalid_indirect_probabilities_raise(self):
        with pytest.raises(ModelDomainError, match="indirectly"):
            one_error_model(20, 0.5, [1.2, -0.2])


class TestMultipleErrorModel:
    def test_zero_errors_is_point_mass(self):
        proba = multiple_error_model(5, 0, [0.2, 0.8])
        np.testing.assert_array_equal(proba, [1, 0, 0, 0, 0, 0])

    def test_one_error_reduces_to_single_error_vector(self):
        single = one_error_model(4, 0.5, [0.9, 0.1])
        proba = multiple_error_model(10, 1, single)
        assert proba.size == 11
        np.testing.assert_allclose(proba[: single.size], single)
        assert not proba[single.size :].any()

    def test_two_errors_convolve(self):
        proba = multiple_error_model(4, 2, [0.5, 0.5])
        np.testing.assert_allclose(proba, [0.25, 0.5, 0.25, 0.0, 0.0])

    def test_tail_is_folded_into_last_bucket(self):
        """Three errors each removing one minimizer from a pattern with two."""
        proba = multiple_error_model(2, 3, [0.0, 1.0], kmers_per_pattern=5)
        np.testing.assert_allclose(proba, [0.0, 0.0, 1.0])

    def test_survival_decreases_with_errors(self):
        """P(at most i affected) never grows when errors are added."""
        single = one_error_model(20, 0.25, [0.8, 0.15, 0.05])
        previous = np.cumsum(multiple_error_model(40, 1, single))
        for errors in range(2, 6):
            current = np.cumsum(multiple_error_model(40, errors, single))
            assert (current <= previous + 1e-12).all()
            previous = current

    def test_sums_to_one(self):
        single = one_error_model(32, 0.1, [0.6, 0.3, 0.1])
        assert multiple_error_model(60, 8, single).sum() == pytest.approx(1.0)

    def test_negative_errors_raise(self):
        with pytest.raises(ModelDomainError, match="errors"):
            multiple_error_model(10, -1, [1.0])

    def test_invalid_probabilities_raise(self):
        with pytest.raises(ModelDomainError):
            multiple_error_model(10, 2, [np.nan, 1.0])

    def test_more_errors_than_minimizers_raise(self):
        with pytest.raises(ModelDomainError, match="3 errors exceed the 2 minimizers"):
            multiple_error_model(2, 3, [0.0, 1.0])

    def test_more_errors_than_kmers_raise(self):
        with pytest.raises(ModelDomainError, match="6 errors cannot be placed"):
            multiple_error_model(10, 6, [0.5, 0.5], kmers_per_pattern=5)

    def test_errors_up_to_kmer_count_are_accepted(self):
        """The k-mer count, not the minimizer count, bounds the errors when given."""
        proba = multiple_error_model(2, 5, [0.5, 0.5], kmers_per_pattern=5)
        assert proba.size == 3
        assert proba.sum() == pytest.approx(1.0)


class TestOneIndirectErrorModel:
    def test_is_distribution(self):
        proba = one_indirect_error_model(60, 14, Shape.ungapped(10), iterations=300)
        assert proba.sum() == pytest.approx(1.0)
        assert proba[-1] > 0

    def test_deterministic_for_seed(self):
        shape = Shape.ungapped(10)
        a = one_indirect_error_model(60, 14, shape, iterations=300, seed=5)
        b = one_indirect_error_model(60, 14, shape, iterations=300, seed=5)
        np.testing.assert_array_equal(a, b)

    def test_no_indirect_effect_without_minimizer_reduction(self):
        """With window == k every k-mer is kept, so nothing is lost indirectly."""
        proba = one_indirect_error_model(50, 10, Shape.ungapped(10), iterations=200)
        np.testing.assert_array_equal(proba, [1.0])

    def test_inconsistent_sizes_raise(self):
        with pytest.raises(ModelDomainError):
            one_indirect_error_model(20, 24, Shape.ungapped(20))

    def test_zero_iterations_raise(self):
        with pytest.raises(ModelDomainError, match="iterations"):
            one_indirect_error_model(100, 24, Shape.ungapped(20), iterations=0)

    def test_long_patterns_use_smaller_batches(self, monkeypatch):
        from minthresh.threshold import error_model

        batch_rows = []
        original_random_dna = error_model.random_dna

        def recording_random_dna(rng, n_sequences, length):
            batch_rows.append(n_sequences)
            return original_random_dna(rng, n_sequences, length)

        monkeypatch.setattr(error_model, "SIMULATION_BATCH_BASES", 600)
        monkeypatch.setattr(error_model, "random_dna", recording_random_dna)

        proba = one_indirect_error_model(60, 14, Shape.ungapped(10), iterations=25)

        assert batch_rows == [10, 10, 5]
        assert proba.sum() == pytest.approx(1.0)
