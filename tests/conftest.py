"""Shared test fixtures for minthresh."""

import numpy as np
import pytest

from minthresh.sequence.shape import Shape
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.threshold.threshold import Threshold


def make_params(**overrides) -> ThresholdParameters:
    """Probabilistic setup: pattern 100, window 24, 20-mers, 2 errors."""
    values = {
        "window_size": 24,
        "shape": Shape.ungapped(20),
        "pattern_size": 100,
        "errors": 2,
    }
    values.update(overrides)
    return ThresholdParameters(**values)


def random_sequences(n: int, length: int, seed: int = 42) -> list[str]:
    """n uniformly random DNA strings of the given length."""
    rng = np.random.RandomState(seed)
    return ["".join(rng.choice(list("ACGT"), size=length)) for _ in range(n)]


def write_fasta(path, sequences: list[str]) -> str:
    """Write sequences as FASTA records and return the path."""
    with open(path, "w") as f:
        for i, sequence in enumerate(sequences):
            f.write(f">read_{i}\n{sequence}\n")
    return str(path)


@pytest.fixture
def probabilistic_params() -> ThresholdParameters:
    """Parameters selecting the probabilistic policy (min=16, max=77)."""
    return make_params()


@pytest.fixture(scope="session")
def probabilistic_threshold() -> Threshold:
    """Probabilistic threshold built once per test session."""
    return Threshold.from_parameters(make_params())


@pytest.fixture
def query_fasta(tmp_path) -> str:
    """FASTA with 20 random reads of length 100."""
    return write_fasta(tmp_path / "query.fasta", random_sequences(20, 100))
