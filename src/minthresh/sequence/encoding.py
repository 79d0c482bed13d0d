"""DNA text to 2-bit rank arrays (A=0, C=1, G=2, T=3)."""

import numpy as np

# Anything outside ACGT (N, IUPAC codes, gaps) is read as A
_RANKS = np.zeros(256, dtype=np.uint8)
for _char, _rank in zip("ACGT", range(4)):
    _RANKS[ord(_char)] = _rank
    _RANKS[ord(_char.lower())] = _rank


def encode_dna(sequence: str) -> np.ndarray:
    """Return the rank array of ``sequence`` as uint8."""
    raw = np.frombuffer(sequence.encode("ascii", errors="replace"), dtype=np.uint8)
    return _RANKS[raw]


def random_dna(rng: np.random.Generator, n_sequences: int, length: int) -> np.ndarray:
    """Draw ``n_sequences`` uniformly random rank arrays of ``length`` bases."""
    return rng.integers(0, 4, size=(n_sequences, length), dtype=np.uint8)
