"""Shape-aware canonical k-mer hashing and window minimizers.

Works on 2-D rank arrays of shape (n_sequences, length) so that many
equal-length sequences are processed at once.
"""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from minthresh.sequence.shape import Shape

SEED_CONSTANT = 0x8F3F73B5CF1C9ADE


def adjust_seed(kmer_weight: int) -> np.uint64:
    """Seed XORed into hashes; shifted so it only touches the used bits."""
    return np.uint64(SEED_CONSTANT >> (64 - 2 * kmer_weight))


def kmer_hashes(ranks: np.ndarray, shape: Shape) -> np.ndarray:
    """Canonical hash of every k-mer under ``shape``.

    Args:
        ranks: (n_sequences, length) or (length,) array of 2-bit ranks.
        shape: k-mer shape.

    Returns:
        uint64 array of shape (n_sequences, length - shape.size + 1). The
        hash is min(forward, reverse complement) XOR the adjusted seed.
    """
    ranks = np.atleast_2d(ranks).astype(np.uint64)
    n_rows, length = ranks.shape
    n_kmers = length - shape.size + 1
    if n_kmers < 1:
        return np.empty((n_rows, 0), dtype=np.uint64)

    four = np.uint64(4)
    three = np.uint64(3)
    forward = np.zeros((n_rows, n_kmers), dtype=np.uint64)
    reverse = np.zeros((n_rows, n_kmers), dtype=np.uint64)
    for offset in shape.offsets:
        forward = forward * four + ranks[:, offset : offset + n_kmers]
        mirrored = shape.size - 1 - offset
        reverse = reverse * four + (three - ranks[:, mirrored : mirrored + n_kmers])

    return np.minimum(forward, reverse) ^ adjust_seed(shape.count)


def minimizer_mask(ranks: np.ndarray, shape: Shape, window_size: int) -> np.ndarray:
    """Mark k-mer positions that are the minimizer of at least one window.

    Ties inside a window go to the leftmost k-mer.

    Returns:
        Boolean array of shape (n_sequences, n_kmers).
    """
    hashes = kmer_hashes(ranks, shape)
    kmers_per_window = window_size - shape.size + 1
    n_rows, n_kmers = hashes.shape
    mask = np.zeros((n_rows, n_kmers), dtype=bool)
    if n_kmers < kmers_per_window:
        return mask

    windows = sliding_window_view(hashes, kmers_per_window, axis=1)
    positions = windows.argmin(axis=2) + np.arange(windows.shape[1])
    mask[np.arange(n_rows)[:, None], positions] = True
    return mask


def count_minimizers(ranks: np.ndarray, shape: Shape, window_size: int) -> int:
    """Number of distinct minimizer positions in one sequence."""
    return int(minimizer_mask(ranks, shape, window_size).sum())
