"""Sequence encoding, minimizer counting, and query file reading."""

from minthresh.sequence.encoding import encode_dna
from minthresh.sequence.minimizers import count_minimizers, kmer_hashes, minimizer_mask
from minthresh.sequence.reader import median_pattern_size, read_sequences
from minthresh.sequence.shape import Shape

__all__ = [
    "Shape",
    "count_minimizers",
    "encode_dna",
    "kmer_hashes",
    "median_pattern_size",
    "minimizer_mask",
    "read_sequences",
]
