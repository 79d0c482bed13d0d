"""Query file reading (FASTA/FASTQ, optionally gzipped) via Biopython."""

from __future__ import annotations

import gzip
import logging
from collections.abc import Iterator
from pathlib import Path

from Bio import SeqIO

from minthresh.utils.exceptions import DataValidationError

logger = logging.getLogger(__name__)

FORMAT_BY_SUFFIX = {
    ".fa": "fasta",
    ".fasta": "fasta",
    ".fna": "fasta",
    ".fq": "fastq",
    ".fastq": "fastq",
}


def detect_format(path: Path) -> str:
    """Sequence format from the file suffix, ignoring a trailing ``.gz``."""
    suffixes = [s.lower() for s in path.suffixes]
    if suffixes and suffixes[-1] == ".gz":
        suffixes = suffixes[:-1]
    if not suffixes or suffixes[-1] not in FORMAT_BY_SUFFIX:
        raise DataValidationError(
            f"Cannot determine sequence format of {path}; expected one of "
            f"{', '.join(sorted(FORMAT_BY_SUFFIX))} (optionally .gz)"
        )
    return FORMAT_BY_SUFFIX[suffixes[-1]]


def read_sequences(path: str | Path) -> Iterator[str]:
    """Yield the sequences of a FASTA/FASTQ file as upper-case strings.

    Raises:
        DataValidationError: If the file is missing, has an unknown suffix,
            or cannot be parsed.
    """
    query_path = Path(path)
    if not query_path.exists():
        raise DataValidationError(f"Query file not found: {path}")
    fmt = detect_format(query_path)

    opener = gzip.open if query_path.suffix.lower() == ".gz" else open
    try:
        with opener(query_path, "rt") as handle:
            for record in SeqIO.parse(handle, fmt):
                yield str(record.seq).upper()
    except ValueError as e:
        raise DataValidationError(f"Failed to parse {fmt} file: {path}\n{e}") from e


def median_pattern_size(lengths: list[int]) -> int:
    """Upper median of the query lengths, used as the default pattern size.

    Raises:
        DataValidationError: If ``lengths`` is empty.
    """
    if not lengths:
        raise DataValidationError("Query file contains no sequences")
    ordered = sorted(lengths)
    median = ordered[len(ordered) // 2]
    logger.info("Pattern size set to median query length: %d", median)
    return median
