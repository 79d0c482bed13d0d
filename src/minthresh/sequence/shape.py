"""Binary k-mer shapes (ungapped or gapped)."""

from __future__ import annotations

import re
from dataclasses import dataclass

from minthresh.utils.exceptions import ConfigError

MAX_SHAPE_SIZE = 32

_SHAPE_PATTERN = re.compile(r"[01]+")


@dataclass(frozen=True)
class Shape:
    """Binary k-mer shape. ``mask[i]`` is True for informative positions."""

    mask: tuple[bool, ...]

    def __post_init__(self) -> None:
        if not self.mask:
            raise ConfigError("Shape must span at least one position")
        if len(self.mask) > MAX_SHAPE_SIZE:
            raise ConfigError(
                f"Shape span must be at most {MAX_SHAPE_SIZE}, got {len(self.mask)}"
            )
        if not (self.mask[0] and self.mask[-1]):
            raise ConfigError(
                f"Shape must start and end with an informative position: {self}"
            )

    @classmethod
    def ungapped(cls, kmer_size: int) -> Shape:
        if not isinstance(kmer_size, int) or kmer_size < 1:
            raise ConfigError(f"k-mer size must be a positive integer, got {kmer_size}")
        return cls(tuple([True] * kmer_size))

    @classmethod
    def from_string(cls, shape_string: str) -> Shape:
        """Parse a shape such as ``"11011"``."""
        if not _SHAPE_PATTERN.fullmatch(shape_string):
            raise ConfigError(
                f"Shape must be a non-empty string of 0 and 1, got '{shape_string}'"
            )
        return cls(tuple(c == "1" for c in shape_string))

    @property
    def size(self) -> int:
        return len(self.mask)

    @property
    def count(self) -> int:
        return sum(self.mask)

    @property
    def offsets(self) -> tuple[int, ...]:
        """Offsets of the informative positions within the span."""
        return tuple(i for i, informative in enumerate(self.mask) if informative)

    def __str__(self) -> str:
        return "".join("1" if informative else "0" for informative in self.mask)

