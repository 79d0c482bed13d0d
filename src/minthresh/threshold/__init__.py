"""Threshold engine: error models, precomputed tables, cache and dispatcher."""

from minthresh.sequence.shape import Shape
from minthresh.threshold.parameters import ThresholdParameters
from minthresh.threshold.error_model import (
    multiple_error_model,
    one_error_model,
    one_indirect_error_model,
)
from minthresh.threshold.cache import FileTableStore, MemoryTableStore, TableStore
from minthresh.threshold.precompute import precompute_correction, precompute_threshold
from minthresh.threshold.threshold import Threshold, ThresholdKind

__all__ = [
    "FileTableStore",
    "MemoryTableStore",
    "Shape",
    "TableStore",
    "Threshold",
    "ThresholdKind",
    "ThresholdParameters",
    "multiple_error_model",
    "one_error_model",
    "one_indirect_error_model",
    "precompute_correction",
    "precompute_threshold",
]
