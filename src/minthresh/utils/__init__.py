"""Cross-cutting utilities: logging, config, exceptions."""

from minthresh.utils.config import load_config, threshold_section
from minthresh.utils.logging import setup_logging

__all__ = ["load_config", "setup_logging", "threshold_section"]
