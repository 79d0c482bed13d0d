"""YAML config loading for threshold parameters."""

from pathlib import Path

import yaml

from minthresh.utils.exceptions import ConfigError


def load_config(path: str | Path) -> dict:
    """Read a threshold config file.

    The file is a YAML mapping, usually with the parameters nested under
    ``threshold:`` (see ``threshold_section``). Keys are passed on to
    ``ThresholdParameters.from_mapping`` unchanged.

    Raises:
        ConfigError: If the file is missing or unreadable, is not valid
            YAML, or does not hold a mapping.
    """
    config_path = Path(path)
    if not config_path.is_file():
        raise ConfigError(f"Threshold config not found: {path}")

    try:
        data = yaml.safe_load(config_path.read_text())
    except OSError as e:
        raise ConfigError(f"Cannot read threshold config {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Threshold config {path} is not valid YAML:\n{e}") from e

    if not isinstance(data, dict):
        raise ConfigError(
            f"Threshold config {path} must hold a mapping of parameters, "
            f"got {type(data).__name__}"
        )
    return data


def threshold_section(config: dict) -> dict:
    """Return the ``threshold`` mapping of a config, or the config itself.

    A config file may either nest its keys under ``threshold:`` or list
    them at the top level.

    Raises:
        ConfigError: If ``threshold`` is present but not a mapping.
    """
    section = config.get("threshold", config)
    if not isinstance(section, dict):
        raise ConfigError(
            f"'threshold' section must be a mapping, got {type(section).__name__}"
        )
    return section
