"""
Configuration loader: reads driverkit.yml into ``InstallConfig``.

The file is optional; without one every value takes its default and
host detection fills in the rest. Values given in the file are
treated as explicit and survive detection.
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import ValidationError

from driverkit.core.models.config import InstallConfig

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "driverkit.yml"


class ConfigError(Exception):
    """Raised when the installation configuration is invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Search for driverkit.yml starting from the given directory, walking up.

    Returns:
        Path to driverkit.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _read_mapping(path: Path) -> dict:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_config(
    path: Path | None = None,
    overrides: dict | None = None,
) -> InstallConfig:
    """Load and validate the installation configuration.

    Args:
        path: Explicit path to driverkit.yml. If None, searches upward;
            a missing file yields the defaults.
        overrides: Values (e.g. from CLI flags) applied on top of the file.

    Raises:
        ConfigError: If an explicit file is missing or the content is invalid.
    """
    data: dict = {}

    if path is not None and not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    source = path or find_config_file()
    if source is not None:
        logger.debug("Loading install config from %s", source)
        data = _read_mapping(source)
        # Payload paths are relative to the config file
        payloads = data.get("payloads")
        if isinstance(payloads, dict):
            base = source.parent
            data["payloads"] = {
                key: str(base / value) if value and not Path(value).is_absolute() else value
                for key, value in payloads.items()
            }

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        config = InstallConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid install configuration: {e}") from e

    logger.info("Loaded install config (%d explicit settings)", len(config.model_fields_set))
    return config
