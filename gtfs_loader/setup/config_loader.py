# gtfs_loader/setup/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the GTFS loader.

Handles loading settings from Pydantic model defaults, a YAML file,
environment variables and command-line overrides, applying this order of
precedence:
1. Pydantic Model Defaults
2. Environment Variables (GTFS_LOADER_*, PG_*)
3. YAML Configuration File
4. Explicit overrides (command-line options)
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import ValidationError

from .config_models import LoaderSettings

module_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "gtfs_loader.yaml"


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively update `source` with the values of `overrides`.

    Nested dictionaries are merged key by key; None values in `overrides`
    never replace an existing value.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
    return source


def read_yaml_config(config_file_path: Path) -> Dict[str, Any]:
    """
    Read a YAML configuration file into a dictionary.

    A missing file yields an empty dictionary. A file that cannot be read or
    parsed, or whose top level is not a mapping, is reported and ignored.
    """
    if not config_file_path.is_file():
        module_logger.info(
            f"Configuration file '{config_file_path}' not found. Using defaults and environment variables."
        )
        return {}
    try:
        with open(config_file_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        module_logger.warning(
            f"Could not parse YAML config file '{config_file_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        module_logger.warning(
            f"Could not read config file '{config_file_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        module_logger.warning(
            f"Config file '{config_file_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}
    module_logger.info(f"Loaded configuration from {config_file_path}")
    return yaml_data


def load_loader_settings(
    config_file_path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> LoaderSettings:
    """
    Resolve the settings for a load run.

    Args:
        config_file_path: YAML file to read. Defaults to gtfs_loader.yaml in
            the current directory; a missing default file is not an error.
        overrides: Values that take precedence over everything else, usually
            the command-line options. None values are ignored.

    Returns:
        A validated LoaderSettings instance.

    Raises:
        SystemExit: If the resolved configuration does not validate.
    """
    try:
        env_settings = LoaderSettings()
    except ValidationError as e:
        module_logger.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e
    current_values = env_settings.model_dump(exclude_defaults=False)
    # The password is excluded from dumps; carry the resolved one over.
    current_values["pg"]["password"] = env_settings.pg.password

    yaml_path = Path(config_file_path) if config_file_path else Path(DEFAULT_CONFIG_FILE)
    current_values = _deep_update(current_values, read_yaml_config(yaml_path))

    if overrides:
        current_values = _deep_update(current_values, overrides)

    try:
        final_settings = LoaderSettings(**current_values)
    except ValidationError as e:
        module_logger.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    module_logger.info("Successfully loaded and validated loader settings")
    return final_settings
