"""
Configuration loading.

Settings live in an optional YAML file under the platformdirs config
directory. Missing keys take their defaults; the file itself is optional.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs
import yaml

from releasefetch.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRIES,
    DOWNLOADS_DIR_NAME,
    GITHUB_API_TIMEOUT,
    TOKEN_ENV_VAR,
)
from releasefetch.exceptions import ConfigurationError
from releasefetch.log_utils import logger


def get_config_file() -> Path:
    """Return the default config file path."""
    return Path(platformdirs.user_config_dir(APP_NAME)) / CONFIG_FILE_NAME


def get_default_download_dir() -> Path:
    """Return the default directory downloads are written to."""
    return Path(platformdirs.user_cache_dir(APP_NAME)) / DOWNLOADS_DIR_NAME


def get_default_log_dir() -> Path:
    return Path(platformdirs.user_log_dir(APP_NAME))


def default_config() -> Dict[str, Any]:
    return {
        "TOKEN_ENV_VAR": TOKEN_ENV_VAR,
        "API_TIMEOUT": GITHUB_API_TIMEOUT,
        "DOWNLOAD_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
        "RETRIES": DEFAULT_RETRIES,
        "DOWNLOAD_DIR": str(get_default_download_dir()),
        "LOG_LEVEL": None,
    }


_EXPECTED_TYPES = {
    "TOKEN_ENV_VAR": (str,),
    "API_TIMEOUT": (int, float),
    "DOWNLOAD_TIMEOUT": (int, float),
    "RETRIES": (int,),
    "DOWNLOAD_DIR": (str,),
    "LOG_LEVEL": (str, type(None)),
}


def _validate(config: Dict[str, Any], source: str) -> None:
    for key, types in _EXPECTED_TYPES.items():
        value = config[key]
        # bool is an int subclass but never a valid number of seconds or retries
        if isinstance(value, bool) or not isinstance(value, types):
            raise ConfigurationError(
                f"Invalid value for {key} in {source}",
                details=f"got {value!r}",
            )
    if not config["TOKEN_ENV_VAR"].strip():
        raise ConfigurationError(f"TOKEN_ENV_VAR in {source} must not be empty")
    if config["RETRIES"] < 0:
        raise ConfigurationError(f"RETRIES in {source} must not be negative")
    for key in ("API_TIMEOUT", "DOWNLOAD_TIMEOUT"):
        if config[key] <= 0:
            raise ConfigurationError(f"{key} in {source} must be positive")


def load_config(path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the releasefetch configuration.

    Parameters:
        path (str | None): Explicit config file. When omitted the platformdirs
            location is used if it exists; an explicit path must exist.

    Returns:
        dict: Defaults overlaid with the values found in the file.

    Raises:
        ConfigurationError: If the file cannot be read or holds invalid values.
    """
    config = default_config()
    config_path = Path(path) if path else get_config_file()

    if not config_path.exists():
        if path:
            raise ConfigurationError(f"Configuration file {config_path} does not exist")
        return config

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(
            f"Failed to load configuration from {config_path}", details=str(e)
        ) from e

    if loaded is None:
        loaded = {}
    if not isinstance(loaded, dict):
        raise ConfigurationError(
            f"Configuration file {config_path} must contain a mapping"
        )

    for key, value in loaded.items():
        if key not in config:
            logger.warning(f"Ignoring unknown configuration key {key} in {config_path}")
            continue
        config[key] = value

    _validate(config, str(config_path))
    config["DOWNLOAD_DIR"] = os.path.expanduser(config["DOWNLOAD_DIR"])
    logger.debug(f"Loaded configuration from {config_path}")
    return config
