"""
Configuration for modkeeper.

Settings are read from an optional YAML file in the user configuration
directory and may be overridden by environment variables.
"""

import os
from typing import Any, Dict, List, Optional

import platformdirs
import yaml

from modkeeper.constants import (
    APP_NAME,
    CONFIG_FILE_NAME,
    DEFAULT_CONNECT_RETRIES,
    DEFAULT_KEEP_USER_DATA,
    DEFAULT_MODLINKS_URL,
    DEFAULT_REQUEST_TIMEOUT,
    INSTALL_DIR_ENV_VAR,
    MODLINKS_URL_ENV_VAR,
)
from modkeeper.exceptions import ConfigurationError
from modkeeper.log_utils import logger

# Get the config directory using platformdirs
CONFIG_DIR = platformdirs.user_config_dir(APP_NAME)
CONFIG_FILE = os.path.join(CONFIG_DIR, CONFIG_FILE_NAME)

DEFAULT_CONFIG: Dict[str, Any] = {
    "INSTALL_DIR": None,
    "MODLINKS_URL": DEFAULT_MODLINKS_URL,
    "CACHE_DIR": None,
    "KEEP_USER_DATA": list(DEFAULT_KEEP_USER_DATA),
    "CONNECT_RETRIES": DEFAULT_CONNECT_RETRIES,
    "REQUEST_TIMEOUT": DEFAULT_REQUEST_TIMEOUT,
    "LOG_LEVEL": None,
    "LOG_TO_FILE": False,
}


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the modkeeper configuration.

    Starts from DEFAULT_CONFIG, applies the YAML file (CONFIG_FILE unless
    `config_file` is given) when it exists, then applies the environment
    overrides: HK15PATH sets INSTALL_DIR and MODLINKSURL sets MODLINKS_URL.

    Parameters:
        config_file (Optional[str]): Explicit configuration file path.

    Returns:
        Dict[str, Any]: The effective configuration.

    Raises:
        ConfigurationError: If the file exists but cannot be read or does not contain a mapping.
    """
    path = config_file or CONFIG_FILE
    config = dict(DEFAULT_CONFIG)

    if os.path.exists(path):
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"cannot read configuration file {path}", details=str(e)
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"configuration file {path} must contain a mapping"
            )
        logger.debug(f"Loaded configuration from {path}")
        config.update(data)

    install_dir = os.environ.get(INSTALL_DIR_ENV_VAR)
    if install_dir:
        config["INSTALL_DIR"] = install_dir
    modlinks_url = os.environ.get(MODLINKS_URL_ENV_VAR)
    if modlinks_url:
        config["MODLINKS_URL"] = modlinks_url

    return config


def get_install_dir(config: Dict[str, Any]) -> str:
    """
    Return the game directory mods are installed into.

    Raises:
        ConfigurationError: If neither HK15PATH nor INSTALL_DIR is set.
    """
    install_dir = config.get("INSTALL_DIR")
    if not install_dir:
        raise ConfigurationError(f"{INSTALL_DIR_ENV_VAR} not defined")
    return os.path.expanduser(str(install_dir))


def get_modlinks_url(config: Dict[str, Any]) -> str:
    return str(config.get("MODLINKS_URL") or DEFAULT_MODLINKS_URL)


def get_cache_dir(config: Dict[str, Any]) -> Optional[str]:
    cache_dir = config.get("CACHE_DIR")
    return os.path.expanduser(str(cache_dir)) if cache_dir else None


def get_string_list(config: Dict[str, Any], key: str) -> List[str]:
    """
    Extract a list of strings from the given configuration key.

    Returns:
        List[str]: Empty if the key is missing or falsy, each item stringified if
        the value is a list, otherwise a single-element list.
    """
    value = config.get(key)
    if not value:
        return []

    if isinstance(value, list):
        return [str(item) for item in value]

    return [str(value)]


def get_int(config: Dict[str, Any], key: str, default: int) -> int:
    """
    Read a non-negative integer setting.

    Raises:
        ConfigurationError: If the value is not a non-negative integer.
    """
    value = config.get(key)
    if value is None:
        return default
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"{key} must be an integer", details=f"got {value!r}"
        ) from e
    if number < 0:
        raise ConfigurationError(f"{key} must not be negative", details=f"got {number}")
    return number
