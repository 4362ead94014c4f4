# stack_setup/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the provisioning run.

Handles loading settings from Pydantic model defaults, a YAML file,
environment variables, and command-line arguments, applying a specific
order of precedence:
1. Pydantic Model Defaults
2. Environment Variables (STACK_ prefix, loaded by BaseSettings)
3. YAML Configuration File
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .config_models import AppSettings

module_logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "stack-setup.yaml"

# CLI destination -> dotted settings path.
CLI_SETTING_PATHS: Dict[str, str] = {
    "assume_yes": "assume_yes",
    "allow_non_root": "allow_non_root",
    "http_timeout": "http_timeout",
    "log_level": "log_level",
    "log_file": "log_file",
    "components": "components",
    "php_fallback_version": "php.fallback_version",
    "policy_path": "guard.policy_path",
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates ``source`` with values from ``overrides``.

    Nested dictionaries are merged key by key; any other value replaces the
    one in ``source``. ``None`` never overwrites an existing value.

    Returns:
        The updated ``source`` dictionary.
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
        elif key not in source:
            source[key] = value
    return source


def _set_dotted(target: Dict[str, Any], dotted_path: str, value: Any) -> None:
    parts = dotted_path.split(".")
    node = target
    for part in parts[:-1]:
        if not isinstance(node.get(part), dict):
            node[part] = {}
        node = node[part]
    node[parts[-1]] = value


def read_yaml_config(
    config_path: Path, current_logger: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Read a YAML configuration file.

    A missing, unreadable or malformed file yields an empty dictionary and a
    warning; configuration files are optional.
    """
    logger_to_use = current_logger if current_logger else module_logger

    if not config_path.is_file():
        logger_to_use.info(
            f"Configuration file '{config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except IOError as e:
        logger_to_use.warning(
            f"Could not read config file '{config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}

    logger_to_use.info(f"Loaded configuration from {config_path}")
    return yaml_data


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: Optional[str] = None,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the precedence documented in the
    module docstring.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file. Defaults to
            ``stack-setup.yaml`` in the current directory.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        SystemExit: If the merged configuration fails validation.
    """
    logger_to_use = current_logger if current_logger else module_logger

    current_values_dict = AppSettings().model_dump(exclude_defaults=False)

    yaml_path = Path(config_file_path or DEFAULT_CONFIG_FILE)
    yaml_data = read_yaml_config(yaml_path, logger_to_use)
    if yaml_data:
        current_values_dict = _deep_update(current_values_dict, yaml_data)

    if cli_args:
        cli_values: Dict[str, Any] = {}
        for cli_key, cli_value in vars(cli_args).items():
            if cli_value is None or cli_key not in CLI_SETTING_PATHS:
                continue
            # store_true flags only override when set.
            if cli_value is False:
                continue
            _set_dotted(cli_values, CLI_SETTING_PATHS[cli_key], cli_value)
        current_values_dict = _deep_update(current_values_dict, cli_values)

    try:
        final_settings = AppSettings(**current_values_dict)
    except Exception as e:  # Catch Pydantic validation errors etc.
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise SystemExit(f"Configuration error: {e}") from e

    logger_to_use.debug("Successfully loaded and validated application settings")
    return final_settings
