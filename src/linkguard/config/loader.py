"""
Configuration Loader

This module loads LinkGuard settings from YAML files. A configuration
directory holds ``base_config.yaml`` plus one ``<store>_config.yaml`` per
store type; the base file is deep-merged with the file of the selected store
and environment overrides are applied last:

    LINKGUARD_STORE         store.type
    LINKGUARD_SQLITE_PATH   store.sqlite.database_path
    LINKGUARD_LOG_LEVEL     logging.level
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from linkguard.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent / "defaults"

ENV_STORE = "LINKGUARD_STORE"
ENV_SQLITE_PATH = "LINKGUARD_SQLITE_PATH"
ENV_LOG_LEVEL = "LINKGUARD_LOG_LEVEL"


class ConfigurationLoader:
    """
    Loader for LinkGuard configuration.

    Loads configuration from YAML files, merges the base and store-specific
    files, and provides dotted-path access to the result.
    """

    def __init__(self, config_dir: Optional[str] = None, environ: Optional[Mapping[str, str]] = None):
        """
        Initialize the configuration loader.

        Args:
            config_dir: Directory containing configuration files; defaults to the
                files shipped with the package
            environ: Environment used for overrides; defaults to ``os.environ``
        """
        self.config_dir = str(config_dir or DEFAULT_CONFIG_DIR)
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}
        self.loaded_files: List[str] = []

        logger.debug(f"Initialized ConfigurationLoader with config_dir: {self.config_dir}")

    def load_config_file(self, filename: str) -> Dict[str, Any]:
        """
        Load one configuration file.

        Raises:
            ConfigurationError: If the file is missing, unparsable or not a mapping
        """
        file_path = os.path.join(self.config_dir, filename)

        try:
            with open(file_path, "r") as file:
                config = yaml.safe_load(file)
        except FileNotFoundError as e:
            logger.error(f"Configuration file not found: {file_path}")
            raise ConfigurationError(f"Configuration file not found: {file_path}") from e
        except yaml.YAMLError as e:
            logger.error(f"Error parsing YAML in {file_path}: {str(e)}")
            raise ConfigurationError(f"Error parsing YAML in {file_path}: {str(e)}") from e

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Invalid configuration format in {file_path}")

        logger.debug(f"Loaded configuration from {file_path}")
        self.loaded_files.append(file_path)
        return config

    def load(self, store_type: Optional[str] = None) -> Dict[str, Any]:
        """
        Load the base configuration merged with the selected store's file.

        The store type is, in order of precedence: *store_type*,
        ``LINKGUARD_STORE``, ``store.type`` of the base file, ``memory``.
        """
        base_config = self.load_config_file("base_config.yaml")
        selected = (
            store_type
            or self.environ.get(ENV_STORE)
            or (base_config.get("store") or {}).get("type")
            or "memory"
        )

        merged = _deep_merge_dicts(copy.deepcopy(base_config), self.load_config_file(f"{selected}_config.yaml"))
        merged.setdefault("store", {})["type"] = selected
        self._apply_environment(merged)

        logger.info(f"Loaded configuration for store type: {selected}")
        self.config = merged
        return merged

    def _apply_environment(self, config: Dict[str, Any]) -> None:
        sqlite_path = self.environ.get(ENV_SQLITE_PATH)
        if sqlite_path:
            config.setdefault("store", {}).setdefault("sqlite", {})["database_path"] = sqlite_path
        log_level = self.environ.get(ENV_LOG_LEVEL)
        if log_level:
            config.setdefault("logging", {})["level"] = log_level.upper()

    def get(self, key_path: str, default: Any = None) -> Any:
        """
        Get a configuration value using a dot-separated path.

        For example, ``store.sqlite.database_path`` retrieves
        ``config["store"]["sqlite"]["database_path"]``.
        """
        if not self.config:
            logger.warning(f"No configuration loaded when trying to access: {key_path}")
            return default

        section: Any = self.config
        for key in key_path.split("."):
            if not isinstance(section, dict) or key not in section:
                return default
            section = section[key]
        return section


def _deep_merge_dicts(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """Deeply merge *source* into *target* in place and return *target*."""
    for key, value in source.items():
        if isinstance(target.get(key), dict) and isinstance(value, dict):
            _deep_merge_dicts(target[key], value)
        else:
            target[key] = copy.deepcopy(value)
    return target


def load_config(config_dir: Optional[str] = None, store_type: Optional[str] = None) -> Dict[str, Any]:
    """Load the merged configuration with a fresh loader."""
    return ConfigurationLoader(config_dir).load(store_type)
