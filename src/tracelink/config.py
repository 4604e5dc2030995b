"""Configuration management for tracelink using YAML files."""

import os
from pathlib import Path
from typing import Any

import structlog
import yaml

from tracelink.models import FilterScope

logger = structlog.get_logger()

CONFIG_DIR_NAME = ".tracelink"

DEFAULTS: dict[str, str] = {
    "backend": "local",
    "local.data_file": f"{CONFIG_DIR_NAME}/data.yaml",
    "notion.relation_property": "Test Cases",
    "notion.poll_interval": "5",
    "link.timeout": "10",
    "scope.account_type": "organization",
}


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


class Config:
    """Configuration manager using YAML file storage.

    Local config lives in ``.tracelink/config.yaml`` under the current directory,
    global config in ``~/.tracelink/config.yaml`` (or ``$TRACELINK_HOME``).
    Lookups go local, then global, then built-in defaults.
    """

    def __init__(self, use_global: bool = False, config_dir: Path | None = None) -> None:
        """Initialize configuration manager.

        Args:
            use_global: If True, use global config only. If False, use local config with global fallback.
            config_dir: Custom directory to store config file (overrides use_global)
        """
        global_dir = Path(os.environ.get("TRACELINK_HOME") or Path.home() / CONFIG_DIR_NAME)

        if config_dir is not None:
            self.config_dir = Path(config_dir)
        elif use_global:
            self.config_dir = global_dir
        else:
            self.config_dir = Path.cwd() / CONFIG_DIR_NAME
        self.is_global = use_global
        self.config_file = self.config_dir / "config.yaml"

        self._config: dict[str, Any] = self._load()

        self._global_config: dict[str, Any] = {}
        global_file = global_dir / "config.yaml"
        if not self.is_global and global_file != self.config_file and global_file.exists():
            try:
                self._global_config = _read_yaml(global_file)
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load global config", error=str(e))

        logger.debug("Config initialized", config_file=str(self.config_file), is_global=self.is_global)

    def _load(self) -> dict[str, Any]:
        if not self.config_file.exists():
            logger.debug("Config file does not exist, initializing empty config")
            return {}

        try:
            config = _read_yaml(self.config_file)
        except (OSError, yaml.YAMLError) as e:
            logger.error("Failed to load config", error=str(e))
            raise ValueError(f"Failed to load config from {self.config_file}: {e}") from e
        logger.debug("Config loaded successfully", keys=list(config.keys()))
        return config

    def _save(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with open(self.config_file, "w") as f:
                yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            logger.error("Failed to save config", error=str(e))
            raise ValueError(f"Failed to save config to {self.config_file}: {e}") from e
        logger.debug("Config saved successfully")

    def get(self, key: str, default: str | None = None) -> str | None:
        """Get a configuration value, falling back to global config and defaults."""
        if key in self._config:
            return self._config[key]
        if not self.is_global and key in self._global_config:
            return self._global_config[key]
        if default is None:
            default = DEFAULTS.get(key)
        logger.debug("Config value not set", key=key, default=default)
        return default

    def get_float(self, key: str) -> float:
        """Get a numeric configuration value."""
        value = self.get(key)
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Config value {key}={value!r} is not a number") from e

    def set(self, key: str, value: str) -> None:
        logger.debug("Setting config value", key=key)
        self._config[key] = value
        self._save()

    def unset(self, key: str) -> None:
        logger.debug("Unsetting config value", key=key)
        if key in self._config:
            del self._config[key]
            self._save()

    def list(self) -> dict[str, str]:
        """List settings; local config is merged over global config."""
        if self.is_global:
            return self._config.copy()
        merged = self._global_config.copy()
        merged.update(self._config)
        return merged

    def scope(self) -> FilterScope:
        """Build the filter scope from ``scope.*`` settings."""
        return FilterScope(
            suite_id=self.get("scope.suite_id"),
            user_id=self.get("scope.user_id"),
            org_id=self.get("scope.org_id"),
            account_type=self.get("scope.account_type") or "organization",
        )


def get_config(use_global: bool = False) -> Config:
    """Get a configuration instance."""
    return Config(use_global=use_global)
