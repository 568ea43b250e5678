"""Configuration loading and validation."""

from __future__ import annotations

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

from knapsac.errors import ConfigError, ConfigNotFoundError

logger = logging.getLogger(__name__)

__all__ = ["Config", "DEFAULTS", "REGISTRY_ENV_VAR"]

REGISTRY_ENV_VAR = "KNAPSAC_REGISTRY"

DEFAULTS: dict[str, Any] = {
    "registry": {"path": "~/knapsac_registry.json"},
    "vcs": {"command": "git", "remote": "origin", "branch": "master"},
    "compiler": {"timeout": None},
    "package": {"manifest": "manifest.json"},
}


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Configuration accessor with dot-path key support.

    Values missing from the supplied data fall back to ``DEFAULTS``.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = _merge(DEFAULTS, data or {})

    @classmethod
    def default(cls) -> Config:
        return cls()

    @classmethod
    def load(cls, yaml_path: str | Path) -> Config:
        """Load configuration from a YAML file.

        Raises:
            ConfigNotFoundError: If the file does not exist.
            ConfigError: If the YAML is invalid or not a mapping.
        """
        path = Path(yaml_path)
        if not path.is_file():
            raise ConfigNotFoundError(config_path=str(path))

        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(message=f"Invalid YAML in {path}: {e}", cause=e) from e

        if parsed is None:
            parsed = {}
        if not isinstance(parsed, dict):
            raise ConfigError(message=f"Config must be a mapping, got {type(parsed).__name__}")

        logger.debug("Loaded configuration from %s", path)
        return cls(parsed)

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value by dot-path key."""
        parts = key.split(".")
        current: Any = self._data
        for part in parts:
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default
        return current

    @property
    def registry_path(self) -> Path:
        """Location of the registry file, ``$KNAPSAC_REGISTRY`` taking precedence."""
        raw = os.environ.get(REGISTRY_ENV_VAR) or self.get("registry.path")
        return Path(raw).expanduser()
