"""
Config system - layered configuration with merge precedence.

Sources, lowest to highest precedence::

    defaults < .env file < environment variables < explicit overrides

Environment keys are prefixed (``AERIE_`` by default) and nest on double
underscores: ``AERIE_CACHE__MAX_SIZE=500`` becomes
``{"cache": {"max_size": 500}}``.
"""

from __future__ import annotations

import copy
import json
import os
from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values

from .cache.core import CacheConfig
from .cache.faults import CacheConfigFault
from .faults.core import Fault, FaultDomain


class ConfigError(Fault):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, **metadata: Any):
        super().__init__(
            code="CONFIG_INVALID",
            message=message,
            domain=FaultDomain.CONFIG,
            metadata=metadata,
        )


DEFAULTS: Dict[str, Any] = {
    "cache": CacheConfig().to_dict(),
}


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources.

    Usage::

        config = ConfigLoader.load(env_file=".env", overrides={"cache": {"max_size": 100}})
        config.get("cache.max_size")     # 100
        server = Server(config=config)
    """

    def __init__(self, env_prefix: str = "AERIE_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}
        self._merge_dict(self.config_data, copy.deepcopy(DEFAULTS))

    @classmethod
    def load(
        cls,
        env_prefix: str = "AERIE_",
        env_file: Optional[str] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> "ConfigLoader":
        """
        Load configuration from every source.

        Args:
            env_prefix: Prefix for environment variables
            env_file: Path to a .env file (ignored if missing)
            overrides: Manual overrides (highest precedence)

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if env_file:
            loader._load_env_file(env_file)

        loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    def _load_env_file(self, path: str) -> None:
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self) -> None:
        """Load config from environment variables."""
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str) -> None:
        """Convert AERIE_CACHE__MAX_SIZE to a nested dict entry."""
        key = key[len(self.env_prefix):]
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        # Boolean
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
            return False

        # Number
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # JSON
        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    def _merge_dict(self, target: dict, source: Mapping[str, Any]) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, Mapping):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def get_cache_config(self) -> CacheConfig:
        """
        Build the cache configuration.

        Raises:
            ConfigError: On unknown keys, wrongly typed values or invalid settings
        """
        data = self.get("cache", {})
        if not isinstance(data, dict):
            raise ConfigError("Config section 'cache' must be a mapping")

        defaults = CacheConfig()
        known = {f.name for f in fields(CacheConfig)}

        for key, value in data.items():
            if key not in known:
                continue
            expected = type(getattr(defaults, key))
            if not _check_type(value, expected):
                raise ConfigError(
                    f"Config field 'cache.{key}' expected {expected.__name__}, "
                    f"got {type(value).__name__}",
                    field=key,
                )

        try:
            return CacheConfig.from_dict(data)
        except CacheConfigFault as e:
            raise ConfigError(e.message, section="cache") from e

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return copy.deepcopy(self.config_data)


def _check_type(value: Any, expected: type) -> bool:
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    return isinstance(value, expected)
