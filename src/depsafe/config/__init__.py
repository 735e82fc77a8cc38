"""Configuration loading, schema, and defaults."""

from depsafe.config.loader import ConfigError, load_config
from depsafe.config.schema import DepSafeConfig

__all__ = [
    "ConfigError",
    "DepSafeConfig",
    "load_config",
]
