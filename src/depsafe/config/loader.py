"""Load and merge configuration from .depsafe.toml, CLI flags, and env vars."""

from __future__ import annotations

import dataclasses
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from depsafe.config.schema import (
    LOG_LEVELS,
    OUTPUT_FORMATS,
    DepSafeConfig,
    LoggingConfig,
    OutputConfig,
    SuppressionConfig,
)

CONFIG_FILE_NAME = ".depsafe.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(base_dir: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = base_dir / CONFIG_FILE_NAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _merge_env_overrides(cfg: DepSafeConfig) -> None:
    """Apply DEPSAFE_* environment variable overrides."""
    if val := os.environ.get("DEPSAFE_SUPPRESSION_FILES"):
        cfg.suppression.files.extend(p.strip() for p in val.split(os.pathsep) if p.strip())
    if val := os.environ.get("DEPSAFE_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get("DEPSAFE_LOG_LEVEL"):
        if val.lower() in LOG_LEVELS:
            cfg.logging.level = val.lower()
    if os.environ.get("DEPSAFE_FAIL_ON_UNUSED") == "1":
        cfg.suppression.fail_on_unused = True


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in data.get(section, {}).items() if k in valid_fields}
    return cls(**filtered)


def load_config(
    base_dir: Path,
    config_override: Optional[str] = None,
) -> DepSafeConfig:
    """Load, validate, and return a DepSafeConfig.

    Relative suppression file paths are resolved against the directory of
    the config file they came from.
    """
    config_path = find_config_file(base_dir, config_override)

    if config_path is None:
        cfg = DepSafeConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = DepSafeConfig(
            version=raw.get("version", "1.0"),
            suppression=_build_section(raw, SuppressionConfig, "suppression"),
            output=_build_section(raw, OutputConfig, "output"),
            logging=_build_section(raw, LoggingConfig, "logging"),
        )
        if not isinstance(cfg.suppression.files, list):
            raise ConfigError(f"{config_path}: [suppression] files must be a list")
        if cfg.output.format not in OUTPUT_FORMATS:
            raise ConfigError(f"{config_path}: unknown output format {cfg.output.format!r}")
        if cfg.logging.level.lower() not in LOG_LEVELS:
            raise ConfigError(f"{config_path}: unknown log level {cfg.logging.level!r}")
        root = config_path.parent
        cfg.suppression.files = [str(root / f) for f in cfg.suppression.files]

    _merge_env_overrides(cfg)
    return cfg
