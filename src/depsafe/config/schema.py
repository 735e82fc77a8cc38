"""Configuration schema: dataclasses for every config section."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal

OutputFormat = Literal["terminal", "json"]
OUTPUT_FORMATS = ("terminal", "json")

LOG_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass
class SuppressionConfig:
    files: List[str] = field(default_factory=list)  # loaded in order, after the base rules
    include_base: bool = True
    fail_on_unused: bool = False  # exit 1 when a rule had zero matches


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"
    show_summary: bool = True
    show_suppressed: bool = False


@dataclass
class LoggingConfig:
    level: str = "warning"


@dataclass
class DepSafeConfig:
    version: str = "1.0"
    suppression: SuppressionConfig = field(default_factory=SuppressionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
