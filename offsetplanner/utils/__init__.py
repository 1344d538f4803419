"""Logging and configuration helpers."""

from offsetplanner.utils.config import Config, get_config, reset_config
from offsetplanner.utils.logging import configure_logging, get_logger

__all__ = [
    "Config",
    "get_config",
    "reset_config",
    "configure_logging",
    "get_logger",
]
