"""Core module — config and logging."""

from alertrelay.core.config import LoggingConfig, Settings, load_settings
from alertrelay.core.logging import setup_logging

__all__ = [
    "LoggingConfig",
    "Settings",
    "load_settings",
    "setup_logging",
]
