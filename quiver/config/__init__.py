"""Configuration management for QUIVER.

This package contains:
- settings: Settings dataclass with configuration fields
- manager: ConfigManager for loading/saving configuration
"""

from quiver.config.manager import ConfigManager
from quiver.config.settings import (
    CONFIG_FILE,
    MAX_PARALLEL_DOWNLOADS,
    MIN_PARALLEL_DOWNLOADS,
    Settings,
)

__all__ = [
    "ConfigManager",
    "Settings",
    "CONFIG_FILE",
    "MIN_PARALLEL_DOWNLOADS",
    "MAX_PARALLEL_DOWNLOADS",
]
