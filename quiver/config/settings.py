"""Settings dataclass for QUIVER configuration.

This module defines the Settings dataclass that holds all configuration
values and the mapping between config file keys and attributes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

# Bounds for MAX_PARALLEL_DOWNLOADS
MIN_PARALLEL_DOWNLOADS = 1
MAX_PARALLEL_DOWNLOADS = 8


@dataclass
class Settings:
    """Configuration settings for QUIVER.

    All settings have sensible defaults and can be loaded from
    the configuration files (~/.quiver-config, .quiver) or the
    environment (QUIVER_<KEY>).

    Attributes:
        catalog_url: Location of the catalog manifest (URL or path)
        agents_dir: Local artifact directory, relative to the project root
        artifact_extension: File extension of installed artifacts
        upgrade_policy: How upgrade candidates are resolved (ask, all, none)
        max_parallel_downloads: Worker bound for artifact transactions
        fetch_timeout_seconds: Per-request timeout for catalog transfers
        retry_delay_seconds: Base delay before retrying a failed download
    """

    # Catalog settings
    catalog_url: str = ""
    fetch_timeout_seconds: float = 30.0
    retry_delay_seconds: float = 1.0

    # Installation settings
    agents_dir: str = ".claude/agents"
    artifact_extension: str = ".md"
    upgrade_policy: str = "ask"
    max_parallel_downloads: int = 4

    # Config key to attribute mapping
    _key_mapping: dict[str, str] = field(
        default_factory=lambda: {
            "CATALOG_URL": "catalog_url",
            "FETCH_TIMEOUT_SECONDS": "fetch_timeout_seconds",
            "RETRY_DELAY_SECONDS": "retry_delay_seconds",
            "AGENTS_DIR": "agents_dir",
            "ARTIFACT_EXTENSION": "artifact_extension",
            "UPGRADE_POLICY": "upgrade_policy",
            "MAX_PARALLEL_DOWNLOADS": "max_parallel_downloads",
        },
        repr=False,
    )

    def get_attribute_for_key(self, key: str) -> str | None:
        """Get the attribute name for a config key."""
        return self._key_mapping.get(key)

    @classmethod
    def get_config_keys(cls) -> list[str]:
        """Get list of all valid configuration keys."""
        temp = cls()
        return list(temp._key_mapping.keys())


# Default configuration file path
CONFIG_FILE = Path.home() / ".quiver-config"
