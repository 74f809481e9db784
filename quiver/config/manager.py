"""Configuration manager for QUIVER.

This module provides the ConfigManager class for loading, saving, and
managing configuration values with a cascading hierarchy:

    1. Environment Variables (QUIVER_<KEY>, highest priority)
    2. Local Config (.quiver in project/parent directories)
    3. Global Config (~/.quiver-config)
    4. Built-in Defaults (lowest priority)

This lets a project pin its own catalog and agents directory while the
user keeps global defaults such as the upgrade policy.
"""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path
from typing import Literal

from quiver.config.settings import CONFIG_FILE, Settings
from quiver.utils.console import console, print_header, print_info
from quiver.utils.logging import log_message

ENV_PREFIX = "QUIVER_"


class ConfigManager:
    """Manages configuration loading and saving with cascading hierarchy.

    Security features:
    - Safe line-by-line parsing (no eval/exec)
    - Key name validation
    - Atomic file writes
    - Secure file permissions (600)

    Attributes:
        settings: Current settings instance
        global_config_path: Path to global ~/.quiver-config file
        local_config_path: Path to discovered local .quiver file (after load)
    """

    LOCAL_CONFIG_NAME = ".quiver"
    GLOBAL_CONFIG_NAME = ".quiver-config"

    def __init__(self, global_config_path: Path | None = None) -> None:
        self.global_config_path = global_config_path or CONFIG_FILE
        self.local_config_path: Path | None = None
        self.settings = Settings()
        self._raw_values: dict[str, str] = {}
        self._config_sources: dict[str, str] = {}

    def load(self) -> Settings:
        """Load configuration from all sources with cascading precedence.

        Loading order (later sources override earlier ones):
        1. Built-in defaults (from Settings dataclass)
        2. Global config (~/.quiver-config)
        3. Local config (.quiver in project/parent directories)
        4. Environment variables (highest priority)

        Each call starts from clean defaults so that repeated loads
        never keep stale values.

        Returns:
            Settings instance with loaded values
        """
        self.settings = Settings()
        self.local_config_path = None
        self._raw_values = {}
        self._config_sources = {}

        if self.global_config_path.exists():
            log_message(f"Loading global configuration from {self.global_config_path}")
            self._load_file(self.global_config_path, source="global")

        local_path = self._find_local_config()
        if local_path:
            self.local_config_path = local_path
            log_message(f"Loading local configuration from {local_path}")
            self._load_file(local_path, source=f"local ({local_path})")

        self._load_environment()

        for key, value in self._raw_values.items():
            self._apply_value_to_settings(key, value)

        log_message(f"Configuration loaded successfully ({len(self._raw_values)} keys)")
        return self.settings

    def _find_local_config(self) -> Path | None:
        """Find local .quiver config by traversing up from CWD.

        Stops at the first .quiver file, at a repository root (.git),
        or at the filesystem root.
        """
        current = Path.cwd()
        while True:
            config_path = current / self.LOCAL_CONFIG_NAME
            if config_path.exists() and config_path.is_file():
                return config_path

            if (current / ".git").exists():
                break

            parent = current.parent
            if parent == current:
                break
            current = parent

        return None

    def _load_file(self, path: Path, source: str = "file") -> None:
        """Load key=value pairs from a config file."""
        pattern = re.compile(r"^([a-zA-Z_][a-zA-Z0-9_]*)=(.*)$")

        with path.open() as f:
            for line in f:
                line = line.strip()

                if not line or line.startswith("#"):
                    continue

                match = pattern.match(line)
                if match:
                    key, value = match.groups()

                    # Only double-quoted values are unescaped; single quotes are literal
                    if len(value) >= 2 and value.startswith('"') and value.endswith('"'):
                        value = self._unescape_value(value[1:-1])
                    elif len(value) >= 2 and value.startswith("'") and value.endswith("'"):
                        value = value[1:-1]

                    self._raw_values[key] = value
                    self._config_sources[key] = source

    def _load_environment(self) -> None:
        """Override config with QUIVER_-prefixed environment variables.

        Only known config keys are read so unrelated environment
        variables never leak into the configuration.
        """
        for key in Settings.get_config_keys():
            env_value = os.environ.get(f"{ENV_PREFIX}{key}")
            if env_value is not None:
                self._raw_values[key] = env_value
                self._config_sources[key] = "environment"

    def _apply_value_to_settings(self, key: str, value: str) -> None:
        """Apply a raw config value to the settings object."""
        attr = self.settings.get_attribute_for_key(key)
        if attr is None:
            return  # Unknown key, ignore

        current_value = getattr(self.settings, attr)

        if isinstance(current_value, bool):
            setattr(self.settings, attr, value.lower() in ("true", "1", "yes"))
        elif isinstance(current_value, int):
            try:
                setattr(self.settings, attr, int(value))
            except ValueError:
                log_message(f"Ignoring non-integer value for {key}: {value!r}")
        elif isinstance(current_value, float):
            try:
                setattr(self.settings, attr, float(value))
            except ValueError:
                log_message(f"Ignoring non-numeric value for {key}: {value!r}")
        else:
            setattr(self.settings, attr, value)

    def save(
        self,
        key: str,
        value: str,
        scope: Literal["global", "local"] = "global",
    ) -> Path:
        """Save a configuration value to the global or local config file.

        Existing lines for other keys, comments and blank lines are kept.

        Args:
            key: Configuration key (must be a known key)
            value: Value to store
            scope: "global" for ~/.quiver-config, "local" for ./.quiver

        Returns:
            Path of the file that was written

        Raises:
            ValueError: If the key is invalid or unknown
        """
        if not re.match(r"^[a-zA-Z_][a-zA-Z0-9_]*$", key):
            raise ValueError(f"Invalid config key: {key}")
        if key not in Settings.get_config_keys():
            raise ValueError(f"Unknown config key: {key}")

        if scope == "local":
            target_path = self.local_config_path or Path.cwd() / self.LOCAL_CONFIG_NAME
        else:
            target_path = self.global_config_path

        lines: list[str] = []
        found = False
        if target_path.exists():
            for line in target_path.read_text().splitlines():
                if line.strip().startswith(f"{key}="):
                    lines.append(f'{key}="{self._escape_value_for_storage(value)}"')
                    found = True
                else:
                    lines.append(line)
        if not found:
            lines.append(f'{key}="{self._escape_value_for_storage(value)}"')

        self._atomic_write_to_path(lines, target_path)

        self._raw_values[key] = value
        self._config_sources[key] = scope
        self._apply_value_to_settings(key, value)
        log_message(f"Saved {key} to {scope} config ({target_path})")
        return target_path

    def _atomic_write_to_path(self, lines: list[str], target_path: Path) -> None:
        """Atomically write lines to a specific config file."""
        target_path.parent.mkdir(parents=True, exist_ok=True)

        # Temp file in the same directory so the final replace is atomic
        fd, temp_path = tempfile.mkstemp(
            dir=target_path.parent,
            prefix=".quiver-config-",
        )
        try:
            with os.fdopen(fd, "w") as f:
                f.write("\n".join(lines))
                if lines:
                    f.write("\n")

            os.chmod(temp_path, 0o600)
            Path(temp_path).replace(target_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    @staticmethod
    def _escape_value_for_storage(value: str) -> str:
        """Escape backslashes and double quotes for a double-quoted value."""
        return value.replace("\\", "\\\\").replace('"', '\\"')

    @staticmethod
    def _unescape_value(value: str) -> str:
        """Reverse _escape_value_for_storage."""
        return re.sub(r"\\(.)", r"\1", value)

    def get(self, key: str, default: str = "") -> str:
        """Get a raw configuration value by key."""
        return self._raw_values.get(key, default)

    def get_source(self, key: str) -> str:
        """Get where a configuration value came from ("default" if unset)."""
        return self._config_sources.get(key, "default")

    def show(self) -> None:
        """Display current configuration using Rich formatting."""
        print_header("Current Configuration")

        print_info(f"Global config: {self.global_config_path}")
        if self.local_config_path:
            print_info(f"Local config:  {self.local_config_path}")
        else:
            print_info("Local config:  (not found)")
        console.print()

        s = self.settings

        console.print("  [bold]Catalog:[/bold]")
        console.print(
            f"    Catalog URL: {s.catalog_url or '(not set)'}"
            f" [dim]({self.get_source('CATALOG_URL')})[/dim]"
        )
        console.print(f"    Fetch Timeout: {s.fetch_timeout_seconds}s")
        console.print(f"    Retry Delay: {s.retry_delay_seconds}s")
        console.print()

        console.print("  [bold]Installation:[/bold]")
        console.print(
            f"    Agents Directory: {s.agents_dir}"
            f" [dim]({self.get_source('AGENTS_DIR')})[/dim]"
        )
        console.print(f"    Artifact Extension: {s.artifact_extension}")
        console.print(
            f"    Upgrade Policy: {s.upgrade_policy}"
            f" [dim]({self.get_source('UPGRADE_POLICY')})[/dim]"
        )
        console.print(f"    Max Parallel Downloads: {s.max_parallel_downloads}")
        console.print()


__all__ = [
    "ConfigManager",
    "ENV_PREFIX",
]
