"""Shared pytest fixtures for QUIVER tests."""

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from quiver.sync.engine import SyncOptions
from quiver.sync.resolution import ResolutionMode
from tests.helpers import agent_content

CatalogFactory = Callable[..., Path]


@pytest.fixture
def make_catalog(tmp_path: Path) -> CatalogFactory:
    """Factory writing an on-disk catalog and returning the manifest path.

    Usage:
        manifest = make_catalog({"core": ["sdlc-enforcer"]}, newer={"sdlc-enforcer"})
    """

    def factory(
        categories: dict[str, list[str]],
        *,
        newer: set[str] | None = None,
        version: str = "2",
        missing_payloads: set[str] | None = None,
    ) -> Path:
        root = tmp_path / "catalog"
        root.mkdir(exist_ok=True)
        for category, names in categories.items():
            for name in names:
                if name in (missing_payloads or set()):
                    continue
                payload = root / category / f"{name}.md"
                payload.parent.mkdir(parents=True, exist_ok=True)
                payload.write_text(agent_content(name, version))

        document = {
            "categories": categories,
            "agents": {name: {"update_available": True} for name in sorted(newer or set())},
        }
        manifest = root / "manifest.json"
        manifest.write_text(json.dumps(document, indent=2))
        return manifest

    return factory


@pytest.fixture
def agents_dir(tmp_path: Path) -> Path:
    """Agents directory inside a project (not created)."""
    return tmp_path / "project" / ".claude" / "agents"


@pytest.fixture
def install_local(agents_dir: Path) -> Callable[..., Path]:
    """Write already-installed agents into the agents directory."""

    def factory(*names: str, content: str | None = None) -> Path:
        agents_dir.mkdir(parents=True, exist_ok=True)
        for name in names:
            (agents_dir / f"{name}.md").write_text(content or agent_content(name, "1"))
        return agents_dir

    return factory


@pytest.fixture
def make_options(agents_dir: Path) -> Callable[..., SyncOptions]:
    """Build SyncOptions for a catalog with no retry delay."""

    def factory(manifest: Path, **overrides) -> SyncOptions:
        values = {
            "catalog_url": str(manifest),
            "agents_dir": agents_dir,
            "mode": ResolutionMode.NONE,
            "max_parallel": 4,
            "retry_delay_seconds": 0.0,
        }
        values.update(overrides)
        return SyncOptions(**values)

    return factory


@pytest.fixture
def temp_config_file(tmp_path: Path) -> Path:
    """Create a temporary config file with sample values."""
    config_file = tmp_path / ".quiver-config"
    config_file.write_text(
        """# QUIVER Configuration
CATALOG_URL="https://agents.example.org/manifest.json"
AGENTS_DIR=".claude/agents"
UPGRADE_POLICY="all"
MAX_PARALLEL_DOWNLOADS="6"
FETCH_TIMEOUT_SECONDS="15"
RETRY_DELAY_SECONDS="0.5"
"""
    )
    return config_file
