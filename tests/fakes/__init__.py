"""Test fakes for catalog and installer testing."""

from tests.fakes.fake_catalog import FlakyCatalogClient, always_failing

__all__ = [
    "FlakyCatalogClient",
    "always_failing",
]
