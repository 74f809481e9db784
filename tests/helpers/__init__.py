"""Test helper utilities for QUIVER."""

from tests.helpers.catalog import agent_content

__all__ = ["agent_content"]
