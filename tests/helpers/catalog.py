"""Helpers for building agent payloads in tests."""


def agent_content(name: str, version: str = "1") -> str:
    """Realistic agent file body."""
    return f"""---
name: {name}
description: {name} agent (v{version})
---

You are the {name} agent. Version {version}.
"""
