"""UI components for QUIVER.

This package contains:
- prompts: Questionary-based upgrade prompts
"""

from quiver.ui.prompts import UpgradePrompter, custom_style, prompt_upgrade

__all__ = [
    "custom_style",
    "prompt_upgrade",
    "UpgradePrompter",
]
