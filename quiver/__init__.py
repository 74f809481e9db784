"""QUIVER - Agent catalog selection and synchronization.

This package provides a Python CLI application that installs and upgrades
AI assistant subagent definitions from a remote catalog, based on a
description of the target project.
"""

__version__ = "0.3.0"
SCRIPT_NAME = "QUIVER"

__all__ = [
    "__version__",
    "SCRIPT_NAME",
]
