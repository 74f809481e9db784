"""Interactive prompts for QUIVER.

This module provides Questionary-based upgrade prompts with consistent
styling. Prompts only run on the main thread; installer workers never
print or ask.
"""

from __future__ import annotations

import sys

import questionary
from questionary import Style

from quiver.utils.console import print_warning
from quiver.utils.logging import log_message

# Custom style matching the application theme
custom_style = Style(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:green bold"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:green"),
        ("separator", "fg:cyan"),
        ("instruction", "fg:white"),
        ("text", ""),
        ("disabled", "fg:gray italic"),
    ]
)


def prompt_upgrade(name: str) -> bool | None:
    """Ask whether to replace the installed copy of an agent.

    Returns:
        True to upgrade, False to keep the installed copy, None if the
        prompt was dismissed without an answer
    """
    message = f"A newer version of '{name}' is available. Replace your copy?"
    log_message(f"Prompt upgrade: {name}")

    result = questionary.confirm(message, default=False, style=custom_style).ask()
    log_message(f"User response for {name}: {result}")
    return result


class UpgradePrompter:
    """Per-item upgrade disposition backed by console prompts.

    Ctrl+C (or a dismissed prompt) stops prompting: the interrupted
    candidate and every remaining one get no answer, so they are kept as
    they are. When stdin is not a terminal no prompt is shown at all.
    """

    def __init__(self, *, interactive: bool | None = None) -> None:
        self.interactive = sys.stdin.isatty() if interactive is None else interactive
        self.cancelled = False
        self._warned = False

    def __call__(self, name: str) -> bool | None:
        if not self.interactive:
            if not self._warned:
                print_warning(
                    "Not running in a terminal; keeping installed agents. "
                    "Use --upgrade all to replace them."
                )
                self._warned = True
            return None
        if self.cancelled:
            return None

        try:
            answer = prompt_upgrade(name)
        except KeyboardInterrupt:
            answer = None
        if answer is None:
            log_message(f"Upgrade prompts interrupted at {name}")
            self.cancelled = True
        return answer


__all__ = [
    "custom_style",
    "prompt_upgrade",
    "UpgradePrompter",
]
