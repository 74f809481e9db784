"""Resolution policy for upgrade candidates.

Turning candidates into approved upgrades is a pure decision: the caller
supplies how a per-item disposition is obtained (console prompt, config
flag, test harness). A missing answer is always treated as "skip" so that
no overwrite ever happens without explicit approval.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from enum import Enum

from quiver.utils.logging import log_message

# Returns True to approve, False to decline, None for no response
ConfirmUpgrade = Callable[[str], bool | None]


class ResolutionMode(Enum):
    """How upgrade candidates are resolved."""

    ALL = "all"
    NONE = "none"
    PER_ITEM = "ask"

    @classmethod
    def from_policy(cls, policy: str) -> ResolutionMode:
        """Parse an UPGRADE_POLICY / --upgrade value.

        Raises:
            ValueError: If ``policy`` is not one of all, none, ask
        """
        normalized = policy.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        valid = ", ".join(mode.value for mode in cls)
        raise ValueError(f"Invalid upgrade policy '{policy}'. Valid options: {valid}")


def resolve_upgrades(
    candidates: Collection[str],
    mode: ResolutionMode,
    confirm: ConfirmUpgrade | None = None,
) -> frozenset[str]:
    """Decide which upgrade candidates are approved.

    In PER_ITEM mode ``confirm`` is called once per candidate, in sorted
    order, and the call blocks until it returns. Only an explicit ``True``
    approves; ``False``, ``None`` or a missing callback all skip.

    Args:
        candidates: Names eligible for upgrade
        mode: Resolution mode
        confirm: Per-item disposition source (PER_ITEM only)

    Returns:
        Approved subset of ``candidates``
    """
    names = sorted(candidates)
    if mode is ResolutionMode.ALL:
        approved = frozenset(names)
    elif mode is ResolutionMode.NONE:
        approved = frozenset()
    else:
        approved_items: set[str] = set()
        for name in names:
            answer = confirm(name) if confirm is not None else None
            if answer is True:
                approved_items.add(name)
            else:
                log_message(f"Upgrade of '{name}' not approved (answer: {answer})")
        approved = frozenset(approved_items)

    log_message(
        f"Resolution ({mode.value}): {len(approved)} of {len(names)} upgrade(s) approved"
    )
    return approved


__all__ = [
    "ConfirmUpgrade",
    "ResolutionMode",
    "resolve_upgrades",
]
