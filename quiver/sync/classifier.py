"""Three-way classification of selected, installed and offered artifacts.

Buckets partition ``selected | local``:

- new_install:       selected, offered by the catalog, not installed
- upgrade_candidate: selected, installed, offered, catalog reports a newer version
- up_to_date:        selected, installed, offered, no newer version
- custom:            installed but either not selected or not offered
- unresolved:        selected, not installed, not offered

A name that is installed but not selected is always ``custom``; the
engine never writes to it.
"""

from __future__ import annotations

from collections.abc import Callable, Collection
from dataclasses import dataclass

from quiver.utils.logging import log_message


@dataclass(frozen=True)
class ClassificationBuckets:
    """Disjoint buckets produced by :func:`classify`."""

    new_install: frozenset[str] = frozenset()
    upgrade_candidate: frozenset[str] = frozenset()
    up_to_date: frozenset[str] = frozenset()
    custom: frozenset[str] = frozenset()
    unresolved: frozenset[str] = frozenset()

    def as_dict(self) -> dict[str, list[str]]:
        return {
            "new_install": sorted(self.new_install),
            "upgrade_candidate": sorted(self.upgrade_candidate),
            "up_to_date": sorted(self.up_to_date),
            "custom": sorted(self.custom),
            "unresolved": sorted(self.unresolved),
        }

    def all_names(self) -> frozenset[str]:
        return (
            self.new_install
            | self.upgrade_candidate
            | self.up_to_date
            | self.custom
            | self.unresolved
        )

    def bucket_of(self, name: str) -> str | None:
        """Name of the bucket holding ``name`` (None if absent)."""
        for bucket, names in self.as_dict().items():
            if name in names:
                return bucket
        return None


def classify(
    selected: Collection[str],
    local: Collection[str],
    manifest_names: Collection[str],
    remote_has_newer_version: Callable[[str], bool],
) -> ClassificationBuckets:
    """Classify artifact names into disjoint buckets.

    Args:
        selected: Names required by the profile
        local: Names currently installed
        manifest_names: Names the catalog offers (e.g. the resolved name map)
        remote_has_newer_version: Opaque catalog flag per name

    Returns:
        Buckets partitioning ``selected | local``
    """
    selected_set = frozenset(selected)
    local_set = frozenset(local)
    known = frozenset(manifest_names)

    new_install = (selected_set & known) - local_set
    custom = (local_set - selected_set) | ((local_set & selected_set) - known)
    overlap = selected_set & local_set & known
    upgrade_candidate = frozenset(name for name in overlap if remote_has_newer_version(name))
    up_to_date = overlap - upgrade_candidate
    unresolved = selected_set - local_set - known

    buckets = ClassificationBuckets(
        new_install=new_install,
        upgrade_candidate=upgrade_candidate,
        up_to_date=up_to_date,
        custom=custom,
        unresolved=unresolved,
    )
    log_message(
        "Classification: "
        + ", ".join(f"{bucket}={len(names)}" for bucket, names in buckets.as_dict().items())
    )
    return buckets


__all__ = [
    "ClassificationBuckets",
    "classify",
]
