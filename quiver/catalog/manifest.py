"""Catalog manifest parsing and name resolution.

The manifest is a JSON document describing every installable agent:

    {
      "base_url": "https://example.org/catalog/",       (optional)
      "categories": {
        "core": ["sdlc-enforcer", {"name": "...", "path": "...", "description": "..."}]
      },
      "agents": {                                         (optional)
        "sdlc-enforcer": {"path": "core/sdlc-enforcer.md", "update_available": true}
      }
    }

Category entries are bare names (path defaults to ``<category>/<name>.md``)
or objects. The optional ``agents`` table overrides paths and descriptions
and carries the catalog's "newer version available" flag, which is treated
as an opaque boolean.

Output: an immutable :class:`Manifest` keyed uniquely by agent name.
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any
from urllib.parse import urljoin, urlparse

from quiver.catalog.exceptions import ManifestParseError
from quiver.utils.logging import log_message

# Agent names double as file stems, so keep them filesystem-safe
_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9._-]*$")

# Category used for names only listed in the direct "agents" table
UNCATEGORIZED = "uncategorized"

_URL_SCHEMES = frozenset({"http", "https", "file"})


@dataclass(frozen=True)
class ManifestEntry:
    """A single installable artifact offered by the catalog."""

    category: str
    name: str
    path: str  # As written in the manifest (relative or absolute)
    description: str = ""
    update_available: bool = False


@dataclass(frozen=True)
class Manifest:
    """Immutable catalog of artifacts keyed by name.

    Attributes:
        entries: Entries in document order
        base_url: Explicit base for relative paths (empty if not given)
        location: Where the manifest was loaded from (if known)
    """

    entries: tuple[ManifestEntry, ...]
    base_url: str = ""
    location: str | None = None
    _by_name: Mapping[str, ManifestEntry] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        by_name = {entry.name: entry for entry in self.entries}
        object.__setattr__(self, "_by_name", MappingProxyType(by_name))

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ManifestEntry]:
        return iter(self.entries)

    def get(self, name: str) -> ManifestEntry | None:
        return self._by_name.get(name)

    def names(self) -> frozenset[str]:
        """All artifact names offered by the catalog."""
        return frozenset(self._by_name)

    def categories(self) -> dict[str, list[ManifestEntry]]:
        """Entries grouped by category, preserving document order."""
        grouped: dict[str, list[ManifestEntry]] = {}
        for entry in self.entries:
            grouped.setdefault(entry.category, []).append(entry)
        return grouped

    def has_newer_version(self, name: str) -> bool:
        """Catalog signal that a newer version of ``name`` is available."""
        entry = self._by_name.get(name)
        return entry.update_available if entry is not None else False

    def location_for(self, name: str) -> str:
        """Resolve the retrieval location of an artifact.

        Raises:
            KeyError: If the catalog does not offer ``name``
        """
        entry = self._by_name[name]
        if self.base_url:
            return _join_location(self.base_url, entry.path, base_is_dir=True)
        if self.location:
            return _join_location(self.location, entry.path, base_is_dir=False)
        return entry.path

    def resolve(self) -> Mapping[str, str]:
        """Map every artifact name to its retrieval location."""
        return MappingProxyType(
            {entry.name: self.location_for(entry.name) for entry in self.entries}
        )


def _is_url(location: str) -> bool:
    return urlparse(location).scheme in _URL_SCHEMES


def _join_location(base: str, path: str, *, base_is_dir: bool) -> str:
    """Resolve ``path`` against ``base`` (a URL or a filesystem path)."""
    if _is_url(path) or Path(path).is_absolute():
        return path

    if _is_url(base):
        if base_is_dir and not base.endswith("/"):
            base += "/"
        return urljoin(base, path)

    base_path = Path(base) if base_is_dir else Path(base).parent
    return str(base_path / PurePosixPath(path))


def _require_name(value: Any, where: str) -> str:
    if not isinstance(value, str) or not _NAME_PATTERN.match(value):
        raise ManifestParseError(f"invalid agent name {value!r} in {where}")
    return value


def _optional_str(value: Any, key: str, where: str) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ManifestParseError(f"'{key}' must be a string in {where}")
    return value


def _optional_bool(value: Any, key: str, where: str, default: bool = False) -> bool:
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ManifestParseError(f"'{key}' must be a boolean in {where}")
    return value


def _parse_category_entry(category: str, item: Any) -> ManifestEntry:
    where = f"category '{category}'"
    if isinstance(item, str):
        name = _require_name(item, where)
        return ManifestEntry(category=category, name=name, path=f"{category}/{name}.md")

    if not isinstance(item, dict):
        raise ManifestParseError(f"entries must be names or objects in {where}")

    name = _require_name(item.get("name"), where)
    path = _optional_str(item.get("path"), "path", where) or f"{category}/{name}.md"
    description = _optional_str(item.get("description"), "description", where)
    return ManifestEntry(
        category=category,
        name=name,
        path=path,
        description=description,
        update_available=_optional_bool(item.get("update_available"), "update_available", where),
    )


def _decode(raw: str | bytes | Mapping[str, Any]) -> Mapping[str, Any]:
    if isinstance(raw, Mapping):
        return raw
    try:
        document = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ManifestParseError(f"not valid JSON ({e})") from e
    if not isinstance(document, dict):
        raise ManifestParseError("top-level value must be an object")
    return document


def parse_manifest(
    raw: str | bytes | Mapping[str, Any],
    location: str | None = None,
) -> Manifest:
    """Parse a manifest document into an immutable :class:`Manifest`.

    Args:
        raw: JSON text, bytes, or an already-decoded mapping
        location: Where the document came from; relative artifact paths
            are resolved against it when no ``base_url`` is given

    Returns:
        Manifest keyed uniquely by artifact name

    Raises:
        ManifestParseError: If the document is structurally invalid
    """
    try:
        document = _decode(raw)
        categories = document.get("categories")
        if not isinstance(categories, dict):
            raise ManifestParseError("'categories' must be an object")

        entries: dict[str, ManifestEntry] = {}
        for category, items in categories.items():
            if not isinstance(items, list):
                raise ManifestParseError(f"category '{category}' must be a list")
            for item in items:
                entry = _parse_category_entry(category, item)
                existing = entries.get(entry.name)
                if existing is None:
                    entries[entry.name] = entry
                elif existing.path != entry.path:
                    raise ManifestParseError(
                        f"agent '{entry.name}' listed with conflicting paths "
                        f"({existing.path!r}, {entry.path!r})"
                    )

        table = document.get("agents", {})
        if not isinstance(table, dict):
            raise ManifestParseError("'agents' must be an object")
        for name, details in table.items():
            _require_name(name, "'agents' table")
            if not isinstance(details, dict):
                raise ManifestParseError(f"'agents' entry for '{name}' must be an object")
            where = f"'agents' entry for '{name}'"
            path = _optional_str(details.get("path"), "path", where)
            description = _optional_str(details.get("description"), "description", where)
            existing = entries.get(name)
            if existing is None:
                if not path:
                    raise ManifestParseError(f"{where} needs a 'path'")
                existing = ManifestEntry(category=UNCATEGORIZED, name=name, path=path)
            entries[name] = ManifestEntry(
                category=existing.category,
                name=name,
                path=path or existing.path,
                description=description or existing.description,
                update_available=_optional_bool(
                    details.get("update_available"),
                    "update_available",
                    where,
                    default=existing.update_available,
                ),
            )

        base_url = _optional_str(document.get("base_url"), "base_url", "manifest")
    except ManifestParseError as e:
        if location and e.location is None:
            raise ManifestParseError(e.detail, location=location) from e
        raise

    manifest = Manifest(entries=tuple(entries.values()), base_url=base_url, location=location)
    log_message(f"Parsed catalog manifest: {len(manifest)} agent(s)")
    return manifest


def resolve_manifest(
    raw: str | bytes | Mapping[str, Any],
    location: str | None = None,
) -> Mapping[str, str]:
    """Parse a manifest document and return ``name -> location``.

    Raises:
        ManifestParseError: If the document is structurally invalid
    """
    return parse_manifest(raw, location).resolve()


__all__ = [
    "Manifest",
    "ManifestEntry",
    "UNCATEGORIZED",
    "parse_manifest",
    "resolve_manifest",
]
