"""Catalog access for QUIVER.

This package contains:
- manifest: Manifest parsing and name -> location resolution
- client: HTTP/filesystem transport for manifests and payloads
- exceptions: Catalog exception hierarchy
"""

from quiver.catalog.client import CatalogClient
from quiver.catalog.exceptions import (
    CatalogError,
    ManifestFetchError,
    ManifestParseError,
    TransportFailure,
)
from quiver.catalog.manifest import (
    UNCATEGORIZED,
    Manifest,
    ManifestEntry,
    parse_manifest,
    resolve_manifest,
)

__all__ = [
    "CatalogClient",
    "CatalogError",
    "ManifestFetchError",
    "ManifestParseError",
    "TransportFailure",
    "Manifest",
    "ManifestEntry",
    "UNCATEGORIZED",
    "parse_manifest",
    "resolve_manifest",
]
