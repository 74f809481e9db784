"""Custom exceptions for catalog operations.

This module defines the exception hierarchy for the catalog package:
- CatalogError: Base exception for all catalog failures
- ManifestFetchError: The manifest document could not be retrieved
- ManifestParseError: The manifest document is structurally invalid
- TransportFailure: An artifact payload could not be retrieved

Manifest errors are fatal to a sync run: no plan is built from a catalog
that cannot be read. Transport failures are per-artifact.
"""

from __future__ import annotations

from typing import ClassVar

from quiver.utils.errors import ExitCode, QuiverError, TransportFailure


class CatalogError(QuiverError):
    """Base exception for catalog failures."""

    _default_exit_code: ClassVar[ExitCode] = ExitCode.MANIFEST_ERROR


class ManifestFetchError(CatalogError):
    """Raised when the manifest document cannot be retrieved at all.

    Attributes:
        location: URL or path of the manifest
    """

    def __init__(self, location: str, reason: str, message: str | None = None) -> None:
        self.location = location
        self.reason = reason
        if message is None:
            message = f"Failed to fetch catalog manifest from {location}: {reason}"
        super().__init__(message)


class ManifestParseError(CatalogError):
    """Raised when the manifest document is structurally invalid.

    Attributes:
        location: URL or path of the manifest (if known)
        detail: What was wrong with the document
    """

    def __init__(self, detail: str, location: str | None = None) -> None:
        self.location = location
        self.detail = detail
        if location:
            message = f"Invalid catalog manifest at {location}: {detail}"
        else:
            message = f"Invalid catalog manifest: {detail}"
        super().__init__(message)


__all__ = [
    "CatalogError",
    "ManifestFetchError",
    "ManifestParseError",
    "TransportFailure",
]
