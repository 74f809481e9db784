"""Custom exceptions and exit codes for QUIVER.

This module defines the exit codes and the base of the exception hierarchy
used throughout the application. Catalog-specific exceptions live in
``quiver.catalog.exceptions`` and derive from :class:`QuiverError`.
"""

from enum import IntEnum
from typing import ClassVar


class ExitCode(IntEnum):
    """Process exit codes.

    These codes are used for consistent error reporting and can be
    checked by calling scripts or CI systems.
    """

    SUCCESS = 0
    GENERAL_ERROR = 1
    MANIFEST_ERROR = 2  # Catalog could not be fetched or parsed
    INCOMPLETE = 3  # Some artifacts failed or mandatory ones are missing
    USER_CANCELLED = 4


class QuiverError(Exception):
    """Base exception for QUIVER errors.

    All custom exceptions in this application should inherit from this class.
    Each exception type has an associated exit code for proper error reporting.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.GENERAL_ERROR

    def __init__(self, message: str, exit_code: ExitCode | None = None) -> None:
        super().__init__(message)
        self._exit_code = exit_code

    @property
    def exit_code(self) -> ExitCode:
        """Get the exit code for this exception."""
        if self._exit_code is not None:
            return self._exit_code
        return self.__class__._default_exit_code


class ConfigError(QuiverError):
    """Configuration value is invalid.

    Raised when:
    - UPGRADE_POLICY is not one of ask/all/none
    - MAX_PARALLEL_DOWNLOADS is out of range
    - No catalog location is configured
    """


class UserCancelledError(QuiverError):
    """User cancelled the operation.

    Raised when the user presses Ctrl+C outside of a per-item upgrade
    prompt.
    """

    _default_exit_code: ClassVar[ExitCode] = ExitCode.USER_CANCELLED


# ── Transport exception ──────────────────────────────────────────────────────
# Defined here (in the dependency-free base error module) so that
# utils.retry can depend on it without importing the catalog package.


class TransportFailure(QuiverError):
    """Raised when an artifact payload cannot be retrieved.

    Attributes:
        location: URL or path that failed
    """

    def __init__(self, message: str, location: str = "") -> None:
        super().__init__(message)
        self.location = location


__all__ = [
    "ExitCode",
    "QuiverError",
    "ConfigError",
    "UserCancelledError",
    "TransportFailure",
]
