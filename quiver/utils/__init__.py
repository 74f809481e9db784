"""Utility modules for QUIVER.

This package contains:
- console: Rich-based terminal output utilities
- errors: Custom exceptions and exit codes
- logging: Logging configuration
- retry: Transport retry with exponential backoff
"""

from quiver.utils.console import (
    console,
    print_error,
    print_header,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from quiver.utils.errors import (
    ConfigError,
    ExitCode,
    QuiverError,
    TransportFailure,
    UserCancelledError,
)
from quiver.utils.logging import log_message, log_transfer, setup_logging
from quiver.utils.retry import RetryConfig, calculate_backoff_delay, with_transport_retry

__all__ = [
    # Console
    "console",
    "print_error",
    "print_success",
    "print_warning",
    "print_info",
    "print_header",
    "print_step",
    # Errors
    "ExitCode",
    "QuiverError",
    "ConfigError",
    "TransportFailure",
    "UserCancelledError",
    # Logging
    "setup_logging",
    "log_message",
    "log_transfer",
    # Retry
    "RetryConfig",
    "calculate_backoff_delay",
    "with_transport_retry",
]
