"""Logging configuration for QUIVER.

Logging is controlled by environment variables and goes to a file so that
it never interferes with console output or interactive prompts.

Environment Variables:
    QUIVER_LOG: Set to "true" to enable logging (default: "false")
    QUIVER_LOG_FILE: Path to log file (default: ~/.quiver.log)
"""

import logging
import os
from pathlib import Path

# Environment variable configuration
LOG_ENABLED = os.environ.get("QUIVER_LOG", "false").lower() == "true"
LOG_FILE = Path(os.environ.get("QUIVER_LOG_FILE", str(Path.home() / ".quiver.log")))

# Module-level logger instance
_logger: logging.Logger | None = None


def setup_logging() -> logging.Logger:
    """Configure logging based on environment variables.

    Creates a logger that writes to the configured log file when
    QUIVER_LOG is set to "true". Otherwise, uses a NullHandler
    to suppress all log output.

    Returns:
        Configured logger instance
    """
    global _logger

    if _logger is not None:
        return _logger

    logger = logging.getLogger("quiver")

    # Clear any existing handlers
    logger.handlers.clear()

    if LOG_ENABLED:
        LOG_FILE.parent.mkdir(parents=True, exist_ok=True)

        handler = logging.FileHandler(LOG_FILE)
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    else:
        logger.addHandler(logging.NullHandler())

    _logger = logger
    return logger


def get_logger() -> logging.Logger:
    """Get the configured logger instance, creating it if necessary."""
    global _logger
    if _logger is None:
        return setup_logging()
    return _logger


def log_message(message: str) -> None:
    """Log a message if logging is enabled.

    This is the primary logging function used throughout the application.
    It is safe to call from installer worker threads.

    Args:
        message: Message to log
    """
    logger = get_logger()
    logger.info(message)


def log_transfer(location: str, outcome: str, size: int | None = None) -> None:
    """Log a catalog transfer (manifest or payload retrieval).

    Args:
        location: URL or path that was retrieved
        outcome: Short outcome label ("ok", "error", ...)
        size: Number of bytes received, if known
    """
    logger = get_logger()
    if size is None:
        logger.info(f"TRANSFER: {location} | {outcome}")
    else:
        logger.info(f"TRANSFER: {location} | {outcome} | {size} bytes")


__all__ = [
    "LOG_ENABLED",
    "LOG_FILE",
    "setup_logging",
    "get_logger",
    "log_message",
    "log_transfer",
]
