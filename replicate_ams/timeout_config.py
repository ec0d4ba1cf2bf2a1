"""
Centralized timeout configuration for all external operations.

This module provides consistent timeout values for management API calls,
long-running create operations and blob copies that could otherwise hang
indefinitely.

Usage:
    from replicate_ams.timeout_config import Timeouts

    poller.result(timeout=Timeouts.LONG_RUNNING_OPERATION)

Environment Variables:
    All timeout values can be overridden via environment variables:
    - AMS_TIMEOUT_HTTP_CONNECT: HTTP connection timeout (default: 10s)
    - AMS_TIMEOUT_HTTP_READ: HTTP read timeout (default: 60s)
    - AMS_TIMEOUT_TOKEN: Token acquisition (default: 30s)
    - AMS_TIMEOUT_LONG_RUNNING: Streaming endpoint / live event creation (default: 900s)
    - AMS_TIMEOUT_BLOB_COPY: Server-side copy of a single blob (default: 3600s)
    - AMS_TIMEOUT_BLOB_COPY_POLL: Interval between copy status checks (default: 5s)
"""

import logging
import os
from typing import Final

logger = logging.getLogger(__name__)


def _get_timeout(env_var: str, default: int) -> int:
    """Get timeout value from environment variable or use default.

    Args:
        env_var: Environment variable name
        default: Default timeout in seconds

    Returns:
        Timeout value in seconds
    """
    value = os.environ.get(env_var)
    if value is not None:
        try:
            timeout = int(value)
            if timeout <= 0:
                logger.warning(
                    f"Invalid timeout value for {env_var}: {value}. "
                    f"Must be positive. Using default: {default}s"
                )
                return default
            return timeout
        except ValueError:
            logger.warning(
                f"Invalid timeout value for {env_var}: {value}. "
                f"Must be integer. Using default: {default}s"
            )
            return default
    return default


class Timeouts:
    """Centralized timeout constants for all external operations.

    All values are in seconds and configurable via environment variables.
    """

    # HTTP transport timeouts handed to the SDK clients
    HTTP_CONNECT: Final[int] = _get_timeout("AMS_TIMEOUT_HTTP_CONNECT", 10)
    HTTP_READ: Final[int] = _get_timeout("AMS_TIMEOUT_HTTP_READ", 60)

    # Credential checks
    TOKEN: Final[int] = _get_timeout("AMS_TIMEOUT_TOKEN", 30)

    # Streaming endpoints, live events and live outputs are created through LROs
    LONG_RUNNING_OPERATION: Final[int] = _get_timeout("AMS_TIMEOUT_LONG_RUNNING", 900)

    # Asset content
    BLOB_COPY: Final[int] = _get_timeout("AMS_TIMEOUT_BLOB_COPY", 3600)
    BLOB_COPY_POLL_INTERVAL: Final[int] = _get_timeout("AMS_TIMEOUT_BLOB_COPY_POLL", 5)


class TimeoutError(Exception):
    """Custom exception for timeout operations with context."""

    def __init__(
        self,
        message: str,
        operation: str | None = None,
        timeout_value: int | None = None,
    ):
        """Initialize TimeoutError with context.

        Args:
            message: Error message
            operation: Name of the operation that timed out
            timeout_value: Timeout value that was exceeded
        """
        super().__init__(message)
        self.operation = operation
        self.timeout_value = timeout_value

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.timeout_value:
            parts.append(f"timeout={self.timeout_value}s")
        return " | ".join(parts)


def log_timeout_event(
    operation: str,
    timeout_value: int,
    level: str = "warning",
) -> None:
    """Log a timeout event with consistent formatting.

    Args:
        operation: Name of the operation that timed out
        timeout_value: Timeout value that was exceeded
        level: Log level (debug, info, warning, error)
    """
    log_func = getattr(logger, level, logger.warning)
    log_func(f"Operation '{operation}' timed out after {timeout_value} seconds")
