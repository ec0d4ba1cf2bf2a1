"""
Bounded retry with exponential backoff around blocking SDK calls.

Calls run in a worker thread (``asyncio.to_thread``) so a category can keep
several entities in flight. Only transient faults are retried; anything else
is wrapped into the replicator's exception hierarchy and raised at once.
"""

import asyncio
import logging
from typing import Any, Callable, TypeVar

from azure.core.exceptions import (
    AzureError,
    DeserializationError,
    HttpResponseError,
    SerializationError,
    ServiceRequestError,
    ServiceResponseError,
)

from ..exceptions import wrap_azure_exception

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

# (De)serialization faults derive from ValueError, not AzureError
SDK_ERRORS = (AzureError, DeserializationError, SerializationError)


def is_transient(exc: BaseException) -> bool:
    """Whether *exc* is worth retrying (network fault, throttling, 5xx)."""
    if isinstance(exc, (ServiceRequestError, ServiceResponseError)):
        return True
    if isinstance(exc, HttpResponseError):
        return exc.status_code in TRANSIENT_STATUS_CODES
    return False


async def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    operation: str,
    max_retries: int = 3,
    retry_delay: float = 1.0,
    **kwargs: Any,
) -> T:
    """
    Run ``func(*args, **kwargs)`` in a thread, retrying transient Azure faults.

    Args:
        func: Blocking callable, usually an SDK operation
        operation: Description used in log lines and wrapped errors
        max_retries: Retries after the first attempt
        retry_delay: Initial delay in seconds, doubled after every attempt

    Raises:
        AzureServiceError: When the call fails for good
    """
    attempts = max_retries + 1
    delay = retry_delay

    for attempt in range(1, attempts + 1):
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except SDK_ERRORS as exc:
            if not is_transient(exc) or attempt == attempts:
                if attempt > 1:
                    logger.error(f"{operation} failed after {attempt} attempts")
                raise wrap_azure_exception(exc, operation=operation) from exc
            logger.warning(
                f"Attempt {attempt} of {operation} failed: {exc}. Retrying in {delay:.1f}s"
            )
            await asyncio.sleep(delay)
            delay *= 2

    raise AssertionError("unreachable")
