"""
Tenacity retry policies for the collectors that touch the network.

BaseCollector.execute() never retries on its own; a concrete collector
wraps its fetch or render step with one of the policies below.
"""

import asyncio
import logging
from typing import Callable, Tuple, Type, TypeVar

import aiohttp
from playwright.async_api import Error as PlaywrightError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Transient transport failures, whatever library raised them
NETWORK_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
)

HTTP_EXCEPTIONS = (
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    aiohttp.ServerTimeoutError,
)

BROWSER_EXCEPTIONS = (PlaywrightError,)


def with_exponential_backoff(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    exception_types: Tuple[Type[BaseException], ...] = NETWORK_EXCEPTIONS
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Build a retry decorator with exponential backoff.

    The last exception is re-raised once attempts run out, so callers see
    the real failure rather than a tenacity RetryError.

    Args:
        max_attempts: Total attempts including the first one (at least 1)
        min_wait: Shortest wait between attempts in seconds
        max_wait: Longest wait between attempts in seconds
        exception_types: Exceptions that trigger another attempt

    Returns:
        A decorator usable on plain functions and coroutines
    """
    return retry(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exception_types),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def with_http_retry(max_attempts: int = 3, min_wait: float = 1.0,
                    max_wait: float = 10.0) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry policy for aiohttp fetches. HTTP error statuses are not retried."""
    return with_exponential_backoff(
        max_attempts=max_attempts,
        min_wait=min_wait,
        max_wait=max_wait,
        exception_types=HTTP_EXCEPTIONS + NETWORK_EXCEPTIONS,
    )


def with_browser_retry(max_attempts: int = 2) -> Callable[[Callable[..., T]], Callable[..., T]]:
    # Browser launches and navigations are slow to recover, so back off longer
    return with_exponential_backoff(
        max_attempts=max_attempts,
        min_wait=2.0,
        max_wait=15.0,
        exception_types=BROWSER_EXCEPTIONS + NETWORK_EXCEPTIONS,
    )
