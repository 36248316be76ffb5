"""Retry vendor calls with exponential backoff."""

import asyncio
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog

from solarops.utils.exceptions import VendorAPIError

P = ParamSpec("P")
T = TypeVar("T")

logger = structlog.get_logger(__name__)


def is_transient(error: Exception) -> bool:
    """Whether a vendor error may succeed on a later attempt.

    Transport failures and 5xx responses are transient. 4xx responses and
    errors the vendor reports inside a successful response are not.
    """
    if not isinstance(error, VendorAPIError):
        return False
    return error.status_code is None or error.status_code >= 500


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt`` (0-based), capped at ``max_delay``."""
    return min(base_delay * 2**attempt, max_delay)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 2.0,
    max_delay: float = 60.0,
    retry_if: Callable[[Exception], bool] = is_transient,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Retry an async callable while ``retry_if`` accepts the raised error.

    Args:
        max_retries: Retries after the first attempt.
        base_delay: Delay before the first retry, doubled for each further one.
        max_delay: Upper bound for a single delay.
        retry_if: Decides whether an exception is worth retrying. Anything
            it rejects propagates immediately.
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if not retry_if(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Giving up after retries",
                            function=func.__name__,
                            attempts=attempt + 1,
                            error=str(e),
                        )
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay)
                    attempt += 1
                    logger.warning(
                        "Transient vendor error, retrying",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
