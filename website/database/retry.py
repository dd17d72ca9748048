"""Retry mechanisms for content store database operations."""

import functools
import logging
import time
from typing import Any, Callable, TypeVar

from sqlalchemy.exc import OperationalError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LOCK_MESSAGES = (
    "database is locked",
    "database table is locked",
    "cannot start a transaction within a transaction",
)


def is_lock_error(exc: BaseException) -> bool:
    """Check whether an exception (or its cause) is a transient lock error.

    Args:
        exc: Exception raised by a store call

    Returns:
        True if retrying may succeed
    """
    for candidate in (exc, exc.__cause__):
        if isinstance(candidate, OperationalError):
            error_msg = str(candidate).lower()
            return any(msg in error_msg for msg in _LOCK_MESSAGES)
    return False


def with_db_retry(
    max_retries: int = 5,
    base_delay: float = 0.1,
    max_delay: float = 2.0,
    backoff_factor: float = 2.0,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator that adds retry logic with exponential backoff for database operations.

    Only lock contention is retried; every other failure propagates at once.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries in seconds
        backoff_factor: Multiplier for exponential backoff

    Returns:
        Decorated function with retry logic
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_lock_error(e) or attempt == max_retries:
                        raise

                    # Calculate delay with exponential backoff
                    delay = min(base_delay * (backoff_factor**attempt), max_delay)

                    logger.debug(
                        f"Database operation failed (attempt {attempt + 1}/{max_retries + 1}): {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )

                    time.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper

    return decorator
