"""
Retry decorators with exponential backoff.

Used for rule store reads against PostgreSQL and for Vault requests. Writes
are never wrapped: a save that failed halfway must surface to the caller.

Usage:
    from utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3)
    def fetch_rows(conn, endpoint_id):
        ...
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

RetryCallback = Callable[[int, Exception, float], None]

# Substrings of transient database failures (matched against message and type)
RETRYABLE_DB_PATTERNS = (
    "connection",
    "timeout",
    "deadlock",
    "could not serialize",
    "server closed the connection",
    "terminating connection",
    "could not connect",
    "connection refused",
    "connection reset",
    "broken pipe",
    "network error",
)

RETRYABLE_DB_TYPES = frozenset({
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
})


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
) -> float:
    """
    Backoff delay in seconds for a zero-based attempt number.

    Jitter spreads the delay by +/-25% and never goes below 0.1s.
    """
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        spread = delay * 0.25
        delay = max(0.1, delay + random.uniform(-spread, spread))
    return delay


def _call_with_retries(
    func: Callable,
    args: tuple,
    kwargs: dict,
    max_retries: int,
    should_retry: Callable[[Exception], bool],
    delay_for: Callable[[int], float],
    on_retry: RetryCallback | None,
) -> Any:
    func_name = getattr(func, "__name__", "function")

    for attempt in range(max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            if not should_retry(e):
                logger.error(
                    f"Non-retryable error in {func_name}: {type(e).__name__}: {e}"
                )
                raise

            if attempt == max_retries:
                logger.error(
                    f"Max retries ({max_retries}) exceeded for {func_name}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            delay = delay_for(attempt)
            logger.warning(
                f"Attempt {attempt + 1}/{max_retries} failed for {func_name}: "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )

            if on_retry:
                try:
                    on_retry(attempt + 1, e, delay)
                except Exception as callback_error:
                    logger.error(f"Error in retry callback: {callback_error}")

            time.sleep(delay)

    raise RuntimeError(f"Unexpected exit from retry loop in {func_name}")


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    on_retry: RetryCallback | None = None,
):
    """
    Decorator that retries a function with exponential backoff

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        max_delay: Maximum delay in seconds
        exponential_base: Base for exponential backoff
        jitter: Add random jitter to the delay
        retryable_exceptions: Exception types to retry (default: all exceptions)
        on_retry: Callback(attempt, exception, delay) called before each retry

    Example:
        @retry_with_backoff(
            max_retries=2,
            retryable_exceptions=(requests.ConnectionError, requests.Timeout),
        )
        def fetch_secret(url):
            return requests.get(url, timeout=10)
    """
    def should_retry(e: Exception) -> bool:
        return retryable_exceptions is None or isinstance(e, retryable_exceptions)

    def delay_for(attempt: int) -> float:
        return compute_delay(attempt, base_delay, max_delay, exponential_base, jitter)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return _call_with_retries(
                func, args, kwargs, max_retries, should_retry, delay_for, on_retry
            )
        return wrapper
    return decorator


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Determine if a database exception is transient.

    Connection drops, timeouts, deadlocks and serialization failures are
    retryable; syntax errors, constraint violations and the like are not.

    Args:
        exception: The exception to check

    Returns:
        True if the exception is retryable, False otherwise
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if type_name in RETRYABLE_DB_TYPES:
        return True

    return any(
        pattern in message or pattern in type_name
        for pattern in RETRYABLE_DB_PATTERNS
    )


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: RetryCallback | None = None,
):
    """
    Retry decorator for database reads that only retries transient errors.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Initial delay in seconds
        on_retry: Callback(attempt, exception, delay) called before each retry

    Example:
        @retry_database_operation(max_retries=5)
        def fetch_rows(cursor, query):
            cursor.execute(query)
            return cursor.fetchall()
    """
    def delay_for(attempt: int) -> float:
        return compute_delay(attempt, base_delay, max_delay=60.0)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            return _call_with_retries(
                func, args, kwargs, max_retries,
                is_retryable_db_exception, delay_for, on_retry,
            )
        return wrapper
    return decorator
