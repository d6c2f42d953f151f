"""
Retry and backoff helpers.

Provides the retry policy used by the upload transport and the delay
schedule used by the confirmation loop:
- Exponential backoff with jitter for transient transfer failures
- A transient-error classifier for requests exceptions and HTTP statuses
- A capped linear schedule for polling the asset store

Usage:
    from src.utils.retry import retry_with_backoff, is_transient_error

    @retry_with_backoff(max_attempts=5, base_delay=1.0, retry_if=is_transient_error)
    def upload(path):
        # ... upload logic that may fail transiently ...
        pass
"""

import functools
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import requests

from src.utils.logging import get_logger

# Module-level logger
logger = get_logger(__name__)

# HTTP statuses worth retrying
TRANSIENT_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def calculate_backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    multiplier: float,
    jitter: bool,
) -> float:
    """
    Calculate delay for exponential backoff with optional jitter.

    Formula:
        delay = min(base_delay * (multiplier ** attempt), max_delay)
        if jitter:
            delay = delay * random.uniform(0.5, 1.5)

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds
        max_delay: Maximum delay cap
        multiplier: Exponential multiplier
        jitter: Whether to add random jitter

    Returns:
        Calculated delay in seconds

    Example:
        >>> calculate_backoff_delay(2, base_delay=1.0, max_delay=60.0,
        ...                         multiplier=2.0, jitter=False)
        4.0
    """
    delay = min(base_delay * (multiplier ** attempt), max_delay)

    if jitter:
        delay = delay * random.uniform(0.5, 1.5)

    return delay


def linear_backoff_delay(iteration: int, step: float = 1.0, max_delay: float = 5.0) -> float:
    """
    Delay for the given polling iteration: step, 2*step, ... capped at max_delay.

    Args:
        iteration: Polling iteration (1-indexed)
        step: Increment per iteration in seconds
        max_delay: Upper bound in seconds

    Returns:
        Delay in seconds

    Example:
        >>> [linear_backoff_delay(i) for i in range(1, 8)]
        [1.0, 2.0, 3.0, 4.0, 5.0, 5.0, 5.0]
    """
    return min(max(iteration, 1) * step, max_delay)


# ============================================================================
# Retry Decorator
# ============================================================================

def retry_with_backoff(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_multiplier: float = 2.0,
    jitter: bool = True,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Decorator for retrying functions with exponential backoff.

    Retries the wrapped function on the listed exception types, optionally
    narrowed by `retry_if`. The last exception is re-raised once attempts
    run out, or immediately when `retry_if` rejects it.

    Args:
        max_attempts: Maximum number of attempts (including initial)
        base_delay: Initial delay between retries in seconds
        max_delay: Maximum delay between retries
        backoff_multiplier: Multiplier for exponential backoff
        jitter: Add randomness to spread out concurrent retries
        exceptions: Tuple of exception types to retry on
        retry_if: Predicate deciding whether a caught exception is retryable
        on_retry: Callback called as on_retry(attempt, exception, delay)
        sleep: Sleep function (injectable for tests)

    Returns:
        Decorated function with retry logic

    Example:
        >>> @retry_with_backoff(
        ...     max_attempts=3,
        ...     exceptions=(requests.RequestException,),
        ...     retry_if=is_transient_error,
        ... )
        ... def post_form(url, fields):
        ...     return requests.post(url, data=fields)
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_attempts):
                try:
                    if attempt > 0:
                        logger.info(
                            f"Retry attempt {attempt}/{max_attempts - 1} "
                            f"for {func.__name__}"
                        )
                    result = func(*args, **kwargs)
                    if attempt > 0:
                        logger.info(f"{func.__name__} succeeded on attempt {attempt + 1}")
                    return result

                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        logger.warning(f"{func.__name__} failed with non-retryable error: {e}")
                        raise

                    if attempt >= max_attempts - 1:
                        logger.error(
                            f"{func.__name__} failed after {max_attempts} attempts. "
                            f"Last error: {e}"
                        )
                        raise

                    delay = calculate_backoff_delay(
                        attempt=attempt,
                        base_delay=base_delay,
                        max_delay=max_delay,
                        multiplier=backoff_multiplier,
                        jitter=jitter,
                    )
                    logger.warning(
                        f"{func.__name__} failed on attempt {attempt + 1}: {e}. "
                        f"Retrying in {delay:.2f}s..."
                    )
                    if on_retry:
                        on_retry(attempt, e, delay)
                    sleep(delay)

            raise RuntimeError(f"{func.__name__} called with max_attempts={max_attempts}")

        return wrapper
    return decorator


# ============================================================================
# Utility Functions
# ============================================================================

def is_transient_error(exception: Exception) -> bool:
    """
    Determine if an exception is likely transient (retryable).

    Args:
        exception: Exception to check

    Returns:
        True if the exception is likely transient

    Note:
        Transient errors are connection failures, timeouts and HTTP
        responses with status 408, 429 or 5xx gateway/server errors.
    """
    if isinstance(exception, (requests.ConnectionError, requests.Timeout)):
        return True

    if isinstance(exception, (ConnectionError, TimeoutError)):
        return True

    response = getattr(exception, "response", None)
    status_code = getattr(response, "status_code", None)
    if status_code is not None:
        return status_code in TRANSIENT_STATUS_CODES

    return False
