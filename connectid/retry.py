"""
Backoff schedule for identity fetches.

The transport decides which failures are worth another attempt; this
module only spaces the attempts out. The defaults make a single attempt,
so a resolution sends one request unless retries are configured.
"""

import time
import functools
from typing import Callable, List, Optional

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class RetryError(Exception):
    """Raised when the last allowed attempt fails. The failure is the __cause__."""
    pass


def backoff_delays(
    max_retries: int,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    exponential_base: float = 2.0,
) -> List[float]:
    """Sleep before each retry: base_delay, then multiplied by exponential_base, capped at max_delay."""
    return [min(base_delay * exponential_base ** n, max_delay) for n in range(max_retries)]


def exponential_backoff(
    max_retries: int = 0,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    exponential_base: float = 2.0,
    should_retry: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Decorator that re-runs a fetch on retryable failures.

    Args:
        max_retries: Extra attempts after the first (0 = single attempt)
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between delays
        should_retry: Predicate on the raised exception; failures it
            rejects propagate unchanged. Without it every failure counts.
        on_retry: Optional callback(attempt, exception, delay)

    Raises:
        RetryError: When a retryable failure happens on the last attempt
    """
    delays = backoff_delays(max_retries, base_delay, max_delay, exponential_base)

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            for attempt, delay in enumerate(delays + [None], start=1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if delay is None:
                        raise RetryError(f"Gave up after {attempt} attempt(s): {e}") from e
                    if on_retry:
                        on_retry(attempt, e, delay)
                    time.sleep(delay)

        return wrapper
    return decorator


def should_retry_http_status(status_code: int) -> bool:
    """Timeouts, rate limiting and gateway/server errors are worth another attempt."""
    return status_code in RETRYABLE_STATUSES
