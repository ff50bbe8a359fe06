"""Retry utilities with exponential backoff."""

import logging
import random
import threading
import time
from typing import Callable, Optional, TypeVar

from ..config.settings import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar('T')


class RetryCancelled(Exception):
    """Raised when a backoff sleep is interrupted by cancellation."""

    def __init__(self, last_exception: BaseException):
        super().__init__(f"Retry cancelled after: {last_exception}")
        self.last_exception = last_exception


def compute_delay(delay: float, max_delay: float, jitter: bool) -> float:
    """Delay for the next attempt, with ±25% jitter, capped at ``max_delay``."""
    if jitter:
        jitter_range = delay * 0.25
        delay = delay + random.uniform(-jitter_range, jitter_range)
    return max(0.0, min(delay, max_delay))


def exponential_backoff(
    func: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 0.1,
    max_delay: float = 5.0,
    backoff_factor: float = 2.0,
    jitter: bool = True,
    exceptions: tuple = (Exception,),
    cancel_event: Optional[threading.Event] = None,
    on_retry: Optional[Callable[[int, BaseException], None]] = None,
) -> T:
    """
    Execute a function with exponential backoff retry logic.

    Sleeps wait on ``cancel_event`` so a cancelled job stops retrying
    without waiting out the full delay.

    Args:
        func: Function to execute
        max_attempts: Maximum number of attempts (including the first)
        initial_delay: Initial delay between retries (seconds)
        max_delay: Maximum delay between retries (seconds)
        backoff_factor: Multiplier for delay after each failure
        jitter: Whether to add random jitter to delays
        exceptions: Tuple of exceptions to catch and retry on
        cancel_event: Set to interrupt the retry loop
        on_retry: Called with (attempt, exception) before each retry sleep

    Returns:
        Result of the function call

    Raises:
        The last exception encountered if all retries fail
        RetryCancelled: If cancel_event is set while waiting to retry
    """
    delay = initial_delay

    for attempt in range(1, max_attempts + 1):
        try:
            return func()
        except exceptions as e:
            if attempt == max_attempts:
                logger.error(f"Function failed after {max_attempts} attempts: {e}")
                raise

            actual_delay = compute_delay(delay, max_delay, jitter)
            logger.warning(
                f"Attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {actual_delay:.2f} seconds..."
            )
            if on_retry is not None:
                on_retry(attempt, e)

            if cancel_event is not None:
                if cancel_event.wait(actual_delay):
                    raise RetryCancelled(e) from e
            else:
                time.sleep(actual_delay)
            delay *= backoff_factor

    raise RuntimeError("max_attempts must be at least 1")


def retry_from_config(config: RetryConfig, **kwargs):
    """Keyword arguments for ``exponential_backoff`` taken from a RetryConfig."""
    return dict(
        max_attempts=config.max_attempts,
        initial_delay=config.initial_backoff_seconds,
        max_delay=config.max_backoff_seconds,
        backoff_factor=config.backoff_multiplier,
        jitter=config.jitter,
        **kwargs
    )

