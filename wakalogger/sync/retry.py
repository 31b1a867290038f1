"""Exponential backoff for remote calls that may fail transiently."""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

__all__ = ["NO_RETRY", "RetryConfig", "RetryExhausted", "backoff_delay", "retry_with_backoff"]

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """How many times to retry and how long to wait between attempts."""

    max_retries: int = 3
    base_delay: float = 1.0  # seconds
    max_delay: float = 30.0  # seconds
    exponential_base: float = 2.0
    jitter: bool = True


NO_RETRY = RetryConfig(max_retries=0)


class RetryExhausted(Exception):
    """Raised when every attempt failed with a retryable error."""

    def __init__(self, attempts: int, last_error: Optional[Exception] = None):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Gave up after {attempts} attempts: {last_error}")


def backoff_delay(attempt: int, config: RetryConfig) -> float:
    """Seconds to wait before retry number ``attempt`` (0-indexed).

    The delay grows geometrically and is capped at ``config.max_delay``.
    With jitter enabled the result varies by up to 25% either way.
    """
    delay = min(config.base_delay * (config.exponential_base ** attempt), config.max_delay)
    if config.jitter:
        spread = delay * 0.25
        delay += random.uniform(-spread, spread)
    return max(0.0, delay)


def retry_with_backoff(
    func: Callable[[], T],
    config: Optional[RetryConfig] = None,
    retryable_exceptions: tuple = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``func`` until it succeeds or the retry budget runs out.

    Args:
        func: Zero-argument callable to execute
        config: Retry configuration, defaults to ``RetryConfig()``
        retryable_exceptions: Exceptions that trigger another attempt;
            anything else propagates immediately
        sleep: Sleep function, replaceable in tests

    Returns:
        Whatever ``func`` returns on its first successful call

    Raises:
        RetryExhausted: If all attempts raised a retryable exception
    """
    config = config or RetryConfig()
    last_error: Optional[Exception] = None

    for attempt in range(config.max_retries + 1):
        try:
            return func()
        except retryable_exceptions as e:
            last_error = e
            if attempt >= config.max_retries:
                break
            delay = backoff_delay(attempt, config)
            logger.warning(f"Attempt {attempt + 1} failed: {e}. Retrying in {delay:.1f}s...")
            sleep(delay)

    raise RetryExhausted(config.max_retries + 1, last_error)
