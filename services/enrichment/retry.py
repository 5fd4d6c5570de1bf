"""
Retry Logic with Exponential Backoff and Jitter

Retries transient failures of external enrichment calls.
"""

import logging
import random
import time
from typing import Any, Callable, Optional, Tuple, Type

import requests

from catalog.config import RetryConfig

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    requests.ConnectionError,
    requests.Timeout,
    ConnectionError,
    TimeoutError,
)


class RetryExhausted(Exception):
    """Raised when all retry attempts are exhausted"""
    def __init__(self, last_exception: Exception, attempts: int):
        self.last_exception = last_exception
        self.attempts = attempts
        super().__init__(f"Retry exhausted after {attempts} attempts: {last_exception}")


def calculate_backoff(
    attempt: int,
    base_delay: float = 1.0,
    max_delay: float = 20.0,
    jitter: str = "full"
) -> float:
    """
    Calculate delay with exponential backoff and jitter.

    Jitter strategies:
    - "full": Random between 0 and calculated delay
    - "equal": Half fixed, half random
    - "none": Pure exponential
    """
    delay = min(base_delay * (2 ** attempt), max_delay)

    if jitter == "full":
        return random.uniform(0, delay)
    elif jitter == "equal":
        return delay / 2 + random.uniform(0, delay / 2)
    return delay


class RetryHandler:
    """
    Handles retry logic for one external provider.

    HTTP errors with a retryable status code (429, 5xx) and connection
    failures are retried; anything else propagates immediately.
    """

    def __init__(self, config: Optional[RetryConfig] = None, sleep: Callable[[float], None] = time.sleep):
        self.config = config or RetryConfig()
        self.sleep = sleep

    def is_retryable(self, exception: Exception) -> bool:
        if isinstance(exception, requests.HTTPError):
            response = exception.response
            return response is not None and response.status_code in self.config.retryable_codes
        return isinstance(exception, RETRYABLE_EXCEPTIONS)

    def execute(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute func with retry logic.

        Raises:
            RetryExhausted: every attempt failed with a retryable error
        """
        last_exception = None

        for attempt in range(self.config.max_attempts):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                if not self.is_retryable(e):
                    raise
                last_exception = e

            if attempt + 1 >= self.config.max_attempts:
                break

            delay = calculate_backoff(
                attempt,
                base_delay=self.config.base_delay,
                max_delay=self.config.max_delay,
                jitter=self.config.jitter,
            )
            logger.warning(
                f"Attempt {attempt + 1}/{self.config.max_attempts} failed: {last_exception}. "
                f"Retrying in {delay:.2f}s"
            )
            self.sleep(delay)

        raise RetryExhausted(last_exception, self.config.max_attempts)
