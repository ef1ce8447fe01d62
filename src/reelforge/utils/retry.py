"""Retry helpers for calls to external services.

Only NetworkError and TemporaryServiceError are retried; anything else is
raised immediately.
"""

import logging

from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """Connection failure or timeout talking to an external service."""


class TemporaryServiceError(Exception):
    """The service answered, but asked us to come back later (e.g. HTTP 429)."""


RETRYABLE_ERRORS = (NetworkError, TemporaryServiceError)


def retry_api_call(max_retries: int = 1, base_delay: float = 1.0, max_delay: float = 10.0):
    """Decorator retrying a sync or async call on retryable errors.

    Args:
        max_retries: Retries after the first attempt (1 means two attempts total)
        base_delay: Multiplier for the exponential backoff, in seconds
        max_delay: Upper bound for a single wait

    The last error is re-raised once the attempts are exhausted.
    """
    return retry(
        stop=stop_after_attempt(max_retries + 1),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
