"""
Retry policy for oracle calls.

Quota and rate-limit failures are retried with exponential backoff
(1.5s, 3s, ...). Everything else, and exhausted retries, surface as
OracleFailed so the session step can be retried by the learner.
"""

from __future__ import annotations

import time
from typing import Callable, TypeVar

from loguru import logger

from growfluent.errors import OracleFailed, OracleTransient

T = TypeVar("T")

DEFAULT_RETRIES = 2
DEFAULT_INITIAL_DELAY = 1.5  # seconds


def is_quota_error(error: BaseException) -> bool:
    """Whether an exception looks like HTTP 429 or a quota message."""
    if isinstance(error, OracleTransient):
        return True

    for attr in ("status", "code", "status_code"):
        if getattr(error, attr, None) == 429:
            return True

    message = str(error)
    return "429" in message or "quota" in message.lower()


def call_with_retry(
    fn: Callable[[], T],
    retries: int = DEFAULT_RETRIES,
    initial_delay: float = DEFAULT_INITIAL_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``fn`` retrying transient failures.

    Args:
        fn: Zero-argument oracle call
        retries: Extra attempts after the first one
        initial_delay: Seconds before the first retry, doubled each time
        sleep: Injected for tests

    Raises:
        OracleFailed: Non-retryable failure or retries exhausted
    """
    delay = initial_delay
    last_error: BaseException | None = None

    for attempt in range(retries + 1):
        try:
            return fn()
        except OracleFailed:
            raise
        except Exception as e:
            if not is_quota_error(e):
                raise OracleFailed(str(e)) from e
            last_error = e

        if attempt < retries:
            logger.warning(
                f"Oracle quota exceeded on attempt {attempt + 1}/{retries + 1}. "
                f"Retrying in {delay:.1f}s..."
            )
            sleep(delay)
            delay *= 2

    logger.error(f"Oracle call failed after {retries + 1} attempts: {last_error}")
    raise OracleFailed(f"Oracle unavailable after {retries + 1} attempts") from last_error
