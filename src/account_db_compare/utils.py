"""
Retry utilities for store access.

This module provides retry functionality with exponential backoff for
transient SQLite failures such as a locked database.
"""

import sqlite3
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from account_db_compare.audit.logger import CompareLogger
from account_db_compare.config.models import RetryConfig

TRANSIENT_SQLITE_MESSAGES = ("database is locked", "database is busy", "database table is locked")


def is_transient_sqlite_error(exc: BaseException) -> bool:
    """True for SQLite errors that may succeed when retried."""
    if not isinstance(exc, sqlite3.OperationalError):
        return False
    message = str(exc).lower()
    return any(text in message for text in TRANSIENT_SQLITE_MESSAGES)


def retry_with_logging(
    retry_config: RetryConfig, logger: Optional[CompareLogger] = None
):
    """
    Decorator for retrying store operations with logging.

    Only transient SQLite errors are retried; the last error is re-raised
    once all attempts are exhausted.

    Args:
        retry_config: RetryConfig object with retry settings
        logger: Optional logger for logging attempts

    Returns:
        Decorator applying retry logic and logging
    """

    def _before_sleep(retry_state):
        if logger is None:
            return
        logger.warning(
            f"{retry_state.fn.__name__} failed on attempt "
            f"{retry_state.attempt_number}/{retry_config.max_attempts}: "
            f"{retry_state.outcome.exception()}"
        )
        logger.debug(f"Waiting {retry_state.next_action.sleep:.1f}s before retry...")

    return retry(
        stop=stop_after_attempt(retry_config.max_attempts),
        wait=wait_exponential(multiplier=retry_config.retry_delay_seconds),
        retry=retry_if_exception(is_transient_sqlite_error),
        before_sleep=_before_sleep,
        reraise=True,
    )
