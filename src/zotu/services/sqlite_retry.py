"""Bounded retry for SQLite writes that hit transient lock contention."""

from __future__ import annotations

import logging
import random
import sqlite3
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_LOCKED_TOKENS = ("database is locked", "database is busy", "locked", "busy")


def is_lock_error(exc: sqlite3.OperationalError) -> bool:
    message = str(exc).lower()
    return any(token in message for token in _LOCKED_TOKENS)


def run_with_sqlite_lock_retry(
    operation: Callable[[], T],
    *,
    op_name: str,
    max_attempts: int = 4,
    base_delay_s: float = 0.02,
    max_delay_s: float = 0.25,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run `operation`, backing off with jitter while the database is locked.

    Non-lock errors and the final failed attempt propagate unchanged.
    """
    attempts = max(1, int(max_attempts))
    delay = max(0.0, float(base_delay_s))
    attempt = 1
    while True:
        try:
            return operation()
        except sqlite3.OperationalError as exc:
            if not is_lock_error(exc) or attempt >= attempts:
                raise
            jitter = random.random() * delay * 0.5 if delay > 0 else 0.0
            wait_s = max(0.0, min(max_delay_s, delay + jitter))
            logger.debug(
                "SQLite %s locked (attempt %d/%d); retrying in %.3fs",
                op_name,
                attempt,
                attempts,
                wait_s,
            )
            sleep(wait_s)
            delay = min(max_delay_s, max(0.005, delay * 2.0))
            attempt += 1
