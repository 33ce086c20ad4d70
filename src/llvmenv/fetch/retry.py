"""Bounded retry with backoff around fetch operations."""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import TypeVar

from llvmenv.config import RetryPolicy
from llvmenv.errors import FetchError
from llvmenv.observability import StructuredLogger

T = TypeVar("T")

Sleeper = Callable[[float], None]


def call_with_retries(
    operation: Callable[[], T],
    *,
    policy: RetryPolicy,
    name: str,
    logger: StructuredLogger,
    sleep: Sleeper = time.sleep,
) -> T:
    """Run ``operation``, retrying on ``FetchError`` up to ``policy.attempts`` times.

    Errors marked non-retryable are raised on the first failure.

    The last error is re-raised unchanged once attempts are exhausted.
    """
    attempts = max(policy.attempts, 1)
    attempt = 1
    while True:
        try:
            result = operation()
        except FetchError as exc:
            if not exc.retryable or attempt >= attempts:
                raise
            delay = policy.delay(attempt)
            logger.log(
                operation="fetch_retry",
                entry=name,
                stage="fetch",
                level="warning",
                message=f"Fetch attempt {attempt}/{attempts} failed; retrying in {delay:.1f}s.",
                extra={"error": exc.to_dict()},
            )
            sleep(delay)
            attempt += 1
            continue
        if attempt > 1:
            logger.log(
                operation="fetch_recovered",
                entry=name,
                stage="fetch",
                level="warning",
                message=f"Fetch succeeded after {attempt} attempts.",
            )
        return result
