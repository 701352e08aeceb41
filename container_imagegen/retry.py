"""Bounded retry for idempotent operations.

Operations report failure through an OperationResult instead of raising, so
the retry decision is made on the result's ``transient`` flag.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from container_imagegen.types import OperationResult

logger = logging.getLogger(__name__)

T = TypeVar("T")


def execute_with_retry(
    operation: Callable[[], OperationResult[T]],
    max_attempts: int = 5,
    delay: float = 5.0,
    backoff: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> OperationResult[T]:
    """Run an operation until it succeeds or a non-transient failure occurs.

    Args:
        operation: Idempotent callable returning an OperationResult.
        max_attempts: Maximum number of invocations.
        delay: Delay before the second attempt (seconds).
        backoff: Multiplier applied to the delay after each failed attempt.
        sleep: Sleep function (injectable for tests).

    Returns:
        The first successful result, the first non-transient failure,
        or the last transient failure once attempts are exhausted.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    wait = delay
    for attempt in range(1, max_attempts):
        result = operation()
        if result.success or not result.transient:
            return result

        logger.warning(
            "Attempt %d/%d failed (%s): %s. Retrying in %.1fs",
            attempt,
            max_attempts,
            result.code,
            result.message,
            wait,
        )
        sleep(wait)
        wait *= backoff

    result = operation()
    if not result.success and result.transient:
        logger.error(
            "Operation failed after %d attempts: %s", max_attempts, result.message
        )
    return result


__all__ = ["execute_with_retry"]
