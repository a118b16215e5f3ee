"""Fixed-count retry for the per-reservation capture pipeline."""

from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_RETRIES = 1
RETRY_DELAY_SECONDS = 1.0


def run_with_retry(
    operation: Callable[[], T],
    *,
    max_retries: int = MAX_RETRIES,
    delay_seconds: float = RETRY_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
    label: str = "operation",
) -> T:
    """
    Run operation, re-running it from scratch after a failure.

    The operation is attempted at most ``max_retries + 1`` times with a fixed
    pause between attempts. Partial progress of a failed attempt is not
    resumed.

    Args:
        operation: Zero-argument callable to run
        max_retries: Extra attempts after the first failure (default 1)
        delay_seconds: Pause between attempts (default 1s)
        sleep: Sleep function (injected in tests)
        label: Name used in log messages (e.g. the reservation code)

    Returns:
        Result of the first successful attempt

    Raises:
        Exception: The last attempt's exception, unchanged
        ValueError: If max_retries is negative
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    attempt = 0
    while True:
        try:
            return operation()
        except Exception as e:
            if attempt < max_retries:
                logger.info(
                    f"Retry {attempt + 1} for {label}: {e}",
                    extra={"attempt": attempt + 1, "max_retries": max_retries, "error": str(e)},
                )
                sleep(delay_seconds)
                attempt += 1
            else:
                logger.error(
                    f"All {max_retries + 1} attempts failed for {label}: {e}",
                    extra={"max_retries": max_retries, "error": str(e)},
                )
                raise
