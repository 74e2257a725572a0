"""
Exponential backoff schedule for polling.

The reconciliation loop does not retry failures; it only spaces out its
status reads. :func:`backoff_delays` yields the sleep before each
successive poll and :func:`sleep_or_cancel` performs one such sleep while
honouring a cancellation event.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator

logger = logging.getLogger("vmctl")


def backoff_delays(
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    backoff_factor: float = 2.0,
) -> Iterator[float]:
    """Yield an endless sequence of exponentially growing delays.

    Args:
        base_delay: First delay in seconds.
        max_delay: Cap on any single delay.
        backoff_factor: Multiplier applied after each delay.

    Yields:
        Delay in seconds, never above ``max_delay``.
    """
    delay = min(base_delay, max_delay)
    while True:
        yield delay
        delay = min(delay * backoff_factor, max_delay)


def sleep_or_cancel(delay: float, cancel: threading.Event | None = None) -> bool:
    """Sleep for *delay* seconds.

    Returns:
        ``True`` if *cancel* was set before or during the sleep.
    """
    if cancel is None:
        if delay > 0:
            time.sleep(delay)
        return False
    if cancel.wait(delay):
        logger.debug("Poll sleep of %.1fs interrupted by cancellation", delay)
        return True
    return False
