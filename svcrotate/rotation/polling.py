"""Timeout-bounded polling primitive shared by every wait site."""

from __future__ import annotations

import time
from typing import Callable


def poll_until(
    predicate: Callable[[], bool],
    *,
    initial_delay: float,
    interval: float,
    timeout: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Sleep initial_delay, then check predicate every interval.

    Returns True as soon as predicate() is true, or False once timeout
    seconds have passed since the first check.
    """
    if initial_delay > 0:
        sleep(initial_delay)
    deadline = clock() + timeout
    while True:
        if predicate():
            return True
        if clock() >= deadline:
            return False
        sleep(interval)
