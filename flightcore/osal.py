"""Thin operating-system layer: semaphores, sleeping and thread start-up."""

from __future__ import annotations

import threading
import time
from typing import Any, Callable

from .config import UINT32_MAX

TASK_MAX_DELAY = UINT32_MAX


class BinarySemaphore:
    """A semaphore created available, as the scheduler expects."""

    def __init__(self, value: int = 1) -> None:
        if value < 0:
            raise ValueError("semaphore value must not be negative")
        self._semaphore = threading.Semaphore(value)

    def post(self) -> None:
        self._semaphore.release()

    def wait(self, timeout_ms: int = TASK_MAX_DELAY) -> bool:
        """Take the semaphore; return False if the timeout ran out first.

        A timeout of TASK_MAX_DELAY or more waits forever, zero only tries.
        """
        if timeout_ms < 0:
            raise ValueError("timeout must not be negative")
        if timeout_ms >= TASK_MAX_DELAY:
            return self._semaphore.acquire()
        if timeout_ms == 0:
            return self._semaphore.acquire(blocking=False)
        return self._semaphore.acquire(timeout=timeout_ms / 1000)


def sleep_ms(milliseconds: float) -> None:
    """Sleep for the given number of milliseconds."""
    time.sleep(milliseconds / 1000)


def start_thread(target: Callable[..., Any], name: str, *args: Any) -> threading.Thread:
    """Start a daemon thread running target(*args) and return it."""
    thread = threading.Thread(target=target, name=name, args=args, daemon=True)
    thread.start()
    return thread