"""Cyclic scheduler that releases each task in its time slot and watches for overruns."""

from __future__ import annotations

import argparse
import logging
import threading
from collections.abc import Callable, Sequence

from .config import MAESTRO_PERIOD_MS, OVERRUNS_MAX_NO, SCHEDULE, Slot
from .osal import BinarySemaphore, sleep_ms, start_thread

log = logging.getLogger(__name__)

_POLL_MS = 100


class SlotTask:
    """A task that runs one step each time the scheduler opens its slot.

    The scheduler posts ``start_semaphore`` to release the task; the task posts
    ``end_semaphore`` once its step is done.  The step is ``work`` when given,
    or whatever a subclass puts in :meth:`execute`.
    """

    def __init__(
        self,
        name: str,
        work: Callable[[], None] | None = None,
        *,
        poll_ms: int = _POLL_MS,
    ) -> None:
        if poll_ms <= 0:
            raise ValueError("poll period must be positive")
        self.name = name
        self.start_semaphore = BinarySemaphore(0)
        self.end_semaphore = BinarySemaphore(0)
        self.cycles = 0
        self._work = work
        self._poll_ms = poll_ms
        self._running = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        """Start the thread that waits for the slot and runs the step."""
        if self._running.is_set():
            return
        self._running.set()
        self._thread = start_thread(self._loop, f"{self.name.upper()}_EXEC")

    def stop(self) -> None:
        """Ask the thread to finish and wait for it."""
        self._running.clear()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def execute(self) -> None:
        """Run one step of the task."""
        if self._work is not None:
            self._work()
        self.cycles += 1

    def _loop(self) -> None:
        while self._running.is_set():
            if not self.start_semaphore.wait(self._poll_ms):
                continue
            if not self._running.is_set():
                break
            try:
                self.execute()
            except Exception:
                log.exception("task %s failed", self.name)
                continue
            self.end_semaphore.post()


class Maestro:
    """Runs tasks in fixed slots of a repeating period and counts slot overruns.

    Too many consecutive overruns of one task stop the scheduler, which stands
    for a reboot request.
    """

    def __init__(
        self,
        tasks: Sequence[SlotTask],
        schedule: Sequence[Slot] = SCHEDULE,
        *,
        period_ms: int = MAESTRO_PERIOD_MS,
        overruns_max: int = OVERRUNS_MAX_NO,
        on_tick: Callable[[int], None] | None = None,
        sleep: Callable[[float], None] = sleep_ms,
    ) -> None:
        if len(tasks) != len(schedule):
            raise ValueError(
                f"{len(tasks)} tasks for {len(schedule)} slots in the schedule"
            )
        if period_ms <= 0:
            raise ValueError("period must be positive")
        if overruns_max <= 0:
            raise ValueError("overrun limit must be positive")
        previous_end = 0
        for slot in schedule:
            if slot.start_ms < previous_end:
                raise ValueError(f"slot {slot.name!r} overlaps the slot before it")
            previous_end = slot.end_ms

        self.tasks = list(tasks)
        self.schedule = list(schedule)
        self.period_ms = period_ms
        self.overruns_max = overruns_max
        self.up_time = 0
        self.overruns = [0] * len(self.tasks)
        self.consecutive_overruns = [0] * len(self.tasks)
        self._on_tick = on_tick
        self._sleep = sleep
        self._execute_semaphore = BinarySemaphore(0)
        self._running = threading.Event()
        self._running.set()
        self._wake = threading.Event()
        self._threads: list[threading.Thread] = []
        self._started = False

    @property
    def is_running(self) -> bool:
        return self._running.is_set()

    def start(self) -> None:
        """Start the tasks and the scheduler threads."""
        if not self._running.is_set():
            raise RuntimeError("maestro has stopped")
        if self._started:
            return
        self._started = True
        for task in self.tasks:
            task.start()
        self._threads = [
            start_thread(self._maestro_loop, "MAESTRO"),
            start_thread(self._execute_loop, "MAESTRO_EXEC"),
        ]

    def stop(self) -> None:
        """Stop the scheduler and every task, waiting for their threads."""
        self._running.clear()
        self._wake.set()
        current = threading.current_thread()
        for thread in self._threads:
            if thread is not current:
                thread.join()
        self._threads = []
        for task in self.tasks:
            task.stop()

    def execute_cycle(self) -> list[str]:
        """Run one period of the schedule; return the names of tasks that overran."""
        overran: list[str] = []
        waited = 0
        for index, (slot, task) in enumerate(zip(self.schedule, self.tasks)):
            to_wait = slot.start_ms - waited
            self._sleep(to_wait)
            waited += to_wait

            task.end_semaphore.wait(0)  # drop a late completion from an earlier cycle
            task.start_semaphore.post()

            self._sleep(slot.length_ms)
            waited += slot.length_ms

            if task.end_semaphore.wait(0):
                self.consecutive_overruns[index] = 0
                continue

            log.warning("task %d (%s) overran its slot", index, slot.name)
            overran.append(slot.name)
            self.overruns[index] += 1
            self.consecutive_overruns[index] += 1
            if self.consecutive_overruns[index] == self.overruns_max:
                log.error("task %s overran %d times in a row: reboot", slot.name,
                          self.overruns_max)
                self._running.clear()
                self._wake.set()
        return overran

    def _maestro_loop(self) -> None:
        while self._running.is_set():
            log.debug("maestro tick %d", self.up_time)
            if self._on_tick is not None:
                self._on_tick(self.up_time)
            self._execute_semaphore.post()
            self._wake.wait(self.period_ms / 1000)
            self.up_time += 1

    def _execute_loop(self) -> None:
        while self._running.is_set():
            if not self._execute_semaphore.wait(_POLL_MS):
                continue
            if not self._running.is_set():
                break
            self.execute_cycle()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the scheduler with idle tasks in the configured slots."""
    parser = argparse.ArgumentParser(description="Run the slot scheduler.")
    parser.add_argument(
        "--cycles",
        type=int,
        default=0,
        help="stop after this many periods (0 runs until the scheduler stops itself)",
    )
    parser.add_argument(
        "--period-ms",
        type=int,
        default=MAESTRO_PERIOD_MS,
        help="length of one scheduling period in milliseconds",
    )
    args = parser.parse_args(argv)
    if args.cycles < 0:
        parser.error("--cycles must not be negative")
    if args.period_ms <= 0:
        parser.error("--period-ms must be positive")

    print("SERVER")
    maestro = Maestro(
        [SlotTask(slot.name) for slot in SCHEDULE],
        SCHEDULE,
        period_ms=args.period_ms,
    )
    sleep_ms(100)
    maestro.start()
    try:
        while maestro.is_running and (args.cycles == 0 or maestro.up_time < args.cycles):
            sleep_ms(_POLL_MS)
    except KeyboardInterrupt:
        pass
    finally:
        maestro.stop()
    print("END")
    return 0