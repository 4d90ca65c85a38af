import time

import pytest

from flightcore.config import OVERRUNS_MAX_NO, SCHEDULE, Slot
from flightcore.maestro import Maestro, SlotTask, main


def _no_sleep(_ms):
    return None


class _Runner:
    """Sleep stand-in that runs released tasks synchronously, except the skipped ones."""

    def __init__(self, tasks, skipped=()):
        self.tasks = tasks
        self.skipped = set(skipped)
        self.slept = []

    def __call__(self, ms):
        self.slept.append(ms)
        for task in self.tasks:
            if task.name in self.skipped:
                continue
            if task.start_semaphore.wait(0):
                task.execute()
                task.end_semaphore.post()


def _tasks():
    return [SlotTask(slot.name) for slot in SCHEDULE]


def test_task_count_must_match_schedule():
    with pytest.raises(ValueError):
        Maestro([SlotTask("only")], SCHEDULE)


def test_overlapping_slots_are_rejected():
    schedule = [Slot("a", 0, 50), Slot("b", 20, 10)]
    with pytest.raises(ValueError):
        Maestro([SlotTask("a"), SlotTask("b")], schedule)


def test_non_positive_period_is_rejected():
    with pytest.raises(ValueError):
        Maestro(_tasks(), SCHEDULE, period_ms=0)


def test_slot_task_execute_runs_work_and_counts():
    calls = []
    task = SlotTask("t", lambda: calls.append(1))
    task.execute()
    task.execute()
    assert calls == [1, 1]
    assert task.cycles == 2


def test_unstarted_tasks_overrun_every_slot():
    tasks = _tasks()
    maestro = Maestro(tasks, SCHEDULE, sleep=_no_sleep)
    overran = maestro.execute_cycle()
    assert overran == [slot.name for slot in SCHEDULE]
    assert maestro.overruns == [1, 1, 1]
    assert maestro.consecutive_overruns == [1, 1, 1]
    assert maestro.is_running


def test_consecutive_overruns_stop_the_maestro():
    maestro = Maestro(_tasks(), SCHEDULE, sleep=_no_sleep)
    for _ in range(OVERRUNS_MAX_NO - 1):
        maestro.execute_cycle()
        assert maestro.is_running
    maestro.execute_cycle()
    assert not maestro.is_running
    assert maestro.consecutive_overruns == [OVERRUNS_MAX_NO] * len(SCHEDULE)


def test_tasks_that_finish_in_their_slot_do_not_overrun():
    tasks = _tasks()
    runner = _Runner(tasks)
    maestro = Maestro(tasks, SCHEDULE, sleep=runner)
    assert maestro.execute_cycle() == []
    assert [task.cycles for task in tasks] == [1, 1, 1]
    assert maestro.overruns == [0, 0, 0]


def test_sleeps_follow_the_schedule():
    tasks = _tasks()
    runner = _Runner(tasks)
    maestro = Maestro(tasks, SCHEDULE, sleep=runner)
    maestro.execute_cycle()
    expected = []
    waited = 0
    for slot in SCHEDULE:
        expected.append(slot.start_ms - waited)
        expected.append(slot.length_ms)
        waited = slot.end_ms
    assert runner.slept == expected
    assert sum(runner.slept) == SCHEDULE[-1].end_ms


def test_only_the_late_task_is_counted():
    tasks = _tasks()
    late = SCHEDULE[1].name
    runner = _Runner(tasks, skipped={late})
    maestro = Maestro(tasks, SCHEDULE, sleep=runner)
    assert maestro.execute_cycle() == [late]
    assert maestro.overruns == [0, 1, 0]


def test_success_resets_consecutive_overruns():
    tasks = _tasks()
    late = SCHEDULE[0].name
    runner = _Runner(tasks, skipped={late})
    maestro = Maestro(tasks, SCHEDULE, sleep=runner)
    maestro.execute_cycle()
    maestro.execute_cycle()
    assert maestro.consecutive_overruns[0] == 2
    runner.skipped.clear()
    tasks[0].start_semaphore.wait(0)
    maestro.execute_cycle()
    assert maestro.consecutive_overruns[0] == 0
    assert maestro.overruns[0] == 2


def test_slot_task_thread_runs_a_step_per_release():
    task = SlotTask("t", poll_ms=10)
    task.start()
    try:
        task.start_semaphore.post()
        assert task.end_semaphore.wait(2000)
        assert task.cycles == 1
        assert task.is_running
    finally:
        task.stop()
    assert not task.is_running


def test_maestro_threads_release_tasks_and_tick():
    schedule = [Slot("a", 5, 40), Slot("b", 50, 40)]
    tasks = [SlotTask("a", poll_ms=5), SlotTask("b", poll_ms=5)]
    ticks = []
    maestro = Maestro(tasks, schedule, period_ms=150, on_tick=ticks.append)
    maestro.start()
    deadline = time.monotonic() + 5
    while time.monotonic() < deadline and not all(t.cycles >= 1 for t in tasks):
        time.sleep(0.01)
    maestro.stop()
    assert all(task.cycles >= 1 for task in tasks)
    assert ticks[: len(ticks)] == list(range(len(ticks)))
    assert ticks[0] == 0
    assert not maestro.is_running
    assert not any(task.is_running for task in tasks)


def test_start_after_stop_is_an_error():
    maestro = Maestro(_tasks(), SCHEDULE, sleep=_no_sleep)
    maestro.stop()
    with pytest.raises(RuntimeError):
        maestro.start()


def test_main_runs_one_cycle(capsys):
    assert main(["--cycles", "1", "--period-ms", "400"]) == 0
    out = capsys.readouterr().out
    assert out.splitlines()[0] == "SERVER"
    assert out.splitlines()[-1] == "END"


def test_main_rejects_negative_cycles():
    with pytest.raises(SystemExit):
        main(["--cycles", "-1"])