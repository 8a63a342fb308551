# tests/test_timer.py

from __future__ import annotations

import pytest

from grand_prix.core import timer
from grand_prix.core.clock import format_duration
from grand_prix.core.errors import ValidationError
from grand_prix.core.models import Task, TaskStatus

T0 = 1_760_000_000_000


def _running(start: int = T0) -> Task:
    return timer.start_task(Task(id="t1"), start)


def test_start_requires_started_sector() -> None:
    with pytest.raises(ValidationError, match="Confirm you are ready"):
        timer.start_task(Task(id="t1"), T0, sector_started=False)


def test_start_pause_resume_finish_accounts_pauses() -> None:
    task = _running()
    assert task.status == TaskStatus.RUNNING
    assert task.start_time == T0

    task = timer.pause_task(task, T0 + 10_000)
    assert task.status == TaskStatus.PAUSED
    assert timer.elapsed_ms(task, T0 + 99_000) == 10_000

    task = timer.start_task(task, T0 + 25_000)
    assert task.status == TaskStatus.RUNNING
    assert task.pause_duration == 15_000
    assert task.pause_start is None
    assert timer.elapsed_ms(task, T0 + 30_000) == 15_000

    task = timer.finish_task(task, T0 + 40_000)
    assert task.status == TaskStatus.FINISHED
    assert task.duration == 25_000
    assert task.end_time == T0 + 40_000
    # Finished tasks show their stored duration forever.
    assert timer.elapsed_ms(task, T0 + 10**9) == 25_000


def test_many_pit_stops_sum_every_pause() -> None:
    task = _running()
    pauses = [3_000, 7_000, 12_000]
    now = T0
    for i, length in enumerate(pauses, start=1):
        now += 20_000
        task = timer.pause_task(task, now)
        now += length
        task = timer.start_task(task, now)
        assert task.pause_duration == sum(pauses[:i])

    end = now + 5_000
    task = timer.finish_task(task, end)
    assert task.pause_duration == sum(pauses)
    assert task.duration == end - T0 - sum(pauses)


def test_finish_from_paused_drains_open_pause() -> None:
    task = timer.pause_task(_running(), T0 + 5_000)
    task = timer.finish_task(task, T0 + 8_000)
    assert task.pause_duration == 3_000
    assert task.duration == 5_000


def test_duration_is_never_negative() -> None:
    task = _running(T0 + 5_000)
    task = timer.finish_task(task, T0)
    assert task.duration == 0


def test_noop_transitions_return_same_object() -> None:
    fresh = Task(id="t1")
    running = _running()
    assert timer.pause_task(fresh, T0) is fresh
    assert timer.start_task(running, T0 + 1) is running
    assert timer.reset_task(fresh) is fresh

    done = timer.finish_task(running, T0 + 1_000)
    assert timer.finish_task(done, T0 + 2_000) is done


def test_finished_is_terminal_for_start() -> None:
    done = timer.finish_task(_running(), T0 + 1_000)
    with pytest.raises(ValidationError, match="already finished"):
        timer.start_task(done, T0 + 2_000)


def test_finish_requires_start() -> None:
    with pytest.raises(ValidationError, match="Start the task"):
        timer.finish_task(Task(id="t1"), T0)


def test_reset_clears_timing_fields() -> None:
    paused = timer.pause_task(_running(), T0 + 1_000)
    task = timer.reset_task(paused)
    assert task.status == TaskStatus.NOT_STARTED
    assert (task.start_time, task.end_time, task.pause_start, task.duration) == (None, None, None, None)
    assert task.pause_duration == 0
    assert timer.elapsed_ms(task, T0 + 5_000) == 0


def test_sector_task_bounds() -> None:
    sector = timer.new_sector(T0)
    assert len(sector.tasks) == timer.MIN_TASKS
    assert len({t.id for t in sector.tasks}) == timer.MIN_TASKS

    with pytest.raises(ValidationError, match="Minimum 4 tasks"):
        timer.remove_task(sector)

    for _ in range(timer.MAX_TASKS - timer.MIN_TASKS):
        sector = timer.add_task(sector, timer.blank_task(T0))
    assert len(sector.tasks) == 15
    with pytest.raises(ValidationError, match="Maximum 15 tasks"):
        timer.add_task(sector, timer.blank_task(T0))

    sector = timer.remove_task(sector)
    assert len(sector.tasks) == 14


def test_started_sector_locks_task_list() -> None:
    sector = timer.mark_ready(timer.new_sector(T0), T0)
    assert sector.started
    with pytest.raises(ValidationError, match="locked"):
        timer.add_task(sector, timer.blank_task(T0))
    with pytest.raises(ValidationError, match="locked"):
        timer.remove_task(sector)
    with pytest.raises(ValidationError, match="already started"):
        timer.mark_ready(sector, T0 + 1)


def test_remaining_time_clamps_at_zero() -> None:
    sector = timer.new_sector(T0)
    assert timer.sector_remaining_ms(sector, T0) is None

    sector = timer.mark_ready(sector, T0)
    assert timer.sector_remaining_ms(sector, T0 + 60_000) == timer.SECTOR_DURATION_MS - 60_000
    assert timer.sector_remaining_ms(sector, T0 + timer.SECTOR_DURATION_MS + 5_000) == 0


def test_snapshot_reports_time_up_and_finished() -> None:
    sector = timer.mark_ready(timer.new_sector(T0), T0)
    for i in range(len(sector.tasks)):
        task = timer.start_task(sector.tasks[i], T0)
        sector = timer.replace_task(sector, i, timer.finish_task(task, T0 + 10_000))

    snap = timer.snapshot_sector(2, sector, T0 + timer.SECTOR_DURATION_MS)
    assert snap.sector == 2
    assert snap.time_up
    assert snap.all_finished
    assert [v.position for v in snap.tasks] == [1, 2, 3, 4]
    assert timer.finished_total_ms(sector) == 40_000


@pytest.mark.parametrize(
    ("ms", "text"),
    [
        (0, "00:00"),
        (59_999, "00:59"),
        (61_000, "01:01"),
        (3_600_000, "01:00:00"),
        (-5, "00:00"),
        (None, "00:00"),
        (float("nan"), "00:00"),
    ],
)
def test_format_duration(ms, text) -> None:
    assert format_duration(ms) == text
