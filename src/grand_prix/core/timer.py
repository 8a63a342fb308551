# src/grand_prix/core/timer.py

"""
Task and sector transitions.

Every function here is pure: it takes a value plus the current time and
returns a new value (or the same one for a no-op). Rejected transitions raise
ValidationError with the message shown to the user.

Task lifecycle:

    Not started -> Running <-> Paused -> Finished
    Running | Paused -> Not started   (reset / "stop")

Finished is terminal.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .errors import ValidationError
from .models import SectorRecord, Task, TaskStatus, new_task_id

SECTOR_DURATION_MS = 45 * 60 * 1000
MIN_TASKS = 4
MAX_TASKS = 15


# ---- tasks ----


def start_task(task: Task, now: int, *, sector_started: bool = True) -> Task:
    """Start a fresh task or resume a paused one. Running stays as is."""
    if task.status == TaskStatus.FINISHED:
        raise ValidationError("Task already finished.")

    if task.status == TaskStatus.NOT_STARTED:
        if not sector_started:
            raise ValidationError("Confirm you are ready before starting tasks.")
        return replace(
            task,
            status=TaskStatus.RUNNING,
            start_time=now,
            pause_duration=0,
            pause_start=None,
        )

    if task.status == TaskStatus.PAUSED:
        return replace(
            task,
            status=TaskStatus.RUNNING,
            pause_duration=_drained_pause(task, now),
            pause_start=None,
        )

    return task


def pause_task(task: Task, now: int) -> Task:
    if task.status != TaskStatus.RUNNING:
        return task
    return replace(task, status=TaskStatus.PAUSED, pause_start=now)


def finish_task(task: Task, now: int) -> Task:
    if task.status == TaskStatus.FINISHED:
        return task
    if task.status == TaskStatus.NOT_STARTED:
        raise ValidationError("Start the task before finishing.")

    pause_duration = task.pause_duration
    if task.status == TaskStatus.PAUSED:
        pause_duration = _drained_pause(task, now)

    start = task.start_time if task.start_time is not None else now
    duration = max(0, now - start - pause_duration)
    return replace(
        task,
        status=TaskStatus.FINISHED,
        end_time=now,
        pause_duration=pause_duration,
        pause_start=None,
        duration=duration,
    )


def reset_task(task: Task) -> Task:
    if task.status == TaskStatus.NOT_STARTED:
        return task
    return replace(
        task,
        status=TaskStatus.NOT_STARTED,
        start_time=None,
        end_time=None,
        pause_duration=0,
        pause_start=None,
        duration=None,
    )


def rename_task(task: Task, name: str) -> Task:
    return replace(task, name=name.strip())


def elapsed_ms(task: Task, now: int) -> int:
    """Display value, recomputed on every tick and never stored."""
    if task.status == TaskStatus.FINISHED:
        return task.duration or 0
    if task.start_time is None:
        return 0
    if task.status == TaskStatus.RUNNING:
        return now - task.start_time - task.pause_duration
    if task.status == TaskStatus.PAUSED:
        if task.pause_start is None:
            return 0
        return task.pause_start - task.start_time - task.pause_duration
    return 0


def _drained_pause(task: Task, now: int) -> int:
    if task.pause_start is None:
        return task.pause_duration
    return task.pause_duration + max(0, now - task.pause_start)


# ---- sectors ----


def blank_task(now: int) -> Task:
    return Task(id=new_task_id(now))


def new_sector(now: int, *, min_tasks: int = MIN_TASKS) -> SectorRecord:
    return SectorRecord(start_time=None, tasks=tuple(blank_task(now) for _ in range(min_tasks)))


def add_task(sector: SectorRecord, task: Task, *, max_tasks: int = MAX_TASKS) -> SectorRecord:
    if sector.started:
        raise ValidationError("Sector already started; tasks are locked.")
    if len(sector.tasks) >= max_tasks:
        raise ValidationError(f"Maximum {max_tasks} tasks allowed in a sector.")
    return replace(sector, tasks=sector.tasks + (task,))


def remove_task(sector: SectorRecord, *, min_tasks: int = MIN_TASKS) -> SectorRecord:
    """Drop the last task of a sector that has not started yet."""
    if sector.started:
        raise ValidationError("Sector already started; tasks are locked.")
    if len(sector.tasks) <= min_tasks:
        raise ValidationError(f"Minimum {min_tasks} tasks required in a sector.")
    return replace(sector, tasks=sector.tasks[:-1])


def replace_task(sector: SectorRecord, index: int, task: Task) -> SectorRecord:
    tasks = list(sector.tasks)
    tasks[index] = task
    return replace(sector, tasks=tuple(tasks))


def mark_ready(sector: SectorRecord, now: int) -> SectorRecord:
    if sector.started:
        raise ValidationError("Sector already started.")
    return replace(sector, start_time=now)


def sector_remaining_ms(
    sector: SectorRecord, now: int, *, duration_ms: int = SECTOR_DURATION_MS
) -> int | None:
    if sector.start_time is None:
        return None
    return max(0, duration_ms - (now - sector.start_time))


def all_finished(sector: SectorRecord) -> bool:
    return bool(sector.tasks) and all(t.status == TaskStatus.FINISHED for t in sector.tasks)


def finished_total_ms(sector: SectorRecord) -> int:
    return sum(
        t.duration or 0 for t in sector.tasks if t.status == TaskStatus.FINISHED and t.duration
    )


# ---- display ----


@dataclass(slots=True, frozen=True)
class TaskView:
    position: int
    name: str
    status: TaskStatus
    elapsed_ms: int


@dataclass(slots=True, frozen=True)
class SectorSnapshot:
    sector: int
    started: bool
    remaining_ms: int | None
    tasks: tuple[TaskView, ...]
    all_finished: bool

    @property
    def time_up(self) -> bool:
        return self.remaining_ms is not None and self.remaining_ms <= 0


def snapshot_sector(
    number: int,
    sector: SectorRecord,
    now: int,
    *,
    duration_ms: int = SECTOR_DURATION_MS,
) -> SectorSnapshot:
    """Derived display values for one poll tick."""
    views = tuple(
        TaskView(position=i + 1, name=t.name, status=t.status, elapsed_ms=elapsed_ms(t, now))
        for i, t in enumerate(sector.tasks)
    )
    return SectorSnapshot(
        sector=number,
        started=sector.started,
        remaining_ms=sector_remaining_ms(sector, now, duration_ms=duration_ms),
        tasks=views,
        all_finished=all_finished(sector),
    )
