# tests/test_ticker.py

from __future__ import annotations

import asyncio

import pytest

from grand_prix.core.models import TaskStatus
from grand_prix.core.ticker import ignition_sequence, run_sector_ticker
from grand_prix.core.timer import SectorSnapshot


@pytest.mark.asyncio
async def test_ignition_lights_every_step() -> None:
    lit: list[int] = []
    await ignition_sequence(lit.append, steps=5, step_seconds=0.0, hold_seconds=0.0)
    assert lit == [1, 2, 3, 4, 5]


@pytest.mark.asyncio
async def test_ticker_stops_at_zero_without_finishing_tasks(racer, clock) -> None:
    racer.mark_ready()
    racer.start_task(0)
    clock.advance(45 * 60 + 30)

    ended: list[str | None] = []
    racer.subscribe(lambda event, text: ended.append(text) if event == "time_up" else None)
    ticks: list[SectorSnapshot] = []

    last = await asyncio.wait_for(run_sector_ticker(racer, ticks.append, interval_seconds=0.01), timeout=2)

    assert last is not None and last.time_up
    assert last.remaining_ms == 0
    assert len(ticks) == 1
    assert ended == ["Sector 1: time is up!"]
    # The running task is left as it was.
    assert racer.active_sector.tasks[0].status == TaskStatus.RUNNING


@pytest.mark.asyncio
async def test_ticker_keeps_polling_until_cancelled(racer) -> None:
    racer.mark_ready()
    ticks: list[SectorSnapshot] = []
    runner = asyncio.create_task(run_sector_ticker(racer, ticks.append, interval_seconds=0.01))

    await asyncio.sleep(0.05)
    runner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await runner

    assert len(ticks) >= 2
    assert all(t.sector == 1 and not t.time_up for t in ticks)


@pytest.mark.asyncio
async def test_ticker_returns_when_leaving_the_board(racer) -> None:
    racer.go_home()
    assert await run_sector_ticker(racer, lambda snap: None, interval_seconds=0.01) is None


@pytest.mark.asyncio
async def test_points_mode_ticker_stops_when_all_finished(make_session, points_settings) -> None:
    s = make_session(settings_override=points_settings)
    s.register("alice", "pw1")
    s.login("alice", "pw1")
    s.enter_sector(1)
    s.mark_ready()
    for i in range(4):
        s.start_task(i)
        s.finish_task(i)

    last = await asyncio.wait_for(run_sector_ticker(s, lambda snap: None, interval_seconds=0.01), timeout=2)
    assert last is not None and last.all_finished and not last.time_up


@pytest.mark.asyncio
async def test_confirm_ready_runs_lights_then_starts_sector(racer) -> None:
    lit: list[int] = []
    sector = await racer.confirm_ready(lit.append)
    assert lit == [1, 2, 3, 4, 5]
    assert sector.started
    assert racer.active_sector.start_time == racer.clock()
