# src/grand_prix/core/ticker.py

from __future__ import annotations

"""
Sector countdown and display refresh.

Two small asyncio loops:
- ignition_sequence: the five start lights, a pure UI delay before the
  sector's start time is recorded;
- run_sector_ticker: the 1-second poll that recomputes remaining sector time
  and per-task elapsed times. It only reads state.

To stop the ticker, cancel the coroutine/task (the session does this on
every screen change).
"""

import asyncio
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from .errors import ValidationError
from .leaderboard import MODE_POINTS
from .timer import SectorSnapshot

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger(__name__)

IGNITION_STEPS = 5
IGNITION_STEP_SECONDS = 1.0
IGNITION_HOLD_SECONDS = 0.5


async def ignition_sequence(
    on_step: Callable[[int], None] | None = None,
    *,
    steps: int = IGNITION_STEPS,
    step_seconds: float = IGNITION_STEP_SECONDS,
    hold_seconds: float = IGNITION_HOLD_SECONDS,
) -> None:
    """Light `steps` lights one per `step_seconds`, then hold before lights out."""
    for light in range(1, max(0, int(steps)) + 1):
        if on_step is not None:
            try:
                on_step(light)
            except Exception:
                logger.exception("ignition on_step failed light=%s", light)
        await asyncio.sleep(max(0.0, float(step_seconds)))
    await asyncio.sleep(max(0.0, float(hold_seconds)))


async def run_sector_ticker(
    session: Session,
    on_tick: Callable[[SectorSnapshot], None],
    *,
    interval_seconds: float = 1.0,
) -> SectorSnapshot | None:
    """
    Poll the active sector every interval_seconds and hand a snapshot to on_tick.

    Stops by itself when:
    - the sector clock reaches zero (display pinned at 00:00; unfinished
      tasks stay as they are),
    - in points mode, every task is finished,
    - the session has no active sector any more.

    Returns the last snapshot (None if there was no active sector).
    """
    sleep_s = max(0.01, float(interval_seconds))
    last: SectorSnapshot | None = None

    while True:
        try:
            snap = session.sector_snapshot()
        except ValidationError:
            logger.debug("Ticker: no active sector, stopping.")
            return last

        last = snap
        try:
            on_tick(snap)
        except Exception:
            logger.exception("Ticker on_tick failed sector=%s", snap.sector)

        if snap.time_up:
            logger.info("Sector %s time is up.", snap.sector)
            session.emit("time_up", f"Sector {snap.sector}: time is up!")
            return snap

        if session.leaderboard_mode == MODE_POINTS and snap.all_finished:
            logger.info("Sector %s: all tasks finished, ticker stops.", snap.sector)
            return snap

        await asyncio.sleep(sleep_s)
