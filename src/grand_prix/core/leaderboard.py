# src/grand_prix/core/leaderboard.py

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from .clock import day_start_ms, parse_day_key, week_window
from .models import TaskStatus, User

MODE_TIME = "time"
MODE_POINTS = "points"


@dataclass(slots=True, frozen=True)
class LeaderboardEntry:
    username: str
    total_ms: int
    points: int = 0


def weekly_total_ms(user: User, window: tuple[int, int]) -> int:
    """Sum of finished task durations over the user's days inside `window`."""
    start, end = window
    total = 0
    for key, record in user.records.items():
        day = parse_day_key(key)
        if day is None:
            continue
        midnight = day_start_ms(day)
        if midnight < start or midnight > end:
            continue
        for sector in record.sectors.values():
            for task in sector.tasks:
                if task.status == TaskStatus.FINISHED and task.duration is not None:
                    total += task.duration
    return total


def compute_weekly_leaderboard(
    users: Mapping[str, User],
    now_ms: int,
    *,
    mode: str = MODE_TIME,
) -> list[LeaderboardEntry]:
    """
    Rank users for the current Monday..Saturday window.

    time:   users with time this week, fastest (lowest total) first.
    points: users with time this week or any points, most points first,
            lower total time breaks ties.

    Recomputed from scratch on every call.
    """
    window = week_window(now_ms)
    entries = [
        LeaderboardEntry(username=username, total_ms=weekly_total_ms(user, window), points=user.points)
        for username, user in users.items()
    ]
    return rank_entries(entries, mode=mode)


def rank_entries(entries: Iterable[LeaderboardEntry], *, mode: str = MODE_TIME) -> list[LeaderboardEntry]:
    """Apply the inclusion rule and ordering of `mode` (also used for rows pulled from the backend)."""
    if mode == MODE_POINTS:
        kept = [e for e in entries if e.total_ms > 0 or e.points > 0]
        kept.sort(key=lambda e: (-e.points, e.total_ms, e.username))
    else:
        kept = [e for e in entries if e.total_ms > 0]
        kept.sort(key=lambda e: (e.total_ms, e.username))
    return kept
