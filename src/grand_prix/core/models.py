# src/grand_prix/core/models.py

"""
Domain model and its JSON wire format.

The persisted document keeps the camelCase keys of the web client so an
exported blob can be loaded as-is:

    {"users": {"alice": {"password": ..., "records": {"2026-10-19": {"sectors": {"1": {...}}}}}}}

Task and SectorRecord are immutable values produced by the transition
functions in core.timer; User and DayRecord are the mutable containers the
session writes them back into.
"""

from __future__ import annotations

import logging
import random
import string
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

SECTOR_NUMBERS = (1, 2, 3)


class TaskStatus(StrEnum):
    NOT_STARTED = "Not started"
    RUNNING = "Running"
    PAUSED = "Paused"
    FINISHED = "Finished"

    @classmethod
    def from_raw(cls, raw: Any) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        try:
            return cls(str(raw))
        except ValueError:
            return cls.NOT_STARTED


def _opt_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def new_task_id(now_ms: int) -> str:
    suffix = "".join(random.choices(string.ascii_lowercase + string.digits, k=5))
    return f"{now_ms}_{suffix}"


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    name: str = ""
    status: TaskStatus = TaskStatus.NOT_STARTED
    start_time: int | None = None
    end_time: int | None = None
    pause_duration: int = 0
    pause_start: int | None = None
    duration: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "startTime": self.start_time,
            "endTime": self.end_time,
            "pauseDuration": self.pause_duration,
            "pauseStart": self.pause_start,
            "duration": self.duration,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            status=TaskStatus.from_raw(raw.get("status")),
            start_time=_opt_int(raw.get("startTime")),
            end_time=_opt_int(raw.get("endTime")),
            pause_duration=max(0, _opt_int(raw.get("pauseDuration")) or 0),
            pause_start=_opt_int(raw.get("pauseStart")),
            duration=_opt_int(raw.get("duration")),
        )


@dataclass(slots=True, frozen=True)
class SectorRecord:
    start_time: int | None = None
    tasks: tuple[Task, ...] = ()

    @property
    def started(self) -> bool:
        return self.start_time is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "startTime": self.start_time,
            "tasks": [t.to_dict() for t in self.tasks],
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SectorRecord:
        tasks_raw = raw.get("tasks")
        tasks: list[Task] = []
        if isinstance(tasks_raw, list):
            for t in tasks_raw:
                if isinstance(t, dict):
                    tasks.append(Task.from_dict(t))
        return cls(start_time=_opt_int(raw.get("startTime")), tasks=tuple(tasks))


@dataclass(slots=True)
class DayRecord:
    sectors: dict[int, SectorRecord] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"sectors": {str(n): s.to_dict() for n, s in sorted(self.sectors.items())}}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DayRecord:
        out: dict[int, SectorRecord] = {}
        sectors_raw = raw.get("sectors")
        if isinstance(sectors_raw, dict):
            for key, sec in sectors_raw.items():
                num = _opt_int(key)
                if num not in SECTOR_NUMBERS or not isinstance(sec, dict):
                    continue
                out[num] = SectorRecord.from_dict(sec)
        return cls(sectors=out)


@dataclass(slots=True)
class User:
    username: str
    password: str | None = None
    user_id: str | None = None
    friends: set[str] = field(default_factory=set)
    friend_requests: set[str] = field(default_factory=set)
    points: int = 0
    records: dict[str, DayRecord] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "password": self.password,
            "userId": self.user_id,
            "friends": sorted(self.friends),
            "friendRequests": sorted(self.friend_requests),
            "points": self.points,
            "records": {k: r.to_dict() for k, r in sorted(self.records.items())},
        }

    @classmethod
    def from_dict(cls, username: str, raw: dict[str, Any]) -> User:
        def _names(value: Any) -> set[str]:
            if not isinstance(value, list):
                return set()
            return {str(v) for v in value if isinstance(v, str) and v}

        records: dict[str, DayRecord] = {}
        records_raw = raw.get("records")
        if isinstance(records_raw, dict):
            for key, rec in records_raw.items():
                if isinstance(rec, dict):
                    records[str(key)] = DayRecord.from_dict(rec)

        password = raw.get("password")
        user_id = raw.get("userId")
        return cls(
            username=username,
            password=password if isinstance(password, str) else None,
            user_id=user_id if isinstance(user_id, str) else None,
            friends=_names(raw.get("friends")),
            friend_requests=_names(raw.get("friendRequests")),
            points=max(0, _opt_int(raw.get("points")) or 0),
            records=records,
        )


@dataclass(slots=True)
class GrandPrixData:
    """The whole persisted document: every user's record, keyed by username."""

    users: dict[str, User] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"users": {name: u.to_dict() for name, u in self.users.items()}}

    @classmethod
    def from_dict(cls, raw: Any) -> GrandPrixData:
        if not isinstance(raw, dict):
            return cls()
        users_raw = raw.get("users")
        users: dict[str, User] = {}
        if isinstance(users_raw, dict):
            for name, u in users_raw.items():
                if not isinstance(name, str) or not name or not isinstance(u, dict):
                    logger.debug("Skipping malformed user entry %r", name)
                    continue
                users[name] = User.from_dict(name, u)
        return cls(users=users)
