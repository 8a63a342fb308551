# src/grand_prix/core/state.py

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Protocol

from ..backend.sync import BackendSync
from ..social.messages import RaceInvite
from ..storage.repository import GrandPrixRepository
from .models import GrandPrixData
from .ports import Channel, ProfileBackend


class Screen(StrEnum):
    AUTH = "auth"
    WELCOME = "welcome"
    SECTORS = "sectors"
    TASKS = "tasks"
    HISTORY = "history"


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


@dataclass
class AppState:
    """Everything one tab knows: injected services plus the in-memory mirror of the store."""

    settings: Any

    repo: GrandPrixRepository
    channel: Channel
    backend: ProfileBackend
    sync: BackendSync

    data: GrandPrixData = field(default_factory=GrandPrixData)
    current_user: str | None = None
    current_sector: int | None = None
    # Date the active sector was entered on; the board stays on it past midnight.
    current_day: str | None = None
    screen: Screen = Screen.AUTH

    # Handle of the running display poll (asyncio.Task or concurrent Future).
    ticker: Cancellable | None = None

    online: set[str] = field(default_factory=set)
    invites: list[RaceInvite] = field(default_factory=list)

    # Background asyncio loop (connectors.loop_runner.LoopRunner) for ignition and the ticker.
    runner: Any = None

    lock: threading.RLock = field(default_factory=threading.RLock)
