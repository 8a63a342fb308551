# tests/conftest.py

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from types import SimpleNamespace

import pytest

from grand_prix.backend.offline import OfflineBackend
from grand_prix.cli.bootstrap import create_session
from grand_prix.core.ports import ProfileBackend
from grand_prix.core.session import Session
from grand_prix.social.bus import BroadcastHub
from grand_prix.storage.kv_store import MemoryKeyValueStore

from .fakes import FakeClock, local_ms

# A Wednesday morning, local time.
WEDNESDAY_10AM = local_ms(2026, 10, 14, 10, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the session.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="Work Grand Prix",
        data_dir=tmp_path / "wgp",
        storage_key="workGrandPrixData",
        current_user_key="workGrandPrixCurrentUser",
        channel_name="workGrandPrixChannel",
        sector_minutes=45,
        min_tasks=4,
        max_tasks=15,
        leaderboard_mode="time",
        finish_bonus_points=10,
        tick_seconds=0.01,
        # Start lights run instantly in tests.
        ignition_steps=5,
        ignition_step_seconds=0.0,
        ignition_hold_seconds=0.0,
        backend_enabled=False,
        console_enabled=False,
    )


@pytest.fixture()
def points_settings(settings: SimpleNamespace) -> SimpleNamespace:
    settings.leaderboard_mode = "points"
    return settings


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(WEDNESDAY_10AM)


@pytest.fixture()
def store() -> MemoryKeyValueStore:
    """One store shared by every session of a test, like localStorage shared by tabs."""
    return MemoryKeyValueStore()


@pytest.fixture()
def hub() -> BroadcastHub:
    return BroadcastHub()


@pytest.fixture()
def make_session(
    settings: SimpleNamespace,
    store: MemoryKeyValueStore,
    hub: BroadcastHub,
    clock: FakeClock,
) -> Callable[..., Session]:
    """Open another "tab": a restored session on the shared store and channel."""
    opened: list[Session] = []

    def _make(*, backend: ProfileBackend | None = None, settings_override=None) -> Session:
        session = create_session(
            settings=settings_override or settings,
            store=store,
            hub=hub,
            backend=backend or OfflineBackend(),
            clock=clock,
        )
        session.restore()
        opened.append(session)
        return session

    yield _make

    for s in opened:
        s.cancel_ticker()
        s.state.sync.close()


@pytest.fixture()
def session(make_session) -> Session:
    return make_session()


@pytest.fixture()
def racer(session: Session) -> Session:
    """Logged-in session with sector 1 open (not started yet)."""
    session.register("alice", "pw1")
    session.login("alice", "pw1")
    session.enter_sector(1)
    return session
