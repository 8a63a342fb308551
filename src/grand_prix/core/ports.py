# src/grand_prix/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The session depends on Protocols instead of concrete implementations, so the
storage, the cross-tab transport and the hosted backend stay swappable and
tests can use in-memory fakes.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

Envelope = dict[str, Any]
# Cross-tab message as sent over the wire: {"type": "...", ...payload}.

EnvelopeListener = Callable[[Envelope], None]


class KeyValueStore(Protocol):
    """String key -> string value (localStorage semantics)."""

    def get(self, key: str) -> str | None: ...
    def set(self, key: str, value: str) -> None: ...
    def remove(self, key: str) -> None: ...


class Channel(Protocol):
    """
    One endpoint of a named broadcast channel.

    post() delivers to every other endpoint of the same name; the sender
    never receives its own messages. Best-effort: no ack, no ordering across
    endpoints, dropped when nobody listens.
    """

    name: str

    def post(self, envelope: Envelope) -> None: ...
    def set_listener(self, listener: EnvelopeListener | None) -> None: ...
    def close(self) -> None: ...


@dataclass(slots=True, frozen=True)
class Identity:
    """Identity returned by the hosted auth service."""

    user_id: str
    email: str


@dataclass(slots=True, frozen=True)
class Profile:
    user_id: str
    username: str
    role: str = "user"
    points: int = 0


@dataclass(slots=True, frozen=True)
class RemoteLeaderboardRow:
    username: str
    total_ms: int
    points: int = 0


class ProfileBackend(Protocol):
    """Hosted identity + row storage. All calls may raise BackendError."""

    @property
    def enabled(self) -> bool: ...

    def sign_up_username(self, username: str, password: str) -> Identity: ...
    def sign_in_username(self, username: str, password: str) -> Identity: ...
    def sign_up_email(self, email: str, password: str) -> Identity: ...
    def sign_in_email(self, email: str, password: str) -> Identity: ...
    def get_profile(self, user_id: str) -> Profile | None: ...
    def update_points(self, user_id: str, points: int) -> None: ...

    def upsert_sector(
        self,
        *,
        user_id: str,
        work_date: str,
        sector: int,
        start_time: int | None,
        tasks: list[dict[str, Any]],
    ) -> None: ...

    def select_sector(self, *, user_id: str, work_date: str, sector: int) -> dict[str, Any] | None: ...
    def delete_sector(self, *, user_id: str, work_date: str, sector: int) -> None: ...
    def fetch_leaderboard(self) -> list[RemoteLeaderboardRow]: ...
    def close(self) -> None: ...
