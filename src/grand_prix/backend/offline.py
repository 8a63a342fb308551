# src/grand_prix/backend/offline.py

from __future__ import annotations

from typing import Any

from ..core.errors import BackendError
from ..core.ports import Identity, Profile, RemoteLeaderboardRow


class OfflineBackend:
    """
    Stand-in used when no hosted backend is configured.

    The session checks `enabled` and keeps accounts in the local store; row
    calls are no-ops so the sync layer never needs to special-case it.
    """

    @property
    def enabled(self) -> bool:
        return False

    def _unavailable(self) -> BackendError:
        return BackendError("Hosted backend is not configured.")

    def sign_up_username(self, username: str, password: str) -> Identity:
        raise self._unavailable()

    def sign_in_username(self, username: str, password: str) -> Identity:
        raise self._unavailable()

    def sign_up_email(self, email: str, password: str) -> Identity:
        raise self._unavailable()

    def sign_in_email(self, email: str, password: str) -> Identity:
        raise self._unavailable()

    def get_profile(self, user_id: str) -> Profile | None:
        return None

    def update_points(self, user_id: str, points: int) -> None:
        return

    def upsert_sector(
        self,
        *,
        user_id: str,
        work_date: str,
        sector: int,
        start_time: int | None,
        tasks: list[dict[str, Any]],
    ) -> None:
        return

    def select_sector(self, *, user_id: str, work_date: str, sector: int) -> dict[str, Any] | None:
        return None

    def delete_sector(self, *, user_id: str, work_date: str, sector: int) -> None:
        return

    def fetch_leaderboard(self) -> list[RemoteLeaderboardRow]:
        return []

    def close(self) -> None:
        return
