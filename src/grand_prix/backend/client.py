# src/grand_prix/backend/client.py

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..core.errors import BackendError
from ..core.ports import Identity, Profile, RemoteLeaderboardRow

logger = logging.getLogger(__name__)

PROFILES_TABLE = "profiles"
TASKS_TABLE = "tasks"
LEADERBOARD_VIEW = "weekly_leaderboard"


def _make_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(
        connect=min(5.0, seconds),
        read=seconds,
        write=seconds,
        pool=min(5.0, seconds),
    )


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        body = None
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return f"Backend request failed (HTTP {resp.status_code})."


class SupabaseBackend:
    """
    Hosted identity + row storage over the Supabase REST API.

    - Auth: /auth/v1/signup and /auth/v1/token?grant_type=password.
      Username accounts use a pseudo-email (<username>@<pseudo_email_domain>).
    - Rows: PostgREST under /rest/v1 (profiles, tasks, weekly_leaderboard view).

    After a successful sign-in the access token is kept and sent with every
    row request; before that the anon key is used.
    """

    def __init__(
        self,
        *,
        base_url: str,
        anon_key: str,
        pseudo_email_domain: str = "wgp.local",
        admin_emails: list[str] | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not base_url or not base_url.strip():
            raise ValueError("base_url is required")
        if not anon_key or not anon_key.strip():
            raise ValueError("anon_key is required")

        self._anon_key = anon_key.strip()
        self._pseudo_domain = pseudo_email_domain
        self._admin_emails = {e.lower() for e in (admin_emails or [])}
        self._access_token: str | None = None
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=_make_timeout(timeout_seconds),
            transport=transport,
        )
        logger.info("SupabaseBackend ready url=%s", base_url)

    @property
    def enabled(self) -> bool:
        return True

    def close(self) -> None:
        self._client.close()

    # ---- low-level helpers ----

    def _headers(self, *, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self._anon_key,
            "Authorization": f"Bearer {self._access_token or self._anon_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> Any:
        try:
            resp = self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=self._headers(prefer=prefer),
            )
        except httpx.HTTPError as e:
            raise BackendError(f"Backend unreachable: {e}") from e

        if resp.status_code >= 400:
            raise BackendError(_error_message(resp), status_code=resp.status_code)

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return None

    def pseudo_email(self, username: str) -> str:
        return f"{username}@{self._pseudo_domain}"

    def _identity_from(self, payload: Any) -> Identity:
        if not isinstance(payload, dict):
            raise BackendError("Unexpected auth response.")
        token = payload.get("access_token")
        if isinstance(token, str) and token:
            self._access_token = token
        user = payload.get("user") if isinstance(payload.get("user"), dict) else payload
        user_id = user.get("id") if isinstance(user, dict) else None
        if not isinstance(user_id, str) or not user_id:
            raise BackendError("Auth response did not include a user id.")
        return Identity(user_id=user_id, email=str(user.get("email") or ""))

    # ---- identity ----

    def _sign_up(self, email: str, password: str) -> Identity:
        payload = self._request("POST", "/auth/v1/signup", json={"email": email, "password": password})
        return self._identity_from(payload)

    def _sign_in(self, email: str, password: str) -> Identity:
        payload = self._request(
            "POST",
            "/auth/v1/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
        )
        return self._identity_from(payload)

    def _upsert_profile(self, user_id: str, username: str, role: str) -> None:
        self._request(
            "POST",
            f"/rest/v1/{PROFILES_TABLE}",
            json={"id": user_id, "username": username, "role": role},
            prefer="resolution=merge-duplicates",
        )

    def sign_up_username(self, username: str, password: str) -> Identity:
        identity = self._sign_up(self.pseudo_email(username), password)
        self._upsert_profile(identity.user_id, username, "user")
        logger.info("Signed up username=%s user_id=%s", username, identity.user_id)
        return identity

    def sign_in_username(self, username: str, password: str) -> Identity:
        return self._sign_in(self.pseudo_email(username), password)

    def sign_up_email(self, email: str, password: str) -> Identity:
        identity = self._sign_up(email, password)
        username = email.split("@", 1)[0]
        role = "admin" if email.lower() in self._admin_emails else "user"
        self._upsert_profile(identity.user_id, username, role)
        logger.info("Signed up email user_id=%s role=%s", identity.user_id, role)
        return identity

    def sign_in_email(self, email: str, password: str) -> Identity:
        return self._sign_in(email, password)

    def get_profile(self, user_id: str) -> Profile | None:
        rows = self._request(
            "GET",
            f"/rest/v1/{PROFILES_TABLE}",
            params={"id": f"eq.{user_id}", "select": "*"},
        )
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None
        row = rows[0]
        return Profile(
            user_id=str(row.get("id") or user_id),
            username=str(row.get("username") or ""),
            role=str(row.get("role") or "user"),
            points=int(row.get("points") or 0),
        )

    def update_points(self, user_id: str, points: int) -> None:
        self._request(
            "PATCH",
            f"/rest/v1/{PROFILES_TABLE}",
            params={"id": f"eq.{user_id}"},
            json={"points": int(points)},
        )

    # ---- task rows ----

    @staticmethod
    def _sector_filter(user_id: str, work_date: str, sector: int) -> dict[str, str]:
        return {
            "user_id": f"eq.{user_id}",
            "work_date": f"eq.{work_date}",
            "sector": f"eq.{int(sector)}",
        }

    def upsert_sector(
        self,
        *,
        user_id: str,
        work_date: str,
        sector: int,
        start_time: int | None,
        tasks: list[dict[str, Any]],
    ) -> None:
        self._request(
            "POST",
            f"/rest/v1/{TASKS_TABLE}",
            params={"on_conflict": "user_id,work_date,sector"},
            json={
                "user_id": user_id,
                "work_date": work_date,
                "sector": int(sector),
                "start_time": start_time,
                "tasks": tasks,
            },
            prefer="resolution=merge-duplicates",
        )

    def select_sector(self, *, user_id: str, work_date: str, sector: int) -> dict[str, Any] | None:
        params = self._sector_filter(user_id, work_date, sector)
        params["select"] = "*"
        rows = self._request("GET", f"/rest/v1/{TASKS_TABLE}", params=params)
        if not isinstance(rows, list) or not rows or not isinstance(rows[0], dict):
            return None
        return rows[0]

    def delete_sector(self, *, user_id: str, work_date: str, sector: int) -> None:
        """Drop one sector row. Part of the backend contract; no console command clears a sector yet."""
        self._request(
            "DELETE",
            f"/rest/v1/{TASKS_TABLE}",
            params=self._sector_filter(user_id, work_date, sector),
        )

    def fetch_leaderboard(self) -> list[RemoteLeaderboardRow]:
        rows = self._request("GET", f"/rest/v1/{LEADERBOARD_VIEW}", params={"select": "*"})
        out: list[RemoteLeaderboardRow] = []
        if not isinstance(rows, list):
            return out
        for r in rows:
            if not isinstance(r, dict) or not r.get("username"):
                continue
            try:
                out.append(
                    RemoteLeaderboardRow(
                        username=str(r["username"]),
                        total_ms=int(r.get("total_ms") or 0),
                        points=int(r.get("points") or 0),
                    )
                )
            except (TypeError, ValueError):
                logger.debug("Skipping malformed leaderboard row %r", r)
        return out
