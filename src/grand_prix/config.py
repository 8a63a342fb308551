# src/grand_prix/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the hosted backend is optional).
- Everything the rules of the race depend on (sector length, task bounds,
  leaderboard variant) is configurable for tests and demos.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

ENV_PREFIX = "WGP"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    parts = [p.strip() for p in raw.replace(",", " ").split() if p.strip()]
    return parts


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


LEADERBOARD_MODES = ("time", "points")


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    console_enabled: bool

    # ---- Local storage (ignored by git) ----
    data_dir: Path
    storage_key: str
    current_user_key: str

    # ---- Cross-tab channel ----
    channel_name: str

    # ---- Race rules ----
    sector_minutes: int
    min_tasks: int
    max_tasks: int
    leaderboard_mode: str
    finish_bonus_points: int

    # ---- Ticker / ignition ----
    tick_seconds: float
    ignition_steps: int
    ignition_step_seconds: float
    ignition_hold_seconds: float

    # ---- Hosted backend (Supabase-compatible) ----
    backend_url: Optional[str]
    backend_anon_key: Optional[str]
    backend_timeout_seconds: float
    pseudo_email_domain: str
    admin_emails: List[str]

    @property
    def sector_duration_ms(self) -> int:
        return self.sector_minutes * 60 * 1000

    @property
    def backend_enabled(self) -> bool:
        return bool((self.backend_url or "").strip() and (self.backend_anon_key or "").strip())

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "Work Grand Prix")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        console_enabled = _env_bool(_k("CONSOLE_ENABLED"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/wgp"))
        storage_key = _env(_k("STORAGE_KEY"), "workGrandPrixData")
        current_user_key = _env(_k("CURRENT_USER_KEY"), "workGrandPrixCurrentUser")
        channel_name = _env(_k("CHANNEL_NAME"), "workGrandPrixChannel")

        sector_minutes = max(1, _env_int(_k("SECTOR_MINUTES"), 45))
        min_tasks = max(1, _env_int(_k("MIN_TASKS"), 4))
        max_tasks = max(min_tasks, _env_int(_k("MAX_TASKS"), 15))

        leaderboard_mode = _env(_k("LEADERBOARD_MODE"), "time").strip().lower()
        if leaderboard_mode not in LEADERBOARD_MODES:
            leaderboard_mode = "time"
        finish_bonus_points = max(0, _env_int(_k("FINISH_BONUS_POINTS"), 10))

        tick_seconds = max(0.05, _env_float(_k("TICK_SECONDS"), 1.0))
        ignition_steps = max(0, _env_int(_k("IGNITION_STEPS"), 5))
        ignition_step_seconds = max(0.0, _env_float(_k("IGNITION_STEP_SECONDS"), 1.0))
        ignition_hold_seconds = max(0.0, _env_float(_k("IGNITION_HOLD_SECONDS"), 0.5))

        # Supabase's usual variable names work too.
        backend_url = _first_env(_k("BACKEND_URL"), "SUPABASE_URL", default=None)
        backend_anon_key = _first_env(_k("BACKEND_ANON_KEY"), "SUPABASE_ANON_KEY", default=None)
        backend_timeout_seconds = max(1.0, _env_float(_k("BACKEND_TIMEOUT_SECONDS"), 10.0))
        pseudo_email_domain = _env(_k("PSEUDO_EMAIL_DOMAIN"), "wgp.local")
        admin_emails = [e.lower() for e in _env_list(_k("ADMIN_EMAILS"), [])]

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_enabled=console_enabled,
            data_dir=data_dir,
            storage_key=storage_key,
            current_user_key=current_user_key,
            channel_name=channel_name,
            sector_minutes=sector_minutes,
            min_tasks=min_tasks,
            max_tasks=max_tasks,
            leaderboard_mode=leaderboard_mode,
            finish_bonus_points=finish_bonus_points,
            tick_seconds=tick_seconds,
            ignition_steps=ignition_steps,
            ignition_step_seconds=ignition_step_seconds,
            ignition_hold_seconds=ignition_hold_seconds,
            backend_url=backend_url,
            backend_anon_key=backend_anon_key,
            backend_timeout_seconds=backend_timeout_seconds,
            pseudo_email_domain=pseudo_email_domain,
            admin_emails=admin_emails,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
