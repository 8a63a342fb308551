# src/grand_prix/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires concrete implementations into AppState (store, channel, backend, sync),
- builds the Session the connectors drive.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..backend.client import SupabaseBackend
from ..backend.offline import OfflineBackend
from ..backend.sync import BackendSync
from ..config import get_settings
from ..core.clock import Clock, now_ms
from ..core.ports import KeyValueStore, ProfileBackend
from ..core.session import Session
from ..core.state import AppState
from ..social.bus import BroadcastHub
from ..storage.kv_store import JsonFileKeyValueStore
from ..storage.repository import GrandPrixRepository

logger = logging.getLogger(__name__)

# Sessions created in this process share one broadcast channel.
DEFAULT_HUB = BroadcastHub()


def _ensure_local_dirs(settings) -> None:
    Path(settings.data_dir).mkdir(parents=True, exist_ok=True)


def create_backend(settings) -> ProfileBackend:
    if not getattr(settings, "backend_enabled", False):
        logger.info("Hosted backend not configured; running local only.")
        return OfflineBackend()
    try:
        return SupabaseBackend(
            base_url=settings.backend_url,
            anon_key=settings.backend_anon_key,
            pseudo_email_domain=settings.pseudo_email_domain,
            admin_emails=list(settings.admin_emails),
            timeout_seconds=settings.backend_timeout_seconds,
        )
    except Exception:
        # Fallback for local runs without external services.
        logger.exception("Failed to create hosted backend client; running local only.")
        return OfflineBackend()


def create_session(
    *,
    settings=None,
    store: KeyValueStore | None = None,
    hub: BroadcastHub | None = None,
    backend: ProfileBackend | None = None,
    clock: Clock = now_ms,
) -> Session:
    """
    Create a Session (one "tab") from the provided settings.

    Everything is injectable for tests; if settings is None, falls back to get_settings().
    The session is not restored yet; call session.restore() once listeners are attached.
    """
    if settings is None:
        settings = get_settings()

    if store is None:
        _ensure_local_dirs(settings)
        store = JsonFileKeyValueStore(settings.data_dir)
    if backend is None:
        backend = create_backend(settings)
    if hub is None:
        hub = DEFAULT_HUB

    repo = GrandPrixRepository(
        store,
        storage_key=settings.storage_key,
        current_user_key=settings.current_user_key,
    )
    state = AppState(
        settings=settings,
        repo=repo,
        channel=hub.open(settings.channel_name),
        backend=backend,
        sync=BackendSync(backend),
    )
    return Session(state, clock=clock)
