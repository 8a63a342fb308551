# src/grand_prix/storage/repository.py

"""
Persistence of the whole document and the current-user pointer.

The document is read once at startup and written back wholesale after every
domain mutation. A missing or malformed document is treated as empty.
"""

from __future__ import annotations

import json
import logging

from ..core.models import GrandPrixData
from ..core.ports import KeyValueStore

logger = logging.getLogger(__name__)

STORAGE_KEY = "workGrandPrixData"
CURRENT_USER_KEY = "workGrandPrixCurrentUser"


class GrandPrixRepository:
    def __init__(
        self,
        store: KeyValueStore,
        *,
        storage_key: str = STORAGE_KEY,
        current_user_key: str = CURRENT_USER_KEY,
    ) -> None:
        self.store = store
        self.storage_key = storage_key
        self.current_user_key = current_user_key

    def load_data(self) -> GrandPrixData:
        try:
            raw = self.store.get(self.storage_key)
        except Exception:
            logger.exception("Failed to read stored data key=%s", self.storage_key)
            return GrandPrixData()

        if not raw:
            return GrandPrixData()

        try:
            parsed = json.loads(raw)
        except ValueError:
            logger.exception("Failed to parse stored data key=%s; starting empty.", self.storage_key)
            return GrandPrixData()

        data = GrandPrixData.from_dict(parsed)
        logger.info("Loaded data: %d users", len(data.users))
        return data

    def save_data(self, data: GrandPrixData) -> None:
        self.store.set(self.storage_key, json.dumps(data.to_dict(), ensure_ascii=False))

    def load_current_user(self) -> str | None:
        try:
            raw = self.store.get(self.current_user_key)
        except Exception:
            logger.exception("Failed to read current user key=%s", self.current_user_key)
            return None
        name = (raw or "").strip()
        return name or None

    def save_current_user(self, username: str) -> None:
        self.store.set(self.current_user_key, username)

    def clear_current_user(self) -> None:
        self.store.remove(self.current_user_key)
