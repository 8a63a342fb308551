# src/grand_prix/backend/sync.py

from __future__ import annotations

"""
Fire-and-forget pushes to the hosted backend.

Every state-changing task/sector transition pushes a full sector snapshot.
Calls run on a single worker thread so they keep their submission order and
never block the console; failures are logged and dropped (no retry).
"""

import concurrent.futures
import logging
import threading
from collections.abc import Callable
from typing import Any

from ..core.models import SectorRecord
from ..core.ports import ProfileBackend

logger = logging.getLogger(__name__)


class BackendSync:
    def __init__(self, backend: ProfileBackend) -> None:
        self.backend = backend
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._pending: set[concurrent.futures.Future[Any]] = set()
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return bool(getattr(self.backend, "enabled", False))

    def _submit(self, label: str, fn: Callable[..., Any], /, **kwargs: Any) -> None:
        if not self.enabled:
            return

        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=1, thread_name_prefix="wgp-sync"
                )
            fut = self._executor.submit(fn, **kwargs)
            self._pending.add(fut)

        def _done(f: concurrent.futures.Future[Any]) -> None:
            with self._lock:
                self._pending.discard(f)
            exc = f.exception()
            if exc is not None:
                logger.warning("Backend %s failed: %s", label, exc)
            else:
                logger.debug("Backend %s ok", label)

        fut.add_done_callback(_done)

    def push_sector(self, *, user_id: str | None, work_date: str, sector: int, record: SectorRecord) -> None:
        if not user_id:
            return
        self._submit(
            "upsert_sector",
            self.backend.upsert_sector,
            user_id=user_id,
            work_date=work_date,
            sector=sector,
            start_time=record.start_time,
            tasks=[t.to_dict() for t in record.tasks],
        )

    def push_points(self, *, user_id: str | None, points: int) -> None:
        if not user_id:
            return
        self._submit("update_points", self.backend.update_points, user_id=user_id, points=points)

    def flush(self, timeout: float | None = 10.0) -> None:
        """Wait for queued pushes (used at shutdown and by tests)."""
        with self._lock:
            pending = list(self._pending)
        if pending:
            concurrent.futures.wait(pending, timeout=timeout)

    def close(self) -> None:
        with self._lock:
            executor = self._executor
            self._executor = None
        if executor is not None:
            executor.shutdown(wait=True)
