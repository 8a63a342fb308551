# src/grand_prix/social/bus.py

from __future__ import annotations

import copy
import logging
import threading
from collections import defaultdict

from ..core.ports import Envelope, EnvelopeListener

logger = logging.getLogger(__name__)


class BroadcastHub:
    """
    Registry of named in-process channels.

    One hub plays the role of the browser: every LocalChannel opened on it
    with the same name is a "tab" listening on that channel.
    """

    def __init__(self) -> None:
        self._endpoints: dict[str, list[LocalChannel]] = defaultdict(list)
        self._lock = threading.Lock()

    def open(self, name: str) -> LocalChannel:
        channel = LocalChannel(self, name)
        with self._lock:
            self._endpoints[name].append(channel)
        return channel

    def _detach(self, channel: LocalChannel) -> None:
        with self._lock:
            peers = self._endpoints.get(channel.name, [])
            if channel in peers:
                peers.remove(channel)

    def _deliver(self, sender: LocalChannel, envelope: Envelope) -> int:
        with self._lock:
            peers = [c for c in self._endpoints.get(sender.name, []) if c is not sender]

        delivered = 0
        for peer in peers:
            listener = peer._listener
            if listener is None:
                continue
            try:
                # Each receiver gets its own copy, like a structured clone.
                listener(copy.deepcopy(envelope))
                delivered += 1
            except Exception:
                logger.exception("Channel listener failed channel=%s type=%s", sender.name, envelope.get("type"))
        return delivered


class LocalChannel:
    """Channel endpoint bound to a BroadcastHub. Delivery is synchronous."""

    def __init__(self, hub: BroadcastHub, name: str) -> None:
        self._hub = hub
        self.name = name
        self._listener: EnvelopeListener | None = None
        self._closed = False

    def post(self, envelope: Envelope) -> None:
        if self._closed:
            logger.debug("post() on closed channel %s ignored", self.name)
            return
        n = self._hub._deliver(self, envelope)
        logger.debug("Channel %s posted type=%s delivered=%d", self.name, envelope.get("type"), n)

    def set_listener(self, listener: EnvelopeListener | None) -> None:
        self._listener = listener

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._listener = None
        self._hub._detach(self)
