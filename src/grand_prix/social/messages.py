# src/grand_prix/social/messages.py

from __future__ import annotations

"""
Cross-tab message variants and their envelope codec.

Wire envelopes are flat dicts with a "type" discriminator:

    {"type": "online", "username": "alice"}
    {"type": "friendRequest", "from": "alice", "to": "bob"}

No schema versioning: unknown types decode to None and are dropped.
"""

import logging
from dataclasses import dataclass
from typing import Any

from ..core.ports import Envelope

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class Online:
    username: str


@dataclass(slots=True, frozen=True)
class Offline:
    username: str


@dataclass(slots=True, frozen=True)
class FriendRequest:
    sender: str
    to: str


@dataclass(slots=True, frozen=True)
class FriendAccepted:
    sender: str
    to: str


@dataclass(slots=True, frozen=True)
class RaceInvite:
    sender: str
    to: str


SocialMessage = Online | Offline | FriendRequest | FriendAccepted | RaceInvite

_PRESENCE_TYPES: dict[str, type] = {"online": Online, "offline": Offline}
_ADDRESSED_TYPES: dict[str, type] = {
    "friendRequest": FriendRequest,
    "friendAccepted": FriendAccepted,
    "raceInvite": RaceInvite,
}
_TYPE_NAMES: dict[type, str] = {
    **{cls: name for name, cls in _PRESENCE_TYPES.items()},
    **{cls: name for name, cls in _ADDRESSED_TYPES.items()},
}


def encode(message: SocialMessage) -> Envelope:
    kind = _TYPE_NAMES[type(message)]
    if isinstance(message, (Online, Offline)):
        return {"type": kind, "username": message.username}
    return {"type": kind, "from": message.sender, "to": message.to}


def _name(raw: Any) -> str | None:
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return None


def decode(envelope: Any) -> SocialMessage | None:
    if not isinstance(envelope, dict):
        logger.debug("Dropping non-dict envelope: %r", envelope)
        return None

    kind = envelope.get("type")

    presence_cls = _PRESENCE_TYPES.get(kind) if isinstance(kind, str) else None
    if presence_cls is not None:
        username = _name(envelope.get("username"))
        if username is None:
            logger.debug("Dropping %s envelope without username", kind)
            return None
        return presence_cls(username=username)

    addressed_cls = _ADDRESSED_TYPES.get(kind) if isinstance(kind, str) else None
    if addressed_cls is not None:
        sender = _name(envelope.get("from"))
        to = _name(envelope.get("to"))
        if sender is None or to is None:
            logger.debug("Dropping %s envelope without from/to", kind)
            return None
        return addressed_cls(sender=sender, to=to)

    logger.debug("Dropping envelope of unknown type %r", kind)
    return None
