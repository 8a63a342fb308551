# src/grand_prix/social/presence.py

from __future__ import annotations

"""
Presence and the friends / race-invite layer on top of the broadcast channel.

Outgoing operations validate against the local document, apply the change,
persist and broadcast. Incoming messages are applied idempotently to the
receiving tab's document; messages addressed to somebody else are ignored.
Nothing here is acknowledged or retried.
"""

import logging
from typing import TYPE_CHECKING

from ..core.errors import ValidationError
from ..core.models import User
from .messages import FriendAccepted, FriendRequest, Offline, Online, RaceInvite, SocialMessage, decode, encode

if TYPE_CHECKING:
    from ..core.session import Session

logger = logging.getLogger(__name__)


def _post(session: Session, message: SocialMessage) -> None:
    try:
        session.state.channel.post(encode(message))
    except Exception:
        logger.exception("Broadcast failed type=%s", type(message).__name__)


def _link(a: User, b: User) -> None:
    """Symmetric friendship edge; clears pending requests both ways."""
    a.friend_requests.discard(b.username)
    b.friend_requests.discard(a.username)
    a.friends.add(b.username)
    b.friends.add(a.username)


# ---- presence ----


def announce_online(session: Session) -> None:
    me = session.state.current_user
    if me:
        _post(session, Online(username=me))


def announce_offline(session: Session) -> None:
    me = session.state.current_user
    if me:
        _post(session, Offline(username=me))


# ---- outgoing ----


def send_friend_request(session: Session, to: str) -> str:
    me = session.require_user()
    to = (to or "").strip()
    if not to:
        raise ValidationError("Whom should we send the request to?")
    if to == me.username:
        raise ValidationError("You cannot send a friend request to yourself.")

    target = session.known_user(to)
    if target is None:
        raise ValidationError(f"User {to} not found.")
    if to in me.friends:
        raise ValidationError(f"You are already friends with {to}.")

    target.friend_requests.add(me.username)
    session.save()
    _post(session, FriendRequest(sender=me.username, to=to))
    logger.info("Friend request %s -> %s", me.username, to)
    return f"Friend request sent to {to}."


def accept_friend_request(session: Session, sender: str) -> str:
    me = session.require_user()
    sender = (sender or "").strip()
    if sender in me.friends:
        # Accepting twice is harmless; make sure nothing is left pending.
        other = session.known_user(sender)
        if other is not None:
            _link(me, other)
            session.save()
        return f"You are already friends with {sender}."

    if sender not in me.friend_requests:
        raise ValidationError(f"No friend request from {sender}.")

    other = session.known_user(sender)
    if other is None:
        me.friend_requests.discard(sender)
        session.save()
        raise ValidationError(f"User {sender} not found.")

    _link(me, other)
    session.save()
    _post(session, FriendAccepted(sender=me.username, to=sender))
    logger.info("Friend request accepted %s <-> %s", me.username, sender)
    session.emit("social", f"You and {sender} are now friends.")
    return f"You and {sender} are now friends."


def invite_to_race(session: Session, to: str) -> str:
    me = session.require_user()
    to = (to or "").strip()
    if to not in me.friends:
        raise ValidationError("You can only invite friends to race.")
    _post(session, RaceInvite(sender=me.username, to=to))
    logger.info("Race invite %s -> %s (online=%s)", me.username, to, to in session.state.online)
    return f"Race invite sent to {to}."


# ---- incoming ----


def handle_envelope(session: Session, envelope: object) -> None:
    message = decode(envelope)
    if message is None:
        return

    state = session.state
    me_name = state.current_user

    if isinstance(message, Online):
        if message.username == me_name or message.username in state.online:
            return
        state.online.add(message.username)
        session.emit("presence", f"{message.username} is online.")
        # Answer once so the newcomer learns about this tab too.
        announce_online(session)
        return

    if isinstance(message, Offline):
        if message.username in state.online:
            state.online.discard(message.username)
            session.emit("presence", f"{message.username} went offline.")
        return

    if me_name is None or message.to != me_name:
        return
    me = state.data.users.get(me_name)
    if me is None:
        return

    if isinstance(message, FriendRequest):
        if message.sender in me.friends:
            return
        session.known_user(message.sender)
        me.friend_requests.add(message.sender)
        session.save()
        session.emit("social", f"{message.sender} sent you a friend request. Use /friend accept {message.sender}.")
        return

    if isinstance(message, FriendAccepted):
        other = session.known_user(message.sender)
        if other is None:
            me.friends.add(message.sender)
            me.friend_requests.discard(message.sender)
        else:
            _link(me, other)
        session.save()
        session.emit("social", f"{message.sender} accepted your friend request.")
        return

    if isinstance(message, RaceInvite):
        state.invites.append(message)
        session.emit("social", f"{message.sender} invites you to race!")
        return
