# tests/test_social.py

from __future__ import annotations

import pytest

from grand_prix.core.errors import ValidationError
from grand_prix.social.bus import BroadcastHub
from grand_prix.social.messages import FriendRequest, Online, RaceInvite, decode, encode


@pytest.fixture()
def two_tabs(make_session):
    """alice and bob logged in on two sessions sharing one store and channel."""
    alice = make_session()
    bob = make_session()
    alice.register("alice", "pw1")
    bob.register("bob", "pw2")
    alice.login("alice", "pw1")
    bob.login("bob", "pw2")
    return alice, bob


def test_friend_request_and_accept_across_tabs(two_tabs) -> None:
    alice, bob = two_tabs
    notices: list[str | None] = []
    bob.subscribe(lambda event, text: notices.append(text) if event == "social" else None)

    assert alice.send_friend_request("bob") == "Friend request sent to bob."
    assert "alice" in bob.me.friend_requests
    assert notices and "alice sent you a friend request" in notices[0]

    assert bob.accept_friend("alice") == "You and alice are now friends."
    assert alice.me.friends == {"bob"}
    assert bob.me.friends == {"alice"}
    assert not bob.me.friend_requests
    assert not alice.me.friend_requests

    # Accepting again is harmless.
    assert "already friends" in bob.accept_friend("alice")


def test_friend_request_rules(two_tabs) -> None:
    alice, _ = two_tabs
    with pytest.raises(ValidationError, match="yourself"):
        alice.send_friend_request("alice")
    with pytest.raises(ValidationError, match="User carol not found"):
        alice.send_friend_request("carol")
    with pytest.raises(ValidationError, match="No friend request from bob"):
        alice.accept_friend("bob")


def test_race_invite_only_for_friends(two_tabs) -> None:
    alice, bob = two_tabs
    with pytest.raises(ValidationError, match="only invite friends"):
        alice.invite_to_race("bob")

    alice.send_friend_request("bob")
    bob.accept_friend("alice")
    assert alice.invite_to_race("bob") == "Race invite sent to bob."
    assert bob.state.invites == [RaceInvite(sender="alice", to="bob")]


def test_presence_handshake_answers_once(make_session) -> None:
    alice = make_session()
    alice.register("alice", "pw1")
    alice.register("bob", "pw2")
    alice.login("alice", "pw1")

    bob = make_session()
    bob.login("bob", "pw2")

    # bob announced himself; alice answered exactly once so bob learns about her.
    assert alice.state.online == {"bob"}
    assert bob.state.online == {"alice"}

    bob.logout()
    assert alice.state.online == set()


def test_messages_for_someone_else_are_ignored(two_tabs) -> None:
    alice, bob = two_tabs
    bob.state.channel.post(encode(FriendRequest(sender="bob", to="carol")))
    assert not alice.me.friend_requests


def test_hub_delivers_copies_to_other_endpoints_only() -> None:
    hub = BroadcastHub()
    a = hub.open("wgp")
    b = hub.open("wgp")
    other = hub.open("elsewhere")
    got_a: list[dict] = []
    got_b: list[dict] = []
    got_other: list[dict] = []
    a.set_listener(got_a.append)
    b.set_listener(got_b.append)
    other.set_listener(got_other.append)

    envelope = {"type": "online", "username": "alice"}
    a.post(envelope)
    assert got_a == []
    assert got_other == []
    assert got_b == [envelope]
    assert got_b[0] is not envelope

    b.close()
    a.post(envelope)
    assert len(got_b) == 1


def test_decode_rejects_junk() -> None:
    assert decode({"type": "online", "username": "alice"}) == Online(username="alice")
    assert decode({"type": "raceInvite", "from": "a"}) is None
    assert decode({"type": "telemetry"}) is None
    assert decode("online") is None
