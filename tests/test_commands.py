# tests/test_commands.py

from __future__ import annotations

from grand_prix.cli.commands import CommandRegistry, registry
from grand_prix.core.errors import ValidationError
from grand_prix.core.state import Screen


def test_command_registry_routes_2_and_3_params(session) -> None:
    reg = CommandRegistry()
    called = {"h2": 0, "h3": 0}

    def h2(session, args):
        called["h2"] += 1
        return "h2"

    def h3(session, args, emit):
        called["h3"] += 1
        if emit is not None:
            emit("note")
        return "h3"

    reg.register("a", h2, "a")
    reg.register("b", h3, "b")

    assert reg.handle(session, "/a x") == "h2"
    assert reg.handle(session, "/b y", emit=lambda _: None) == "h3"
    assert called["h2"] == 1
    assert called["h3"] == 1


def test_command_registry_unknown_and_non_command(session) -> None:
    reg = CommandRegistry()
    assert reg.handle(session, "hello") is None
    assert "Unknown command" in (reg.handle(session, "/nope") or "")


def test_user_errors_become_the_reply(session) -> None:
    reg = CommandRegistry()

    def boom(session, args):
        raise ValidationError("Choose a sector first.")

    reg.register("boom", boom, "boom")
    assert reg.handle(session, "/boom") == "Choose a sector first."


def test_race_through_commands(session, clock) -> None:
    assert "Account created" in (registry.handle(session, "/register alice pw1") or "")
    assert registry.handle(session, "/login alice pw2") == "Incorrect password."

    welcome = registry.handle(session, "/login alice pw1") or ""
    assert "alice" in welcome
    assert session.state.screen == Screen.WELCOME

    board = registry.handle(session, "/sector 1") or ""
    assert "Sector 1" in board
    assert registry.handle(session, "/go 1") == "Confirm you are ready before starting tasks."

    registry.handle(session, "/name 1 Write report")
    # No background loop here: /ready starts the sector straight away.
    assert "Lights out" in (registry.handle(session, "/ready") or "")

    registry.handle(session, "/go 1")
    clock.advance(65)
    board = registry.handle(session, "/finish 1") or ""
    assert "Write report" in board
    assert "01:05" in board

    lb = registry.handle(session, "/leaderboard") or ""
    assert "alice" in lb and "01:05" in lb

    assert registry.handle(session, "/go x") == "Usage: /go <task#>"
    assert "Usage" in (registry.handle(session, "/friend") or "")


def test_help_lists_commands(session) -> None:
    text = registry.handle(session, "/help") or ""
    for name in ("/login", "/sector", "/ready", "/go", "/pit", "/stop", "/finish", "/friend", "/invite"):
        assert name in text
