# tests/test_screens.py

from __future__ import annotations

from grand_prix.core.leaderboard import MODE_POINTS, LeaderboardEntry
from grand_prix.ui import screens


def test_auth_screen_when_logged_out(session) -> None:
    assert "/login" in screens.render_screen(session)


def test_welcome_greets_and_shows_invites(racer) -> None:
    racer.go_home()
    text = screens.render_screen(racer)
    assert text.startswith("Good morning, alice!")
    assert "No finished tasks this week yet." in text


def test_sector_list_marks_opened_sectors(racer) -> None:
    racer.mark_ready()
    racer.show_sectors()
    text = screens.render_screen(racer)
    assert "Sector 1 (racing, 0/4 finished)" in text
    assert "Sector 2 (not opened)" in text


def test_board_before_lights_out(racer) -> None:
    text = screens.render_screen(racer)
    assert "not started (/ready)" in text
    assert text.count("Not started") == 4


def test_points_leaderboard_shows_points() -> None:
    text = screens.render_leaderboard([LeaderboardEntry("alice", 40_000, 40)], mode=MODE_POINTS)
    assert "40 pts" in text
    assert "00:40" in text


def test_lights() -> None:
    assert screens.render_lights(2) == "Lights: (*) (*) ( ) ( ) ( )"
