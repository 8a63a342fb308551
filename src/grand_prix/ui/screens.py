# src/grand_prix/ui/screens.py

from __future__ import annotations

"""
Text renderers for the console.

Every render is a full redraw of one screen built from the session's current
state; nothing here mutates state.
"""

from ..core.clock import day_key, format_duration, greeting_for
from ..core.errors import ValidationError
from ..core.leaderboard import MODE_POINTS, LeaderboardEntry
from ..core.models import SECTOR_NUMBERS, TaskStatus
from ..core.session import HistoryRow, Session
from ..core.state import Screen
from ..core.timer import SectorSnapshot

_STATUS_MARK = {
    TaskStatus.NOT_STARTED: "  ",
    TaskStatus.RUNNING: ">>",
    TaskStatus.PAUSED: "||",
    TaskStatus.FINISHED: "OK",
}

_LIGHTS = 5


def render_auth() -> str:
    return (
        "WORK GRAND PRIX\n"
        "  /login <username|email> <password>\n"
        "  /register <username|email> <password>"
    )


def render_leaderboard(entries: list[LeaderboardEntry], *, mode: str) -> str:
    title = "Weekly leaderboard (points)" if mode == MODE_POINTS else "Weekly leaderboard (fastest time)"
    if not entries:
        return f"{title}\n  No finished tasks this week yet."
    lines = [title]
    for pos, entry in enumerate(entries, start=1):
        if mode == MODE_POINTS:
            lines.append(f"  {pos:>2}. {entry.username:<16} {entry.points:>5} pts  {format_duration(entry.total_ms)}")
        else:
            lines.append(f"  {pos:>2}. {entry.username:<16} {format_duration(entry.total_ms)}")
    return "\n".join(lines)


def render_welcome(session: Session) -> str:
    st = session.state
    me = session.require_user()
    lines = [f"{greeting_for(session.clock())}, {me.username}!"]
    if session.leaderboard_mode == MODE_POINTS:
        lines.append(f"Points: {me.points}")
    lines.append("")
    lines.append(render_leaderboard(session.leaderboard(), mode=session.leaderboard_mode))
    if st.invites:
        lines.append("")
        lines.append("Race invites:")
        lines.extend(f"  - from {inv.sender}" for inv in st.invites)
    lines.append("")
    lines.append("Use /sectors to pick a sector, /history for past days, /friends for friends.")
    return "\n".join(lines)


def render_sectors(session: Session) -> str:
    me = session.require_user()
    today = me.records.get(day_key(session.clock()))
    lines = ["Choose a sector:"]
    for number in SECTOR_NUMBERS:
        sector = today.sectors.get(number) if today else None
        if sector is None:
            note = "not opened"
        elif not sector.started:
            note = f"{len(sector.tasks)} tasks, waiting for lights out"
        else:
            done = sum(1 for t in sector.tasks if t.status == TaskStatus.FINISHED)
            note = f"racing, {done}/{len(sector.tasks)} finished"
        lines.append(f"  /sector {number}  Sector {number} ({note})")
    return "\n".join(lines)


def render_board(snap: SectorSnapshot) -> str:
    if snap.remaining_ms is None:
        clock = "not started (/ready)"
    else:
        clock = format_duration(max(0, snap.remaining_ms))
    lines = [f"Sector {snap.sector}  remaining {clock}"]
    for view in snap.tasks:
        name = view.name or "(unnamed)"
        lines.append(
            f"  {view.position:>2}. [{_STATUS_MARK.get(view.status, '  ')}] {name:<30} "
            f"{format_duration(view.elapsed_ms)}  {view.status}"
        )
    if snap.all_finished:
        lines.append("  All tasks finished.")
    elif snap.time_up:
        lines.append("  Time is up!")
    return "\n".join(lines)


def render_lights(lit: int) -> str:
    lit = max(0, min(_LIGHTS, lit))
    return "Lights: " + " ".join("(*)" if i < lit else "( )" for i in range(_LIGHTS))


def render_history(rows: list[HistoryRow]) -> str:
    if not rows:
        return "History\n  Nothing recorded yet."
    lines = ["History"]
    current = None
    for row in rows:
        if row.day != current:
            current = row.day
            lines.append(f"  {row.day}")
        state = "started" if row.started else "not started"
        lines.append(
            f"    Sector {row.sector}: {row.finished}/{row.total} finished, "
            f"{format_duration(row.total_ms)} ({state})"
        )
    return "\n".join(lines)


def render_friends(session: Session) -> str:
    me = session.require_user()
    online = session.state.online
    lines = ["Friends:"]
    if me.friends:
        for name in sorted(me.friends):
            lines.append(f"  {name}{' (online)' if name in online else ''}")
    else:
        lines.append("  none yet, use /friend add <username>")
    if me.friend_requests:
        lines.append("Pending requests:")
        lines.extend(f"  {name}  (/friend accept {name})" for name in sorted(me.friend_requests))
    return "\n".join(lines)


def render_screen(session: Session) -> str:
    """Full redraw of whatever screen the session is on."""
    screen = session.state.screen
    if screen == Screen.AUTH or session.me is None:
        return render_auth()
    if screen == Screen.WELCOME:
        return render_welcome(session)
    if screen == Screen.SECTORS:
        return render_sectors(session)
    if screen == Screen.HISTORY:
        return render_history(session.history())
    try:
        return render_board(session.sector_snapshot())
    except ValidationError:
        return render_sectors(session)
