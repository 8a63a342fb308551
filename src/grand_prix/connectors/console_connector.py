# src/grand_prix/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.session import Session
from ..core.state import Screen
from ..core.ticker import run_sector_ticker
from ..core.timer import SectorSnapshot, sector_remaining_ms
from ..ui import screens

logger = logging.getLogger(__name__)

# Events whose text is printed as a notice line.
_NOTICE_EVENTS = {"time_up", "chequered_flag", "presence", "social"}


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    try:
        if sys.stdout.isatty():
            sys.stdout.write("\033[1A\033[2K\r")
            sys.stdout.write(line + "\n")
            sys.stdout.flush()
        else:
            print(line)
    except Exception:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def _on_tick(snap: SectorSnapshot) -> None:
    # The board is redrawn on demand (/board); print a lap line once a minute.
    if snap.remaining_ms is not None and snap.remaining_ms > 0 and snap.remaining_ms % 60_000 < 1000:
        _print_ts(f"[LAP] Sector {snap.sector}: {snap.remaining_ms // 60_000} min left.")


def start_ticker_if_racing(session: Session) -> bool:
    """Run the sector ticker on the background loop while a started sector is on screen."""
    st = session.state
    runner = st.runner
    if runner is None or st.screen != Screen.TASKS:
        return False
    sector = session.active_sector
    if sector is None or not sector.started:
        return False
    # An expired sector already announced time_up.
    if sector_remaining_ms(sector, session.clock(), duration_ms=session.sector_duration_ms) == 0:
        return False
    interval = float(getattr(st.settings, "tick_seconds", 1.0))
    future = runner.submit(run_sector_ticker(session, _on_tick, interval_seconds=interval))
    session.attach_ticker(future)
    return True


def _listener(session: Session):
    def on_event(event: str, text: str | None) -> None:
        if event in ("screen", "ready"):
            start_ticker_if_racing(session)
        if text and event in _NOTICE_EVENTS:
            _print_ts(f"[{event.upper()}] {text}")

    return on_event


def run_console_loop(session: Session) -> None:
    st = session.state
    unsubscribe = session.subscribe(_listener(session))
    logger.info("Console connector started.")

    with st.lock:
        session.restore()
        _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")
        print(screens.render_screen(session), flush=True)

    def emit(text: str) -> None:
        # Immediate user-visible feedback for background operations (start lights).
        print(f"[{_ts_local()}] {text}", flush=True)

    try:
        while True:
            try:
                user_input = input(">>> ").strip()
                _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                with st.lock:
                    response = command_registry.handle(session, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                response = "Internal error while handling a command."

            if response is None:
                response = "Commands start with '/'. Use /help to list them."
            print(response, flush=True)
    finally:
        unsubscribe()
        logger.info("Console connector finished.")
