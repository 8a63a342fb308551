# src/grand_prix/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds the Session, starts the background event loop
(start lights + sector ticker), then runs the console REPL in the main thread.
"""

from __future__ import annotations

import logging
import signal
import threading

from ..cli.bootstrap import create_session
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..connectors.loop_runner import start_loop_in_background
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(session) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        session.close()
    except Exception:
        logger.exception("Session close failed.")

    try:
        backend = getattr(session.state, "backend", None)
        if backend is not None and hasattr(backend, "close"):
            backend.close()
    except Exception:
        logger.debug("Backend close failed.", exc_info=True)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)

    log_dir = getattr(settings, "data_dir", ".local/wgp")
    setup_logging(log_dir=log_dir, console_level=console_level)

    logger.info("Starting %s...", getattr(settings, "app_name", "Work Grand Prix"))

    session = create_session(settings=settings)
    runner = start_loop_in_background()
    session.state.runner = runner

    stop_main = threading.Event()

    def _handle_signal(signum, _frame) -> None:
        logger.info("Signal %s received, shutting down...", signum)
        stop_main.set()

    try:
        signal.signal(signal.SIGTERM, _handle_signal)
    except (ValueError, OSError, AttributeError):
        # Some platforms may not support SIGTERM.
        pass

    try:
        if settings.console_enabled:
            run_console_loop(session)
        else:
            logger.info("Console disabled. Nothing else to run; press Ctrl+C to stop.")
            try:
                stop_main.wait()
            except KeyboardInterrupt:
                pass
    finally:
        _shutdown(session)
        if runner is not None:
            runner.stop()
            runner.join(timeout=5.0)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
