# tests/test_console.py

from __future__ import annotations

from grand_prix.connectors.console_connector import start_ticker_if_racing

from .fakes import FakeHandle


class FakeRunner:
    """Records submitted coroutines without running them."""

    def __init__(self) -> None:
        self.submitted = 0

    def submit(self, coro):
        coro.close()
        self.submitted += 1
        return FakeHandle()


def test_ticker_starts_on_a_racing_board(racer) -> None:
    runner = FakeRunner()
    racer.state.runner = runner
    racer.mark_ready()

    assert start_ticker_if_racing(racer) is True
    assert runner.submitted == 1
    assert racer.state.ticker is not None


def test_no_ticker_before_lights_out(racer) -> None:
    runner = FakeRunner()
    racer.state.runner = runner
    assert start_ticker_if_racing(racer) is False
    assert runner.submitted == 0


def test_reentering_an_expired_sector_does_not_restart_ticker(racer, clock) -> None:
    runner = FakeRunner()
    racer.state.runner = runner
    racer.mark_ready()
    clock.advance(46 * 60)

    racer.go_home()
    racer.enter_sector(1)

    assert start_ticker_if_racing(racer) is False
    assert runner.submitted == 0
    assert racer.state.ticker is None
