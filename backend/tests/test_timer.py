from __future__ import annotations

import pytest

from hourglass.timer import IDLE, PAUSED, RUNNING, Stopwatch, TimerStateError, format_elapsed


def test_pause_resume_accumulates_running_time_only(stopwatch: Stopwatch, clock) -> None:
    stopwatch.start()
    clock.advance(125)
    stopwatch.pause()
    assert stopwatch.state == PAUSED
    assert stopwatch.elapsed_seconds() == 125

    clock.advance(600)  # paused time is not counted
    assert stopwatch.elapsed_seconds() == 125

    stopwatch.resume()
    clock.advance(5)
    assert stopwatch.state == RUNNING
    assert stopwatch.elapsed_seconds() == 130


def test_start_after_pause_continues(stopwatch: Stopwatch, clock) -> None:
    stopwatch.start()
    clock.advance(60)
    stopwatch.pause()
    stopwatch.start()
    clock.advance(60)
    assert stopwatch.elapsed_seconds() == 120


def test_logging_requires_paused_stopwatch_with_time(stopwatch: Stopwatch, clock) -> None:
    with pytest.raises(TimerStateError):
        stopwatch.loggable_hours()
    stopwatch.start()
    clock.advance(1800)
    with pytest.raises(TimerStateError):
        stopwatch.loggable_hours()
    stopwatch.pause()
    assert stopwatch.loggable_hours() == pytest.approx(0.5)
    assert stopwatch.state == PAUSED


def test_reset_returns_to_idle(stopwatch: Stopwatch, clock) -> None:
    stopwatch.start()
    clock.advance(42)
    stopwatch.reset()
    assert stopwatch.state == IDLE
    assert stopwatch.elapsed_seconds() == 0


def test_invalid_transitions(stopwatch: Stopwatch) -> None:
    with pytest.raises(TimerStateError):
        stopwatch.pause()
    with pytest.raises(TimerStateError):
        stopwatch.resume()
    stopwatch.start()
    with pytest.raises(TimerStateError):
        stopwatch.start()


def test_format_elapsed() -> None:
    assert format_elapsed(0) == "00:00:00"
    assert format_elapsed(3725) == "01:02:05"
    assert format_elapsed(36 * 3600) == "36:00:00"
