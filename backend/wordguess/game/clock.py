"""Round countdown arithmetic.

Remaining time is always derived from ``started_at_ms`` and
``total_duration_ms``; nothing here ticks. Adjusting the timer only changes
the total duration, so repeated reads never drift.
"""
from __future__ import annotations

from .errors import InvalidInput, InvalidState
from .models import RoundClock


def start(clock: RoundClock, duration_ms: int, now: int) -> None:
    clock.started_at_ms = now
    clock.total_duration_ms = duration_ms


def stop(clock: RoundClock) -> None:
    clock.started_at_ms = None
    clock.total_duration_ms = 0


def is_active(clock: RoundClock) -> bool:
    return clock.started_at_ms is not None


def elapsed(clock: RoundClock, now: int) -> int:
    if clock.started_at_ms is None:
        return 0
    return now - clock.started_at_ms


def remaining(clock: RoundClock, now: int) -> int:
    if clock.started_at_ms is None:
        return 0
    return max(0, clock.total_duration_ms - elapsed(clock, now))


def extend(clock: RoundClock, delta_ms: int, now: int) -> int:
    if not is_active(clock):
        raise InvalidState("No active round to update timer")
    if delta_ms <= 0:
        raise InvalidInput("Time extension must be positive")
    clock.total_duration_ms += delta_ms
    return remaining(clock, now)


def set_remaining(clock: RoundClock, ms: int, now: int) -> int:
    if not is_active(clock):
        raise InvalidState("No active round to update timer")
    if ms < 0:
        raise InvalidInput("Remaining time cannot be negative")
    clock.total_duration_ms = elapsed(clock, now) + ms
    return remaining(clock, now)
