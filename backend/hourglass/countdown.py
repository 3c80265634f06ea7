from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Protocol


class Deadlined(Protocol):
    deadline: dt.datetime
    created_at: dt.datetime


@dataclass(frozen=True)
class RemainingDuration:
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    @classmethod
    def from_seconds(cls, total_seconds: float) -> "RemainingDuration":
        remaining = max(int(total_seconds), 0)
        days, remaining = divmod(remaining, 86400)
        hours, remaining = divmod(remaining, 3600)
        minutes, seconds = divmod(remaining, 60)
        return cls(days=days, hours=hours, minutes=minutes, seconds=seconds)


@dataclass(frozen=True)
class Countdown:
    percent_elapsed: float
    raw_percent_elapsed: float
    remaining: RemainingDuration
    is_past_deadline: bool


def countdown(project: Deadlined, now: dt.datetime) -> Countdown:
    total_span = (project.deadline - project.created_at).total_seconds()
    elapsed = (now - project.created_at).total_seconds()
    if total_span > 0:
        raw_percent = elapsed / total_span * 100
    else:
        raw_percent = 100.0
    is_past_deadline = now > project.deadline
    start = project.deadline if is_past_deadline else now
    remaining = RemainingDuration.from_seconds((project.deadline - start).total_seconds())
    return Countdown(
        percent_elapsed=min(max(raw_percent, 0.0), 100.0),
        raw_percent_elapsed=raw_percent,
        remaining=remaining,
        is_past_deadline=is_past_deadline,
    )


def countdown_label(result: Countdown) -> str:
    if result.is_past_deadline:
        return "Deadline Passed"
    r = result.remaining
    return f"{r.days}d {r.hours}h {r.minutes}m {r.seconds}s"
