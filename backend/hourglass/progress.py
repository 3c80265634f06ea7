from __future__ import annotations

import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import InvalidInput

HOURS_PER_DAY = 24
HOURS_PER_MONTH = 30 * HOURS_PER_DAY
HOURS_PER_YEAR = 365 * HOURS_PER_DAY

# (lower bound in hours, title); level n starts at LEVEL_THRESHOLDS[n - 1]
LEVEL_THRESHOLDS: Tuple[Tuple[float, str], ...] = (
    (0, "Beginner"),
    (10, "Novice"),
    (50, "Apprentice"),
    (100, "Practitioner"),
    (250, "Adept"),
    (500, "Journeyman"),
    (1000, "Specialist"),
    (2500, "Expert"),
    (5000, "Virtuoso"),
    (7500, "Master"),
    (10000, "Grandmaster"),
)
MAX_LEVEL = len(LEVEL_THRESHOLDS)


@dataclass(frozen=True)
class LevelInfo:
    level: int
    title: str
    progress_within_level: float
    current_threshold: float
    next_threshold: Optional[float]
    hours_to_next_level: Optional[float]

    @property
    def is_max_level(self) -> bool:
        return self.level == MAX_LEVEL


@dataclass(frozen=True)
class ReadableDuration:
    years: int = 0
    months: int = 0
    days: int = 0
    hours: int = 0


def _require_hours(value: float, name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be a number") from exc
    if not math.isfinite(number):
        raise InvalidInput(f"{name} must be finite")
    if number < 0:
        raise InvalidInput(f"{name} must not be negative")
    return number


def level_of(total_hours: float) -> LevelInfo:
    """Classify accumulated hours into a level tier.

    The thresholds partition ``[0, inf)``; everything from the 10,000 hour goal
    upwards is the top tier, whose progress is reported as ``1.0``.
    """
    hours = _require_hours(total_hours, "total_hours")
    index = 0
    for position, (threshold, _) in enumerate(LEVEL_THRESHOLDS):
        if hours >= threshold:
            index = position
        else:
            break
    threshold, title = LEVEL_THRESHOLDS[index]
    if index == MAX_LEVEL - 1:
        return LevelInfo(
            level=MAX_LEVEL,
            title=title,
            progress_within_level=1.0,
            current_threshold=threshold,
            next_threshold=None,
            hours_to_next_level=None,
        )
    next_threshold = LEVEL_THRESHOLDS[index + 1][0]
    span = next_threshold - threshold
    return LevelInfo(
        level=index + 1,
        title=title,
        progress_within_level=(hours - threshold) / span,
        current_threshold=threshold,
        next_threshold=next_threshold,
        hours_to_next_level=next_threshold - hours,
    )


def decompose_hours(hours: float) -> ReadableDuration:
    # Calendar-approximate: 365-day years and 30-day months.
    if hours <= 0:
        return ReadableDuration()
    years = math.floor(hours / HOURS_PER_YEAR)
    remainder = hours % HOURS_PER_YEAR
    months = math.floor(remainder / HOURS_PER_MONTH)
    remainder = remainder % HOURS_PER_MONTH
    days = math.floor(remainder / HOURS_PER_DAY)
    remaining_hours = math.floor(remainder % HOURS_PER_DAY)
    return ReadableDuration(years=years, months=months, days=days, hours=remaining_hours)


def _unit(value: int, name: str) -> str:
    return f"{value} {name}{'s' if value > 1 else ''}"


def convert_hours_to_readable_time(hours: float) -> str:
    if hours <= 0:
        return "0 days"
    duration = decompose_hours(hours)
    parts: List[str] = []
    if duration.years > 0:
        parts.append(_unit(duration.years, "year"))
    if duration.months > 0:
        parts.append(_unit(duration.months, "month"))
    if duration.days > 0:
        parts.append(_unit(duration.days, "day"))
    if duration.hours > 0:
        parts.append(_unit(duration.hours, "hour"))
    if not parts:
        return "0 hours"
    return ", ".join(parts)
