from __future__ import annotations

import datetime as dt
import math
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidInput, InvalidPaceError

TARGET_HOURS = 10000


@dataclass(frozen=True)
class ProjectionResult:
    estimated_end_date: dt.datetime
    remaining_days: int
    remaining_days_exact: float = 0.0
    effective_pace: Optional[float] = None


def effective_pace(daily_average_hours: float, fixed_daily_hours: Optional[float] = None) -> float:
    """Return the pace a projection runs at.

    An explicit ``fixed_daily_hours`` always wins over the historical average,
    and must itself be positive.
    """
    if fixed_daily_hours is not None:
        if not fixed_daily_hours > 0:
            raise InvalidPaceError()
        return float(fixed_daily_hours)
    if not daily_average_hours > 0:
        raise InvalidPaceError()
    return float(daily_average_hours)


def project(
    total_hours_logged: float,
    daily_average_hours: float,
    fixed_daily_hours: Optional[float] = None,
    now: Optional[dt.datetime] = None,
) -> ProjectionResult:
    if now is None:
        now = dt.datetime.now(dt.timezone.utc)
    if total_hours_logged is None or not math.isfinite(total_hours_logged) or total_hours_logged < 0:
        raise InvalidInput("total_hours_logged must be a non-negative number")
    if total_hours_logged >= TARGET_HOURS:
        return ProjectionResult(estimated_end_date=now, remaining_days=0)

    pace = effective_pace(daily_average_hours, fixed_daily_hours)
    if not math.isfinite(pace):
        raise InvalidPaceError("Daily hours must be a finite number.")
    remaining_hours = TARGET_HOURS - total_hours_logged
    remaining_days = remaining_hours / pace
    try:
        estimated_end_date = now + dt.timedelta(days=remaining_days)
    except OverflowError as exc:
        raise InvalidPaceError("Projected end date is out of range; daily hours are too low.") from exc
    return ProjectionResult(
        estimated_end_date=estimated_end_date,
        remaining_days=math.ceil(remaining_days),
        remaining_days_exact=remaining_days,
        effective_pace=pace,
    )
