from __future__ import annotations

import datetime as dt
import math
from collections import defaultdict
from typing import Dict, Iterable, List, Protocol, Tuple

from .errors import InvalidInput


class DatedHours(Protocol):
    date: dt.date
    hours: float


def _checked_hours(entry: DatedHours) -> float:
    hours = entry.hours
    if hours is None or not math.isfinite(hours) or hours < 0:
        raise InvalidInput(f"Invalid hours value for {entry.date}: {hours!r}")
    return float(hours)


def hours_by_date(entries: Iterable[DatedHours]) -> List[Tuple[dt.date, float]]:
    totals: Dict[dt.date, float] = defaultdict(float)
    for entry in entries:
        totals[entry.date] += _checked_hours(entry)
    return sorted(totals.items())


def daily_average(entries: Iterable[DatedHours]) -> float:
    """Average hours per day with at least one entry.

    Days without any logged activity are not counted, so gaps do not lower the
    pace.
    """
    totals = hours_by_date(entries)
    if not totals:
        return 0.0
    return sum(hours for _, hours in totals) / len(totals)
