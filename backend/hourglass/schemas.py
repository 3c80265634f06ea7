from __future__ import annotations

import datetime as dt
import math
from typing import List, Optional

from typing_extensions import Literal

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _serialize_datetime(value: dt.datetime) -> str:
    return _as_utc(value).isoformat()


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LogEntry(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
    date: dt.date
    hours: float = Field(gt=0)


class Project(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
    id: str
    name: str
    deadline: dt.datetime
    created_at: dt.datetime
    is_active: bool = False

    @field_validator("name")
    @classmethod
    def _non_empty_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Project name must not be empty")
        return value

    @field_validator("deadline", "created_at")
    @classmethod
    def _normalize_timestamp(cls, value: dt.datetime) -> dt.datetime:
        return _as_utc(value)

    @field_serializer("deadline", "created_at")
    def _serialize_timestamp(self, value: dt.datetime) -> str:
        return _serialize_datetime(value)


class HourLogDocument(CamelModel):
    """The single persisted document: every log entry, project and the running total."""

    logs: List[LogEntry] = Field(default_factory=list)
    projects: List[Project] = Field(default_factory=list)
    total_hours: float = Field(default=0.0, ge=0)

    @model_validator(mode="after")
    def _check_total_hours(self) -> "HourLogDocument":
        logged = math.fsum(entry.hours for entry in self.logs)
        if "total_hours" not in self.model_fields_set:
            self.total_hours = logged
        elif not math.isclose(self.total_hours, logged, rel_tol=1e-9, abs_tol=1e-6):
            raise ValueError(f"totalHours {self.total_hours:g} does not match the logged hours {logged:g}")
        return self


class LogHoursRequest(CamelModel):
    hours: float = Field(gt=0)
    date: Optional[dt.date] = None


class LevelInfoResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
    level: int
    title: str
    progress_within_level: float
    current_threshold: float
    next_threshold: Optional[float]
    hours_to_next_level: Optional[float]


class DailyTotal(CamelModel):
    date: dt.date
    hours: float


class StatsResponse(CamelModel):
    total_hours: float
    target_hours: int
    remaining_hours: float
    percent_complete: float
    total_readable: str
    remaining_readable: str
    daily_average_hours: float
    active_days: int
    entry_count: int
    daily_totals: List[DailyTotal]
    level: LevelInfoResponse


class ProjectionRequest(CamelModel):
    total_hours_logged: Optional[float] = None
    daily_average_hours: Optional[float] = None
    fixed_daily_hours: Optional[float] = None
    now: Optional[dt.datetime] = None
    narrate: bool = False


class ProjectionResponse(CamelModel):
    estimated_end_date: dt.datetime
    remaining_days: int
    remaining_days_exact: float
    effective_pace: Optional[float]
    total_hours_logged: float
    daily_average_hours: float
    fixed_daily_hours: Optional[float]
    narrative: Optional[str] = None

    @field_serializer("estimated_end_date")
    def _serialize_end_date(self, value: dt.datetime) -> str:
        return _serialize_datetime(value)


class ProjectCreateRequest(CamelModel):
    name: str = Field(min_length=1, max_length=200)
    deadline: dt.datetime


class ProjectUpdateRequest(CamelModel):
    is_active: bool


class RemainingDurationResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
    days: int
    hours: int
    minutes: int
    seconds: int


class CountdownResponse(CamelModel):
    project: Project
    percent_elapsed: float
    raw_percent_elapsed: float
    remaining: RemainingDurationResponse
    is_past_deadline: bool
    label: str


class TimerResponse(CamelModel):
    state: Literal["idle", "running", "paused"]
    elapsed_seconds: int
    elapsed_hours: float
    display: str


class TimerLogResponse(CamelModel):
    entry: LogEntry
    timer: TimerResponse
