from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import List, Optional

from fastapi import HTTPException, status

from .config import Settings, settings
from .countdown import countdown, countdown_label
from .gemini import GeminiClient, GeminiError
from .pace import daily_average, hours_by_date
from .progress import LevelInfo, convert_hours_to_readable_time, level_of
from .projection import TARGET_HOURS, project
from .schemas import (
    CountdownResponse,
    DailyTotal,
    HourLogDocument,
    LevelInfoResponse,
    LogEntry,
    Project,
    ProjectionRequest,
    ProjectionResponse,
    RemainingDurationResponse,
    StatsResponse,
    TimerLogResponse,
    TimerResponse,
)
from .state import RuntimeState
from .store import export_snapshot
from .timer import Stopwatch, TimerStateError, format_elapsed

logger = logging.getLogger(__name__)

UTC = dt.timezone.utc


def _now() -> dt.datetime:
    return dt.datetime.now(UTC)


def _ensure_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def local_today(config: Settings = settings) -> dt.date:
    return dt.datetime.now(config.local_zone()).date()


# --- Hour log ---------------------------------------------------------------

def log_hours(
    state: RuntimeState,
    hours: float,
    day: Optional[dt.date] = None,
    config: Settings = settings,
) -> LogEntry:
    if hours <= 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Must be greater than 0.")
    if hours > config.max_manual_hours:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Daily cap is {config.max_manual_hours:g} hours.",
        )
    entry = LogEntry(date=day or local_today(config), hours=hours)
    state.append_log(entry)
    logger.info("hours logged", extra={"_json_hours": hours, "_json_date": entry.date.isoformat()})
    return entry


def list_logs(state: RuntimeState) -> List[LogEntry]:
    return state.logs


def current_level(state: RuntimeState) -> LevelInfo:
    return level_of(state.total_hours)


def build_stats(state: RuntimeState) -> StatsResponse:
    document = state.snapshot()
    totals = hours_by_date(document.logs)
    total = document.total_hours
    remaining = max(TARGET_HOURS - total, 0.0)
    return StatsResponse(
        total_hours=total,
        target_hours=TARGET_HOURS,
        remaining_hours=remaining,
        percent_complete=min(total / TARGET_HOURS * 100, 100.0),
        total_readable=convert_hours_to_readable_time(total),
        remaining_readable=convert_hours_to_readable_time(remaining),
        daily_average_hours=daily_average(document.logs),
        active_days=len(totals),
        entry_count=len(document.logs),
        daily_totals=[DailyTotal(date=day, hours=hours) for day, hours in totals],
        level=LevelInfoResponse.model_validate(level_of(total)),
    )


# --- Projection -------------------------------------------------------------

def build_projection(
    state: RuntimeState,
    payload: ProjectionRequest,
    client: Optional[GeminiClient] = None,
    config: Settings = settings,
) -> ProjectionResponse:
    """Project the goal completion date from stored progress.

    Inputs missing from the request are taken from the store. When the request
    does not mention ``fixed_daily_hours`` at all the configured dashboard pace
    applies; an explicit ``null`` falls back to the historical average.
    """
    document = state.snapshot()
    total = payload.total_hours_logged if payload.total_hours_logged is not None else document.total_hours
    average = (
        payload.daily_average_hours
        if payload.daily_average_hours is not None
        else daily_average(document.logs)
    )
    if "fixed_daily_hours" in payload.model_fields_set:
        fixed = payload.fixed_daily_hours
    else:
        fixed = config.default_fixed_daily_hours
    now = _ensure_utc(payload.now) if payload.now else _now()

    result = project(total, average, fixed, now)

    narrative: Optional[str] = None
    if payload.narrate:
        if client is None:
            logger.info("projection narrative requested but no Gemini API key is configured")
        else:
            try:
                narrative = client.describe_projection(total, average, fixed, result)
            except GeminiError as exc:
                logger.warning("projection narrative unavailable: %s", exc)

    return ProjectionResponse(
        estimated_end_date=result.estimated_end_date,
        remaining_days=result.remaining_days,
        remaining_days_exact=result.remaining_days_exact,
        effective_pace=result.effective_pace,
        total_hours_logged=total,
        daily_average_hours=average,
        fixed_daily_hours=fixed,
        narrative=narrative,
    )


# --- Projects ---------------------------------------------------------------

def create_project(
    state: RuntimeState,
    name: str,
    deadline: dt.datetime,
    now: Optional[dt.datetime] = None,
) -> Project:
    if not name.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Project name is required")
    project_record = Project(
        id=str(uuid.uuid4()),
        name=name,
        deadline=_ensure_utc(deadline),
        created_at=_ensure_utc(now) if now else _now(),
        is_active=False,
    )
    state.add_project(project_record)
    logger.info("project created", extra={"_json_project_id": project_record.id})
    return project_record


def list_projects(state: RuntimeState) -> List[Project]:
    return state.projects


def get_project(state: RuntimeState, project_id: str) -> Project:
    project_record = state.find_project(project_id)
    if project_record is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project_record


def set_project_active(state: RuntimeState, project_id: str, is_active: bool) -> Project:
    updated = state.set_project_active(project_id, is_active)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return updated


def toggle_project(state: RuntimeState, project_id: str) -> Project:
    current = get_project(state, project_id)
    return set_project_active(state, project_id, not current.is_active)


def project_countdown(project_record: Project, now: Optional[dt.datetime] = None) -> CountdownResponse:
    result = countdown(project_record, _ensure_utc(now) if now else _now())
    return CountdownResponse(
        project=project_record,
        percent_elapsed=result.percent_elapsed,
        raw_percent_elapsed=result.raw_percent_elapsed,
        remaining=RemainingDurationResponse.model_validate(result.remaining),
        is_past_deadline=result.is_past_deadline,
        label=countdown_label(result),
    )


def active_countdowns(state: RuntimeState, now: Optional[dt.datetime] = None) -> List[CountdownResponse]:
    moment = _ensure_utc(now) if now else _now()
    return [project_countdown(p, moment) for p in state.projects if p.is_active]


# --- Stopwatch --------------------------------------------------------------

def timer_status(stopwatch: Stopwatch) -> TimerResponse:
    seconds = stopwatch.elapsed_seconds()
    return TimerResponse(
        state=stopwatch.state,
        elapsed_seconds=seconds,
        elapsed_hours=seconds / 3600,
        display=format_elapsed(seconds),
    )


def change_timer(stopwatch: Stopwatch, action: str) -> TimerResponse:
    handlers = {
        "start": stopwatch.start,
        "pause": stopwatch.pause,
        "resume": stopwatch.resume,
        "reset": stopwatch.reset,
    }
    try:
        handlers[action]()
    except TimerStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    return timer_status(stopwatch)


def log_timer(state: RuntimeState, stopwatch: Stopwatch, config: Settings = settings) -> TimerLogResponse:
    try:
        hours = stopwatch.loggable_hours()
    except TimerStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    entry = LogEntry(date=local_today(config), hours=hours)
    state.append_log(entry)
    stopwatch.reset()
    logger.info("timer logged", extra={"_json_hours": hours})
    return TimerLogResponse(entry=entry, timer=timer_status(stopwatch))


# --- Data management --------------------------------------------------------

def export_document(state: RuntimeState) -> bytes:
    return export_snapshot(state.snapshot())


def import_document(state: RuntimeState, document: HourLogDocument) -> HourLogDocument:
    replaced = state.replace(document)
    logger.info(
        "hour log imported",
        extra={"_json_entries": len(replaced.logs), "_json_projects": len(replaced.projects)},
    )
    return replaced


def reset_data(state: RuntimeState) -> HourLogDocument:
    document = state.reset()
    logger.info("hour log reset")
    return document
