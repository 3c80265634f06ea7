from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .errors import InvalidInput, InvalidPaceError, StoreUnavailableError, StoreWriteError
from .gemini import GeminiClient
from .schemas import (
    CountdownResponse,
    HourLogDocument,
    LevelInfoResponse,
    LogEntry,
    LogHoursRequest,
    Project,
    ProjectCreateRequest,
    ProjectionRequest,
    ProjectionResponse,
    ProjectUpdateRequest,
    StatsResponse,
    TimerLogResponse,
    TimerResponse,
)
from .services import (
    active_countdowns,
    build_projection,
    build_stats,
    change_timer,
    create_project,
    current_level,
    export_document,
    get_project,
    import_document,
    list_logs,
    list_projects,
    log_hours,
    log_timer,
    project_countdown,
    reset_data,
    set_project_active,
    timer_status,
    toggle_project,
)
from .state import RuntimeState
from .store import EXPORT_FILENAME, create_store
from .timer import Stopwatch

logger = logging.getLogger(__name__)


runtime_state = RuntimeState(create_store(settings))
try:
    runtime_state.load()
except StoreUnavailableError:
    logger.exception("hour log could not be loaded; changes are refused until it is reloaded")

app = FastAPI(title=settings.app_name)
app.state.runtime_state = runtime_state
app.state.stopwatch = Stopwatch()
app.state.gemini_client = GeminiClient.from_settings(settings)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://127.0.0.1:9002", "http://localhost:9002"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_state(request: Request) -> RuntimeState:
    return request.app.state.runtime_state


def get_stopwatch(request: Request) -> Stopwatch:
    return request.app.state.stopwatch


def get_gemini_client(request: Request) -> Optional[GeminiClient]:
    return request.app.state.gemini_client


@app.exception_handler(InvalidInput)
async def handle_invalid_input(request: Request, exc: InvalidInput) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_400_BAD_REQUEST)


@app.exception_handler(InvalidPaceError)
async def handle_invalid_pace(request: Request, exc: InvalidPaceError) -> JSONResponse:
    return JSONResponse({"detail": str(exc)}, status_code=422)


@app.exception_handler(StoreUnavailableError)
async def handle_store_unavailable(request: Request, exc: StoreUnavailableError) -> JSONResponse:
    return JSONResponse(
        {"detail": f"Could not load data. {exc}"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
    )


@app.exception_handler(StoreWriteError)
async def handle_store_write(request: Request, exc: StoreWriteError) -> JSONResponse:
    return JSONResponse(
        {"detail": f"Could not save your data. {exc}"}, status_code=status.HTTP_503_SERVICE_UNAVAILABLE
    )


@app.get("/healthz")
def healthz(state: RuntimeState = Depends(get_state)) -> dict[str, str]:
    return {"status": "ok", "store": "loaded" if state.loaded else "unavailable"}


@app.get("/logs", response_model=list[LogEntry])
def get_logs(state: RuntimeState = Depends(get_state)) -> list[LogEntry]:
    return list_logs(state)


@app.post("/logs", response_model=LogEntry, status_code=status.HTTP_201_CREATED)
def add_log(payload: LogHoursRequest, state: RuntimeState = Depends(get_state)) -> LogEntry:
    return log_hours(state, payload.hours, payload.date)


@app.get("/stats", response_model=StatsResponse)
def get_stats(state: RuntimeState = Depends(get_state)) -> StatsResponse:
    return build_stats(state)


@app.get("/level", response_model=LevelInfoResponse)
def get_level(state: RuntimeState = Depends(get_state)) -> LevelInfoResponse:
    return LevelInfoResponse.model_validate(current_level(state))


@app.post("/projection", response_model=ProjectionResponse)
def post_projection(
    payload: ProjectionRequest,
    state: RuntimeState = Depends(get_state),
    client: Optional[GeminiClient] = Depends(get_gemini_client),
) -> ProjectionResponse:
    return build_projection(state, payload, client)


@app.get("/timer", response_model=TimerResponse)
def get_timer(stopwatch: Stopwatch = Depends(get_stopwatch)) -> TimerResponse:
    return timer_status(stopwatch)


@app.post("/timer/start", response_model=TimerResponse)
def timer_start(stopwatch: Stopwatch = Depends(get_stopwatch)) -> TimerResponse:
    return change_timer(stopwatch, "start")


@app.post("/timer/pause", response_model=TimerResponse)
def timer_pause(stopwatch: Stopwatch = Depends(get_stopwatch)) -> TimerResponse:
    return change_timer(stopwatch, "pause")


@app.post("/timer/resume", response_model=TimerResponse)
def timer_resume(stopwatch: Stopwatch = Depends(get_stopwatch)) -> TimerResponse:
    return change_timer(stopwatch, "resume")


@app.post("/timer/reset", response_model=TimerResponse)
def timer_reset(stopwatch: Stopwatch = Depends(get_stopwatch)) -> TimerResponse:
    return change_timer(stopwatch, "reset")


@app.post("/timer/log", response_model=TimerLogResponse, status_code=status.HTTP_201_CREATED)
def timer_log(
    state: RuntimeState = Depends(get_state),
    stopwatch: Stopwatch = Depends(get_stopwatch),
) -> TimerLogResponse:
    return log_timer(state, stopwatch)


@app.get("/projects", response_model=list[Project])
def get_projects(state: RuntimeState = Depends(get_state)) -> list[Project]:
    return list_projects(state)


@app.post("/projects", response_model=Project, status_code=status.HTTP_201_CREATED)
def add_project(payload: ProjectCreateRequest, state: RuntimeState = Depends(get_state)) -> Project:
    return create_project(state, payload.name, payload.deadline)


@app.get("/projects/active/countdowns", response_model=list[CountdownResponse])
def get_active_countdowns(state: RuntimeState = Depends(get_state)) -> list[CountdownResponse]:
    return active_countdowns(state)


@app.patch("/projects/{project_id}", response_model=Project)
def update_project(
    project_id: str,
    payload: ProjectUpdateRequest,
    state: RuntimeState = Depends(get_state),
) -> Project:
    return set_project_active(state, project_id, payload.is_active)


@app.post("/projects/{project_id}/toggle", response_model=Project)
def toggle_project_flag(project_id: str, state: RuntimeState = Depends(get_state)) -> Project:
    return toggle_project(state, project_id)


@app.get("/projects/{project_id}/countdown", response_model=CountdownResponse)
def get_project_countdown(project_id: str, state: RuntimeState = Depends(get_state)) -> CountdownResponse:
    return project_countdown(get_project(state, project_id))


@app.get("/data/export")
def download_export(state: RuntimeState = Depends(get_state)) -> Response:
    return Response(
        content=export_document(state),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{EXPORT_FILENAME}"'},
    )


@app.post("/data/import", response_model=HourLogDocument)
def upload_import(payload: HourLogDocument, state: RuntimeState = Depends(get_state)) -> HourLogDocument:
    return import_document(state, payload)


@app.post("/data/reset", response_model=HourLogDocument)
def post_reset(state: RuntimeState = Depends(get_state)) -> HourLogDocument:
    return reset_data(state)


@app.post("/data/reload", response_model=HourLogDocument)
def post_reload(state: RuntimeState = Depends(get_state)) -> HourLogDocument:
    return state.load()
