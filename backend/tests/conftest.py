from __future__ import annotations

import datetime as dt
from pathlib import Path
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from hourglass.main import app, get_gemini_client, get_state, get_stopwatch
from hourglass.state import RuntimeState
from hourglass.store import JsonFileStore
from hourglass.timer import Stopwatch

UTC = dt.timezone.utc


class FakeClock:
    def __init__(self, start: dt.datetime):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += dt.timedelta(seconds=seconds)

    def __call__(self) -> dt.datetime:
        return self.now


@pytest.fixture()
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "hour-log.json"


@pytest.fixture()
def state(store_path: Path) -> RuntimeState:
    runtime_state = RuntimeState(JsonFileStore(store_path))
    runtime_state.load()
    return runtime_state


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC))


@pytest.fixture()
def stopwatch(clock: FakeClock) -> Stopwatch:
    return Stopwatch(time_provider=clock)


@pytest.fixture()
def client(state: RuntimeState, stopwatch: Stopwatch) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_state] = lambda: state
    app.dependency_overrides[get_stopwatch] = lambda: stopwatch
    app.dependency_overrides[get_gemini_client] = lambda: None
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
