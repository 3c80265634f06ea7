from __future__ import annotations

import logging
from threading import RLock
from typing import Callable, List, Optional

from .errors import StoreUnavailableError
from .schemas import HourLogDocument, LogEntry, Project
from .store import Store

logger = logging.getLogger(__name__)


class RuntimeState:
    """Process-wide handle on the hour log document.

    Keeps the last document known to be persisted. Mutations build a new
    document, write it through the store and only then replace the in-memory
    copy, so a failed write leaves both the file and this state untouched.
    """

    def __init__(self, store: Store):
        self._lock = RLock()
        self._store = store
        self._document = HourLogDocument()
        self.loaded = False

    @property
    def store(self) -> Store:
        return self._store

    def snapshot(self) -> HourLogDocument:
        with self._lock:
            return self._document

    @property
    def logs(self) -> List[LogEntry]:
        return list(self.snapshot().logs)

    @property
    def projects(self) -> List[Project]:
        return sorted(self.snapshot().projects, key=lambda project: project.created_at)

    @property
    def total_hours(self) -> float:
        return self.snapshot().total_hours

    def load(self) -> HourLogDocument:
        with self._lock:
            document = self._store.read()
            self._document = document
            self.loaded = True
        logger.info(
            "hour log loaded",
            extra={"_json_store": self._store.describe(), "_json_entries": len(document.logs)},
        )
        return document

    def _commit(
        self,
        build: Callable[[HourLogDocument], HourLogDocument],
        action: str,
        require_loaded: bool = True,
    ) -> HourLogDocument:
        with self._lock:
            # Writing over a document that was never read would discard it
            if require_loaded and not self.loaded:
                raise StoreUnavailableError("Hour log has not been loaded; reload before changing it")
            document = build(self._document)
            try:
                self._store.write(document)
            except Exception:
                logger.exception("saving hour log failed", extra={"_json_action": action})
                raise
            self._document = document
            self.loaded = True
        logger.info("hour log saved", extra={"_json_action": action})
        return document

    def append_log(self, entry: LogEntry) -> HourLogDocument:
        return self._commit(
            lambda current: current.model_copy(
                update={
                    "logs": [*current.logs, entry],
                    "total_hours": current.total_hours + entry.hours,
                }
            ),
            "append_log",
        )

    def add_project(self, project: Project) -> HourLogDocument:
        return self._commit(
            lambda current: current.model_copy(update={"projects": [*current.projects, project]}),
            "add_project",
        )

    def find_project(self, project_id: str) -> Optional[Project]:
        return next((p for p in self.snapshot().projects if p.id == project_id), None)

    def set_project_active(self, project_id: str, is_active: bool) -> Optional[Project]:
        with self._lock:
            project = self.find_project(project_id)
            if project is None:
                return None
            updated = project.model_copy(update={"is_active": is_active})
            self._commit(
                lambda current: current.model_copy(
                    update={"projects": [updated if p.id == project_id else p for p in current.projects]}
                ),
                "set_project_active",
            )
            return updated

    def reset(self) -> HourLogDocument:
        return self._commit(lambda _: HourLogDocument(), "reset", require_loaded=False)

    def replace(self, document: HourLogDocument) -> HourLogDocument:
        return self._commit(lambda _: document, "replace", require_loaded=False)
