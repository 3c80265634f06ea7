"""Persistence for the hour log document.

The document is always read and written as a whole. Both backends replace the
previous document atomically, so a failed write leaves the last good copy in
place.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from .config import Settings
from .database import build_engine, build_session_factory, db_session
from .errors import InvalidInput, StoreUnavailableError, StoreWriteError
from .models import DOCUMENT_ROW_ID, DocumentRecord
from .schemas import HourLogDocument

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "hourglass-horizons-backup.json"


def document_payload(document: HourLogDocument) -> Dict[str, Any]:
    dumped = document.model_dump(mode="json", by_alias=True)
    return {
        "logs": dumped["logs"],
        "totalHours": dumped["totalHours"],
        "projects": dumped["projects"],
    }


def export_snapshot(document: HourLogDocument) -> bytes:
    return json.dumps(document_payload(document), indent=2, ensure_ascii=False).encode("utf-8")


def parse_snapshot(raw: Union[bytes, str]) -> HourLogDocument:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidInput(f"Snapshot is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidInput("Snapshot must be a JSON object")
    try:
        return HourLogDocument.model_validate(data)
    except ValidationError as exc:
        raise InvalidInput(f"Snapshot does not match the hour log format: {exc.error_count()} error(s)") from exc


class Store(ABC):
    @abstractmethod
    def read(self) -> HourLogDocument:
        """Return the persisted document, or an empty one if nothing was saved yet."""

    @abstractmethod
    def write(self, document: HourLogDocument) -> None:
        """Replace the persisted document."""

    @abstractmethod
    def describe(self) -> str: ...


class JsonFileStore(Store):
    def __init__(self, path: Path):
        self.path = Path(path)

    def describe(self) -> str:
        return f"json:{self.path}"

    def read(self) -> HourLogDocument:
        if not self.path.exists():
            return HourLogDocument()
        try:
            raw = self.path.read_bytes()
        except OSError as exc:
            raise StoreUnavailableError(f"Could not read {self.path}: {exc}") from exc
        try:
            return parse_snapshot(raw)
        except InvalidInput as exc:
            raise StoreUnavailableError(f"Stored document at {self.path} is unreadable: {exc}") from exc

    def write(self, document: HourLogDocument) -> None:
        payload = export_snapshot(document)
        tmp_name: Optional[str] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                "wb", dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp", delete=False
            ) as handle:
                tmp_name = handle.name
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as exc:
            raise StoreWriteError(f"Could not write {self.path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    logger.warning("Could not remove temporary file %s", tmp_name)


class SqliteStore(Store):
    def __init__(self, path: Path):
        self.path = Path(path)
        self._factory: Optional[sessionmaker] = None

    def describe(self) -> str:
        return f"sqlite:{self.path}"

    def _sessions(self) -> sessionmaker:
        if self._factory is None:
            self._factory = build_session_factory(build_engine(self.path))
        return self._factory

    def read(self) -> HourLogDocument:
        try:
            with db_session(self._sessions()) as session:
                record = session.get(DocumentRecord, DOCUMENT_ROW_ID)
                payload = record.payload if record else None
        except (SQLAlchemyError, OSError) as exc:
            raise StoreUnavailableError(f"Could not read {self.path}: {exc}") from exc
        if payload is None:
            return HourLogDocument()
        try:
            return parse_snapshot(payload)
        except InvalidInput as exc:
            raise StoreUnavailableError(f"Stored document in {self.path} is unreadable: {exc}") from exc

    def write(self, document: HourLogDocument) -> None:
        payload = export_snapshot(document).decode("utf-8")
        try:
            with db_session(self._sessions()) as session:
                record = session.get(DocumentRecord, DOCUMENT_ROW_ID)
                if record:
                    record.payload = payload
                else:
                    session.add(DocumentRecord(id=DOCUMENT_ROW_ID, payload=payload))
        except (SQLAlchemyError, OSError) as exc:
            raise StoreWriteError(f"Could not write {self.path}: {exc}") from exc


def create_store(config: Settings) -> Store:
    if config.storage_backend == "sqlite":
        return SqliteStore(config.sqlite_path)
    return JsonFileStore(config.json_path)
