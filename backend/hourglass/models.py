from __future__ import annotations

import datetime as dt

from sqlalchemy import Column, DateTime, Integer, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()

DOCUMENT_ROW_ID = 1


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class DocumentRecord(Base):
    """Holds the whole hour log document as JSON in a single row."""

    __tablename__ = "hour_log_documents"

    id = Column(Integer, primary_key=True)
    payload = Column(Text, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
