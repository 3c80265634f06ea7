"""Central logging configuration with rotating files & structured output."""

from __future__ import annotations

import datetime as dt
import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict

LOG_FILE_BASENAME = "hourglass.log"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload: Dict[str, Any] = {
            "ts": dt.datetime.fromtimestamp(record.created, dt.timezone.utc).isoformat(),
            "level": record.levelname,
            "msg": record.getMessage(),
            "logger": record.name,
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        # Extra fields
        for key, value in record.__dict__.items():
            if key.startswith("_json_"):
                payload[key[6:]] = value
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(log_dir: Path, level: int | str = logging.INFO) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    logfile = log_dir / LOG_FILE_BASENAME
    root = logging.getLogger()
    root.setLevel(level)
    # Reconfiguring replaces handlers instead of stacking duplicates
    for handler in list(root.handlers):
        if getattr(handler, "_hourglass", False):
            root.removeHandler(handler)
            handler.close()
    file_handler = RotatingFileHandler(logfile, maxBytes=512_000, backupCount=5, encoding="utf-8")
    file_handler.setFormatter(JsonFormatter())
    file_handler._hourglass = True  # type: ignore[attr-defined]
    root.addHandler(file_handler)
    console = logging.StreamHandler()
    console.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    console._hourglass = True  # type: ignore[attr-defined]
    root.addHandler(console)
    logging.getLogger(__name__).info("logging initialised", extra={"_json_phase": "startup"})
    return logfile


__all__ = ["JsonFormatter", "configure_logging"]
