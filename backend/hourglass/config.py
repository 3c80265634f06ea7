from __future__ import annotations

import datetime as dt
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _optional_float(name: str, default: Optional[str]) -> Optional[float]:
    raw = os.getenv(name, default)
    if raw is None or raw.strip().lower() in {"", "none", "off"}:
        return None
    return float(raw)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)
    """Application runtime configuration."""

    app_name: str = "Hourglass Horizons"
    environment: str = "development"
    host: str = os.getenv("HG_HOST", "127.0.0.1")
    port: int = int(os.getenv("HG_PORT", "8080"))

    storage_backend: str = os.getenv("HG_STORAGE", "json")
    json_path: Path = Path(os.getenv("HG_JSON_PATH", "./data/hour-log.json"))
    sqlite_path: Path = Path(os.getenv("HG_SQLITE_PATH", "./data/hourglass.db"))

    timezone: str = os.getenv("TZ", "UTC")

    max_manual_hours: float = float(os.getenv("HG_MAX_MANUAL_HOURS", "16"))
    default_fixed_daily_hours: Optional[float] = _optional_float("HG_DEFAULT_FIXED_DAILY_HOURS", "16")

    log_dir: Path = Path(os.getenv("HG_LOG_DIR", "./data"))
    log_level: str = os.getenv("HG_LOG_LEVEL", "INFO")

    gemini_api_key: Optional[str] = os.getenv("HG_GEMINI_API_KEY") or None
    gemini_model: str = os.getenv("HG_GEMINI_MODEL", "gemini-1.5-flash")
    gemini_timeout: float = float(os.getenv("HG_GEMINI_TIMEOUT", "10"))
    gemini_max_retries: int = int(os.getenv("HG_GEMINI_MAX_RETRIES", "3"))

    @field_validator("storage_backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"json", "sqlite"}:
            raise ValueError(f"Unsupported storage backend: {value}")
        return normalized

    def local_zone(self) -> dt.tzinfo:
        if self.timezone.upper() in {"UTC", "Z", ""}:
            return dt.timezone.utc
        try:
            return ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError, OSError):
            return dt.timezone.utc

    @field_validator("default_fixed_daily_hours")
    @classmethod
    def _positive_fixed_pace(cls, value: Optional[float]) -> Optional[float]:
        if value is not None and value <= 0:
            return None
        return value


settings = Settings()
