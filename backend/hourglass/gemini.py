"""Gemini API client used to narrate an end-date projection.

The projection numbers are always computed locally; the model is only asked to
phrase them. Retries with exponential backoff on rate limits and server
errors. Tests mock the HTTP transport.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from .config import Settings
from .projection import TARGET_HOURS, ProjectionResult

logger = logging.getLogger(__name__)

GEMINI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"


class GeminiError(Exception):
    pass


class GeminiRequestError(GeminiError):
    """The API rejected the request itself; retrying cannot help."""


@dataclass(slots=True)
class GeminiClientConfig:
    api_key: str
    model: str = "gemini-1.5-flash"
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.75


def build_projection_prompt(
    total_hours_logged: float,
    daily_average_hours: float,
    fixed_daily_hours: Optional[float],
    result: ProjectionResult,
) -> str:
    lines = [
        f"You are a helpful assistant encouraging someone working toward a {TARGET_HOURS:,}-hour goal.",
        f"- Total hours logged: {total_hours_logged:.2f}",
        f"- Average hours logged per active day: {daily_average_hours:.2f}",
    ]
    if fixed_daily_hours is not None:
        lines.append(f"- Fixed daily hours going forward: {fixed_daily_hours:.2f}")
    lines.append(f"- Estimated end date: {result.estimated_end_date.date().isoformat()}")
    lines.append(f"- Remaining days: {result.remaining_days}")
    lines.append(
        "Write two short sentences summarising this projection. "
        "Use the numbers exactly as given and do not compute new ones."
    )
    return "\n".join(lines)


class GeminiClient:
    def __init__(self, config: GeminiClientConfig, transport: httpx.BaseTransport | None = None):
        self._config = config
        self._client = httpx.Client(timeout=config.timeout, transport=transport)

    @classmethod
    def from_settings(cls, config: Settings) -> Optional["GeminiClient"]:
        if not config.gemini_api_key:
            return None
        return cls(
            GeminiClientConfig(
                api_key=config.gemini_api_key,
                model=config.gemini_model,
                timeout=config.gemini_timeout,
                max_retries=config.gemini_max_retries,
            )
        )

    def close(self) -> None:
        self._client.close()

    def generate_text(self, prompt: str) -> str:
        """Return the text of the first candidate or raise GeminiError."""
        if not self._config.api_key:
            raise GeminiError("API key missing")
        url = GEMINI_ENDPOINT.format(model=self._config.model)
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        params = {"key": self._config.api_key}
        attempt = 0
        while True:
            try:
                resp = self._client.post(url, params=params, json=body)
                if resp.status_code == 429:
                    raise GeminiError("rate_limited")
                if resp.status_code >= 500:
                    raise GeminiError(f"HTTP {resp.status_code}: {resp.text[:200]}")
                if resp.status_code >= 400:
                    raise GeminiRequestError(f"HTTP {resp.status_code}: {resp.text[:200]}")
                data = resp.json()
                text_blocks = []
                for candidate in data.get("candidates", []):
                    for part in candidate.get("content", {}).get("parts", []):
                        text = part.get("text")
                        if text:
                            text_blocks.append(text)
                joined = "\n".join(text_blocks).strip()
                if not joined:
                    raise GeminiError("empty response")
                return joined
            except GeminiRequestError:
                raise
            except (GeminiError, httpx.HTTPError, ValueError) as exc:
                attempt += 1
                if attempt > self._config.max_retries:
                    if isinstance(exc, GeminiError):
                        raise
                    raise GeminiError(str(exc)) from exc
                sleep_for = self._config.backoff_base * (2 ** (attempt - 1))
                logger.warning("Gemini request failed (%s); retrying in %.2fs", exc, sleep_for)
                time.sleep(sleep_for)

    def describe_projection(
        self,
        total_hours_logged: float,
        daily_average_hours: float,
        fixed_daily_hours: Optional[float],
        result: ProjectionResult,
    ) -> str:
        prompt = build_projection_prompt(total_hours_logged, daily_average_hours, fixed_daily_hours, result)
        return self.generate_text(prompt)


__all__ = [
    "GeminiClient",
    "GeminiClientConfig",
    "GeminiError",
    "GeminiRequestError",
    "build_projection_prompt",
]
