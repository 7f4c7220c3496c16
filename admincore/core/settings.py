from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_URL = "http://localhost:5000/api"
DEFAULT_CANDIDATES_FILE = Path(__file__).resolve().parents[1] / "config" / "field_candidates.yaml"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ValueError(f"{name} must be at least 1")
    return value


@dataclass(frozen=True, slots=True)
class Settings:
    """Runtime configuration for one console session."""

    api_url: str = DEFAULT_API_URL
    request_timeout: float = 30.0
    metric_timeout: float = 5.0
    debounce_seconds: float = 0.5
    page_size: int = 10
    candidates_file: Path = DEFAULT_CANDIDATES_FILE
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        candidates = os.getenv("ADMIN_FIELD_CANDIDATES")
        return cls(
            api_url=(os.getenv("ADMIN_API_URL") or DEFAULT_API_URL).rstrip("/"),
            request_timeout=_float_env("ADMIN_REQUEST_TIMEOUT", 30.0),
            metric_timeout=_float_env("ADMIN_METRIC_TIMEOUT", 5.0),
            debounce_seconds=_float_env("ADMIN_DEBOUNCE_SECONDS", 0.5),
            page_size=_int_env("ADMIN_PAGE_SIZE", 10),
            candidates_file=Path(candidates).expanduser() if candidates else DEFAULT_CANDIDATES_FILE,
            log_level=(os.getenv("ADMIN_LOG_LEVEL") or "INFO").upper(),
        )
