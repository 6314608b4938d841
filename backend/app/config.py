from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    app_name: str = "Brutalcast Weather API"
    app_version: str = "1.0.0"
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    gemini_layout_model: str = "gemini-2.5-flash"
    gemini_image_model: str = "imagen-4.0-generate-001"
    request_timeout_seconds: float = 12.0
    forecast_days: int = 5
    rate_limit_max_requests: int = 10
    rate_limit_window_seconds: int = 3600
    credentials_path: str = str((Path(__file__).resolve().parents[1] / "data" / "credentials.json").as_posix())
    rate_limit_state_path: str = str((Path(__file__).resolve().parents[1] / "data" / "rate_limit.json").as_posix())
    display_timezone: str = ""
    log_level: str = "INFO"
    gemini_api_key: str = ""
    openweather_api_key: str = ""
    frontend_origins: tuple[str, ...] = ("http://localhost:5173", "http://127.0.0.1:5173")


def get_settings() -> Settings:
    origins_raw = os.getenv("FRONTEND_ORIGINS", "").strip()
    timeout_raw = os.getenv("REQUEST_TIMEOUT_SECONDS", "").strip()
    max_requests_raw = os.getenv("RATE_LIMIT_MAX_REQUESTS", "").strip()
    window_raw = os.getenv("RATE_LIMIT_WINDOW_SECONDS", "").strip()
    forecast_days_raw = os.getenv("FORECAST_DAYS", "").strip()

    parsed_origins = tuple(item.strip() for item in origins_raw.split(",") if item.strip())

    try:
        request_timeout_seconds = float(timeout_raw) if timeout_raw else 12.0
    except ValueError:
        request_timeout_seconds = 12.0

    try:
        forecast_days = int(forecast_days_raw) if forecast_days_raw else 5
    except ValueError:
        forecast_days = 5

    try:
        rate_limit_max_requests = int(max_requests_raw) if max_requests_raw else 10
    except ValueError:
        rate_limit_max_requests = 10

    try:
        rate_limit_window_seconds = int(window_raw) if window_raw else 3600
    except ValueError:
        rate_limit_window_seconds = 3600

    return Settings(
        openweather_base_url=os.getenv("OPENWEATHER_BASE_URL", "").strip().rstrip("/") or Settings.openweather_base_url,
        gemini_layout_model=os.getenv("GEMINI_LAYOUT_MODEL", "").strip() or Settings.gemini_layout_model,
        gemini_image_model=os.getenv("GEMINI_IMAGE_MODEL", "").strip() or Settings.gemini_image_model,
        request_timeout_seconds=max(1.0, request_timeout_seconds),
        forecast_days=min(5, max(1, forecast_days)),
        rate_limit_max_requests=max(1, rate_limit_max_requests),
        rate_limit_window_seconds=max(60, rate_limit_window_seconds),
        credentials_path=os.getenv("CREDENTIALS_PATH", "").strip() or Settings.credentials_path,
        rate_limit_state_path=os.getenv("RATE_LIMIT_STATE_PATH", "").strip() or Settings.rate_limit_state_path,
        display_timezone=os.getenv("DISPLAY_TIMEZONE", "").strip(),
        log_level=os.getenv("LOG_LEVEL", "").strip().upper() or Settings.log_level,
        gemini_api_key=os.getenv("GEMINI_API_KEY", "").strip(),
        openweather_api_key=os.getenv("OPENWEATHER_API_KEY", "").strip(),
        frontend_origins=parsed_origins or Settings.frontend_origins,
    )
