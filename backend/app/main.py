from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import partial
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.schemas import CredentialsUpdate, SearchRequest
from app.services.credentials import CredentialMissingError, Credentials, CredentialStore
from app.services.gemini_client import GeminiClient, GeminiClientError
from app.services.layout import LayoutParseError
from app.services.pipeline import SearchContext, SearchResult, run_search
from app.services.rate_limit import RateLimitExceededError, RateLimiter
from app.services.weather_client import WeatherClient, WeatherFetchError


settings = get_settings()
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

weather_client = WeatherClient(settings=settings)
credential_store = CredentialStore(path=Path(settings.credentials_path))
rate_limiter = RateLimiter(
    limit=settings.rate_limit_max_requests,
    window_seconds=settings.rate_limit_window_seconds,
    state_path=Path(settings.rate_limit_state_path),
)
gemini_client_factory = partial(
    GeminiClient,
    layout_model=settings.gemini_layout_model,
    image_model=settings.gemini_image_model,
    timeout=settings.request_timeout_seconds,
)

app = FastAPI(title=settings.app_name, version=settings.app_version)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.frontend_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event() -> None:
    credential_store.load(
        fallback=Credentials(
            gemini_key=settings.gemini_api_key or None,
            openweather_key=settings.openweather_api_key or None,
        )
    )
    rate_limiter.load()


@app.on_event("shutdown")
async def shutdown_event() -> None:
    await weather_client.close()


@app.get("/api/health")
async def health() -> dict:
    return {
        "status": "ok",
        "service": settings.app_name,
        "timestamp_utc": datetime.now(tz=timezone.utc).isoformat(),
    }


@app.get("/api/credentials")
async def credentials_status() -> dict:
    return _credentials_payload(credential_store.current)


@app.put("/api/credentials")
async def update_credentials(payload: CredentialsUpdate) -> dict:
    try:
        credentials = credential_store.update(payload.gemini_key, payload.openweather_key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _credentials_payload(credentials)


@app.delete("/api/credentials")
async def clear_credentials() -> dict:
    credential_store.clear()
    return _credentials_payload(credential_store.current)


@app.get("/api/rate-limit")
async def rate_limit_status() -> dict:
    return rate_limiter.status()


@app.post("/api/search")
async def search(payload: SearchRequest) -> dict:
    context = SearchContext(
        settings=settings,
        weather_client=weather_client,
        credential_store=credential_store,
        rate_limiter=rate_limiter,
        gemini_client_factory=gemini_client_factory,
    )
    try:
        result = await run_search(
            cities=payload.cities,
            prompt=payload.prompt,
            unit=payload.unit,
            context=context,
            timezone_name=payload.timezone,
        )
    except CredentialMissingError as exc:
        raise HTTPException(status_code=401, detail=str(exc)) from exc
    except RateLimitExceededError as exc:
        raise HTTPException(status_code=429, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except WeatherFetchError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    except (LayoutParseError, GeminiClientError) as exc:
        logger.error("Layout generation failed: %s", exc)
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    return _serialize_result(result)


def _credentials_payload(credentials: Credentials) -> dict:
    return {
        "has_keys": credentials.has_keys,
        "gemini_key_set": bool(credentials.gemini_key),
        "openweather_key_set": bool(credentials.openweather_key),
    }


def _serialize_result(result: SearchResult) -> dict:
    return {
        "unit": result.unit,
        "weather": {name: snapshot.model_dump() for name, snapshot in result.weather.items()},
        "layout": result.layout.model_dump(by_alias=True),
        "components": result.components,
        "image_url": result.image_url,
        "rate_limit": result.rate_limit,
    }
