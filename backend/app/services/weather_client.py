from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Sequence

import httpx

from app.config import Settings
from app.schemas import Unit, WeatherSnapshot
from app.services.credentials import CredentialMissingError
from app.services.forecast import aggregate_daily_forecast, round_half_up


logger = logging.getLogger(__name__)


class WeatherFetchError(RuntimeError):
    """Raised when the weather provider rejects or fails a request for one city."""

    def __init__(self, city: str, message: str, *, resource: str = "weather") -> None:
        super().__init__(f'Could not fetch {resource} for "{city}": {message}')
        self.city = city
        self.provider_message = message
        self.resource = resource


@dataclass
class WeatherClient:
    settings: Settings
    _client: httpx.AsyncClient = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._client = httpx.AsyncClient(timeout=self.settings.request_timeout_seconds)

    async def close(self) -> None:
        await self._client.aclose()

    async def fetch_cities(
        self, cities: Sequence[str], unit: Unit, api_key: str | None, tz: tzinfo | None = None
    ) -> dict[str, WeatherSnapshot]:
        """Fetch every city concurrently; any single failure fails the whole group."""
        if not api_key:
            raise CredentialMissingError("OpenWeather API key is not configured.")
        if not cities:
            raise ValueError("At least one city is required.")

        snapshots = await asyncio.gather(
            *(self.fetch_snapshot(city=city, unit=unit, api_key=api_key, tz=tz) for city in cities)
        )
        return key_by_requested_name(cities, snapshots)

    async def fetch_snapshot(
        self, *, city: str, unit: Unit, api_key: str, tz: tzinfo | None = None
    ) -> WeatherSnapshot:
        current_payload, forecast_payload = await asyncio.gather(
            self._get_json(resource="weather", city=city, unit=unit, api_key=api_key),
            self._get_json(resource="forecast", city=city, unit=unit, api_key=api_key),
        )
        try:
            return build_snapshot(current_payload, forecast_payload, tz=tz, max_days=self.settings.forecast_days)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Unexpected weather payload for %s: %s", city, exc)
            raise WeatherFetchError(city, "unexpected response from weather provider") from exc

    async def _get_json(self, *, resource: str, city: str, unit: Unit, api_key: str) -> dict:
        url = f"{self.settings.openweather_base_url}/{resource}"
        try:
            response = await self._client.get(url, params={"q": city, "units": unit, "appid": api_key})
        except httpx.RequestError as exc:
            logger.warning("Weather request for %s (%s) failed: %s", city, resource, exc)
            raise WeatherFetchError(city, str(exc) or exc.__class__.__name__, resource=resource) from exc

        if response.is_error:
            message = _provider_message(response)
            logger.warning("Weather provider returned %s for %s (%s): %s", response.status_code, city, resource, message)
            raise WeatherFetchError(city, message, resource=resource)

        try:
            payload = response.json()
        except ValueError as exc:
            raise WeatherFetchError(city, "invalid JSON from weather provider", resource=resource) from exc
        if not isinstance(payload, dict):
            raise WeatherFetchError(city, "invalid JSON from weather provider", resource=resource)
        return payload


def build_snapshot(
    current: dict, forecast: dict, *, tz: tzinfo | None = None, max_days: int = 5
) -> WeatherSnapshot:
    main_block = current["main"]
    sys_block = current.get("sys", {}) if isinstance(current.get("sys"), dict) else {}
    wind_block = current.get("wind", {}) if isinstance(current.get("wind"), dict) else {}
    coord_block = current.get("coord", {}) if isinstance(current.get("coord"), dict) else {}
    weather_entries = current.get("weather") or []
    weather_entry = weather_entries[0] if weather_entries else {}

    samples = forecast.get("list", [])
    if not isinstance(samples, list):
        samples = []

    return WeatherSnapshot(
        city=current["name"],
        country=sys_block.get("country"),
        temp=_rounded(main_block.get("temp")),
        feels_like=_rounded(main_block.get("feels_like")),
        temp_min=_rounded(main_block.get("temp_min")),
        temp_max=_rounded(main_block.get("temp_max")),
        humidity=main_block.get("humidity"),
        pressure=main_block.get("pressure"),
        wind_speed=_rounded(wind_block.get("speed"), 1),
        description=weather_entry.get("description", ""),
        icon=weather_entry.get("icon", ""),
        sunrise=sys_block.get("sunrise"),
        sunset=sys_block.get("sunset"),
        lon=coord_block.get("lon"),
        lat=coord_block.get("lat"),
        forecast=aggregate_daily_forecast(samples, tz=tz, max_days=max_days),
    )


def key_by_requested_name(cities: Sequence[str], snapshots: Sequence[WeatherSnapshot]) -> dict[str, WeatherSnapshot]:
    # The provider normalizes names ("new york" -> "New York"); keep the user's spelling.
    keyed: dict[str, WeatherSnapshot] = {}
    for snapshot in snapshots:
        requested = next((city for city in cities if city.lower() == snapshot.city.lower()), snapshot.city)
        keyed[requested] = snapshot
    return keyed


def _provider_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase or f"HTTP {response.status_code}"


def _rounded(value: object, digits: int = 0) -> float | int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return round_half_up(float(value), digits)
