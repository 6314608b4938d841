from __future__ import annotations

import pytest

from app.schemas import DailyForecast, WeatherSnapshot


def _snapshot(city: str, forecast: list[tuple[str, int]] | None = None, **overrides) -> WeatherSnapshot:
    values = {
        "city": city,
        "country": "GB",
        "temp": 10,
        "feels_like": 8,
        "temp_min": 7,
        "temp_max": 12,
        "humidity": 70,
        "pressure": 1012,
        "wind_speed": 4.1,
        "description": "light rain",
        "icon": "10d",
        "sunrise": 1768377600,
        "sunset": 1768406400,
        "lon": -0.13,
        "lat": 51.51,
        "forecast": [
            DailyForecast(day=day, temp=temp, humidity=60, chance_of_rain=20) for day, temp in (forecast or [])
        ],
    }
    values.update(overrides)
    return WeatherSnapshot(**values)


@pytest.fixture
def make_snapshot():
    return _snapshot
