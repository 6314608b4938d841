import asyncio
from datetime import timezone

import httpx
import pytest
import respx

from app.config import Settings
from app.services.credentials import CredentialMissingError
from app.services.weather_client import WeatherClient, WeatherFetchError, build_snapshot, key_by_requested_name

SETTINGS = Settings(openweather_base_url="https://weather.test/data/2.5")


def _current_payload(name: str, temp: float = 12.5) -> dict:
    return {
        "name": name,
        "coord": {"lon": -74.01, "lat": 40.71},
        "weather": [{"description": "clear sky", "icon": "01d"}, {"description": "mist", "icon": "50d"}],
        "main": {
            "temp": temp,
            "feels_like": -0.5,
            "temp_min": 9.4,
            "temp_max": 14.6,
            "humidity": 55,
            "pressure": 1018,
        },
        "wind": {"speed": 3.46},
        "sys": {"country": "US", "sunrise": 1768392000, "sunset": 1768427000},
    }


def _forecast_payload() -> dict:
    return {
        "list": [
            {"dt": 1768392000, "main": {"temp": 11.2, "humidity": 50}, "pop": 0.1},
            {"dt": 1768402800, "main": {"temp": 13.8, "humidity": 60}, "pop": 0.4},
        ]
    }


def _run(scenario, settings: Settings = SETTINGS):
    async def runner():
        client = WeatherClient(settings=settings)
        try:
            return await scenario(client)
        finally:
            await client.close()

    return asyncio.run(runner())


def _mock_provider(mock: respx.MockRouter, names: dict[str, str], failing: dict[str, tuple[str, int, str]] | None = None):
    failing = failing or {}

    def current(request: httpx.Request) -> httpx.Response:
        city = request.url.params["q"]
        if failing.get(city, ("",))[0] == "weather":
            _, status, message = failing[city]
            return httpx.Response(status, json={"cod": str(status), "message": message})
        return httpx.Response(200, json=_current_payload(names.get(city, city)))

    def forecast(request: httpx.Request) -> httpx.Response:
        city = request.url.params["q"]
        if failing.get(city, ("",))[0] == "forecast":
            _, status, message = failing[city]
            return httpx.Response(status, json={"cod": str(status), "message": message})
        return httpx.Response(200, json=_forecast_payload())

    weather_route = mock.get(host="weather.test", path="/data/2.5/weather").mock(side_effect=current)
    forecast_route = mock.get(host="weather.test", path="/data/2.5/forecast").mock(side_effect=forecast)
    return weather_route, forecast_route


def test_fetch_cities_keys_results_by_requested_spelling() -> None:
    with respx.mock(assert_all_called=False) as mock:
        weather_route, _ = _mock_provider(mock, names={"new york": "New York", "paris": "Paris"})
        result = _run(lambda client: client.fetch_cities(["new york", "paris"], "metric", "ow-key", tz=timezone.utc))

    assert set(result) == {"new york", "paris"}
    assert result["new york"].city == "New York"
    request = weather_route.calls[0].request
    assert request.url.params["units"] == "metric"
    assert request.url.params["appid"] == "ow-key"


def test_fetch_cities_fails_whole_group_when_one_city_fails() -> None:
    with respx.mock(assert_all_called=False) as mock:
        _mock_provider(mock, names={}, failing={"Atlantis": ("weather", 404, "city not found")})
        with pytest.raises(WeatherFetchError) as excinfo:
            _run(lambda client: client.fetch_cities(["London", "Atlantis"], "metric", "ow-key"))

    assert str(excinfo.value) == 'Could not fetch weather for "Atlantis": city not found'
    assert excinfo.value.city == "Atlantis"


def test_forecast_failure_names_the_forecast_resource() -> None:
    with respx.mock(assert_all_called=False) as mock:
        _mock_provider(mock, names={}, failing={"London": ("forecast", 401, "Invalid API key")})
        with pytest.raises(WeatherFetchError, match='Could not fetch forecast for "London": Invalid API key'):
            _run(lambda client: client.fetch_snapshot(city="London", unit="imperial", api_key="bad"))


def test_transport_errors_are_reported_as_fetch_failures() -> None:
    with respx.mock(assert_all_called=False) as mock:
        mock.get(host="weather.test").mock(side_effect=httpx.ConnectTimeout("timed out"))
        with pytest.raises(WeatherFetchError, match="London"):
            _run(lambda client: client.fetch_snapshot(city="London", unit="metric", api_key="ow-key"))


def test_fetch_cities_requires_a_credential() -> None:
    with respx.mock(assert_all_called=False) as mock:
        route = mock.get(host="weather.test")
        with pytest.raises(CredentialMissingError):
            _run(lambda client: client.fetch_cities(["London"], "metric", ""))

    assert not route.called


def test_build_snapshot_rounds_and_flattens_provider_fields() -> None:
    snapshot = build_snapshot(_current_payload("New York"), _forecast_payload(), tz=timezone.utc)

    assert snapshot.temp == 13
    assert snapshot.feels_like == 0
    assert snapshot.temp_min == 9
    assert snapshot.temp_max == 15
    assert snapshot.wind_speed == 3.5
    assert snapshot.humidity == 55
    assert snapshot.pressure == 1018
    assert snapshot.description == "clear sky"
    assert snapshot.icon == "01d"
    assert snapshot.country == "US"
    assert len(snapshot.forecast) == 1
    assert snapshot.forecast[0].humidity == 55
    assert snapshot.forecast[0].chance_of_rain == 40


def test_build_snapshot_tolerates_empty_forecast_list() -> None:
    snapshot = build_snapshot(_current_payload("Paris"), {"list": []})

    assert snapshot.forecast == []


def test_key_by_requested_name_falls_back_to_provider_spelling() -> None:
    paris = build_snapshot(_current_payload("Paris"), {"list": []})

    assert list(key_by_requested_name(["Lutetia"], [paris])) == ["Paris"]


def test_fetch_snapshot_honors_configured_forecast_days() -> None:
    two_days = {
        "list": [
            {"dt": 1768392000, "main": {"temp": 11.2, "humidity": 50}, "pop": 0.1},
            {"dt": 1768392000 + 86400, "main": {"temp": 13.8, "humidity": 60}, "pop": 0.4},
        ]
    }
    settings = Settings(openweather_base_url="https://weather.test/data/2.5", forecast_days=1)

    with respx.mock(assert_all_called=False) as mock:
        mock.get(host="weather.test", path="/data/2.5/weather").mock(return_value=httpx.Response(200, json=_current_payload("London")))
        mock.get(host="weather.test", path="/data/2.5/forecast").mock(return_value=httpx.Response(200, json=two_days))
        snapshot = _run(
            lambda client: client.fetch_snapshot(city="London", unit="metric", api_key="ow-key", tz=timezone.utc),
            settings,
        )

    assert [entry.day for entry in snapshot.forecast] == ["Wed"]
