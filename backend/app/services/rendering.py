from __future__ import annotations

import logging
from typing import Any, Callable, Iterable, Mapping, Sequence

from app.schemas import (
    BarChartComponent,
    CardComponent,
    GeneratedLayout,
    LineChartComponent,
    ScatterChartComponent,
    TableComponent,
    Unit,
    WeatherSnapshot,
)


logger = logging.getLogger(__name__)

WEATHER_FIELDS = tuple(name for name in WeatherSnapshot.model_fields if name != "forecast")
NUMERIC_WEATHER_FIELDS = (
    "temp",
    "feels_like",
    "temp_min",
    "temp_max",
    "humidity",
    "pressure",
    "wind_speed",
    "sunrise",
    "sunset",
    "lon",
    "lat",
)


def unit_symbol(key: str, unit: Unit) -> str:
    if "temp" in key or "feels_like" in key:
        return "°F" if unit == "imperial" else "°C"
    if "wind" in key:
        return "mph" if unit == "imperial" else "m/s"
    if "humidity" in key or "chance_of_rain" in key:
        return "%"
    if "pressure" in key:
        return "hPa"
    return ""


def field_label(key: str, unit: Unit) -> str:
    labels = {
        "city": "City",
        "country": "Country",
        "temp": "Temp",
        "feels_like": "Feels Like",
        "temp_min": "Min Temp",
        "temp_max": "Max Temp",
        "humidity": "Humidity",
        "pressure": "Pressure",
        "wind_speed": "Wind",
        "description": "Description",
        "icon": "Icon",
        "sunrise": "Sunrise",
        "sunset": "Sunset",
        "lon": "Longitude",
        "lat": "Latitude",
        "day": "Day",
        "chance_of_rain": "Chance of Rain",
    }
    label = labels.get(key, key)
    symbol = unit_symbol(key, unit)
    return f"{label} ({symbol})" if symbol else label


def select_cities(snapshots: Mapping[str, WeatherSnapshot], cities: Iterable[str]) -> list[WeatherSnapshot]:
    """Snapshots whose requested or provider city name is in `cities`, ignoring case."""
    wanted = {city.strip().lower() for city in cities if city.strip()}
    return [
        snapshot
        for requested, snapshot in snapshots.items()
        if requested.lower() in wanted or snapshot.city.lower() in wanted
    ]


def pivot_forecasts(
    snapshots: Sequence[WeatherSnapshot], *, x_key: str, y_key: str, limit_days: int = 5
) -> list[dict[str, Any]]:
    """
    One row per x value of the first city's forecast, one column per city.

    Values are matched on the x value rather than position, so a city that lacks a
    given day simply has no column in that row.
    """
    with_forecast = [snapshot for snapshot in snapshots if snapshot.forecast]
    if not with_forecast:
        return []

    x_values = [getattr(entry, x_key) for entry in with_forecast[0].forecast][:limit_days]
    rows: list[dict[str, Any]] = []
    for x_value in x_values:
        row: dict[str, Any] = {x_key: x_value}
        for snapshot in with_forecast:
            point = next((entry for entry in snapshot.forecast if getattr(entry, x_key) == x_value), None)
            if point is not None:
                row[snapshot.city] = getattr(point, y_key)
        rows.append(row)
    return rows


def build_component_spec(component: Any, snapshots: Mapping[str, WeatherSnapshot], unit: Unit) -> dict[str, Any]:
    builder = _BUILDERS.get(type(component))
    if builder is None:
        raise ValueError(f"Unsupported component: {type(component).__name__}")
    spec = builder(component, snapshots, unit)
    return {"type": component.type, "title": component.title, **spec}


def render_components(
    layout: GeneratedLayout, snapshots: Mapping[str, WeatherSnapshot], unit: Unit
) -> list[dict[str, Any]]:
    return [build_component_spec(component, snapshots, unit) for component in layout.ui_components]


def _build_table(component: TableComponent, snapshots: Mapping[str, WeatherSnapshot], unit: Unit) -> dict:
    keys = ["city", *(key for key in _known_keys(component.props.data_keys, WEATHER_FIELDS) if key != "city")]
    rows = [
        {key: getattr(snapshot, key) for key in keys}
        for snapshot in select_cities(snapshots, component.props.cities)
    ]
    return {
        "columns": [{"key": key, "label": field_label(key, unit)} for key in keys],
        "rows": rows,
    }


def _build_card(component: CardComponent, snapshots: Mapping[str, WeatherSnapshot], unit: Unit) -> dict:
    cards = [
        {
            "city": snapshot.city,
            "country": snapshot.country,
            "temp": snapshot.temp,
            "feels_like": snapshot.feels_like,
            "humidity": snapshot.humidity,
            "wind_speed": snapshot.wind_speed,
            "pressure": snapshot.pressure,
            "description": snapshot.description,
            "icon": snapshot.icon,
        }
        for snapshot in select_cities(snapshots, component.props.cities)
    ]
    return {
        "cards": cards,
        "empty": not cards,
        "units": {
            "temp": unit_symbol("temp", unit),
            "wind_speed": unit_symbol("wind_speed", unit),
            "humidity": unit_symbol("humidity", unit),
            "pressure": unit_symbol("pressure", unit),
        },
    }


def _build_bar_chart(component: BarChartComponent, snapshots: Mapping[str, WeatherSnapshot], unit: Unit) -> dict:
    keys = _known_keys(component.props.data_keys, NUMERIC_WEATHER_FIELDS)
    rows = [
        {"city": snapshot.city, **{key: getattr(snapshot, key) for key in keys}}
        for snapshot in snapshots.values()
    ]
    return {
        "series": [{"key": key, "label": field_label(key, unit), "unit": unit_symbol(key, unit)} for key in keys],
        "rows": rows,
    }


def _build_scatter_chart(
    component: ScatterChartComponent, snapshots: Mapping[str, WeatherSnapshot], unit: Unit
) -> dict:
    axes = {
        "x": component.props.x_axis_key,
        "y": component.props.y_axis_key,
        "z": component.props.z_axis_key,
    }
    for key in axes.values():
        if key not in NUMERIC_WEATHER_FIELDS:
            logger.warning("Scatter chart axis %r is not a numeric weather field", key)

    points = [
        {"city": snapshot.city, **{axis: _numeric_field(snapshot, key) for axis, key in axes.items()}}
        for snapshot in snapshots.values()
    ]
    return {
        "axes": {
            axis: {"key": key, "label": field_label(key, unit), "unit": unit_symbol(key, unit)}
            for axis, key in axes.items()
        },
        "points": points,
    }


def _build_line_chart(component: LineChartComponent, snapshots: Mapping[str, WeatherSnapshot], unit: Unit) -> dict:
    props = component.props
    selected = [snapshot for snapshot in select_cities(snapshots, props.cities) if snapshot.forecast]
    return {
        "xAxis": {"key": props.x_axis_key, "unit": unit_symbol(props.x_axis_key, unit)},
        "yAxis": {"key": props.y_axis_key, "unit": unit_symbol(props.y_axis_key, unit)},
        "series": [snapshot.city for snapshot in selected],
        "rows": pivot_forecasts(selected, x_key=props.x_axis_key, y_key=props.y_axis_key, limit_days=props.limit_days),
    }


def _known_keys(keys: Iterable[str], allowed: Sequence[str]) -> list[str]:
    known: list[str] = []
    for key in keys:
        if key not in allowed:
            logger.warning("Dropping unknown data key %r", key)
            continue
        if key not in known:
            known.append(key)
    return known


def _numeric_field(snapshot: WeatherSnapshot, key: str) -> float | None:
    value = getattr(snapshot, key, None)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


_BUILDERS: dict[type, Callable[[Any, Mapping[str, WeatherSnapshot], Unit], dict]] = {
    TableComponent: _build_table,
    CardComponent: _build_card,
    BarChartComponent: _build_bar_chart,
    LineChartComponent: _build_line_chart,
    ScatterChartComponent: _build_scatter_chart,
}
