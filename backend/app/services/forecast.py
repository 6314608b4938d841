from __future__ import annotations

import logging
import math
from datetime import datetime, timezone, tzinfo
from typing import Any, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.schemas import DailyForecast


logger = logging.getLogger(__name__)

WEEKDAY_LABELS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


def aggregate_daily_forecast(
    samples: Iterable[dict[str, Any]], *, tz: tzinfo | None = None, max_days: int = 5
) -> list[DailyForecast]:
    """
    Collapse 3-hour forecast samples into at most `max_days` daily summaries.

    Samples are bucketed by calendar date in `tz` (host local time when None), the
    same zone used for the weekday label, so a late-evening sample never lands in
    the bucket of the following day.
    """
    entries = [item for item in samples if isinstance(item, dict) and item.get("dt") is not None]
    if not entries:
        return []

    buckets: dict[str, list[dict[str, Any]]] = {}
    for item in entries:
        buckets.setdefault(_local_date_key(item["dt"], tz), []).append(item)

    daily: list[DailyForecast] = []
    seen_labels: set[str] = set()
    for date_key in list(buckets)[:max_days]:
        day_samples = buckets[date_key]
        label = _day_label(day_samples[0]["dt"], tz)
        if label in seen_labels:
            continue
        seen_labels.add(label)

        representative = _representative_sample(day_samples)
        humidity_values = [_main_value(item, "humidity") for item in day_samples]
        rain_values = [_as_float(item.get("pop")) or 0.0 for item in day_samples]

        daily.append(
            DailyForecast(
                day=label,
                temp=round_half_up(_main_value(representative, "temp")),
                humidity=round_half_up(sum(humidity_values) / len(humidity_values)),
                chance_of_rain=round_half_up(max(rain_values) * 100),
            )
        )
    return daily


def round_half_up(value: float, digits: int = 0) -> float | int:
    factor = 10**digits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if digits == 0 else rounded


def _local_date_key(timestamp: int | float, tz: tzinfo | None) -> str:
    return _local_datetime(timestamp, tz).strftime("%Y-%m-%d")


def _day_label(timestamp: int | float, tz: tzinfo | None) -> str:
    return WEEKDAY_LABELS[_local_datetime(timestamp, tz).weekday()]


def _local_datetime(timestamp: int | float, tz: tzinfo | None) -> datetime:
    if tz is None:
        return datetime.fromtimestamp(timestamp)
    return datetime.fromtimestamp(timestamp, tz=tz)


def _representative_sample(day_samples: list[dict[str, Any]]) -> dict[str, Any]:
    # Hour is read in UTC, as the provider timestamps are.
    for item in day_samples:
        if datetime.fromtimestamp(item["dt"], tz=timezone.utc).hour >= 12:
            return item
    return day_samples[len(day_samples) // 2]


def _main_value(item: dict[str, Any], key: str) -> float:
    main_block = item.get("main") if isinstance(item.get("main"), dict) else {}
    return _as_float(main_block.get(key)) or 0.0


def _as_float(value: object) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def resolve_timezone(name: str | None) -> tzinfo | None:
    """ZoneInfo for an IANA name; None (host local time) when empty or unknown."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r, falling back to local time", name)
        return None
