from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from app.config import Settings
from app.schemas import GeneratedLayout, Unit, WeatherSnapshot, clean_city_names
from app.services.credentials import CredentialStore
from app.services.forecast import resolve_timezone
from app.services.gemini_client import ImageGenerationError
from app.services.layout import parse_layout
from app.services.layout_prompt import build_layout_prompt
from app.services.rate_limit import RateLimiter
from app.services.rendering import render_components
from app.services.weather_client import WeatherClient


logger = logging.getLogger(__name__)


class GenerativeClient(Protocol):
    async def generate_layout_json(self, prompt: str) -> str: ...

    async def generate_image(self, prompt: str) -> str: ...


@dataclass
class SearchContext:
    settings: Settings
    weather_client: WeatherClient
    credential_store: CredentialStore
    rate_limiter: RateLimiter
    gemini_client_factory: Callable[[str], GenerativeClient]


@dataclass(frozen=True)
class SearchResult:
    unit: Unit
    weather: dict[str, WeatherSnapshot]
    layout: GeneratedLayout
    components: list[dict[str, Any]]
    image_url: str | None = None
    rate_limit: dict[str, Any] = field(default_factory=dict)


async def run_search(
    *,
    cities: Sequence[str],
    prompt: str,
    unit: Unit,
    context: SearchContext,
    timezone_name: str | None = None,
) -> SearchResult:
    """
    Weather fetch, then layout generation, then image generation.

    Each stage feeds the next. A failed weather fetch or unusable layout aborts the
    search; a failed illustration only leaves `image_url` empty.
    """
    requested = clean_city_names(list(cities))
    if not requested:
        raise ValueError("Enter at least one city.")

    credentials = context.credential_store.require()
    context.rate_limiter.ensure_available()
    context.rate_limiter.increment()

    tz = resolve_timezone(timezone_name or context.settings.display_timezone)
    weather = await context.weather_client.fetch_cities(requested, unit, credentials.openweather_key, tz=tz)
    logger.info("Fetched weather for %d cities", len(weather))

    generative = context.gemini_client_factory(credentials.gemini_key or "")
    raw_layout = await generative.generate_layout_json(build_layout_prompt(weather, prompt, unit))
    layout = parse_layout(raw_layout)

    image_url = None
    try:
        image_url = await generative.generate_image(layout.image_prompt)
    except ImageGenerationError as exc:
        logger.warning("Continuing without illustration: %s", exc)

    return SearchResult(
        unit=unit,
        weather=weather,
        layout=layout,
        components=render_components(layout, weather, unit),
        image_url=image_url,
        rate_limit=context.rate_limiter.status(),
    )
