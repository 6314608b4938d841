"""Validation of the layout description returned by the generative model."""

from __future__ import annotations

import json
import logging

from pydantic import ValidationError

from app.schemas import GeneratedLayout


logger = logging.getLogger(__name__)

COMPONENT_TYPES = ("TABLE", "CARD", "BAR_CHART", "LINE_CHART", "SCATTER_CHART")


class LayoutParseError(RuntimeError):
    """Raised when the model output is not a usable layout."""


def parse_layout(text: str | None) -> GeneratedLayout:
    """
    Parse and validate raw model output into a GeneratedLayout.

    The top-level shape is checked first (blurb, imagePrompt, uiComponents list) so
    structural problems produce a short message. Each component is then validated
    against the props its type requires; unknown types and missing props are rejected.
    """
    try:
        payload = json.loads((text or "").strip())
    except ValueError as exc:
        raise LayoutParseError("Invalid layout: the model did not return valid JSON.") from exc

    if not isinstance(payload, dict):
        raise LayoutParseError("Invalid layout: expected a JSON object.")

    missing = [
        key
        for key in ("blurb", "imagePrompt")
        if not isinstance(payload.get(key), str) or not payload[key].strip()
    ]
    if not isinstance(payload.get("uiComponents"), list):
        missing.append("uiComponents")
    if missing:
        raise LayoutParseError(f"Invalid layout structure: missing or malformed {', '.join(missing)}.")

    for index, component in enumerate(payload["uiComponents"]):
        component_type = component.get("type") if isinstance(component, dict) else None
        if component_type not in COMPONENT_TYPES:
            raise LayoutParseError(f"Invalid layout: component {index} has unknown type {component_type!r}.")

    try:
        return GeneratedLayout.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Layout payload failed validation: %s", exc)
        raise LayoutParseError(f"Invalid layout: {_describe_errors(exc)}") from exc


def _describe_errors(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors()[:3]:
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}")
    return "; ".join(parts)
