from __future__ import annotations

import json
from typing import Mapping

from app.schemas import Unit, WeatherSnapshot

IMAGE_STYLE_RULES = (
    "The 'imagePrompt' MUST describe a 2D vector illustration with a flat design. The style must be bold "
    "and graphic, using a limited palette of black, white and vibrant yellow (#facc15) to match the UI. "
    "Clean lines, hard shadows, no gradients; it should feel like a modern screen print or vector art "
    "poster. Avoid 3D or photographic styles."
)

LAYOUT_RESPONSE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "blurb": {
            "type": "STRING",
            "description": "A cheeky, one-sentence summary of the weather comparison.",
        },
        "imagePrompt": {
            "type": "STRING",
            "description": "Prompt for an image model. " + IMAGE_STYLE_RULES,
        },
        "uiComponents": {
            "type": "ARRAY",
            "description": "UI component configurations used to display the data, in display order.",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "type": {
                        "type": "STRING",
                        "enum": ["TABLE", "CARD", "BAR_CHART", "LINE_CHART", "SCATTER_CHART"],
                    },
                    "title": {"type": "STRING", "description": "A descriptive title for the component."},
                    "props": {
                        "type": "OBJECT",
                        "properties": {
                            "cities": {
                                "type": "ARRAY",
                                "description": "City names shown by TABLE, CARD and LINE_CHART.",
                                "items": {"type": "STRING"},
                            },
                            "dataKeys": {
                                "type": "ARRAY",
                                "description": "Weather fields (e.g. 'temp', 'humidity') for TABLE and BAR_CHART.",
                                "items": {"type": "STRING"},
                            },
                            "xAxisKey": {"type": "STRING", "description": "X-axis field for SCATTER_CHART and LINE_CHART."},
                            "yAxisKey": {"type": "STRING", "description": "Y-axis field for SCATTER_CHART and LINE_CHART."},
                            "zAxisKey": {"type": "STRING", "description": "Bubble-size field for SCATTER_CHART."},
                            "limitDays": {"type": "INTEGER", "description": "Forecast days shown by LINE_CHART."},
                        },
                    },
                },
                "required": ["type", "title", "props"],
            },
        },
    },
    "required": ["blurb", "imagePrompt", "uiComponents"],
}

UNIT_INSTRUCTIONS = """The current unit system is '{unit}'.
- For 'imperial' units, temperature is in Fahrenheit (°F) and wind speed in miles per hour (mph).
- For 'metric' units, temperature is in Celsius (°C) and wind speed in meters per second (m/s).
Titles and labels you generate must reflect this, e.g. 'Temperature Comparison ({temp_unit})'."""

USER_LAYOUT_INSTRUCTIONS = """The user has described the layout they want.
You MUST generate ONLY the components described in the request. Do NOT add extra components.
User's request: "{user_prompt}\""""

AUTO_LAYOUT_INSTRUCTIONS = """The user has not specified a layout. Generate a diverse, interesting layout.
Include 3 to 5 different UI components that compare the weather data in interesting ways.
- For charts, choose data keys that make for an interesting comparison.
- For tables, select a few key columns.
- For cards, select a few cities to highlight; 'cities' must be an array of city name strings."""

COMPONENT_RULES = """Component rules:
- BAR_CHART: use 'dataKeys' to select metrics from the main weather object.
- SCATTER_CHART: use 'xAxisKey', 'yAxisKey' and 'zAxisKey' for metrics from the main weather object.
- LINE_CHART: visualizes the 5-day forecast. You MUST provide 'xAxisKey' and 'yAxisKey' from the forecast
  fields ('day', 'temp', 'humidity', 'chance_of_rain') and a 'cities' array. Do NOT use 'dataKeys'.
- TABLE/CARD: use 'cities' to select the cities to display. TABLE also needs 'dataKeys'."""

LAYOUT_PROMPT_TEMPLATE = """Analyze the following weather data for several cities and generate a UI layout configuration.
Your response MUST be a valid JSON object matching the provided schema.

Each city has a 'forecast' field: daily predictions for the next 5 days with 'day', 'temp', 'humidity'
and 'chance_of_rain'.

{unit_instructions}

{generation_instructions}

Global rules:
- The 'blurb' is a single, witty sentence that summarizes the weather comparison.
- {image_rules}

{component_rules}

Weather Data:
{weather_data}
"""


def build_layout_prompt(snapshots: Mapping[str, WeatherSnapshot], user_prompt: str, unit: Unit) -> str:
    weather_data = json.dumps([snapshot.model_dump() for snapshot in snapshots.values()], indent=2)
    temp_unit = "°F" if unit == "imperial" else "°C"

    if user_prompt.strip():
        generation_instructions = USER_LAYOUT_INSTRUCTIONS.format(user_prompt=user_prompt.strip())
    else:
        generation_instructions = AUTO_LAYOUT_INSTRUCTIONS

    return LAYOUT_PROMPT_TEMPLATE.format(
        unit_instructions=UNIT_INSTRUCTIONS.format(unit=unit, temp_unit=temp_unit),
        generation_instructions=generation_instructions,
        image_rules=IMAGE_STYLE_RULES,
        component_rules=COMPONENT_RULES,
        weather_data=weather_data,
    )
