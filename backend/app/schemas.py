from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

Unit = Literal["metric", "imperial"]
ForecastField = Literal["day", "temp", "humidity", "chance_of_rain"]


class DailyForecast(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: str = Field(description="Short weekday label, e.g. 'Mon'.")
    temp: int
    humidity: int = Field(ge=0, le=100)
    chance_of_rain: int = Field(ge=0, le=100)


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    city: str
    country: str | None = None
    temp: int
    feels_like: int
    temp_min: int
    temp_max: int
    humidity: int
    pressure: int
    wind_speed: float
    description: str
    icon: str
    sunrise: int
    sunset: int
    lon: float
    lat: float
    forecast: list[DailyForecast] = Field(default_factory=list)

    @field_validator("forecast")
    @classmethod
    def validate_forecast_days(cls, value: list[DailyForecast]) -> list[DailyForecast]:
        if len(value) > 5:
            raise ValueError("A snapshot holds at most 5 daily forecasts.")
        labels = [entry.day for entry in value]
        if len(set(labels)) != len(labels):
            raise ValueError("Daily forecast day labels must be distinct.")
        return value


class _Props(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class TableProps(_Props):
    cities: list[str]
    data_keys: list[str] = Field(alias="dataKeys")


class CardProps(_Props):
    cities: list[str]


class BarChartProps(_Props):
    data_keys: list[str] = Field(alias="dataKeys")


class LineChartProps(_Props):
    x_axis_key: ForecastField = Field(alias="xAxisKey")
    y_axis_key: ForecastField = Field(alias="yAxisKey")
    cities: list[str]
    limit_days: int = Field(default=5, ge=1, alias="limitDays")

    @field_validator("limit_days", mode="before")
    @classmethod
    def default_limit_days(cls, value: object) -> object:
        return 5 if value is None else value


class ScatterChartProps(_Props):
    x_axis_key: str = Field(alias="xAxisKey")
    y_axis_key: str = Field(alias="yAxisKey")
    z_axis_key: str = Field(alias="zAxisKey")


class _Component(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    title: str


class TableComponent(_Component):
    type: Literal["TABLE"]
    props: TableProps


class CardComponent(_Component):
    type: Literal["CARD"]
    props: CardProps


class BarChartComponent(_Component):
    type: Literal["BAR_CHART"]
    props: BarChartProps


class LineChartComponent(_Component):
    type: Literal["LINE_CHART"]
    props: LineChartProps


class ScatterChartComponent(_Component):
    type: Literal["SCATTER_CHART"]
    props: ScatterChartProps


UiComponent = Annotated[
    Union[TableComponent, CardComponent, BarChartComponent, LineChartComponent, ScatterChartComponent],
    Field(discriminator="type"),
]


class GeneratedLayout(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    blurb: str = Field(min_length=1)
    image_prompt: str = Field(min_length=1, alias="imagePrompt")
    ui_components: list[UiComponent] = Field(alias="uiComponents")


class SearchRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cities: list[str] = Field(description="City names as typed by the user.")
    prompt: str = Field(default="", max_length=2000, description="Optional free-text layout request.")
    unit: Unit = "imperial"
    timezone: str | None = Field(default=None, description="Viewer IANA timezone used to group forecast days.")

    @model_validator(mode="after")
    def validate_cities(self) -> "SearchRequest":
        cleaned = clean_city_names(self.cities)
        if not cleaned:
            raise ValueError("Provide at least one city name.")
        self.cities = cleaned
        return self


def clean_city_names(cities: list[str] | tuple[str, ...]) -> list[str]:
    """Strip names, drop blanks and keep the first spelling of case-insensitive repeats."""
    cleaned: list[str] = []
    seen: set[str] = set()
    for city in cities:
        name = city.strip()
        if name and name.lower() not in seen:
            seen.add(name.lower())
            cleaned.append(name)
    return cleaned


class CredentialsUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    gemini_key: str = Field(min_length=1, alias="geminiKey")
    openweather_key: str = Field(min_length=1, alias="openWeatherKey")
