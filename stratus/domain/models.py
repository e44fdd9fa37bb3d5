"""Pydantic models shared across the lookup, storage and search layers."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class UnitPreference(str, Enum):
    IMPERIAL = "imperial"
    METRIC = "metric"


class Location(BaseModel):
    """A place returned by geocoding; identity is the coordinate pair."""

    model_config = ConfigDict(frozen=True)

    name: str
    state: str = ""
    country: str = ""
    lat: float
    lon: float

    @field_validator("state", "country", mode="before")
    @classmethod
    def _none_to_empty(cls, value):
        return "" if value is None else value

    @property
    def coordinates(self) -> tuple[float, float]:
        return (self.lat, self.lon)

    @property
    def display_name(self) -> str:
        state = f"{self.state}, " if self.state else ""
        return f"{self.name}, {state}{self.country}"

    @property
    def chip_label(self) -> str:
        if self.state:
            return f"{self.name}, {self.state}"
        return f"{self.name}, {self.country}"


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = ""
    country: str = ""
    dt: int
    timezone: int = 0
    temp: float
    feels_like: float
    temp_min: float
    temp_max: float
    humidity: int = 0
    wind_speed: float = 0.0
    wind_deg: float = 0.0
    condition: str = ""
    description: str = ""
    icon: str = ""
    raw: dict[str, Any] = Field(default_factory=dict, repr=False)

    @property
    def is_day(self) -> bool:
        return "d" in self.icon

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "WeatherSnapshot":
        main = payload.get("main") or {}
        wind = payload.get("wind") or {}
        weather = (payload.get("weather") or [{}])[0] or {}
        sys_info = payload.get("sys") or {}
        return cls(
            name=payload.get("name") or "",
            country=sys_info.get("country") or "",
            dt=payload["dt"],
            timezone=payload.get("timezone") or 0,
            temp=main["temp"],
            feels_like=main.get("feels_like", main["temp"]),
            temp_min=main.get("temp_min", main["temp"]),
            temp_max=main.get("temp_max", main["temp"]),
            humidity=main.get("humidity") or 0,
            wind_speed=wind.get("speed") or 0.0,
            wind_deg=wind.get("deg") or 0.0,
            condition=weather.get("main") or "",
            description=weather.get("description") or "",
            icon=weather.get("icon") or "",
            raw=payload,
        )


class ForecastSample(BaseModel):
    model_config = ConfigDict(frozen=True)

    dt: int
    temp_min: float
    temp_max: float
    pop: float = 0.0
    condition: str = ""
    description: str = ""
    icon: str = ""

    @classmethod
    def from_provider(cls, item: dict[str, Any]) -> "ForecastSample":
        main = item.get("main") or {}
        weather = (item.get("weather") or [{}])[0] or {}
        return cls(
            dt=item["dt"],
            temp_min=main.get("temp_min", main.get("temp")),
            temp_max=main.get("temp_max", main.get("temp")),
            pop=item.get("pop") or 0.0,
            condition=weather.get("main") or "",
            description=weather.get("description") or "",
            icon=weather.get("icon") or "",
        )


class ForecastSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    samples: tuple[ForecastSample, ...] = ()
    timezone: int = 0

    @property
    def next_pop(self) -> float | None:
        """Precipitation probability of the nearest sample, if any."""

        if not self.samples:
            return None
        return self.samples[0].pop

    @classmethod
    def from_provider(cls, payload: dict[str, Any]) -> "ForecastSeries":
        city = payload.get("city") or {}
        return cls(
            samples=tuple(ForecastSample.from_provider(item) for item in payload.get("list") or []),
            timezone=city.get("timezone") or 0,
        )


class WeatherBundle(BaseModel):
    model_config = ConfigDict(frozen=True)

    current: WeatherSnapshot
    forecast: ForecastSeries


__all__ = [
    "UnitPreference",
    "Location",
    "WeatherSnapshot",
    "ForecastSample",
    "ForecastSeries",
    "WeatherBundle",
]
