"""Formatting helpers turning provider units and timestamps into display values."""

from __future__ import annotations

import math
import re
from datetime import date, timedelta
from typing import Sequence

from stratus.domain.models import ForecastSample, UnitPreference
from stratus.utils.datetime import from_timestamp, local_today

KELVIN_OFFSET = 273.15
MPS_TO_KMH = 3.6
MPS_TO_MPH = 2.2369362920544
COMPASS_POINTS = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
DEFAULT_ICON_URL = "https://openweathermap.org/img/wn"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def format_temp(kelvin: float, unit: UnitPreference | str = UnitPreference.IMPERIAL) -> int:
    """Convert Kelvin to a whole-degree Fahrenheit or Celsius value."""

    celsius = kelvin - KELVIN_OFFSET
    if UnitPreference(unit) is UnitPreference.IMPERIAL:
        return _round_half_up(celsius * 9 / 5 + 32)
    return _round_half_up(celsius)


def temperature_symbol(unit: UnitPreference | str) -> str:
    return "°F" if UnitPreference(unit) is UnitPreference.IMPERIAL else "°C"


def wind_direction(degrees: float) -> str:
    index = _round_half_up(degrees / 45) % len(COMPASS_POINTS)
    return COMPASS_POINTS[index]


def format_wind(
    speed: float, degrees: float, unit: UnitPreference | str = UnitPreference.IMPERIAL
) -> str:
    """Render a m/s wind reading as e.g. ``12 mph NE``."""

    if UnitPreference(unit) is UnitPreference.IMPERIAL:
        label, converted = "mph", speed * MPS_TO_MPH
    else:
        label, converted = "km/h", speed * MPS_TO_KMH
    return f"{_round_half_up(converted)} {label} {wind_direction(degrees)}"


def format_date(timestamp: int, offset_seconds: int = 0) -> str:
    """Render e.g. ``Monday, Jan 6, 3:07 PM`` in the location's local time."""

    moment = from_timestamp(timestamp, offset_seconds)
    hour = moment.hour % 12 or 12
    meridiem = "AM" if moment.hour < 12 else "PM"
    return (
        f"{moment:%A}, {moment:%b} {moment.day}, "
        f"{hour}:{moment.minute:02d} {meridiem}"
    )


def format_day(
    timestamp: int,
    offset_seconds: int = 0,
    *,
    today: date | None = None,
    tomorrow_label: str = "Tomorrow",
) -> str:
    moment = from_timestamp(timestamp, offset_seconds)
    today = today or local_today(offset_seconds)
    if moment.date() == today + timedelta(days=1):
        return tomorrow_label
    return f"{moment:%a}"


def highlight_match(text: str, query: str, *, marker: str = "highlight") -> str:
    if not query:
        return text
    pattern = re.compile(f"({re.escape(query)})", re.IGNORECASE)
    return pattern.sub(rf'<span class="{marker}">\1</span>', text)


def icon_url(code: str, size: str = "2x", *, base_url: str = DEFAULT_ICON_URL) -> str:
    return f"{base_url.rstrip('/')}/{code}@{size}.png"


def format_percentage(probability: float | None, *, missing: str = "N/A") -> str:
    if probability is None:
        return missing
    return f"{_round_half_up(probability * 100)}%"


def extract_daily_forecasts(
    samples: Sequence[ForecastSample],
    offset_seconds: int = 0,
    *,
    today: date | None = None,
    days: int = 3,
) -> list[ForecastSample]:
    """Pick one sample per upcoming day, preferring the reading closest to noon."""

    today = today or local_today(offset_seconds)
    daily: dict[date, ForecastSample] = {}
    for sample in samples:
        moment = from_timestamp(sample.dt, offset_seconds)
        day = moment.date()
        if day <= today:
            continue
        existing = daily.get(day)
        if existing is None:
            daily[day] = sample
            continue
        existing_hour = from_timestamp(existing.dt, offset_seconds).hour
        if abs(moment.hour - 12) < abs(existing_hour - 12):
            daily[day] = sample
    return [daily[day] for day in sorted(daily)][:days]


__all__ = [
    "format_temp",
    "temperature_symbol",
    "wind_direction",
    "format_wind",
    "format_date",
    "format_day",
    "highlight_match",
    "icon_url",
    "format_percentage",
    "extract_daily_forecasts",
]
