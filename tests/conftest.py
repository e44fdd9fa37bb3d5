"""Shared fixtures: stub lookup client, in-memory storage and event capture."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from stratus.config import SearchSettings, get_settings
from stratus.domain.models import ForecastSeries, Location, WeatherBundle, WeatherSnapshot
from stratus.search.events import EventBus
from stratus.search.orchestrator import SearchOrchestrator
from stratus.services.recent import MemoryStorage, RecencyStore

LONDON = Location(name="London", state="England", country="GB", lat=51.5074, lon=-0.1278)
PARIS = Location(name="Paris", country="FR", lat=48.8566, lon=2.3522)


def make_bundle(name: str = "London", country: str = "GB") -> WeatherBundle:
    return WeatherBundle(
        current=WeatherSnapshot(
            name=name,
            country=country,
            dt=1_700_000_000,
            temp=288.15,
            feels_like=287.0,
            temp_min=285.0,
            temp_max=290.0,
            humidity=70,
            wind_speed=4.0,
            wind_deg=90,
            condition="Clouds",
            description="broken clouds",
            icon="04d",
        ),
        forecast=ForecastSeries(),
    )


class StubWeatherClient:
    """Stands in for WeatherClient; geocode calls can be held open per query."""

    def __init__(self) -> None:
        self.geocode_calls: list[str] = []
        self.weather_calls: list[tuple[float, float]] = []
        self.results: dict[str, list[Location]] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.geocode_error: Exception | None = None
        self.weather_error: Exception | None = None
        self.bundle = make_bundle()

    async def geocode(self, query: str, limit: int | None = None) -> list[Location]:
        self.geocode_calls.append(query)
        gate = self.gates.get(query)
        if gate is not None:
            await gate.wait()
        if self.geocode_error is not None:
            raise self.geocode_error
        return list(self.results.get(query, []))

    async def get_weather_by_coords(self, lat: float, lon: float) -> WeatherBundle:
        self.weather_calls.append((lat, lon))
        if self.weather_error is not None:
            raise self.weather_error
        return self.bundle


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def stub_client() -> StubWeatherClient:
    return StubWeatherClient()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def recent(storage: MemoryStorage) -> RecencyStore:
    return RecencyStore(storage)


@pytest.fixture
def events() -> list[Any]:
    return []


@pytest.fixture
def orchestrator(stub_client, recent, events) -> SearchOrchestrator:
    bus = EventBus()
    bus.subscribe(events.append)
    return SearchOrchestrator(
        stub_client,
        recent,
        settings=SearchSettings(debounce_ms=50, min_search_chars=2),
        bus=bus,
    )
