"""Wire the search core from settings."""

from __future__ import annotations

import httpx

from stratus.config import StratusSettings, get_settings
from stratus.i18n import I18nService
from stratus.search.events import EventBus
from stratus.search.orchestrator import SearchOrchestrator
from stratus.services.geolocation import ConfiguredGeolocator
from stratus.services.recent import JsonFileStorage, RecencyStore, Storage
from stratus.services.weather_api import WeatherClient


def build_orchestrator(
    http_client: httpx.AsyncClient,
    settings: StratusSettings | None = None,
    *,
    storage: Storage | None = None,
    bus: EventBus | None = None,
) -> SearchOrchestrator:
    settings = settings or get_settings()
    client = WeatherClient(http_client, settings.provider, settings.search)
    recent = RecencyStore(storage or JsonFileStorage(settings.storage.path), settings.storage)
    return SearchOrchestrator(
        client,
        recent,
        settings=settings.search,
        bus=bus,
        i18n=I18nService(),
        geolocator=ConfiguredGeolocator(settings.geolocation),
        unit=settings.default_unit,
    )


__all__ = ["build_orchestrator"]
