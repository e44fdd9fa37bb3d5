"""Device position lookup used by the "weather at my location" flow."""

from __future__ import annotations

from typing import Protocol

from stratus.config import GeolocationSettings
from stratus.services.exceptions import LocationUnavailable


class Geolocator(Protocol):
    async def locate(self) -> tuple[float, float]: ...


class ConfiguredGeolocator:
    """Reports the position pinned in settings (``STRATUS_GEOLOCATION__*``)."""

    def __init__(self, settings: GeolocationSettings | None = None) -> None:
        self._settings = settings or GeolocationSettings()

    async def locate(self) -> tuple[float, float]:
        if not self._settings.enabled:
            raise LocationUnavailable("denied", "Geolocation is disabled in settings.")
        lat, lon = self._settings.latitude, self._settings.longitude
        if lat is None or lon is None:
            raise LocationUnavailable("unsupported", "No device position is configured.")
        return lat, lon


__all__ = ["Geolocator", "ConfiguredGeolocator"]
