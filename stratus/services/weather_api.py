"""OpenWeatherMap lookups (geocoding, current conditions, forecast)."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from stratus.config import ProviderSettings, SearchSettings
from stratus.domain.models import ForecastSeries, Location, WeatherBundle, WeatherSnapshot
from stratus.logging import logger
from stratus.services.exceptions import InvalidCredentials, NetworkError, RateLimited, StratusError

# Proxy endpoint name -> provider path relative to its base URL.
_PROVIDER_PATHS = {
    "search": "direct",
    "current": "data/2.5/weather",
    "forecast": "data/2.5/forecast",
}


def _error_for_status(status_code: int) -> StratusError:
    if status_code == 401:
        return InvalidCredentials(f"Provider rejected credentials ({status_code}).")
    if status_code == 429:
        return RateLimited(f"Provider rate limit reached ({status_code}).")
    return NetworkError(f"Provider request failed ({status_code}).")


class WeatherClient:
    """Single-attempt client; failures are mapped onto the error taxonomy."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: ProviderSettings | None = None,
        search_settings: SearchSettings | None = None,
    ) -> None:
        self._client = http_client
        self._settings = settings or ProviderSettings()
        self._search_settings = search_settings or SearchSettings()

    @staticmethod
    def _read_secret(secret: Any) -> str | None:
        if not secret:
            return None
        try:
            return secret.get_secret_value()
        except AttributeError:
            return str(secret)

    def _build_request(self, operation: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if self._settings.mode == "proxy":
            base = self._settings.proxy_url.rstrip("/")
            return f"{base}/api", {"endpoint": operation, **params}

        api_key = self._read_secret(self._settings.api_key)
        if not api_key:
            raise InvalidCredentials("OpenWeatherMap API key is not configured.")
        base_url = self._settings.geo_url if operation == "search" else self._settings.base_url
        return f"{str(base_url).rstrip('/')}/{_PROVIDER_PATHS[operation]}", {**params, "appid": api_key}

    async def _request(self, operation: str, params: dict[str, Any]) -> Any:
        url, query = self._build_request(operation, params)
        try:
            response = await self._client.get(
                url,
                params=query,
                timeout=self._settings.request_timeout_seconds,
            )
        except httpx.RequestError as exc:
            logger.warning("weather_request_failed", operation=operation, error=str(exc))
            raise NetworkError(f"Failed to contact weather provider: {exc}") from exc

        if not response.is_success:
            logger.warning(
                "weather_request_rejected",
                operation=operation,
                status_code=response.status_code,
                detail=response.text[:200],
            )
            raise _error_for_status(response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("weather_response_invalid", operation=operation)
            raise NetworkError("Weather provider returned invalid JSON.") from exc

    async def geocode(self, query: str, limit: int | None = None) -> list[Location]:
        query = (query or "").strip()
        if not query:
            raise ValueError("Search query must not be empty.")
        limit = limit or self._search_settings.max_results

        data = await self._request("search", {"q": query, "limit": limit})
        if not isinstance(data, list):
            raise NetworkError("Geocoding response format is invalid.")
        try:
            return [
                Location(
                    name=item.get("name") or "",
                    state=item.get("state") or "",
                    country=item.get("country") or "",
                    lat=item["lat"],
                    lon=item["lon"],
                )
                for item in data
            ]
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise NetworkError("Geocoding response format is invalid.") from exc

    async def get_current_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        data = await self._request("current", {"lat": lat, "lon": lon})
        try:
            return WeatherSnapshot.from_provider(data)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise NetworkError("Current weather response format is invalid.") from exc

    async def get_forecast(self, lat: float, lon: float) -> ForecastSeries:
        data = await self._request("forecast", {"lat": lat, "lon": lon})
        try:
            return ForecastSeries.from_provider(data)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise NetworkError("Forecast response format is invalid.") from exc

    async def get_weather_by_coords(self, lat: float, lon: float) -> WeatherBundle:
        """Fetch current conditions and forecast together; all-or-nothing."""

        current_task = asyncio.create_task(self.get_current_weather(lat, lon))
        forecast_task = asyncio.create_task(self.get_forecast(lat, lon))
        tasks = (current_task, forecast_task)
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            raise

        failed = next((task for task in tasks if task in done and task.exception()), None)
        if failed is not None:
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)
            raise failed.exception()

        return WeatherBundle(current=current_task.result(), forecast=forecast_task.result())


__all__ = ["WeatherClient"]
