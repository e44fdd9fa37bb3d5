"""HTTP proxy that adds the OpenWeatherMap key server-side and relays responses verbatim."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from stratus.config import StratusSettings, get_settings
from stratus.logging import logger

# Public endpoint names plus the names the browser widget historically used.
ENDPOINT_ALIASES = {
    "search": "search",
    "geocode": "search",
    "current": "current",
    "weather": "current",
    "forecast": "forecast",
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


class ProviderRelay:
    """Builds provider URLs and forwards a single GET per request."""

    def __init__(self, http_client: httpx.AsyncClient, settings: StratusSettings) -> None:
        self._client = http_client
        self._provider = settings.provider

    @property
    def api_key(self) -> str | None:
        secret = self._provider.api_key
        return secret.get_secret_value() if secret else None

    def _target(self, operation: str, params: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        if operation == "search":
            url = f"{str(self._provider.geo_url).rstrip('/')}/direct"
            query = {"q": params["q"], "limit": max(1, params["limit"])}
        elif operation == "current":
            url = f"{str(self._provider.base_url).rstrip('/')}/data/2.5/weather"
            query = {"lat": params["lat"], "lon": params["lon"]}
        else:
            url = f"{str(self._provider.base_url).rstrip('/')}/data/2.5/forecast"
            query = {"lat": params["lat"], "lon": params["lon"]}
        return url, {**query, "appid": self.api_key}

    @staticmethod
    def missing_key() -> JSONResponse:
        return _error(
            500,
            "API key not configured. Set STRATUS_PROVIDER__API_KEY in the environment.",
        )

    async def forward(self, operation: str, params: dict[str, Any]) -> JSONResponse:
        if not self.api_key:
            return self.missing_key()

        if operation == "search" and not params.get("q"):
            return _error(400, 'Query parameter "q" is required')
        if operation in {"current", "forecast"} and (not params.get("lat") or not params.get("lon")):
            return _error(400, 'Parameters "lat" and "lon" are required')

        url, query = self._target(operation, params)
        try:
            response = await self._client.get(
                url,
                params=query,
                timeout=self._provider.request_timeout_seconds,
            )
        except httpx.RequestError as exc:
            logger.error("proxy_upstream_unreachable", operation=operation, error=str(exc))
            return _error(500, "Internal server error")

        if not response.is_success:
            logger.warning(
                "proxy_upstream_rejected",
                operation=operation,
                status_code=response.status_code,
                detail=response.text[:500],
            )
            return _error(response.status_code, f"{operation.capitalize()} request failed")

        try:
            payload = response.json()
        except ValueError:
            logger.error("proxy_upstream_invalid_json", operation=operation)
            return _error(500, "Internal server error")
        return JSONResponse(content=payload)


def create_app(
    settings: StratusSettings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        client = http_client or httpx.AsyncClient()
        app.state.relay = ProviderRelay(client, settings)
        logger.info("proxy_starting", environment=settings.environment)
        try:
            yield
        finally:
            if http_client is None:
                await client.aclose()

    app = FastAPI(title="Stratus weather proxy", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    def _relay(request: Request) -> ProviderRelay:
        relay = getattr(request.app.state, "relay", None)
        if relay is None:
            relay = ProviderRelay(http_client or httpx.AsyncClient(), settings)
            request.app.state.relay = relay
        return relay

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/api")
    async def combined(
        request: Request,
        endpoint: str | None = None,
        q: str | None = None,
        lat: str | None = None,
        lon: str | None = None,
        limit: int = 5,
    ) -> JSONResponse:
        relay = _relay(request)
        if not relay.api_key:
            return relay.missing_key()
        operation = ENDPOINT_ALIASES.get(endpoint or "")
        if operation is None:
            return _error(400, "Invalid endpoint. Use: search, current, forecast")
        return await relay.forward(operation, {"q": q, "lat": lat, "lon": lon, "limit": limit})

    @app.get("/api/geocode")
    async def geocode(
        request: Request,
        q: str | None = None,
        limit: int = 5,
    ) -> JSONResponse:
        return await _relay(request).forward("search", {"q": q, "limit": limit})

    @app.get("/api/weather")
    async def weather(request: Request, lat: str | None = None, lon: str | None = None) -> JSONResponse:
        return await _relay(request).forward("current", {"lat": lat, "lon": lon})

    @app.get("/api/forecast")
    async def forecast(request: Request, lat: str | None = None, lon: str | None = None) -> JSONResponse:
        return await _relay(request).forward("forecast", {"lat": lat, "lon": lon})

    return app


__all__ = ["ProviderRelay", "create_app", "ENDPOINT_ALIASES"]
