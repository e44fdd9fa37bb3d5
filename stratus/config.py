"""Runtime configuration based on environment variables."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, HttpUrl, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ProviderSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: Literal["proxy", "direct"] = "proxy"
    api_key: SecretStr | None = Field(
        default=None,
        description="OpenWeatherMap key; used by direct mode and by the proxy.",
    )
    proxy_url: str = Field(
        default="",
        description="Base URL of the proxy; empty means same-origin relative URLs.",
    )
    base_url: HttpUrl = Field(default="https://api.openweathermap.org")
    geo_url: HttpUrl = Field(default="https://api.openweathermap.org/geo/1.0")
    icon_url: HttpUrl = Field(default="https://openweathermap.org/img/wn")
    request_timeout_seconds: int = Field(default=10, ge=1, le=60)

    @field_validator("api_key", mode="before")
    @classmethod
    def _empty_key_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class SearchSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    debounce_ms: int = Field(default=300, ge=0, le=5000)
    min_search_chars: int = Field(default=2, ge=1)
    max_results: int = Field(default=5, ge=1, le=5)


class StorageSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    path: Path = Field(default=Path("~/.stratus/storage.json"))
    recent_key: str = Field(default="stratus_recent_searches", min_length=1)
    max_recent: int = Field(default=5, ge=1)


class GeolocationSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class ProxySettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)


class StratusSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STRATUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        frozen=True,
    )

    environment: Literal["dev", "staging", "prod"] = "dev"
    default_unit: Literal["imperial", "metric"] = "imperial"
    log_level: str = "INFO"

    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    geolocation: GeolocationSettings = Field(default_factory=GeolocationSettings)
    proxy: ProxySettings = Field(default_factory=ProxySettings)


@lru_cache
def get_settings() -> StratusSettings:
    """Return cached settings instance."""

    return StratusSettings()


__all__ = [
    "StratusSettings",
    "ProviderSettings",
    "SearchSettings",
    "StorageSettings",
    "GeolocationSettings",
    "ProxySettings",
    "get_settings",
]
