"""Domain-specific exceptions."""

from __future__ import annotations


class StratusError(Exception):
    code = "UNEXPECTED"
    retryable = False


class InvalidCredentials(StratusError):
    code = "INVALID_API_KEY"


class RateLimited(StratusError):
    code = "RATE_LIMITED"
    retryable = True


class NetworkError(StratusError):
    code = "NETWORK_ERROR"
    retryable = True


class LocationUnavailable(StratusError):
    """Raised when the device position cannot be determined."""

    _codes = {
        "denied": "GEOLOCATION_DENIED",
        "unsupported": "GEOLOCATION_NOT_SUPPORTED",
        "error": "GEOLOCATION_ERROR",
    }

    def __init__(self, reason: str = "error", message: str | None = None) -> None:
        if reason not in self._codes:
            reason = "error"
        super().__init__(message or f"Location unavailable ({reason}).")
        self.reason = reason

    @property
    def code(self) -> str:  # type: ignore[override]
        return self._codes[self.reason]


class StorageUnavailable(StratusError):
    """Persistence failed; absorbed by the recency store."""

    code = "STORAGE_UNAVAILABLE"


__all__ = [
    "StratusError",
    "InvalidCredentials",
    "RateLimited",
    "NetworkError",
    "LocationUnavailable",
    "StorageUnavailable",
]
