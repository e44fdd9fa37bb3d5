"""Notifications emitted by the search core towards the presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Union

from stratus.domain.models import Location, UnitPreference, WeatherBundle
from stratus.logging import logger


@dataclass(frozen=True, slots=True)
class ResultsReady:
    query: str
    results: tuple[Location, ...]
    no_results: bool = False


@dataclass(frozen=True, slots=True)
class ResultsCleared:
    pass


@dataclass(frozen=True, slots=True)
class SelectionChanged:
    index: int


@dataclass(frozen=True, slots=True)
class QueryFilled:
    text: str


@dataclass(frozen=True, slots=True)
class LoadingChanged:
    active: bool


@dataclass(frozen=True, slots=True)
class WeatherReady:
    location: Location
    bundle: WeatherBundle
    unit: UnitPreference


@dataclass(frozen=True, slots=True)
class ErrorRaised:
    code: str
    message: str
    retryable: bool = False


@dataclass(frozen=True, slots=True)
class ErrorCleared:
    pass


@dataclass(frozen=True, slots=True)
class RecentChanged:
    items: tuple[Location, ...] = field(default_factory=tuple)


SearchEvent = Union[
    ResultsReady,
    ResultsCleared,
    SelectionChanged,
    QueryFilled,
    LoadingChanged,
    WeatherReady,
    ErrorRaised,
    ErrorCleared,
    RecentChanged,
]
EventHandler = Callable[[SearchEvent], None]


class EventBus:
    """Synchronous fan-out; a failing subscriber never breaks the publisher."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def publish(self, event: SearchEvent) -> None:
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception("event_handler_failed", event_type=type(event).__name__)


__all__ = [
    "ResultsReady",
    "ResultsCleared",
    "SelectionChanged",
    "QueryFilled",
    "LoadingChanged",
    "WeatherReady",
    "ErrorRaised",
    "ErrorCleared",
    "RecentChanged",
    "SearchEvent",
    "EventHandler",
    "EventBus",
]
