"""Autocomplete search flow: debounced lookups, stale-response suppression, selection."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from stratus.config import SearchSettings
from stratus.domain.models import Location, UnitPreference, WeatherBundle
from stratus.i18n import I18nService
from stratus.logging import logger
from stratus.search.debounce import Debouncer
from stratus.search.events import (
    ErrorCleared,
    ErrorRaised,
    EventBus,
    LoadingChanged,
    QueryFilled,
    RecentChanged,
    ResultsCleared,
    ResultsReady,
    SearchEvent,
    SelectionChanged,
    WeatherReady,
)
from stratus.services.exceptions import LocationUnavailable, StratusError
from stratus.services.geolocation import ConfiguredGeolocator, Geolocator
from stratus.services.recent import RecencyStore
from stratus.services.weather_api import WeatherClient


class SearchState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    AWAITING_RESULTS = "awaiting_results"
    DISPLAYING = "displaying"
    SELECTING = "selecting"
    ERROR = "error"


@dataclass
class SearchSession:
    current_query: str = ""
    results: list[Location] = field(default_factory=list)
    selected_index: int = -1
    generation: int = 0


class SearchOrchestrator:
    """Entry points called by the presentation layer; results come back as events.

    Every keystroke, dismissal and lookup advances ``session.generation``; a
    geocoding response is only applied while the generation it was tagged with
    is still current, so the list on screen always belongs to the latest query.
    """

    def __init__(
        self,
        client: WeatherClient,
        recent: RecencyStore,
        *,
        settings: SearchSettings | None = None,
        bus: EventBus | None = None,
        i18n: I18nService | None = None,
        geolocator: Geolocator | None = None,
        unit: UnitPreference | str = UnitPreference.IMPERIAL,
    ) -> None:
        self._client = client
        self._recent = recent
        self._settings = settings or SearchSettings()
        self.bus = bus or EventBus()
        self._i18n = i18n or I18nService()
        self._geolocator = geolocator or ConfiguredGeolocator()
        self.unit = UnitPreference(unit)
        self.session = SearchSession()
        self.state = SearchState.IDLE
        self.error: ErrorRaised | None = None
        self.weather: WeatherBundle | None = None
        self.location: Location | None = None
        self._debouncer: Debouncer[str] = Debouncer(self.handle_input, self._settings.debounce_ms)
        self._recent.subscribe(self._on_recent_changed)

    def start(self) -> list[Location]:
        """Load recent searches and announce them."""

        items = self._recent.load()
        self._emit(RecentChanged(tuple(items)))
        return items

    async def aclose(self) -> None:
        await self._debouncer.aclose()

    async def settle(self) -> None:
        """Wait for lookups whose debounce timer has already fired."""

        await self._debouncer.drain()

    # -- input -------------------------------------------------------------

    def on_query_changed(self, text: str) -> None:
        query = (text or "").strip()
        self._clear_error()
        self.session.current_query = query
        self.session.generation += 1
        self.state = SearchState.DEBOUNCING
        self._debouncer(query)

    async def handle_input(self, query: str) -> None:
        query = (query or "").strip()
        self.session.current_query = query
        self.session.generation += 1
        generation = self.session.generation

        if len(query) < self._settings.min_search_chars:
            self._hide_results()
            self.state = SearchState.IDLE
            return

        self.state = SearchState.AWAITING_RESULTS
        try:
            results = await self._client.geocode(query)
        except Exception as exc:
            if generation != self.session.generation:
                logger.debug("stale_search_error_dropped", query=query, generation=generation)
                return
            self._raise_error(exc)
            return

        if generation != self.session.generation:
            logger.debug(
                "stale_results_dropped",
                query=query,
                generation=generation,
                current_generation=self.session.generation,
            )
            return

        self.session.results = list(results)
        self.session.selected_index = -1
        self.state = SearchState.DISPLAYING
        self._emit(ResultsReady(query=query, results=tuple(results), no_results=not results))

    async def on_key_command(self, key: str) -> None:
        if key == "Escape":
            self.on_dismiss()
            return

        results = self.session.results
        if not results:
            return

        if key == "ArrowDown":
            self._move_selection(min(self.session.selected_index + 1, len(results) - 1))
        elif key == "ArrowUp":
            self._move_selection(max(self.session.selected_index - 1, 0))
        elif key == "Enter" and self.session.selected_index >= 0:
            await self.on_select(self.session.selected_index)

    def on_dismiss(self) -> None:
        """Hide the list; late responses are ignored via the generation check."""

        self._debouncer.cancel()
        self.session.generation += 1
        self._hide_results()
        if self.state is not SearchState.ERROR:
            self.state = SearchState.IDLE

    def on_clear_query(self) -> None:
        self.session.current_query = ""
        self.on_dismiss()

    # -- weather -----------------------------------------------------------

    async def on_select(self, choice: Location | int) -> bool:
        self._debouncer.cancel()
        if isinstance(choice, int):
            if not 0 <= choice < len(self.session.results):
                logger.warning("selection_out_of_range", index=choice)
                return False
            location = self.session.results[choice]
        else:
            location = choice

        self.session.generation += 1
        self._hide_results()
        self.session.current_query = location.name
        self._emit(QueryFilled(location.name))
        self._clear_error()
        self.state = SearchState.SELECTING

        bundle = await self._fetch_weather(location.lat, location.lon)
        if bundle is None:
            return False
        self._show_weather(location, bundle)
        return True

    async def on_recent_selected(self, location: Location) -> bool:
        self._debouncer.cancel()
        self.session.generation += 1
        self._hide_results()
        self.session.current_query = location.name
        self._emit(QueryFilled(location.name))
        self._clear_error()
        self.state = SearchState.SELECTING

        bundle = await self._fetch_weather(location.lat, location.lon)
        if bundle is None:
            return False
        self._show_weather(location, bundle)
        return True

    async def on_locate(self) -> bool:
        self._debouncer.cancel()
        self.session.generation += 1
        self._hide_results()
        self._clear_error()
        self.state = SearchState.SELECTING
        try:
            lat, lon = await self._geolocator.locate()
        except LocationUnavailable as exc:
            self._raise_error(exc)
            return False

        bundle = await self._fetch_weather(lat, lon)
        if bundle is None:
            return False
        location = Location(
            name=bundle.current.name,
            state="",
            country=bundle.current.country,
            lat=lat,
            lon=lon,
        )
        self._show_weather(location, bundle)
        return True

    async def on_retry(self) -> None:
        self._clear_error()
        query = self.session.current_query
        if query:
            await self.handle_input(query)

    def on_clear_recent(self) -> None:
        self._recent.clear()

    def set_unit(self, unit: UnitPreference | str) -> None:
        self.unit = UnitPreference(unit)
        if self.weather is not None and self.location is not None:
            self._emit(WeatherReady(self.location, self.weather, self.unit))

    # -- internals ---------------------------------------------------------

    async def _fetch_weather(self, lat: float, lon: float) -> WeatherBundle | None:
        self._emit(LoadingChanged(True))
        try:
            return await self._client.get_weather_by_coords(lat, lon)
        except Exception as exc:
            self._raise_error(exc)
            return None
        finally:
            self._emit(LoadingChanged(False))

    def _show_weather(self, location: Location, bundle: WeatherBundle) -> None:
        self.weather = bundle
        self.location = location
        self.state = SearchState.IDLE
        self._emit(WeatherReady(location, bundle, self.unit))
        self._recent.add_search(location)

    def _move_selection(self, index: int) -> None:
        self.session.selected_index = index
        self.state = SearchState.SELECTING
        self._emit(SelectionChanged(index))

    def _hide_results(self) -> None:
        self.session.results = []
        self.session.selected_index = -1
        self._emit(ResultsCleared())

    def _raise_error(self, exc: BaseException) -> None:
        if isinstance(exc, StratusError):
            logger.warning("search_flow_failed", code=exc.code, error=str(exc))
            code, retryable = exc.code, exc.retryable
        else:
            logger.exception("search_flow_unexpected_error", error=str(exc))
            code, retryable = StratusError.code, False
        self.error = ErrorRaised(code=code, message=self._i18n.error_message(exc), retryable=retryable)
        self.state = SearchState.ERROR
        self._emit(self.error)

    def _clear_error(self) -> None:
        if self.error is None:
            return
        self.error = None
        self.state = SearchState.IDLE
        self._emit(ErrorCleared())

    def _on_recent_changed(self, items: list[Location]) -> None:
        self._emit(RecentChanged(tuple(items)))

    def _emit(self, event: SearchEvent) -> None:
        self.bus.publish(event)


__all__ = ["SearchState", "SearchSession", "SearchOrchestrator"]
