"""Search flow: debounce coalescing, stale-response suppression, selection and errors."""

from __future__ import annotations

import asyncio

import pytest

from stratus.domain.models import Location, UnitPreference
from stratus.search.events import (
    ErrorCleared,
    ErrorRaised,
    LoadingChanged,
    QueryFilled,
    RecentChanged,
    ResultsCleared,
    ResultsReady,
    SelectionChanged,
    WeatherReady,
)
from stratus.search.orchestrator import SearchState
from stratus.services.exceptions import (
    InvalidCredentials,
    LocationUnavailable,
    NetworkError,
    RateLimited,
)

from conftest import LONDON, PARIS

DEBOUNCE_WAIT = 0.2


def _of_type(events, kind):
    return [event for event in events if isinstance(event, kind)]


async def _type_and_settle(orchestrator, *texts: str) -> None:
    for text in texts:
        orchestrator.on_query_changed(text)
        await asyncio.sleep(0.001)
    await asyncio.sleep(DEBOUNCE_WAIT)
    await orchestrator.settle()


@pytest.mark.asyncio
async def test_keystroke_burst_issues_single_lookup(orchestrator, stub_client, events):
    stub_client.results["London"] = [LONDON]

    await _type_and_settle(orchestrator, "L", "Lo", "Lon", "Lond", "London")

    assert stub_client.geocode_calls == ["London"]
    ready = _of_type(events, ResultsReady)
    assert ready == [ResultsReady(query="London", results=(LONDON,), no_results=False)]
    assert orchestrator.state is SearchState.DISPLAYING


@pytest.mark.asyncio
async def test_short_query_clears_list_without_request(orchestrator, stub_client, events):
    await orchestrator.handle_input("a")

    assert stub_client.geocode_calls == []
    assert isinstance(events[-1], ResultsCleared)
    assert orchestrator.session.results == []
    assert orchestrator.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_input_is_trimmed_before_threshold_check(orchestrator, stub_client):
    await _type_and_settle(orchestrator, "  a  ")
    assert stub_client.geocode_calls == []


@pytest.mark.asyncio
async def test_stale_response_is_discarded(orchestrator, stub_client, events):
    stub_client.results = {"Pa": [PARIS], "Lon": [LONDON]}
    slow_gate = asyncio.Event()
    stub_client.gates["Pa"] = slow_gate

    first = asyncio.create_task(orchestrator.handle_input("Pa"))
    await asyncio.sleep(0)
    await orchestrator.handle_input("Lon")
    slow_gate.set()
    await first

    ready = _of_type(events, ResultsReady)
    assert [event.query for event in ready] == ["Lon"]
    assert orchestrator.session.results == [LONDON]


@pytest.mark.asyncio
async def test_empty_results_are_displayed_not_errors(orchestrator, stub_client, events):
    await orchestrator.handle_input("Nowhere")

    assert events[-1] == ResultsReady(query="Nowhere", results=(), no_results=True)
    assert orchestrator.state is SearchState.DISPLAYING
    assert not _of_type(events, ErrorRaised)


@pytest.mark.asyncio
async def test_dismiss_suppresses_in_flight_results(orchestrator, stub_client, events):
    stub_client.results["London"] = [LONDON]
    gate = asyncio.Event()
    stub_client.gates["London"] = gate

    pending = asyncio.create_task(orchestrator.handle_input("London"))
    await asyncio.sleep(0)
    orchestrator.on_dismiss()
    gate.set()
    await pending

    assert stub_client.geocode_calls == ["London"]
    assert not _of_type(events, ResultsReady)
    assert orchestrator.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_arrow_keys_clamp_without_wraparound(orchestrator, stub_client, events):
    other = Location(name="London", country="CA", lat=42.98, lon=-81.24)
    stub_client.results["London"] = [LONDON, other]
    await orchestrator.handle_input("London")

    await orchestrator.on_key_command("ArrowUp")
    assert orchestrator.session.selected_index == 0
    for _ in range(4):
        await orchestrator.on_key_command("ArrowDown")
    assert orchestrator.session.selected_index == 1
    await orchestrator.on_key_command("ArrowUp")
    await orchestrator.on_key_command("ArrowUp")
    assert orchestrator.session.selected_index == 0
    assert orchestrator.state is SearchState.SELECTING
    assert _of_type(events, SelectionChanged)[-1] == SelectionChanged(0)


@pytest.mark.asyncio
async def test_keys_without_results_are_ignored(orchestrator, stub_client):
    await orchestrator.on_key_command("ArrowDown")
    await orchestrator.on_key_command("Enter")

    assert orchestrator.session.selected_index == -1
    assert stub_client.weather_calls == []


@pytest.mark.asyncio
async def test_enter_without_selection_does_nothing(orchestrator, stub_client):
    stub_client.results["London"] = [LONDON]
    await orchestrator.handle_input("London")

    await orchestrator.on_key_command("Enter")

    assert stub_client.weather_calls == []


@pytest.mark.asyncio
async def test_escape_hides_list(orchestrator, stub_client, events):
    stub_client.results["London"] = [LONDON]
    await orchestrator.handle_input("London")

    await orchestrator.on_key_command("Escape")

    assert orchestrator.session.results == []
    assert isinstance(events[-1], ResultsCleared)
    assert orchestrator.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_london_scenario_records_recent_search(orchestrator, stub_client, recent, events):
    stub_client.results["London"] = [LONDON]
    await _type_and_settle(orchestrator, "Lon", "London")
    assert stub_client.geocode_calls == ["London"]

    await orchestrator.on_key_command("ArrowDown")
    await orchestrator.on_key_command("Enter")

    assert stub_client.weather_calls == [(51.5074, -0.1278)]
    assert recent.items[0] == LONDON
    assert orchestrator.session.current_query == "London"
    assert orchestrator.session.results == []
    assert orchestrator.state is SearchState.IDLE
    assert QueryFilled("London") in events
    weather = _of_type(events, WeatherReady)[-1]
    assert weather.location == LONDON
    assert weather.unit is UnitPreference.IMPERIAL
    assert _of_type(events, RecentChanged)[-1].items == (LONDON,)
    loading = _of_type(events, LoadingChanged)
    assert loading == [LoadingChanged(True), LoadingChanged(False)]


@pytest.mark.asyncio
async def test_failed_weather_fetch_leaves_recent_unchanged(orchestrator, stub_client, recent, events):
    recent.add_search(PARIS)
    stub_client.weather_error = NetworkError("boom")

    selected = await orchestrator.on_select(LONDON)

    assert selected is False
    assert recent.items == [PARIS]
    assert orchestrator.state is SearchState.ERROR
    error = _of_type(events, ErrorRaised)[-1]
    assert error.code == "NETWORK_ERROR"
    assert error.retryable is True
    assert error.message == "Unable to connect. Please check your internet connection."


@pytest.mark.asyncio
async def test_invalid_credentials_offer_no_retry(orchestrator, stub_client, events):
    stub_client.geocode_error = InvalidCredentials("bad key")

    await orchestrator.handle_input("London")

    error = _of_type(events, ErrorRaised)[-1]
    assert error.code == "INVALID_API_KEY"
    assert error.retryable is False
    assert orchestrator.state is SearchState.ERROR


@pytest.mark.asyncio
async def test_search_error_keeps_displayed_results(orchestrator, stub_client):
    stub_client.results["London"] = [LONDON]
    await orchestrator.handle_input("London")
    stub_client.geocode_error = RateLimited("slow down")

    await orchestrator.handle_input("Londo")

    assert orchestrator.session.results == [LONDON]
    assert orchestrator.state is SearchState.ERROR


@pytest.mark.asyncio
async def test_unexpected_errors_use_generic_message(orchestrator, stub_client, events):
    stub_client.geocode_error = RuntimeError("kaboom")

    await orchestrator.handle_input("London")

    error = _of_type(events, ErrorRaised)[-1]
    assert error.code == "UNEXPECTED"
    assert error.message == "An unexpected error occurred."


@pytest.mark.asyncio
async def test_retry_clears_error_and_repeats_search(orchestrator, stub_client, events):
    stub_client.geocode_error = RateLimited("slow down")
    await orchestrator.handle_input("London")
    assert orchestrator.state is SearchState.ERROR

    stub_client.geocode_error = None
    stub_client.results["London"] = [LONDON]
    await orchestrator.on_retry()

    assert stub_client.geocode_calls == ["London", "London"]
    assert ErrorCleared() in events
    assert orchestrator.error is None
    assert orchestrator.state is SearchState.DISPLAYING


@pytest.mark.asyncio
async def test_new_input_clears_error(orchestrator, stub_client, events):
    stub_client.geocode_error = NetworkError("offline")
    await orchestrator.handle_input("London")

    orchestrator.on_query_changed("Par")

    assert orchestrator.error is None
    assert orchestrator.state is SearchState.DEBOUNCING
    assert isinstance(events[-1], ErrorCleared)
    await orchestrator.aclose()


@pytest.mark.asyncio
async def test_recent_reselection_moves_entry_to_head(orchestrator, stub_client, recent):
    recent.add_search(LONDON)
    recent.add_search(PARIS)

    assert await orchestrator.on_recent_selected(LONDON) is True

    assert recent.items == [LONDON, PARIS]
    assert stub_client.weather_calls == [(LONDON.lat, LONDON.lon)]


class _Locator:
    def __init__(self, coords=None, error=None) -> None:
        self.coords = coords
        self.error = error

    async def locate(self):
        if self.error is not None:
            raise self.error
        return self.coords


@pytest.mark.asyncio
async def test_locate_records_location_from_weather(orchestrator, stub_client, recent):
    orchestrator._geolocator = _Locator(coords=(51.5, -0.12))

    assert await orchestrator.on_locate() is True

    assert recent.items == [Location(name="London", state="", country="GB", lat=51.5, lon=-0.12)]


@pytest.mark.asyncio
async def test_locate_denied_raises_error_without_fetch(orchestrator, stub_client, events):
    orchestrator._geolocator = _Locator(error=LocationUnavailable("denied"))

    assert await orchestrator.on_locate() is False

    error = _of_type(events, ErrorRaised)[-1]
    assert error.code == "GEOLOCATION_DENIED"
    assert error.retryable is False
    assert stub_client.weather_calls == []


@pytest.mark.asyncio
async def test_set_unit_re_emits_weather(orchestrator, events):
    orchestrator.set_unit("metric")
    assert not _of_type(events, WeatherReady)

    await orchestrator.on_select(LONDON)
    orchestrator.set_unit(UnitPreference.METRIC)

    last = _of_type(events, WeatherReady)[-1]
    assert last.unit is UnitPreference.METRIC


@pytest.mark.asyncio
async def test_start_announces_recent_searches(orchestrator, recent, storage, events):
    recent.add_search(PARIS)
    events.clear()

    items = orchestrator.start()

    assert items == [PARIS]
    assert events == [RecentChanged((PARIS,))]


@pytest.mark.asyncio
async def test_clear_recent(orchestrator, recent, events):
    recent.add_search(PARIS)
    orchestrator.on_clear_recent()

    assert recent.items == []
    assert events[-1] == RecentChanged(())


@pytest.mark.asyncio
async def test_clear_query_cancels_pending_lookup(orchestrator, stub_client):
    orchestrator.on_query_changed("London")
    orchestrator.on_clear_query()
    await asyncio.sleep(DEBOUNCE_WAIT)
    await orchestrator.settle()

    assert stub_client.geocode_calls == []
    assert orchestrator.session.current_query == ""


@pytest.mark.asyncio
async def test_escape_during_debounce_drops_pending_lookup(orchestrator, stub_client, events):
    stub_client.results["London"] = [LONDON]

    orchestrator.on_query_changed("London")
    await orchestrator.on_key_command("Escape")
    await asyncio.sleep(DEBOUNCE_WAIT)
    await orchestrator.settle()

    assert stub_client.geocode_calls == []
    assert not _of_type(events, ResultsReady)
    assert orchestrator.state is SearchState.IDLE


@pytest.mark.asyncio
async def test_selection_drops_pending_lookup(orchestrator, stub_client, events):
    stub_client.results["London"] = [LONDON]
    await orchestrator.handle_input("London")

    orchestrator.on_query_changed("Pa")
    assert await orchestrator.on_select(0) is True
    await asyncio.sleep(DEBOUNCE_WAIT)
    await orchestrator.settle()

    assert stub_client.geocode_calls == ["London"]
    assert orchestrator.session.current_query == "London"
    assert orchestrator.session.results == []
    assert orchestrator.state is SearchState.IDLE
    assert len(_of_type(events, ResultsReady)) == 1


@pytest.mark.asyncio
async def test_recent_selection_drops_pending_lookup(orchestrator, stub_client):
    orchestrator.on_query_changed("Pa")
    assert await orchestrator.on_recent_selected(PARIS) is True
    await asyncio.sleep(DEBOUNCE_WAIT)
    await orchestrator.settle()

    assert stub_client.geocode_calls == []
    assert orchestrator.session.current_query == PARIS.name


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_break_search(orchestrator, stub_client, events):
    def broken(event):
        raise RuntimeError("render failed")

    orchestrator.bus.subscribe(broken)

    await orchestrator.handle_input("Nowhere")

    assert events[-1] == ResultsReady(query="Nowhere", results=(), no_results=True)
    assert orchestrator.state is SearchState.DISPLAYING
