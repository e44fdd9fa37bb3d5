from stratus.search.debounce import Debouncer
from stratus.search.events import EventBus
from stratus.search.orchestrator import SearchOrchestrator, SearchSession, SearchState

__all__ = [
    "Debouncer",
    "EventBus",
    "SearchOrchestrator",
    "SearchSession",
    "SearchState",
]
