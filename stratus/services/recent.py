"""Recent searches: a bounded, coordinate-deduplicated history kept in key-value storage."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Callable, Protocol

from pydantic import TypeAdapter, ValidationError

from stratus.config import StorageSettings
from stratus.domain.models import Location
from stratus.logging import logger
from stratus.services.exceptions import StorageUnavailable

RecentListener = Callable[[list[Location]], None]

_LOCATIONS = TypeAdapter(list[Location])


class Storage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


class MemoryStorage:
    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """Key-value strings kept in a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError) as exc:
            raise StorageUnavailable(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageUnavailable(f"Unexpected storage layout in {self.path}.")
        return data

    def get(self, key: str) -> str | None:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except StorageUnavailable:
            data = {}
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
            with tmp_path.open("w", encoding="utf-8") as fp:
                json.dump(data, fp, ensure_ascii=False, indent=2)
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StorageUnavailable(f"Cannot write {self.path}: {exc}") from exc


class RecencyStore:
    def __init__(self, storage: Storage, settings: StorageSettings | None = None) -> None:
        self._storage = storage
        self._settings = settings or StorageSettings()
        self._items: list[Location] = []
        self._listeners: list[RecentListener] = []

    @property
    def items(self) -> list[Location]:
        return list(self._items)

    @property
    def max_recent(self) -> int:
        return self._settings.max_recent

    def subscribe(self, listener: RecentListener) -> None:
        self._listeners.append(listener)

    def load(self) -> list[Location]:
        """Read the persisted list; any failure yields an empty list."""

        try:
            raw = self._storage.get(self._settings.recent_key)
            items = _LOCATIONS.validate_json(raw) if raw else []
        except (StorageUnavailable, ValidationError, ValueError) as exc:
            logger.warning(
                "recent_searches_load_failed",
                key=self._settings.recent_key,
                error=str(exc),
            )
            items = []
        self._items = self._normalize(items)
        return self.items

    def add_search(self, location: Location) -> None:
        remaining = [item for item in self._items if item.coordinates != location.coordinates]
        self._items = [location, *remaining][: self.max_recent]
        self._save()
        self._notify()

    def clear(self) -> None:
        self._items = []
        self._save()
        self._notify()

    def _normalize(self, items: list[Location]) -> list[Location]:
        seen: set[tuple[float, float]] = set()
        result: list[Location] = []
        for item in items:
            if item.coordinates in seen:
                continue
            seen.add(item.coordinates)
            result.append(item)
        return result[: self.max_recent]

    def _save(self) -> None:
        payload = _LOCATIONS.dump_json(self._items).decode("utf-8")
        try:
            self._storage.set(self._settings.recent_key, payload)
        except StorageUnavailable as exc:
            logger.warning(
                "recent_searches_save_failed",
                key=self._settings.recent_key,
                error=str(exc),
            )

    def _notify(self) -> None:
        snapshot = self.items
        for listener in self._listeners:
            try:
                listener(snapshot)
            except Exception:
                logger.exception("recent_searches_listener_failed")


__all__ = ["Storage", "MemoryStorage", "JsonFileStorage", "RecencyStore"]
