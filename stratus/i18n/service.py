"""User-facing message catalogue loaded from ``locales/<locale>.json``."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from stratus.logging import logger
from stratus.services.exceptions import StratusError

_ERROR_PREFIX = "errors."


class I18nService:
    def __init__(self, *, locales_path: str | Path | None = None, default_locale: str = "en") -> None:
        self.locales_path = Path(locales_path or Path(__file__).with_name("locales"))
        self.default_locale = default_locale.lower()
        self._catalogues: dict[str, dict[str, str]] = {}

    def gettext(self, key: str, *, locale: str | None = None, **kwargs: Any) -> str:
        """Look ``key`` up for ``locale``, then its base language, then the default locale."""

        for candidate in self._candidates(locale):
            text = self._catalogue(candidate).get(key)
            if text is not None:
                return text.format(**kwargs) if kwargs else text
        return key

    def error_message(self, error: BaseException, *, locale: str | None = None) -> str:
        code = error.code if isinstance(error, StratusError) else StratusError.code
        text = self.gettext(f"{_ERROR_PREFIX}{code}", locale=locale)
        if text.startswith(_ERROR_PREFIX):
            return self.gettext(f"{_ERROR_PREFIX}{StratusError.code}", locale=locale)
        return text

    def _candidates(self, locale: str | None) -> list[str]:
        requested = (locale or self.default_locale).lower().replace("_", "-")
        ordered = [requested, requested.split("-", 1)[0], self.default_locale]
        return list(dict.fromkeys(ordered))

    def _catalogue(self, locale: str) -> dict[str, str]:
        if locale not in self._catalogues:
            file_path = self.locales_path / f"{locale}.json"
            table: dict[str, str] = {}
            if file_path.exists():
                try:
                    table = json.loads(file_path.read_text(encoding="utf-8"))
                except (OSError, ValueError) as exc:
                    logger.warning("locale_unreadable", locale=locale, path=str(file_path), error=str(exc))
            self._catalogues[locale] = table
        return self._catalogues[locale]


__all__ = ["I18nService"]
