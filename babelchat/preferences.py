from __future__ import annotations

import logging
from dataclasses import replace

from babelchat.errors import InvalidInputError
from babelchat.models import AppSettings
from babelchat.repository import ChatRepository
from babelchat.results import Result

logger = logging.getLogger(__name__)

THEMES = ("light", "dark", "auto")
FONT_POINTS = {"small": 14, "medium": 16, "large": 18}


class PreferenceService:
    """App-wide display settings stored under ``app_settings``."""

    def __init__(self, repository: ChatRepository):
        self.repo = repository
        self.settings = AppSettings()

    def load(self) -> Result[AppSettings]:
        result = self.repo.settings()
        if not result.ok:
            return Result.failure(result.error, value=self.settings)
        self.settings = result.value
        return result

    def update(self, **changes) -> Result[AppSettings]:
        if "theme" in changes and changes["theme"] not in THEMES:
            return Result.failure(InvalidInputError(f"Unknown theme: {changes['theme']}"), value=self.settings)
        if "font_size" in changes and changes["font_size"] not in FONT_POINTS:
            return Result.failure(InvalidInputError(f"Unknown font size: {changes['font_size']}"), value=self.settings)
        try:
            updated = replace(self.settings, **changes)
        except TypeError as e:
            return Result.failure(InvalidInputError(str(e)), value=self.settings)
        saved = self.repo.save_settings(updated)
        if not saved.ok:
            return Result.failure(saved.error, value=self.settings)
        self.settings = updated
        return Result.success(updated)

    def font_points(self) -> int:
        return FONT_POINTS.get(self.settings.font_size, 16)
