from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from arcnav.core.logging import get_logger, log_event
from arcnav.core.settings_model import SCHEMA_VERSION, SettingsModel

RECENT_ARCHIVES_LIMIT = 10

logger = get_logger(__name__)


class SettingsStore:
    """Load and persist arcnav user settings."""

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> dict[str, Any]:
        """Read settings, filling in missing sections and upgrading old files."""
        raw = self._read_raw()
        settings = self._upgrade(raw)
        if settings != raw:
            self._backup()
            self.save(settings)
        return settings

    def save(self, settings: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(settings, indent=4), encoding="utf-8")

    def update_theme(self, settings: dict[str, Any], theme_name: str) -> None:
        self._preferences(settings)["theme"] = theme_name
        self.save(settings)

    def update_extract_directory(
        self, settings: dict[str, Any], path: Path | str
    ) -> None:
        """Remember the last destination used for extraction."""
        self._preferences(settings)["lastExtractDirectory"] = str(path)
        self.save(settings)

    def record_recent_archive(self, settings: dict[str, Any], path: Path | str) -> None:
        """Move ``path`` to the front of the recent archives list."""
        preferences = self._preferences(settings)
        recent = preferences.get("recentArchives")
        if not isinstance(recent, list):
            recent = []
        text = str(path)
        updated = [text] + [item for item in recent if item != text]
        preferences["recentArchives"] = updated[:RECENT_ARCHIVES_LIMIT]
        self.save(settings)

    @staticmethod
    def _preferences(settings: dict[str, Any]) -> dict[str, Any]:
        return settings.setdefault("userPreferences", {})

    def _read_raw(self) -> dict[str, Any]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            log_event(logger, "settings_unreadable", path=str(self._path), error=str(exc))
            return {}
        return data if isinstance(data, dict) else {}

    def _upgrade(self, raw: dict[str, Any]) -> dict[str, Any]:
        data = dict(raw)
        version = data.get("schemaVersion")
        if not isinstance(version, int) or version < SCHEMA_VERSION:
            data["schemaVersion"] = SCHEMA_VERSION
        try:
            model = SettingsModel.model_validate(data)
        except ValidationError as exc:
            log_event(logger, "settings_reset", path=str(self._path), error=str(exc))
            model = SettingsModel()
        return model.model_dump()

    def _backup(self) -> None:
        if not self._path.exists():
            return
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        target = self._path.with_name(f"{self._path.stem}.bak-{stamp}.json")
        try:
            shutil.copy2(self._path, target)
        except OSError as exc:
            log_event(logger, "settings_backup_failed", path=str(target), error=str(exc))
