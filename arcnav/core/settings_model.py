from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

SCHEMA_VERSION = 1


class UserPreferences(BaseModel):
    model_config = ConfigDict(extra="allow")

    theme: str = ""
    lastExtractDirectory: str = ""
    recentArchives: list[str] = Field(default_factory=list)


class LogPreferences(BaseModel):
    model_config = ConfigDict(extra="allow")

    directory: str = ""


class SettingsModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    schemaVersion: int = SCHEMA_VERSION
    userPreferences: UserPreferences = Field(default_factory=UserPreferences)
    logs: LogPreferences = Field(default_factory=LogPreferences)
