from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ARCNAV_", case_sensitive=False)

    log_level: str = "info"
    log_format: str = "json"
    history_limit: int = 200
    strict_invariants: bool = False


@lru_cache
def get_runtime_config() -> RuntimeConfig:
    return RuntimeConfig()
