from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class RuntimeConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RUNSCRIPT_", case_sensitive=False)

    log_level: str = "info"
    log_format: str = "json"
    manifest_filename: str = "global.json"
    log_dir: Path | None = None
    script_shell: str | None = None
    terminate_grace_seconds: float = 1.0
    poll_interval_seconds: float = 0.05


@lru_cache
def get_runtime_config() -> RuntimeConfig:
    return RuntimeConfig()
