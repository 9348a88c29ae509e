import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


class HistoryConfig(BaseModel):
    dose_window_hours: float = Field(default=6.0, gt=0, le=24)
    scenario_history_limit: int = Field(default=100, ge=1, le=1000)


class LoggingConfig(BaseModel):
    level: str = Field(default="INFO")

    @field_validator("level", mode="before")
    def _normalize_level(cls, v: str) -> str:
        return str(v).upper()


class EngineSettings(BaseModel):
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(extra="ignore")


DEFAULT_CONFIG_PATH = Path(os.environ.get("DOSE_ENGINE_CONFIG", "config/engine.json"))


def _load_file_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Invalid JSON configuration at {path}") from exc


def _load_env() -> dict[str, Any]:
    env_config: dict[str, Any] = {}

    window = os.environ.get("DOSE_WINDOW_HOURS")
    if window:
        env_config.setdefault("history", {})["dose_window_hours"] = window

    limit = os.environ.get("SCENARIO_HISTORY_LIMIT")
    if limit:
        env_config.setdefault("history", {})["scenario_history_limit"] = limit

    level = os.environ.get("LOG_LEVEL")
    if level:
        env_config.setdefault("logging", {})["level"] = level

    return env_config


def merge_settings(env_config: dict[str, Any], file_config: dict[str, Any]) -> dict[str, Any]:
    merged: dict[str, Any] = {}
    merged["history"] = {**file_config.get("history", {}), **env_config.get("history", {})}
    merged["logging"] = {**file_config.get("logging", {}), **env_config.get("logging", {})}
    return merged


def load_settings(path: Path | None = None) -> EngineSettings:
    env_config = _load_env()
    file_config = _load_file_config(path or DEFAULT_CONFIG_PATH)
    merged = merge_settings(env_config=env_config, file_config=file_config)
    try:
        return EngineSettings.model_validate(merged)
    except ValidationError as exc:
        raise RuntimeError(f"Configuration error: {exc}") from exc


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return load_settings()


__all__ = ["EngineSettings", "get_settings", "load_settings"]
