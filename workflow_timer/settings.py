from __future__ import annotations

from dataclasses import dataclass, replace
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

from .durations import DEFAULT_BREAK_THRESHOLD_MS
from .sessions import DEFAULT_TASK_BASE_NAME

logger = logging.getLogger(__name__)

SETTINGS_DIR_NAME = ".workflow_timer"
SETTINGS_FILE_NAME = "settings.json"

ENV_DAY_START_HOUR = "WORKFLOW_TIMER_DAY_START_HOUR"
ENV_BREAK_THRESHOLD_MS = "WORKFLOW_TIMER_BREAK_THRESHOLD_MS"


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    day_start_hour: int = 6
    break_threshold_ms: int = DEFAULT_BREAK_THRESHOLD_MS
    default_group_id: str = "1"
    task_base_name: str = DEFAULT_TASK_BASE_NAME

    def to_dict(self) -> dict[str, Any]:
        return {
            "day_start_hour": self.day_start_hour,
            "break_threshold_ms": self.break_threshold_ms,
            "default_group_id": self.default_group_id,
            "task_base_name": self.task_base_name,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> Settings:
        defaults = cls()
        hour = _as_int(payload.get("day_start_hour"), defaults.day_start_hour)
        threshold = _as_int(payload.get("break_threshold_ms"), defaults.break_threshold_ms)
        return cls(
            day_start_hour=min(23, max(0, hour)),
            break_threshold_ms=max(0, threshold),
            default_group_id=str(payload.get("default_group_id") or defaults.default_group_id),
            task_base_name=str(payload.get("task_base_name") or defaults.task_base_name).strip()
            or defaults.task_base_name,
        )


def default_settings_path(home: Path | None = None) -> Path:
    base = home if home is not None else Path.home()
    return base / SETTINGS_DIR_NAME / SETTINGS_FILE_NAME


def load_settings(path: Path | None = None, environ: Mapping[str, str] | None = None) -> Settings:
    target = path or default_settings_path()
    settings = Settings()
    if target.exists():
        try:
            with target.open("r", encoding="utf-8") as fp:
                payload = json.load(fp)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("ignoring unreadable settings file %s: %s", target, exc)
        else:
            if isinstance(payload, dict):
                settings = Settings.from_dict(payload)
            else:
                logger.warning("ignoring settings file %s: expected an object", target)
    return apply_env_overrides(settings, os.environ if environ is None else environ)


def apply_env_overrides(settings: Settings, environ: Mapping[str, str]) -> Settings:
    overrides: dict[str, Any] = {}
    raw_hour = environ.get(ENV_DAY_START_HOUR, "").strip()
    if raw_hour:
        overrides["day_start_hour"] = raw_hour
    raw_threshold = environ.get(ENV_BREAK_THRESHOLD_MS, "").strip()
    if raw_threshold:
        overrides["break_threshold_ms"] = raw_threshold
    if not overrides:
        return settings
    merged = Settings.from_dict({**settings.to_dict(), **overrides})
    logger.debug("settings overridden from environment: %s", sorted(overrides))
    return replace(settings, day_start_hour=merged.day_start_hour, break_threshold_ms=merged.break_threshold_ms)


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    target = path or default_settings_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    temp_path = target.with_suffix(target.suffix + ".tmp")
    with temp_path.open("w", encoding="utf-8") as fp:
        json.dump(settings.to_dict(), fp, indent=2, ensure_ascii=False, sort_keys=True)
        fp.write("\n")
    temp_path.replace(target)
    return target
