"""Application settings for the race planner.

Supports dev, staging and production profiles via APP_ENV.
All values can be overridden by environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from planner_core import DEFAULT_CURRENT_DISTANCE_KM, DEFAULT_FITNESS_LEVEL, DEFAULT_RECENT_TIME


@dataclass(frozen=True)
class Settings:
    """Immutable settings resolved from the environment."""

    app_env: str = "dev"
    log_level: str = "INFO"

    # Form defaults for the planner UI
    default_target_distance: str = "5k"
    default_fitness_level: str = DEFAULT_FITNESS_LEVEL
    default_distance_km: float = DEFAULT_CURRENT_DISTANCE_KM
    default_recent_time: str = DEFAULT_RECENT_TIME
    default_weeks_out: int = 12

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"


_ENV_PROFILES: dict[str, dict] = {
    "dev": {"log_level": "DEBUG"},
    "staging": {"log_level": "INFO"},
    "production": {"log_level": "WARNING"},
}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def get_settings() -> Settings:
    """Build Settings by merging the environment profile with env-var overrides."""
    app_env = os.getenv("APP_ENV", "dev")
    profile = _ENV_PROFILES.get(app_env, _ENV_PROFILES["dev"])

    return Settings(
        app_env=app_env,
        log_level=os.getenv("LOG_LEVEL", profile.get("log_level", "INFO")),
        default_target_distance=os.getenv("PLANNER_DEFAULT_TARGET", "5k"),
        default_fitness_level=os.getenv("PLANNER_DEFAULT_LEVEL", DEFAULT_FITNESS_LEVEL),
        default_distance_km=_env_float("PLANNER_DEFAULT_DISTANCE_KM", DEFAULT_CURRENT_DISTANCE_KM),
        default_recent_time=os.getenv("PLANNER_DEFAULT_RECENT_TIME", DEFAULT_RECENT_TIME),
        default_weeks_out=max(_env_int("PLANNER_DEFAULT_WEEKS_OUT", 12), 4),
    )
