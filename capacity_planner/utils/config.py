"""Environment-driven application settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    app_name: str
    app_version: str
    log_level: str
    database_path: Path
    forecast_horizon_weeks: int
    forecast_fetch_timeout_seconds: float
    seed_demo_data: bool
    demo_owner_id: str
    owner_header_name: str


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Read settings once per process; tests derive copies via `replace`."""
    return Settings(
        app_name=os.getenv("APP_NAME", "Capacity Planner"),
        app_version=os.getenv("APP_VERSION", "0.1.0"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        database_path=Path(
            os.getenv("DATABASE_PATH", str(PROJECT_ROOT / "data" / "capacity_planner.db"))
        ),
        forecast_horizon_weeks=int(os.getenv("FORECAST_HORIZON_WEEKS", "12")),
        forecast_fetch_timeout_seconds=float(
            os.getenv("FORECAST_FETCH_TIMEOUT_SECONDS", "10")
        ),
        seed_demo_data=_env_bool("SEED_DEMO_DATA", False),
        demo_owner_id=os.getenv("DEMO_OWNER_ID", "demo-user"),
        owner_header_name=os.getenv("OWNER_HEADER_NAME", "X-User-Id"),
    )
