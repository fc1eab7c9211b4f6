"""Domain-level validation rules for forecast configuration."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ForecastConfig:
    horizon_weeks: int
    fetch_timeout_seconds: float


def validate_forecast_config(config: ForecastConfig) -> None:
    if config.horizon_weeks <= 0:
        raise ValueError("horizon_weeks must be > 0")
    if config.fetch_timeout_seconds <= 0:
        raise ValueError("fetch_timeout_seconds must be > 0")
