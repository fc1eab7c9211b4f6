"""Tests for forecast configuration validation."""

from __future__ import annotations

import pytest

from capacity_planner.domain.constraints import ForecastConfig, validate_forecast_config


def valid_config(**overrides) -> ForecastConfig:
    """Return a valid baseline ForecastConfig, optionally overriding fields."""
    defaults = {
        "horizon_weeks": 12,
        "fetch_timeout_seconds": 10.0,
    }
    defaults.update(overrides)
    return ForecastConfig(**defaults)


def test_valid_config_passes() -> None:
    validate_forecast_config(valid_config())


def test_horizon_weeks_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_forecast_config(valid_config(horizon_weeks=0))


def test_horizon_weeks_negative_raises() -> None:
    with pytest.raises(ValueError):
        validate_forecast_config(valid_config(horizon_weeks=-3))


def test_fetch_timeout_zero_raises() -> None:
    with pytest.raises(ValueError):
        validate_forecast_config(valid_config(fetch_timeout_seconds=0.0))


def test_single_week_horizon_passes() -> None:
    """Exact lower boundary must pass."""
    validate_forecast_config(valid_config(horizon_weeks=1))
