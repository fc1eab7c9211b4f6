"""Weekly capacity and financial forecast over a rolling horizon.

The aggregation functions in this module are pure: they take consultants and
allocations already fetched for one owner and derive per-consultant weekly
series, the fleet-wide weekly summary and the bench. `CapacityForecastService`
wraps them with the concurrent, time-bounded fetch from a `ForecastDataSource`
and degrades to an empty forecast when either fetch fails.

Hours and money are accumulated unrounded and rounded once when a
`WeeklyForecast` is produced.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable, Optional, Protocol, Sequence, TypeVar

from capacity_planner.domain.constraints import ForecastConfig, validate_forecast_config
from capacity_planner.domain.models import (
    BILLING_MODEL_FLAT,
    BILLING_MODEL_HOURLY,
    BenchConsultant,
    Consultant,
    ConsultantForecast,
    EnrichedAllocation,
    ForecastResult,
    WeeklyForecast,
)
from capacity_planner.utils.config import Settings, get_settings
from capacity_planner.utils.logger import get_logger


logger = get_logger(__name__)

DAYS_PER_WEEK = 7

T = TypeVar("T")


class ForecastFetchError(Exception):
    """Raised when an upstream fetch fails or exceeds the bounded wait."""


class ForecastDataSource(Protocol):
    """Read-only record access required to build a forecast."""

    def list_consultants(self, owner_id: str) -> Sequence[Consultant]:
        ...

    def list_allocations_overlapping(
        self,
        owner_id: str,
        range_start: date,
        range_end: date,
    ) -> Sequence[EnrichedAllocation]:
        ...


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def utilization_percentage(scheduled_hours: float, capacity_hours: float) -> int:
    if capacity_hours <= 0:
        return 0
    return _round_half_up(scheduled_hours / capacity_hours * 100)


# --- Calendar window ---


def week_start(reference: date | datetime) -> date:
    """Return the Monday of the week containing `reference` (Sunday belongs to the prior Monday)."""
    if isinstance(reference, datetime):
        reference = reference.date()
    return reference - timedelta(days=reference.weekday())


def build_week_starts(reference: date | datetime, weeks: int = 12) -> list[date]:
    first = week_start(reference)
    return [first + timedelta(days=DAYS_PER_WEEK * index) for index in range(weeks)]


def week_end(start: date) -> date:
    return start + timedelta(days=DAYS_PER_WEEK - 1)


# --- Overlap filter ---


def allocation_overlaps(
    allocation: EnrichedAllocation,
    range_start: date,
    range_end: date,
) -> bool:
    """Closed-interval overlap; an allocation touching either boundary counts."""
    return allocation.start_date <= range_end and allocation.end_date >= range_start


def allocations_for_week(
    allocations: Sequence[EnrichedAllocation],
    consultant_id: int,
    start: date,
) -> list[EnrichedAllocation]:
    end = week_end(start)
    return [
        allocation
        for allocation in allocations
        if allocation.consultant_id == consultant_id
        and allocation_overlaps(allocation, start, end)
    ]


# --- Financial aggregation ---


def weeks_spanned(start: date, end: date) -> int:
    """Number of calendar weeks an allocation's own date range covers, at least one."""
    days = abs((end - start).days)
    return max(math.ceil(days / DAYS_PER_WEEK), 1)


def weekly_revenue(allocation: EnrichedAllocation) -> float:
    """Revenue one allocation contributes to each week it overlaps."""
    if allocation.billing_model == BILLING_MODEL_HOURLY:
        return allocation.hours_per_week * allocation.bill_rate
    if allocation.billing_model == BILLING_MODEL_FLAT and allocation.flat_fee:
        return allocation.flat_fee / weeks_spanned(allocation.start_date, allocation.end_date)
    return 0.0


@dataclass
class WeekTotals:
    capacity_hours: float = 0.0
    scheduled_hours: float = 0.0
    cost: float = 0.0
    revenue: float = 0.0

    @property
    def profit(self) -> float:
        return self.revenue - self.cost

    def add(self, other: WeekTotals) -> None:
        self.capacity_hours += other.capacity_hours
        self.scheduled_hours += other.scheduled_hours
        self.cost += other.cost
        self.revenue += other.revenue

    def to_forecast(self, week_number: int, start: date) -> WeeklyForecast:
        return WeeklyForecast(
            week_number=week_number,
            week_start=start,
            capacity_hours=_round_half_up(self.capacity_hours),
            scheduled_hours=_round_half_up(self.scheduled_hours),
            utilization=utilization_percentage(self.scheduled_hours, self.capacity_hours),
            cost=_round_half_up(self.cost),
            revenue=_round_half_up(self.revenue),
            profit=_round_half_up(self.profit),
        )


def accumulate_week(
    consultant: Consultant,
    week_allocations: Sequence[EnrichedAllocation],
) -> WeekTotals:
    totals = WeekTotals(capacity_hours=consultant.capacity_hours_per_week)
    for allocation in week_allocations:
        totals.scheduled_hours += allocation.hours_per_week
        totals.cost += allocation.hours_per_week * allocation.cost_per_hour
        totals.revenue += weekly_revenue(allocation)
    return totals


# --- Rollups ---


def summarize_weeks(
    per_consultant_totals: Sequence[Sequence[WeekTotals]],
    week_starts: Sequence[date],
) -> list[WeeklyForecast]:
    """Sum every consultant's week and recompute utilization from the summed hours."""
    summary: list[WeeklyForecast] = []
    for index, start in enumerate(week_starts):
        fleet = WeekTotals()
        for consultant_weeks in per_consultant_totals:
            fleet.add(consultant_weeks[index])
        summary.append(fleet.to_forecast(index + 1, start))
    return summary


def find_bench(
    consultants: Sequence[Consultant],
    allocations: Sequence[EnrichedAllocation],
) -> list[BenchConsultant]:
    allocated_ids = {allocation.consultant_id for allocation in allocations}
    return [
        BenchConsultant(
            consultant_id=consultant.consultant_id,
            name=consultant.name,
            capacity_hours_per_week=consultant.capacity_hours_per_week,
        )
        for consultant in consultants
        if consultant.consultant_id not in allocated_ids
    ]


def compute_forecast(
    week_starts: Sequence[date],
    consultants: Sequence[Consultant],
    allocations: Sequence[EnrichedAllocation],
) -> ForecastResult:
    per_consultant_totals: list[list[WeekTotals]] = []
    consultant_forecasts: list[ConsultantForecast] = []
    for consultant in consultants:
        weekly_totals = [
            accumulate_week(
                consultant,
                allocations_for_week(allocations, consultant.consultant_id, start),
            )
            for start in week_starts
        ]
        per_consultant_totals.append(weekly_totals)
        consultant_forecasts.append(
            ConsultantForecast(
                consultant_id=consultant.consultant_id,
                consultant_name=consultant.name,
                weeks=[
                    totals.to_forecast(index + 1, start)
                    for index, (totals, start) in enumerate(zip(weekly_totals, week_starts))
                ],
            )
        )

    return ForecastResult(
        consultants=consultant_forecasts,
        weekly_summary=summarize_weeks(per_consultant_totals, week_starts),
        bench=find_bench(consultants, allocations),
        total_consultants=len(consultants),
    )


def empty_forecast(week_starts: Sequence[date]) -> ForecastResult:
    return ForecastResult(
        consultants=[],
        weekly_summary=[
            WeekTotals().to_forecast(index + 1, start)
            for index, start in enumerate(week_starts)
        ],
        bench=[],
        total_consultants=0,
    )


# --- Orchestration ---


class CapacityForecastService:
    """Fetches one owner's records and builds the rolling weekly forecast."""

    def __init__(
        self,
        data_source: ForecastDataSource,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._data_source = data_source
        self._config = ForecastConfig(
            horizon_weeks=self._settings.forecast_horizon_weeks,
            fetch_timeout_seconds=self._settings.forecast_fetch_timeout_seconds,
        )
        validate_forecast_config(self._config)

    async def _fetch(self, label: str, func: Callable[..., Sequence[T]], *args: object) -> list[T]:
        try:
            result = await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout=self._config.fetch_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ForecastFetchError(
                f"Query timeout: {label} exceeded {self._config.fetch_timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise ForecastFetchError(f"Failed to fetch {label}: {exc}") from exc
        return list(result)

    async def build_forecast(
        self,
        owner_id: str,
        now: Optional[date | datetime] = None,
    ) -> ForecastResult:
        """Return the forecast for `owner_id`, or an empty one if a fetch fails."""
        week_starts = build_week_starts(now or date.today(), self._config.horizon_weeks)
        range_start = week_starts[0]
        range_end = week_end(week_starts[-1])

        consultants, allocations = await asyncio.gather(
            self._fetch("consultants", self._data_source.list_consultants, owner_id),
            self._fetch(
                "allocations",
                self._data_source.list_allocations_overlapping,
                owner_id,
                range_start,
                range_end,
            ),
            return_exceptions=True,
        )
        failures = [
            outcome for outcome in (consultants, allocations) if isinstance(outcome, BaseException)
        ]
        if failures:
            for failure in failures:
                logger.warning("Forecast fetch failed for %s: %s", owner_id, failure)
            return empty_forecast(week_starts)

        try:
            result = compute_forecast(week_starts, consultants, allocations)
        except Exception:
            logger.exception("Forecast aggregation failed for %s", owner_id)
            return empty_forecast(week_starts)

        logger.info(
            "Forecast built for %s: %s consultants, %s allocations, %s on bench",
            owner_id,
            result.total_consultants,
            len(allocations),
            len(result.bench),
        )
        return result
