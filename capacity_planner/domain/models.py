"""Domain models for consultant capacity and weekly forecasting."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any, Optional


BILLING_MODEL_HOURLY = "hourly"
BILLING_MODEL_FLAT = "flat"
BILLING_MODELS = (BILLING_MODEL_HOURLY, BILLING_MODEL_FLAT)


@dataclass(frozen=True)
class Client:
    client_id: int
    name: str
    owner_id: str


@dataclass(frozen=True)
class Consultant:
    consultant_id: int
    name: str
    cost_per_hour: float
    bill_rate: float
    capacity_hours_per_week: float
    owner_id: str


@dataclass(frozen=True)
class Project:
    project_id: int
    client_id: int
    name: str
    billing_model: str
    flat_fee: Optional[float]
    owner_id: str
    client_name: Optional[str] = None


@dataclass(frozen=True)
class Allocation:
    allocation_id: int
    consultant_id: int
    project_id: int
    start_date: date
    end_date: date
    hours_per_week: float
    owner_id: str
    consultant_name: Optional[str] = None
    consultant_capacity: Optional[float] = None
    project_name: Optional[str] = None
    client_name: Optional[str] = None


@dataclass(frozen=True)
class EnrichedAllocation:
    """Allocation joined with the consultant rates and project billing terms."""

    allocation_id: int
    consultant_id: int
    project_id: int
    start_date: date
    end_date: date
    hours_per_week: float
    cost_per_hour: float
    bill_rate: float
    capacity_hours_per_week: float
    billing_model: str
    flat_fee: Optional[float]


@dataclass(frozen=True)
class WeeklyForecast:
    week_number: int
    week_start: date
    capacity_hours: int
    scheduled_hours: int
    utilization: int
    cost: int
    revenue: int
    profit: int

    @property
    def week(self) -> str:
        return f"W{self.week_number}"

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "week": self.week,
            "weekNumber": self.week_number,
            "weekStart": self.week_start.isoformat(),
            "capacityHours": self.capacity_hours,
            "scheduledHours": self.scheduled_hours,
            "utilization": self.utilization,
            "cost": self.cost,
            "revenue": self.revenue,
            "profit": self.profit,
        }


@dataclass(frozen=True)
class ConsultantForecast:
    consultant_id: int
    consultant_name: str
    weeks: list[WeeklyForecast]

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "consultantId": self.consultant_id,
            "consultantName": self.consultant_name,
            "weeks": [week.to_api_dict() for week in self.weeks],
        }


@dataclass(frozen=True)
class BenchConsultant:
    consultant_id: int
    name: str
    capacity_hours_per_week: float

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": self.consultant_id,
            "name": self.name,
            "capacityHoursPerWeek": self.capacity_hours_per_week,
        }


@dataclass(frozen=True)
class ForecastResult:
    consultants: list[ConsultantForecast]
    weekly_summary: list[WeeklyForecast]
    bench: list[BenchConsultant]
    total_consultants: int

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "consultants": [item.to_api_dict() for item in self.consultants],
            "weeklySummary": [week.to_api_dict() for week in self.weekly_summary],
            "benchConsultants": [item.to_api_dict() for item in self.bench],
            "totalConsultants": self.total_consultants,
        }
