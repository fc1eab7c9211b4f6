"""Controller layer for the capacity dashboard."""

from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response
from pydantic import BaseModel, Field

from capacity_planner.controllers.dependencies import get_forecast_service, require_owner
from capacity_planner.services.export_service import (
    consultant_utilization_csv,
    weekly_summary_csv,
)
from capacity_planner.services.forecast_service import CapacityForecastService


router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class WeeklyForecastResponse(BaseModel):
    week: str
    weekNumber: int = Field(ge=1)
    weekStart: date
    capacityHours: int = Field(ge=0)
    scheduledHours: int = Field(ge=0)
    utilization: int = Field(ge=0)
    cost: int
    revenue: int
    profit: int


class ConsultantForecastResponse(BaseModel):
    consultantId: int
    consultantName: str
    weeks: list[WeeklyForecastResponse]


class BenchConsultantResponse(BaseModel):
    id: int
    name: str
    capacityHoursPerWeek: float = Field(ge=0.0)


class ForecastResponse(BaseModel):
    consultants: list[ConsultantForecastResponse]
    weeklySummary: list[WeeklyForecastResponse]
    benchConsultants: list[BenchConsultantResponse]
    totalConsultants: int = Field(ge=0)


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/forecast", response_model=ForecastResponse, status_code=status.HTTP_200_OK)
async def get_forecast(
    as_of: Optional[date] = Query(default=None),
    owner_id: str = Depends(require_owner),
    forecast_service: CapacityForecastService = Depends(get_forecast_service),
) -> ForecastResponse:
    result = await forecast_service.build_forecast(owner_id, now=as_of)
    return ForecastResponse(**result.to_api_dict())


@router.get("/weekly-summary.csv", status_code=status.HTTP_200_OK)
async def export_weekly_summary(
    as_of: Optional[date] = Query(default=None),
    owner_id: str = Depends(require_owner),
    forecast_service: CapacityForecastService = Depends(get_forecast_service),
) -> Response:
    result = await forecast_service.build_forecast(owner_id, now=as_of)
    return _csv_response(weekly_summary_csv(result.weekly_summary), "weekly-summary.csv")


@router.get("/consultant-utilization.csv", status_code=status.HTTP_200_OK)
async def export_consultant_utilization(
    as_of: Optional[date] = Query(default=None),
    owner_id: str = Depends(require_owner),
    forecast_service: CapacityForecastService = Depends(get_forecast_service),
) -> Response:
    result = await forecast_service.build_forecast(owner_id, now=as_of)
    return _csv_response(
        consultant_utilization_csv(result.consultants, result.weekly_summary),
        "consultant-utilization.csv",
    )
