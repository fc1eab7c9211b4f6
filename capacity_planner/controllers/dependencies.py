"""Shared FastAPI dependency providers for controller layer."""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from capacity_planner.repository.data_repository import DataRepository
from capacity_planner.services.forecast_service import CapacityForecastService
from capacity_planner.services.records_service import RecordService
from capacity_planner.utils.config import get_settings


def _get_repository(request: Request) -> DataRepository | None:
    return getattr(request.app.state, "repository", None)


def get_forecast_service(request: Request) -> CapacityForecastService:
    service = getattr(request.app.state, "forecast_service", None)
    if service is None:
        repository = _get_repository(request)
        if repository is not None:
            service = CapacityForecastService(data_source=repository, settings=get_settings())
            request.app.state.forecast_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Forecast service is not initialized",
        )
    return service


def get_record_service(request: Request) -> RecordService:
    service = getattr(request.app.state, "record_service", None)
    if service is None:
        repository = _get_repository(request)
        if repository is not None:
            service = RecordService(repository=repository, settings=get_settings())
            request.app.state.record_service = service
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Record service is not initialized",
        )
    return service


async def require_owner(request: Request) -> str:
    """Return the user id asserted by the upstream identity provider."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    owner_id = request.headers.get(settings.owner_header_name, "").strip()
    if not owner_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{settings.owner_header_name} header is required",
        )
    return owner_id
