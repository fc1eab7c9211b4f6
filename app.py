"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and services, registers routers, and runs
startup initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from capacity_planner.controllers.dashboard_controller import router as dashboard_router
from capacity_planner.controllers.records_controller import router as records_router
from capacity_planner.repository.data_repository import DataRepository
from capacity_planner.services.forecast_service import CapacityForecastService
from capacity_planner.services.records_service import RecordService
from capacity_planner.utils.config import Settings, get_settings
from capacity_planner.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Every dependency is created here and exposed through app.state for the
    controller dependency providers.
    """
    settings = settings or get_settings()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (business logic, no direct DB access) ---
    forecast_service = CapacityForecastService(data_source=repository, settings=settings)
    record_service = RecordService(repository=repository, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    # --- Routers ---
    app.include_router(records_router)
    app.include_router(dashboard_router)

    app.state.settings = settings
    app.state.repository = repository
    app.state.forecast_service = forecast_service
    app.state.record_service = record_service

    return app


def _startup(app: FastAPI) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    The schema must exist before the optional demo seed runs.
    """
    settings: Settings = app.state.settings
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.seed_demo_data:
        logger.info("Startup: seeding demo data for %s", settings.demo_owner_id)
        repository.seed_demo_data(settings.demo_owner_id)

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
