"""Owner-scoped management of clients, consultants, projects and allocations."""

from __future__ import annotations

from datetime import date
from typing import Any, Optional

from capacity_planner.domain.models import (
    BILLING_MODEL_FLAT,
    BILLING_MODEL_HOURLY,
    BILLING_MODELS,
    Allocation,
    Client,
    Consultant,
    Project,
)
from capacity_planner.repository.data_repository import DataRepository
from capacity_planner.utils.config import Settings, get_settings
from capacity_planner.utils.logger import get_logger


logger = get_logger(__name__)


class RecordValidationError(Exception):
    """Raised when create/update inputs violate record invariants."""


class RecordNotFoundError(Exception):
    """Raised when a record does not exist for the requesting owner."""


def _validate_name(name: str, label: str) -> str:
    cleaned = name.strip()
    if not cleaned:
        raise RecordValidationError(f"{label} name must not be empty")
    return cleaned


def _validate_non_negative(value: float, label: str) -> None:
    if value < 0:
        raise RecordValidationError(f"{label} must be >= 0")


def _validate_date_range(start_date: date, end_date: date) -> None:
    if start_date > end_date:
        raise RecordValidationError("Start date must be before or equal to end date")


def _validate_hours(hours_per_week: float) -> None:
    if hours_per_week <= 0:
        raise RecordValidationError("Hours per week must be greater than 0")


def _resolve_flat_fee(billing_model: str, flat_fee: Optional[float]) -> Optional[float]:
    if billing_model not in BILLING_MODELS:
        raise RecordValidationError(
            f"billing_model must be one of {', '.join(BILLING_MODELS)}"
        )
    if billing_model == BILLING_MODEL_HOURLY:
        return None
    if flat_fee is None or flat_fee <= 0:
        raise RecordValidationError("flat_fee must be > 0 for flat billing")
    return float(flat_fee)


class RecordService:
    """Validates record changes before they reach the repository."""

    def __init__(
        self,
        repository: Optional[DataRepository] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._repository = repository or DataRepository(self._settings)

    # --- Clients ---

    def list_clients(self, owner_id: str) -> list[Client]:
        return self._repository.list_clients(owner_id)

    def get_client(self, owner_id: str, client_id: int) -> Client:
        client = self._repository.get_client(owner_id, client_id)
        if client is None:
            raise RecordNotFoundError(f"Client {client_id} not found")
        return client

    def create_client(self, owner_id: str, *, name: str) -> Client:
        client_id = self._repository.create_client(owner_id, _validate_name(name, "Client"))
        logger.info("Created client %s for %s", client_id, owner_id)
        return self.get_client(owner_id, client_id)

    def update_client(self, owner_id: str, client_id: int, *, name: Optional[str] = None) -> Client:
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = _validate_name(name, "Client")
        if not self._repository.update_client(owner_id, client_id, fields):
            raise RecordNotFoundError(f"Client {client_id} not found")
        return self.get_client(owner_id, client_id)

    def delete_client(self, owner_id: str, client_id: int) -> None:
        if not self._repository.delete_client(owner_id, client_id):
            raise RecordNotFoundError(f"Client {client_id} not found")
        logger.info("Deleted client %s for %s", client_id, owner_id)

    # --- Consultants ---

    def list_consultants(self, owner_id: str) -> list[Consultant]:
        return self._repository.list_consultants(owner_id)

    def get_consultant(self, owner_id: str, consultant_id: int) -> Consultant:
        consultant = self._repository.get_consultant(owner_id, consultant_id)
        if consultant is None:
            raise RecordNotFoundError(f"Consultant {consultant_id} not found")
        return consultant

    def create_consultant(
        self,
        owner_id: str,
        *,
        name: str,
        cost_per_hour: float,
        bill_rate: float,
        capacity_hours_per_week: float,
    ) -> Consultant:
        _validate_non_negative(cost_per_hour, "cost_per_hour")
        _validate_non_negative(bill_rate, "bill_rate")
        _validate_non_negative(capacity_hours_per_week, "capacity_hours_per_week")
        consultant_id = self._repository.create_consultant(
            owner_id,
            name=_validate_name(name, "Consultant"),
            cost_per_hour=float(cost_per_hour),
            bill_rate=float(bill_rate),
            capacity_hours_per_week=float(capacity_hours_per_week),
        )
        logger.info("Created consultant %s for %s", consultant_id, owner_id)
        return self.get_consultant(owner_id, consultant_id)

    def update_consultant(
        self,
        owner_id: str,
        consultant_id: int,
        *,
        name: Optional[str] = None,
        cost_per_hour: Optional[float] = None,
        bill_rate: Optional[float] = None,
        capacity_hours_per_week: Optional[float] = None,
    ) -> Consultant:
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = _validate_name(name, "Consultant")
        for label, value in (
            ("cost_per_hour", cost_per_hour),
            ("bill_rate", bill_rate),
            ("capacity_hours_per_week", capacity_hours_per_week),
        ):
            if value is not None:
                _validate_non_negative(value, label)
                fields[label] = float(value)
        if not self._repository.update_consultant(owner_id, consultant_id, fields):
            raise RecordNotFoundError(f"Consultant {consultant_id} not found")
        return self.get_consultant(owner_id, consultant_id)

    def delete_consultant(self, owner_id: str, consultant_id: int) -> None:
        if not self._repository.delete_consultant(owner_id, consultant_id):
            raise RecordNotFoundError(f"Consultant {consultant_id} not found")
        logger.info("Deleted consultant %s for %s", consultant_id, owner_id)

    # --- Projects ---

    def list_projects(self, owner_id: str) -> list[Project]:
        return self._repository.list_projects(owner_id)

    def get_project(self, owner_id: str, project_id: int) -> Project:
        project = self._repository.get_project(owner_id, project_id)
        if project is None:
            raise RecordNotFoundError(f"Project {project_id} not found")
        return project

    def _require_client(self, owner_id: str, client_id: int) -> None:
        if self._repository.get_client(owner_id, client_id) is None:
            raise RecordValidationError(f"Client {client_id} does not exist")

    def create_project(
        self,
        owner_id: str,
        *,
        client_id: int,
        name: str,
        billing_model: str,
        flat_fee: Optional[float] = None,
    ) -> Project:
        cleaned_name = _validate_name(name, "Project")
        resolved_fee = _resolve_flat_fee(billing_model, flat_fee)
        self._require_client(owner_id, client_id)
        project_id = self._repository.create_project(
            owner_id,
            client_id=client_id,
            name=cleaned_name,
            billing_model=billing_model,
            flat_fee=resolved_fee,
        )
        logger.info("Created project %s for %s", project_id, owner_id)
        return self.get_project(owner_id, project_id)

    def update_project(
        self,
        owner_id: str,
        project_id: int,
        *,
        client_id: Optional[int] = None,
        name: Optional[str] = None,
        billing_model: Optional[str] = None,
        flat_fee: Optional[float] = None,
    ) -> Project:
        current = self.get_project(owner_id, project_id)
        fields: dict[str, Any] = {}
        if name is not None:
            fields["name"] = _validate_name(name, "Project")
        if client_id is not None:
            self._require_client(owner_id, client_id)
            fields["client_id"] = client_id
        if billing_model is not None or flat_fee is not None:
            merged_model = billing_model if billing_model is not None else current.billing_model
            merged_fee = flat_fee if flat_fee is not None else current.flat_fee
            fields["billing_model"] = merged_model
            fields["flat_fee"] = _resolve_flat_fee(merged_model, merged_fee)
        self._repository.update_project(owner_id, project_id, fields)
        return self.get_project(owner_id, project_id)

    def delete_project(self, owner_id: str, project_id: int) -> None:
        if not self._repository.delete_project(owner_id, project_id):
            raise RecordNotFoundError(f"Project {project_id} not found")
        logger.info("Deleted project %s for %s", project_id, owner_id)

    # --- Allocations ---

    def list_allocations(self, owner_id: str) -> list[Allocation]:
        return self._repository.list_allocations(owner_id)

    def get_allocation(self, owner_id: str, allocation_id: int) -> Allocation:
        allocation = self._repository.get_allocation(owner_id, allocation_id)
        if allocation is None:
            raise RecordNotFoundError(f"Allocation {allocation_id} not found")
        return allocation

    def _require_allocation_refs(
        self,
        owner_id: str,
        consultant_id: Optional[int],
        project_id: Optional[int],
    ) -> None:
        if consultant_id is not None and self._repository.get_consultant(owner_id, consultant_id) is None:
            raise RecordValidationError(f"Consultant {consultant_id} does not exist")
        if project_id is not None and self._repository.get_project(owner_id, project_id) is None:
            raise RecordValidationError(f"Project {project_id} does not exist")

    def create_allocation(
        self,
        owner_id: str,
        *,
        consultant_id: int,
        project_id: int,
        start_date: date,
        end_date: date,
        hours_per_week: float,
    ) -> Allocation:
        _validate_date_range(start_date, end_date)
        _validate_hours(hours_per_week)
        self._require_allocation_refs(owner_id, consultant_id, project_id)
        allocation_id = self._repository.create_allocation(
            owner_id,
            consultant_id=consultant_id,
            project_id=project_id,
            start_date=start_date,
            end_date=end_date,
            hours_per_week=float(hours_per_week),
        )
        logger.info("Created allocation %s for %s", allocation_id, owner_id)
        return self.get_allocation(owner_id, allocation_id)

    def update_allocation(
        self,
        owner_id: str,
        allocation_id: int,
        *,
        consultant_id: Optional[int] = None,
        project_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        hours_per_week: Optional[float] = None,
    ) -> Allocation:
        current = self.get_allocation(owner_id, allocation_id)
        _validate_date_range(
            start_date if start_date is not None else current.start_date,
            end_date if end_date is not None else current.end_date,
        )
        if hours_per_week is not None:
            _validate_hours(hours_per_week)
        self._require_allocation_refs(owner_id, consultant_id, project_id)

        candidates = {
            "consultant_id": consultant_id,
            "project_id": project_id,
            "start_date": start_date,
            "end_date": end_date,
            "hours_per_week": float(hours_per_week) if hours_per_week is not None else None,
        }
        fields = {key: value for key, value in candidates.items() if value is not None}
        self._repository.update_allocation(owner_id, allocation_id, fields)
        return self.get_allocation(owner_id, allocation_id)

    def delete_allocation(self, owner_id: str, allocation_id: int) -> None:
        if not self._repository.delete_allocation(owner_id, allocation_id):
            raise RecordNotFoundError(f"Allocation {allocation_id} not found")
        logger.info("Deleted allocation %s for %s", allocation_id, owner_id)
