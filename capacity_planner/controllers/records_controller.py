"""HTTP controller layer for client, consultant, project and allocation records."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Iterator, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel, Field

from capacity_planner.controllers.dependencies import get_record_service, require_owner
from capacity_planner.domain.models import Allocation, Client, Consultant, Project
from capacity_planner.services.records_service import (
    RecordNotFoundError,
    RecordService,
    RecordValidationError,
)
from capacity_planner.utils.logger import get_logger


logger = get_logger(__name__)

router = APIRouter(tags=["records"])


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    try:
        yield
    except RecordValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except RecordNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except HTTPException:
        raise
    except Exception as exc:  # pragma: no cover - defensive fallback
        logger.exception("Unexpected failure while trying to %s", action)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}",
        ) from exc


# --- Clients ---


class ClientCreateRequest(BaseModel):
    name: str = Field(min_length=1)


class ClientUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)


class ClientResponse(BaseModel):
    id: int
    name: str

    @classmethod
    def from_domain(cls, client: Client) -> "ClientResponse":
        return cls(id=client.client_id, name=client.name)


@router.get("/clients", response_model=list[ClientResponse])
async def list_clients(
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> list[ClientResponse]:
    with _translate_errors("list clients"):
        return [ClientResponse.from_domain(item) for item in service.list_clients(owner_id)]


@router.get("/clients/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ClientResponse:
    with _translate_errors("load client"):
        return ClientResponse.from_domain(service.get_client(owner_id, client_id))


@router.post("/clients", response_model=ClientResponse, status_code=status.HTTP_201_CREATED)
async def create_client(
    payload: ClientCreateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ClientResponse:
    with _translate_errors("create client"):
        return ClientResponse.from_domain(service.create_client(owner_id, name=payload.name))


@router.patch("/clients/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    payload: ClientUpdateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ClientResponse:
    with _translate_errors("update client"):
        return ClientResponse.from_domain(
            service.update_client(owner_id, client_id, name=payload.name)
        )


@router.delete("/clients/{client_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_client(
    client_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> Response:
    with _translate_errors("delete client"):
        service.delete_client(owner_id, client_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Consultants ---


class ConsultantCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    cost_per_hour: float = Field(ge=0.0)
    bill_rate: float = Field(ge=0.0)
    capacity_hours_per_week: float = Field(ge=0.0)


class ConsultantUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    cost_per_hour: Optional[float] = Field(default=None, ge=0.0)
    bill_rate: Optional[float] = Field(default=None, ge=0.0)
    capacity_hours_per_week: Optional[float] = Field(default=None, ge=0.0)


class ConsultantResponse(BaseModel):
    id: int
    name: str
    cost_per_hour: float
    bill_rate: float
    capacity_hours_per_week: float

    @classmethod
    def from_domain(cls, consultant: Consultant) -> "ConsultantResponse":
        return cls(
            id=consultant.consultant_id,
            name=consultant.name,
            cost_per_hour=consultant.cost_per_hour,
            bill_rate=consultant.bill_rate,
            capacity_hours_per_week=consultant.capacity_hours_per_week,
        )


@router.get("/consultants", response_model=list[ConsultantResponse])
async def list_consultants(
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> list[ConsultantResponse]:
    with _translate_errors("list consultants"):
        return [
            ConsultantResponse.from_domain(item) for item in service.list_consultants(owner_id)
        ]


@router.get("/consultants/{consultant_id}", response_model=ConsultantResponse)
async def get_consultant(
    consultant_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ConsultantResponse:
    with _translate_errors("load consultant"):
        return ConsultantResponse.from_domain(service.get_consultant(owner_id, consultant_id))


@router.post(
    "/consultants",
    response_model=ConsultantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_consultant(
    payload: ConsultantCreateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ConsultantResponse:
    with _translate_errors("create consultant"):
        return ConsultantResponse.from_domain(
            service.create_consultant(owner_id, **payload.model_dump())
        )


@router.patch("/consultants/{consultant_id}", response_model=ConsultantResponse)
async def update_consultant(
    consultant_id: int,
    payload: ConsultantUpdateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ConsultantResponse:
    with _translate_errors("update consultant"):
        return ConsultantResponse.from_domain(
            service.update_consultant(
                owner_id,
                consultant_id,
                **payload.model_dump(exclude_none=True),
            )
        )


@router.delete("/consultants/{consultant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_consultant(
    consultant_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> Response:
    with _translate_errors("delete consultant"):
        service.delete_consultant(owner_id, consultant_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Projects ---


class ProjectCreateRequest(BaseModel):
    client_id: int = Field(gt=0)
    name: str = Field(min_length=1)
    billing_model: Literal["hourly", "flat"]
    flat_fee: Optional[float] = Field(default=None, ge=0.0)


class ProjectUpdateRequest(BaseModel):
    client_id: Optional[int] = Field(default=None, gt=0)
    name: Optional[str] = Field(default=None, min_length=1)
    billing_model: Optional[Literal["hourly", "flat"]] = None
    flat_fee: Optional[float] = Field(default=None, ge=0.0)


class ProjectResponse(BaseModel):
    id: int
    client_id: int
    client_name: str
    name: str
    billing_model: str
    flat_fee: Optional[float] = None

    @classmethod
    def from_domain(cls, project: Project) -> "ProjectResponse":
        return cls(
            id=project.project_id,
            client_id=project.client_id,
            client_name=project.client_name or "Unknown Client",
            name=project.name,
            billing_model=project.billing_model,
            flat_fee=project.flat_fee,
        )


@router.get("/projects", response_model=list[ProjectResponse])
async def list_projects(
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> list[ProjectResponse]:
    with _translate_errors("list projects"):
        return [ProjectResponse.from_domain(item) for item in service.list_projects(owner_id)]


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ProjectResponse:
    with _translate_errors("load project"):
        return ProjectResponse.from_domain(service.get_project(owner_id, project_id))


@router.post("/projects", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    payload: ProjectCreateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ProjectResponse:
    with _translate_errors("create project"):
        return ProjectResponse.from_domain(
            service.create_project(owner_id, **payload.model_dump())
        )


@router.patch("/projects/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: int,
    payload: ProjectUpdateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> ProjectResponse:
    with _translate_errors("update project"):
        return ProjectResponse.from_domain(
            service.update_project(owner_id, project_id, **payload.model_dump(exclude_none=True))
        )


@router.delete("/projects/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> Response:
    with _translate_errors("delete project"):
        service.delete_project(owner_id, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Allocations ---


class AllocationCreateRequest(BaseModel):
    consultant_id: int = Field(gt=0)
    project_id: int = Field(gt=0)
    start_date: date
    end_date: date
    hours_per_week: float


class AllocationUpdateRequest(BaseModel):
    consultant_id: Optional[int] = Field(default=None, gt=0)
    project_id: Optional[int] = Field(default=None, gt=0)
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    hours_per_week: Optional[float] = None


class AllocationResponse(BaseModel):
    id: int
    consultant_id: int
    project_id: int
    start_date: date
    end_date: date
    hours_per_week: float
    consultant_name: Optional[str] = None
    consultant_capacity: Optional[float] = None
    project_name: Optional[str] = None
    client_name: Optional[str] = None

    @classmethod
    def from_domain(cls, allocation: Allocation) -> "AllocationResponse":
        return cls(
            id=allocation.allocation_id,
            consultant_id=allocation.consultant_id,
            project_id=allocation.project_id,
            start_date=allocation.start_date,
            end_date=allocation.end_date,
            hours_per_week=allocation.hours_per_week,
            consultant_name=allocation.consultant_name,
            consultant_capacity=allocation.consultant_capacity,
            project_name=allocation.project_name,
            client_name=allocation.client_name,
        )


@router.get("/allocations", response_model=list[AllocationResponse])
async def list_allocations(
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> list[AllocationResponse]:
    with _translate_errors("list allocations"):
        return [
            AllocationResponse.from_domain(item) for item in service.list_allocations(owner_id)
        ]


@router.get("/allocations/{allocation_id}", response_model=AllocationResponse)
async def get_allocation(
    allocation_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> AllocationResponse:
    with _translate_errors("load allocation"):
        return AllocationResponse.from_domain(service.get_allocation(owner_id, allocation_id))


@router.post(
    "/allocations",
    response_model=AllocationResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_allocation(
    payload: AllocationCreateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> AllocationResponse:
    with _translate_errors("create allocation"):
        return AllocationResponse.from_domain(
            service.create_allocation(owner_id, **payload.model_dump())
        )


@router.patch("/allocations/{allocation_id}", response_model=AllocationResponse)
async def update_allocation(
    allocation_id: int,
    payload: AllocationUpdateRequest,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> AllocationResponse:
    with _translate_errors("update allocation"):
        return AllocationResponse.from_domain(
            service.update_allocation(
                owner_id,
                allocation_id,
                **payload.model_dump(exclude_none=True),
            )
        )


@router.delete("/allocations/{allocation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_allocation(
    allocation_id: int,
    owner_id: str = Depends(require_owner),
    service: RecordService = Depends(get_record_service),
) -> Response:
    with _translate_errors("delete allocation"):
        service.delete_allocation(owner_id, allocation_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
