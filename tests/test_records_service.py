from __future__ import annotations

from dataclasses import replace
from datetime import date

import pytest

from capacity_planner.repository.data_repository import DataRepository
from capacity_planner.services.records_service import (
    RecordNotFoundError,
    RecordService,
    RecordValidationError,
)
from capacity_planner.utils.config import get_settings


OWNER = "owner-1"


def _build_service(tmp_path, filename: str) -> tuple[RecordService, DataRepository]:
    settings = replace(get_settings(), database_path=tmp_path / filename)
    repository = DataRepository(settings)
    repository.initialize_database()
    return RecordService(repository=repository, settings=settings), repository


def _seed_book(service: RecordService):
    client = service.create_client(OWNER, name="Northwind")
    consultant = service.create_consultant(
        OWNER,
        name="Ada",
        cost_per_hour=100.0,
        bill_rate=150.0,
        capacity_hours_per_week=40.0,
    )
    project = service.create_project(
        OWNER,
        client_id=client.client_id,
        name="Migration",
        billing_model="hourly",
    )
    return client, consultant, project


def test_allocation_rejects_inverted_dates(tmp_path):
    service, _ = _build_service(tmp_path, "inverted.db")
    _, consultant, project = _seed_book(service)

    with pytest.raises(RecordValidationError, match="Start date must be before or equal"):
        service.create_allocation(
            OWNER,
            consultant_id=consultant.consultant_id,
            project_id=project.project_id,
            start_date=date(2026, 11, 2),
            end_date=date(2026, 11, 1),
            hours_per_week=10.0,
        )


def test_allocation_rejects_non_positive_hours(tmp_path):
    service, _ = _build_service(tmp_path, "hours.db")
    _, consultant, project = _seed_book(service)

    with pytest.raises(RecordValidationError, match="Hours per week must be greater than 0"):
        service.create_allocation(
            OWNER,
            consultant_id=consultant.consultant_id,
            project_id=project.project_id,
            start_date=date(2026, 11, 2),
            end_date=date(2026, 11, 20),
            hours_per_week=0.0,
        )


def test_allocation_update_checks_merged_date_range(tmp_path):
    service, _ = _build_service(tmp_path, "merged.db")
    _, consultant, project = _seed_book(service)
    allocation = service.create_allocation(
        OWNER,
        consultant_id=consultant.consultant_id,
        project_id=project.project_id,
        start_date=date(2026, 11, 2),
        end_date=date(2026, 11, 20),
        hours_per_week=10.0,
    )

    with pytest.raises(RecordValidationError):
        service.update_allocation(OWNER, allocation.allocation_id, start_date=date(2026, 12, 1))

    updated = service.update_allocation(
        OWNER,
        allocation.allocation_id,
        end_date=date(2026, 12, 4),
        hours_per_week=16.0,
    )
    assert updated.end_date == date(2026, 12, 4)
    assert updated.hours_per_week == 16.0
    assert updated.consultant_name == "Ada"
    assert updated.client_name == "Northwind"


def test_flat_project_requires_fee_and_hourly_drops_it(tmp_path):
    service, _ = _build_service(tmp_path, "billing.db")
    client, _, project = _seed_book(service)

    with pytest.raises(RecordValidationError):
        service.create_project(
            OWNER,
            client_id=client.client_id,
            name="Audit",
            billing_model="flat",
        )

    hourly = service.create_project(
        OWNER,
        client_id=client.client_id,
        name="Support",
        billing_model="hourly",
        flat_fee=5000.0,
    )
    assert hourly.flat_fee is None

    switched = service.update_project(
        OWNER, project.project_id, billing_model="flat", flat_fee=24000.0
    )
    assert switched.billing_model == "flat"
    assert switched.flat_fee == 24000.0
    assert switched.client_name == "Northwind"


def test_records_are_scoped_by_owner(tmp_path):
    service, repository = _build_service(tmp_path, "scoping.db")
    _, consultant, _ = _seed_book(service)

    assert service.list_consultants("owner-2") == []
    with pytest.raises(RecordNotFoundError):
        service.get_consultant("owner-2", consultant.consultant_id)
    with pytest.raises(RecordNotFoundError):
        service.delete_consultant("owner-2", consultant.consultant_id)
    assert repository.get_consultant(OWNER, consultant.consultant_id) is not None


def test_allocation_must_reference_existing_records(tmp_path):
    service, _ = _build_service(tmp_path, "refs.db")
    _, consultant, _ = _seed_book(service)

    with pytest.raises(RecordValidationError, match="Project 999 does not exist"):
        service.create_allocation(
            OWNER,
            consultant_id=consultant.consultant_id,
            project_id=999,
            start_date=date(2026, 11, 2),
            end_date=date(2026, 11, 20),
            hours_per_week=10.0,
        )


def test_deleting_consultant_removes_their_allocations(tmp_path):
    service, _ = _build_service(tmp_path, "cascade.db")
    _, consultant, project = _seed_book(service)
    service.create_allocation(
        OWNER,
        consultant_id=consultant.consultant_id,
        project_id=project.project_id,
        start_date=date(2026, 11, 2),
        end_date=date(2026, 11, 20),
        hours_per_week=10.0,
    )

    service.delete_consultant(OWNER, consultant.consultant_id)

    assert service.list_allocations(OWNER) == []


def test_overlapping_query_uses_closed_interval(tmp_path):
    service, repository = _build_service(tmp_path, "overlap.db")
    _, consultant, project = _seed_book(service)
    ranges = [
        (date(2026, 10, 1), date(2026, 10, 19)),
        (date(2027, 1, 10), date(2027, 2, 1)),
        (date(2026, 9, 1), date(2026, 10, 18)),
        (date(2027, 1, 11), date(2027, 2, 1)),
    ]
    for start_date, end_date in ranges:
        service.create_allocation(
            OWNER,
            consultant_id=consultant.consultant_id,
            project_id=project.project_id,
            start_date=start_date,
            end_date=end_date,
            hours_per_week=8.0,
        )

    matched = repository.list_allocations_overlapping(
        OWNER, date(2026, 10, 19), date(2027, 1, 10)
    )

    assert [(item.start_date, item.end_date) for item in matched] == ranges[:2]
    assert all(item.billing_model == "hourly" for item in matched)
    assert all(item.bill_rate == 150.0 for item in matched)
    assert repository.list_allocations_overlapping("owner-2", date(2026, 1, 1), date(2027, 12, 31)) == []


def test_demo_seed_runs_once_per_owner(tmp_path):
    _, repository = _build_service(tmp_path, "seed.db")

    repository.seed_demo_data(OWNER, today=date(2026, 10, 21))
    repository.seed_demo_data(OWNER, today=date(2026, 10, 21))

    consultants = repository.list_consultants(OWNER)
    assert len(consultants) == 4
    assert [item.name for item in consultants] == sorted(item.name for item in consultants)
    assert len(repository.list_allocations(OWNER)) == 4
