from __future__ import annotations

from dataclasses import replace

from fastapi.testclient import TestClient

from app import create_app
from capacity_planner.utils.config import get_settings


OWNER_HEADERS = {"X-User-Id": "owner-1"}


def _build_client(tmp_path, filename: str, **overrides) -> TestClient:
    get_settings.cache_clear()
    settings = replace(get_settings(), database_path=tmp_path / filename, **overrides)
    return TestClient(create_app(settings))


def _create_book(client: TestClient) -> dict[str, int]:
    client_id = client.post(
        "/clients", json={"name": "Northwind"}, headers=OWNER_HEADERS
    ).json()["id"]
    ada_id = client.post(
        "/consultants",
        json={
            "name": "Ada",
            "cost_per_hour": 100,
            "bill_rate": 150,
            "capacity_hours_per_week": 40,
        },
        headers=OWNER_HEADERS,
    ).json()["id"]
    bo_id = client.post(
        "/consultants",
        json={
            "name": "Bo",
            "cost_per_hour": 80,
            "bill_rate": 120,
            "capacity_hours_per_week": 32,
        },
        headers=OWNER_HEADERS,
    ).json()["id"]
    project_response = client.post(
        "/projects",
        json={"client_id": client_id, "name": "Migration", "billing_model": "hourly"},
        headers=OWNER_HEADERS,
    )
    assert project_response.status_code == 201
    return {
        "client_id": client_id,
        "ada_id": ada_id,
        "bo_id": bo_id,
        "project_id": project_response.json()["id"],
    }


def test_dashboard_forecast_end_to_end(tmp_path):
    with _build_client(tmp_path, "dashboard_flow.db") as client:
        book = _create_book(client)

        allocation_response = client.post(
            "/allocations",
            json={
                "consultant_id": book["ada_id"],
                "project_id": book["project_id"],
                "start_date": "2026-10-19",
                "end_date": "2026-11-15",
                "hours_per_week": 20,
            },
            headers=OWNER_HEADERS,
        )
        assert allocation_response.status_code == 201
        assert allocation_response.json()["client_name"] == "Northwind"

        forecast_response = client.get(
            "/dashboard/forecast",
            params={"as_of": "2026-10-21"},
            headers=OWNER_HEADERS,
        )
        assert forecast_response.status_code == 200
        payload = forecast_response.json()

        assert payload["totalConsultants"] == 2
        assert [item["consultantName"] for item in payload["consultants"]] == ["Ada", "Bo"]
        assert payload["benchConsultants"] == [
            {"id": book["bo_id"], "name": "Bo", "capacityHoursPerWeek": 32.0}
        ]

        ada_week_one = payload["consultants"][0]["weeks"][0]
        assert ada_week_one["weekStart"] == "2026-10-19"
        assert ada_week_one["scheduledHours"] == 20
        assert ada_week_one["utilization"] == 50
        assert ada_week_one["cost"] == 2000
        assert ada_week_one["revenue"] == 3000
        assert ada_week_one["profit"] == 1000

        summary_week_one = payload["weeklySummary"][0]
        assert summary_week_one["week"] == "W1"
        assert summary_week_one["capacityHours"] == 72
        assert summary_week_one["scheduledHours"] == 20
        assert summary_week_one["utilization"] == 28
        assert len(payload["weeklySummary"]) == 12


def test_forecast_is_isolated_per_owner(tmp_path):
    with _build_client(tmp_path, "isolation.db") as client:
        _create_book(client)

        response = client.get(
            "/dashboard/forecast",
            params={"as_of": "2026-10-21"},
            headers={"X-User-Id": "owner-2"},
        )

        assert response.status_code == 200
        payload = response.json()
        assert payload["consultants"] == []
        assert payload["benchConsultants"] == []
        assert payload["totalConsultants"] == 0
        assert all(week["capacityHours"] == 0 for week in payload["weeklySummary"])


def test_requests_without_owner_header_are_rejected(tmp_path):
    with _build_client(tmp_path, "unauthenticated.db") as client:
        assert client.get("/dashboard/forecast").status_code == 401
        assert client.get("/consultants").status_code == 401


def test_allocation_validation_errors_map_to_http(tmp_path):
    with _build_client(tmp_path, "validation.db") as client:
        book = _create_book(client)
        base = {
            "consultant_id": book["ada_id"],
            "project_id": book["project_id"],
            "start_date": "2026-11-02",
            "end_date": "2026-11-20",
            "hours_per_week": 10,
        }

        inverted = client.post(
            "/allocations",
            json={**base, "start_date": "2026-11-21"},
            headers=OWNER_HEADERS,
        )
        assert inverted.status_code == 400
        assert inverted.json()["detail"] == "Start date must be before or equal to end date"

        zero_hours = client.post(
            "/allocations",
            json={**base, "hours_per_week": 0},
            headers=OWNER_HEADERS,
        )
        assert zero_hours.status_code == 400

        missing = client.delete("/allocations/9999", headers=OWNER_HEADERS)
        assert missing.status_code == 404


def test_record_update_and_delete_round(tmp_path):
    with _build_client(tmp_path, "crud.db") as client:
        book = _create_book(client)

        renamed = client.patch(
            f"/consultants/{book['bo_id']}",
            json={"capacity_hours_per_week": 24},
            headers=OWNER_HEADERS,
        )
        assert renamed.status_code == 200
        assert renamed.json()["capacity_hours_per_week"] == 24.0
        assert renamed.json()["name"] == "Bo"

        flat = client.patch(
            f"/projects/{book['project_id']}",
            json={"billing_model": "flat"},
            headers=OWNER_HEADERS,
        )
        assert flat.status_code == 400

        deleted = client.delete(f"/clients/{book['client_id']}", headers=OWNER_HEADERS)
        assert deleted.status_code == 204
        assert client.get("/projects", headers=OWNER_HEADERS).json() == []


def test_weekly_summary_csv_export(tmp_path):
    with _build_client(tmp_path, "export.db") as client:
        _create_book(client)

        response = client.get(
            "/dashboard/weekly-summary.csv",
            params={"as_of": "2026-10-21"},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().split("\n")
        assert lines[0] == "Week,Capacity Hours,Scheduled Hours,Utilization %,Cost $,Revenue $,Profit $"
        assert lines[1] == "W1,72,0,0,0,0,0"
        assert len(lines) == 13


def test_startup_seeds_demo_owner_when_enabled(tmp_path):
    with _build_client(
        tmp_path,
        "demo.db",
        seed_demo_data=True,
        demo_owner_id="demo-user",
    ) as client:
        response = client.get("/dashboard/forecast", headers={"X-User-Id": "demo-user"})

        assert response.status_code == 200
        payload = response.json()
        assert payload["totalConsultants"] == 4
        assert [item["name"] for item in payload["benchConsultants"]] == ["Dana Ruiz"]


def test_single_record_lookup_and_missing_record(tmp_path):
    with _build_client(tmp_path, "lookup.db") as client:
        book = _create_book(client)
        allocation_id = client.post(
            "/allocations",
            json={
                "consultant_id": book["ada_id"],
                "project_id": book["project_id"],
                "start_date": "2026-10-19",
                "end_date": "2026-11-15",
                "hours_per_week": 20,
            },
            headers=OWNER_HEADERS,
        ).json()["id"]

        consultant = client.get(f"/consultants/{book['ada_id']}", headers=OWNER_HEADERS)
        assert consultant.status_code == 200
        assert consultant.json()["name"] == "Ada"

        found_client = client.get(f"/clients/{book['client_id']}", headers=OWNER_HEADERS)
        assert found_client.status_code == 200
        assert found_client.json()["name"] == "Northwind"

        allocation = client.get(f"/allocations/{allocation_id}", headers=OWNER_HEADERS)
        assert allocation.status_code == 200
        assert allocation.json()["consultant_id"] == book["ada_id"]

        for path in ("/consultants/9999", "/clients/9999", "/allocations/9999"):
            assert client.get(path, headers=OWNER_HEADERS).status_code == 404

        other_owner = client.get(
            f"/consultants/{book['ada_id']}", headers={"X-User-Id": "owner-2"}
        )
        assert other_owner.status_code == 404


def test_consultant_utilization_csv_export(tmp_path):
    with _build_client(tmp_path, "utilization.db") as client:
        book = _create_book(client)
        client.post(
            "/allocations",
            json={
                "consultant_id": book["ada_id"],
                "project_id": book["project_id"],
                "start_date": "2026-10-19",
                "end_date": "2026-11-15",
                "hours_per_week": 20,
            },
            headers=OWNER_HEADERS,
        )

        response = client.get(
            "/dashboard/consultant-utilization.csv",
            params={"as_of": "2026-10-21"},
            headers=OWNER_HEADERS,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        lines = response.text.strip().split("\n")
        assert lines[0] == "Consultant," + ",".join(f"W{number}" for number in range(1, 13))
        assert lines[1].startswith("Ada,50,50,50,50,0")
        assert lines[2] == "Bo," + ",".join(["0"] * 12)
        assert len(lines) == 3
