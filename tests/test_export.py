from __future__ import annotations

from datetime import date, timedelta

from capacity_planner.domain.models import ConsultantForecast, WeeklyForecast
from capacity_planner.services.export_service import (
    consultant_utilization_csv,
    consultant_utilization_frame,
    weekly_summary_frame,
)


MONDAY = date(2026, 10, 19)


def _week(week_number: int, utilization: int) -> WeeklyForecast:
    return WeeklyForecast(
        week_number=week_number,
        week_start=MONDAY + timedelta(days=7 * (week_number - 1)),
        capacity_hours=40,
        scheduled_hours=utilization * 40 // 100,
        utilization=utilization,
        cost=1000,
        revenue=1500,
        profit=500,
    )


def test_weekly_summary_frame_uses_display_headers() -> None:
    frame = weekly_summary_frame([_week(1, 50), _week(2, 25)])

    assert list(frame.columns) == [
        "Week",
        "Capacity Hours",
        "Scheduled Hours",
        "Utilization %",
        "Cost $",
        "Revenue $",
        "Profit $",
    ]
    assert frame["Week"].tolist() == ["W1", "W2"]
    assert frame["Utilization %"].tolist() == [50, 25]


def test_consultant_utilization_grid_keeps_consultant_order() -> None:
    horizon = [_week(1, 0), _week(2, 0)]
    consultants = [
        ConsultantForecast(consultant_id=2, consultant_name="Bo", weeks=[_week(1, 75), _week(2, 0)]),
        ConsultantForecast(consultant_id=1, consultant_name="Ada", weeks=[_week(1, 50), _week(2, 100)]),
    ]

    frame = consultant_utilization_frame(consultants, horizon)

    assert list(frame.columns) == ["Consultant", "W1", "W2"]
    assert frame["Consultant"].tolist() == ["Bo", "Ada"]
    assert consultant_utilization_csv(consultants, horizon).split("\n")[1] == "Bo,75,0"


def test_empty_utilization_grid_keeps_week_header() -> None:
    horizon = [_week(number, 0) for number in range(1, 13)]

    header = consultant_utilization_csv([], horizon).strip()

    assert header == "Consultant," + ",".join(f"W{number}" for number in range(1, 13))
