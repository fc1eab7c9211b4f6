"""Tabular exports of forecast output."""

from __future__ import annotations

from typing import Sequence

import pandas as pd

from capacity_planner.domain.models import ConsultantForecast, WeeklyForecast


WEEKLY_SUMMARY_COLUMNS = {
    "week": "Week",
    "capacity_hours": "Capacity Hours",
    "scheduled_hours": "Scheduled Hours",
    "utilization": "Utilization %",
    "cost": "Cost $",
    "revenue": "Revenue $",
    "profit": "Profit $",
}


def weekly_summary_frame(weeks: Sequence[WeeklyForecast]) -> pd.DataFrame:
    rows = [
        {
            "week": week.week,
            "capacity_hours": week.capacity_hours,
            "scheduled_hours": week.scheduled_hours,
            "utilization": week.utilization,
            "cost": week.cost,
            "revenue": week.revenue,
            "profit": week.profit,
        }
        for week in weeks
    ]
    frame = pd.DataFrame(rows, columns=list(WEEKLY_SUMMARY_COLUMNS))
    return frame.rename(columns=WEEKLY_SUMMARY_COLUMNS)


def weekly_summary_csv(weeks: Sequence[WeeklyForecast]) -> str:
    return weekly_summary_frame(weeks).to_csv(index=False, lineterminator="\n")


def consultant_utilization_frame(
    consultants: Sequence[ConsultantForecast],
    weeks: Sequence[WeeklyForecast],
) -> pd.DataFrame:
    """Consultant x week utilization grid, one row per consultant.

    Columns come from `weeks` (the horizon) so an empty forecast keeps the same header.
    """
    columns = ["Consultant", *(week.week for week in weeks)]
    rows = [
        {"Consultant": item.consultant_name, **{week.week: week.utilization for week in item.weeks}}
        for item in consultants
    ]
    return pd.DataFrame(rows, columns=columns)


def consultant_utilization_csv(
    consultants: Sequence[ConsultantForecast],
    weeks: Sequence[WeeklyForecast],
) -> str:
    return consultant_utilization_frame(consultants, weeks).to_csv(index=False, lineterminator="\n")
