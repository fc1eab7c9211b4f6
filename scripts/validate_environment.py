#!/usr/bin/env python3
"""Validate local capacity planner environment readiness."""

from __future__ import annotations

import asyncio
import importlib
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from capacity_planner.repository.data_repository import DataRepository
from capacity_planner.services.forecast_service import CapacityForecastService
from capacity_planner.utils.config import get_settings

SEPARATOR_LINE = "=" * 44
VALIDATION_OWNER = "env-check"


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="capacity-planner-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_specs = [
        ("fastapi", "fastapi"),
        ("uvicorn", "uvicorn"),
        ("pydantic", "pydantic"),
        ("pandas", "pandas"),
        ("httpx", "httpx"),
        ("pytest", "pytest"),
    ]
    import_errors: list[str] = []
    for module_name, dist_name in package_specs:
        try:
            importlib.import_module(module_name)
            version(dist_name)
        except (ImportError, PackageNotFoundError) as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "capacity_planner_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except RuntimeError as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo data seeding
        today = date.today()
        try:
            repository.seed_demo_data(VALIDATION_OWNER, today=today)
            consultant_count = len(repository.list_consultants(VALIDATION_OWNER))
            if consultant_count != 4:
                raise RuntimeError(f"expected 4 consultants, got {consultant_count}")
            ok, line = _print_result("Demo dataset: 4 consultants", True)
        except RuntimeError as exc:
            ok, line = _print_result("Demo dataset", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Forecast build
        try:
            service = CapacityForecastService(data_source=repository, settings=validation_settings)
            forecast = asyncio.run(service.build_forecast(VALIDATION_OWNER, now=today))
            if forecast.total_consultants != 4:
                raise RuntimeError("forecast fell back to the empty result")
            first_week = forecast.weekly_summary[0]
            ok, line = _print_result(
                "Forecast build",
                True,
                f": W1 utilization={first_week.utilization}% profit={first_week.profit}",
            )
        except RuntimeError as exc:
            ok, line = _print_result("Forecast build", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Capacity Planner Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
