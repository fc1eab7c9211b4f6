"""Repository layer responsible for all database access."""

from __future__ import annotations

import sqlite3
from datetime import date, timedelta
from pathlib import Path
from typing import Any, Mapping, Optional

from capacity_planner.domain.models import (
    Allocation,
    Client,
    Consultant,
    EnrichedAllocation,
    Project,
)
from capacity_planner.utils.config import Settings, get_settings
from capacity_planner.utils.logger import get_logger


logger = get_logger(__name__)


_UPDATABLE_COLUMNS: dict[str, frozenset[str]] = {
    "Clients": frozenset({"name"}),
    "Consultants": frozenset(
        {"name", "cost_per_hour", "bill_rate", "capacity_hours_per_week"}
    ),
    "Projects": frozenset({"client_id", "name", "billing_model", "flat_fee"}),
    "Allocations": frozenset(
        {"consultant_id", "project_id", "start_date", "end_date", "hours_per_week"}
    ),
}

_ALLOCATION_SELECT = """
    SELECT
        a.id,
        a.consultant_id,
        a.project_id,
        a.start_date,
        a.end_date,
        a.hours_per_week,
        a.owner_id,
        c.name AS consultant_name,
        c.capacity_hours_per_week,
        p.name AS project_name,
        cl.name AS client_name
    FROM Allocations AS a
    INNER JOIN Consultants AS c ON c.id = a.consultant_id
    INNER JOIN Projects AS p ON p.id = a.project_id
    INNER JOIN Clients AS cl ON cl.id = p.client_id
"""


def _to_db_value(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    return value


def _optional_float(value: Any) -> Optional[float]:
    if value is None:
        return None
    return float(value)


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic.

    Every read and write is scoped by `owner_id`, the opaque user identifier
    supplied by the identity provider.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Clients (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        owner_id TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Consultants (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        name TEXT NOT NULL,
                        cost_per_hour REAL NOT NULL CHECK (cost_per_hour >= 0),
                        bill_rate REAL NOT NULL CHECK (bill_rate >= 0),
                        capacity_hours_per_week REAL NOT NULL
                            CHECK (capacity_hours_per_week >= 0),
                        owner_id TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Projects (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        client_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        billing_model TEXT NOT NULL
                            CHECK (billing_model IN ('hourly', 'flat')),
                        flat_fee REAL,
                        owner_id TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        FOREIGN KEY (client_id) REFERENCES Clients(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Allocations (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        consultant_id INTEGER NOT NULL,
                        project_id INTEGER NOT NULL,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        hours_per_week REAL NOT NULL CHECK (hours_per_week > 0),
                        owner_id TEXT NOT NULL,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        updated_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        CHECK (start_date <= end_date),
                        FOREIGN KEY (consultant_id) REFERENCES Consultants(id)
                            ON DELETE CASCADE,
                        FOREIGN KEY (project_id) REFERENCES Projects(id)
                            ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_consultants_owner_name
                    ON Consultants(owner_id, name);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_allocations_owner_dates
                    ON Allocations(owner_id, start_date, end_date);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise RuntimeError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self, owner_id: str, today: Optional[date] = None) -> None:
        """Seed a small deterministic book of work only when the owner has none."""
        anchor = today or date.today()
        anchor = anchor - timedelta(days=anchor.weekday())
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT COUNT(*) AS count FROM Consultants WHERE owner_id = ?;",
                    (owner_id,),
                )
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present for %s; skipping seed", owner_id)
                    return

                consultant_rows = [
                    ("Ada Byrne", 85.0, 160.0, 40.0),
                    ("Bilal Osei", 70.0, 135.0, 40.0),
                    ("Chen Liu", 95.0, 180.0, 32.0),
                    ("Dana Ruiz", 60.0, 120.0, 24.0),
                ]
                consultant_ids = []
                for name, cost, rate, capacity in consultant_rows:
                    cursor.execute(
                        """
                        INSERT INTO Consultants (
                            name, cost_per_hour, bill_rate, capacity_hours_per_week, owner_id
                        )
                        VALUES (?, ?, ?, ?, ?);
                        """,
                        (name, cost, rate, capacity, owner_id),
                    )
                    consultant_ids.append(int(cursor.lastrowid))

                cursor.execute(
                    "INSERT INTO Clients (name, owner_id) VALUES (?, ?);",
                    ("Northwind Traders", owner_id),
                )
                northwind_id = int(cursor.lastrowid)
                cursor.execute(
                    "INSERT INTO Clients (name, owner_id) VALUES (?, ?);",
                    ("Contoso Health", owner_id),
                )
                contoso_id = int(cursor.lastrowid)

                cursor.execute(
                    """
                    INSERT INTO Projects (client_id, name, billing_model, flat_fee, owner_id)
                    VALUES (?, ?, 'hourly', NULL, ?);
                    """,
                    (northwind_id, "Data Platform Migration", owner_id),
                )
                hourly_project_id = int(cursor.lastrowid)
                cursor.execute(
                    """
                    INSERT INTO Projects (client_id, name, billing_model, flat_fee, owner_id)
                    VALUES (?, ?, 'flat', ?, ?);
                    """,
                    (contoso_id, "Clinical Workflow Audit", 48000.0, owner_id),
                )
                flat_project_id = int(cursor.lastrowid)

                allocation_rows = [
                    (consultant_ids[0], hourly_project_id, 0, 55, 30.0),
                    (consultant_ids[1], hourly_project_id, 14, 69, 20.0),
                    (consultant_ids[1], flat_project_id, 0, 41, 16.0),
                    (consultant_ids[2], flat_project_id, 7, 48, 24.0),
                ]
                cursor.executemany(
                    """
                    INSERT INTO Allocations (
                        consultant_id, project_id, start_date, end_date, hours_per_week, owner_id
                    )
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (
                            consultant_id,
                            project_id,
                            (anchor + timedelta(days=start_offset)).isoformat(),
                            (anchor + timedelta(days=end_offset)).isoformat(),
                            hours,
                            owner_id,
                        )
                        for consultant_id, project_id, start_offset, end_offset, hours
                        in allocation_rows
                    ],
                )
                conn.commit()
            logger.info(
                "Demo seed completed for %s with %s consultants",
                owner_id,
                len(consultant_rows),
            )
        except sqlite3.Error as exc:
            raise RuntimeError(f"Demo data seeding failed: {exc}") from exc

    def _update(
        self,
        table: str,
        owner_id: str,
        record_id: int,
        fields: Mapping[str, Any],
    ) -> bool:
        allowed = _UPDATABLE_COLUMNS[table]
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update columns {sorted(unknown)} on {table}")
        if not fields:
            return self._exists(table, owner_id, record_id)
        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                UPDATE {table}
                SET {assignments}, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND owner_id = ?;
                """,
                (*(_to_db_value(fields[column]) for column in columns), record_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def _delete(self, table: str, owner_id: str, record_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM {table} WHERE id = ? AND owner_id = ?;",
                (record_id, owner_id),
            )
            conn.commit()
            return cursor.rowcount > 0

    def _exists(self, table: str, owner_id: str, record_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT 1 FROM {table} WHERE id = ? AND owner_id = ?;",
                (record_id, owner_id),
            )
            return cursor.fetchone() is not None

    # --- Clients ---

    def list_clients(self, owner_id: str) -> list[Client]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, owner_id
                FROM Clients
                WHERE owner_id = ?
                ORDER BY name ASC, id ASC;
                """,
                (owner_id,),
            )
            return [
                Client(client_id=int(row["id"]), name=str(row["name"]), owner_id=str(row["owner_id"]))
                for row in cursor.fetchall()
            ]

    def get_client(self, owner_id: str, client_id: int) -> Optional[Client]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT id, name, owner_id FROM Clients WHERE id = ? AND owner_id = ?;",
                (client_id, owner_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return Client(client_id=int(row["id"]), name=str(row["name"]), owner_id=str(row["owner_id"]))

    def create_client(self, owner_id: str, name: str) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO Clients (name, owner_id) VALUES (?, ?);",
                (name, owner_id),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def update_client(self, owner_id: str, client_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update("Clients", owner_id, client_id, fields)

    def delete_client(self, owner_id: str, client_id: int) -> bool:
        return self._delete("Clients", owner_id, client_id)

    # --- Consultants ---

    @staticmethod
    def _row_to_consultant(row: sqlite3.Row) -> Consultant:
        return Consultant(
            consultant_id=int(row["id"]),
            name=str(row["name"]),
            cost_per_hour=float(row["cost_per_hour"]),
            bill_rate=float(row["bill_rate"]),
            capacity_hours_per_week=float(row["capacity_hours_per_week"]),
            owner_id=str(row["owner_id"]),
        )

    def list_consultants(self, owner_id: str) -> list[Consultant]:
        """Return the owner's consultants ordered by name."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, cost_per_hour, bill_rate, capacity_hours_per_week, owner_id
                FROM Consultants
                WHERE owner_id = ?
                ORDER BY name ASC, id ASC;
                """,
                (owner_id,),
            )
            return [self._row_to_consultant(row) for row in cursor.fetchall()]

    def get_consultant(self, owner_id: str, consultant_id: int) -> Optional[Consultant]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, cost_per_hour, bill_rate, capacity_hours_per_week, owner_id
                FROM Consultants
                WHERE id = ? AND owner_id = ?;
                """,
                (consultant_id, owner_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_consultant(row)

    def create_consultant(
        self,
        owner_id: str,
        name: str,
        cost_per_hour: float,
        bill_rate: float,
        capacity_hours_per_week: float,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Consultants (
                    name, cost_per_hour, bill_rate, capacity_hours_per_week, owner_id
                )
                VALUES (?, ?, ?, ?, ?);
                """,
                (name, cost_per_hour, bill_rate, capacity_hours_per_week, owner_id),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def update_consultant(
        self, owner_id: str, consultant_id: int, fields: Mapping[str, Any]
    ) -> bool:
        return self._update("Consultants", owner_id, consultant_id, fields)

    def delete_consultant(self, owner_id: str, consultant_id: int) -> bool:
        return self._delete("Consultants", owner_id, consultant_id)

    # --- Projects ---

    @staticmethod
    def _row_to_project(row: sqlite3.Row) -> Project:
        return Project(
            project_id=int(row["id"]),
            client_id=int(row["client_id"]),
            name=str(row["name"]),
            billing_model=str(row["billing_model"]),
            flat_fee=_optional_float(row["flat_fee"]),
            owner_id=str(row["owner_id"]),
            client_name=str(row["client_name"]) if row["client_name"] is not None else None,
        )

    def list_projects(self, owner_id: str) -> list[Project]:
        """Return projects newest first, joined with their client name."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT p.id, p.client_id, p.name, p.billing_model, p.flat_fee, p.owner_id,
                       cl.name AS client_name
                FROM Projects AS p
                LEFT JOIN Clients AS cl ON cl.id = p.client_id
                WHERE p.owner_id = ?
                ORDER BY p.created_at DESC, p.id DESC;
                """,
                (owner_id,),
            )
            return [self._row_to_project(row) for row in cursor.fetchall()]

    def get_project(self, owner_id: str, project_id: int) -> Optional[Project]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT p.id, p.client_id, p.name, p.billing_model, p.flat_fee, p.owner_id,
                       cl.name AS client_name
                FROM Projects AS p
                LEFT JOIN Clients AS cl ON cl.id = p.client_id
                WHERE p.id = ? AND p.owner_id = ?;
                """,
                (project_id, owner_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_project(row)

    def create_project(
        self,
        owner_id: str,
        client_id: int,
        name: str,
        billing_model: str,
        flat_fee: Optional[float],
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Projects (client_id, name, billing_model, flat_fee, owner_id)
                VALUES (?, ?, ?, ?, ?);
                """,
                (client_id, name, billing_model, flat_fee, owner_id),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def update_project(self, owner_id: str, project_id: int, fields: Mapping[str, Any]) -> bool:
        return self._update("Projects", owner_id, project_id, fields)

    def delete_project(self, owner_id: str, project_id: int) -> bool:
        return self._delete("Projects", owner_id, project_id)

    # --- Allocations ---

    @staticmethod
    def _row_to_allocation(row: sqlite3.Row) -> Allocation:
        return Allocation(
            allocation_id=int(row["id"]),
            consultant_id=int(row["consultant_id"]),
            project_id=int(row["project_id"]),
            start_date=date.fromisoformat(str(row["start_date"])),
            end_date=date.fromisoformat(str(row["end_date"])),
            hours_per_week=float(row["hours_per_week"]),
            owner_id=str(row["owner_id"]),
            consultant_name=str(row["consultant_name"]),
            consultant_capacity=float(row["capacity_hours_per_week"]),
            project_name=str(row["project_name"]),
            client_name=str(row["client_name"]),
        )

    def list_allocations(self, owner_id: str) -> list[Allocation]:
        """Return allocations with display joins, latest start date first."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                _ALLOCATION_SELECT
                + """
                WHERE a.owner_id = ?
                ORDER BY a.start_date DESC, a.id DESC;
                """,
                (owner_id,),
            )
            return [self._row_to_allocation(row) for row in cursor.fetchall()]

    def get_allocation(self, owner_id: str, allocation_id: int) -> Optional[Allocation]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                _ALLOCATION_SELECT + " WHERE a.id = ? AND a.owner_id = ?;",
                (allocation_id, owner_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return self._row_to_allocation(row)

    def create_allocation(
        self,
        owner_id: str,
        consultant_id: int,
        project_id: int,
        start_date: date,
        end_date: date,
        hours_per_week: float,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Allocations (
                    consultant_id, project_id, start_date, end_date, hours_per_week, owner_id
                )
                VALUES (?, ?, ?, ?, ?, ?);
                """,
                (
                    consultant_id,
                    project_id,
                    start_date.isoformat(),
                    end_date.isoformat(),
                    hours_per_week,
                    owner_id,
                ),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def update_allocation(
        self, owner_id: str, allocation_id: int, fields: Mapping[str, Any]
    ) -> bool:
        return self._update("Allocations", owner_id, allocation_id, fields)

    def delete_allocation(self, owner_id: str, allocation_id: int) -> bool:
        return self._delete("Allocations", owner_id, allocation_id)

    def list_allocations_overlapping(
        self,
        owner_id: str,
        range_start: date,
        range_end: date,
    ) -> list[EnrichedAllocation]:
        """Return allocations touching [range_start, range_end] with rate and billing joins."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    a.id,
                    a.consultant_id,
                    a.project_id,
                    a.start_date,
                    a.end_date,
                    a.hours_per_week,
                    c.cost_per_hour,
                    c.bill_rate,
                    c.capacity_hours_per_week,
                    p.billing_model,
                    p.flat_fee
                FROM Allocations AS a
                INNER JOIN Consultants AS c ON c.id = a.consultant_id
                INNER JOIN Projects AS p ON p.id = a.project_id
                WHERE a.owner_id = ?
                  AND a.start_date <= ?
                  AND a.end_date >= ?
                ORDER BY a.start_date ASC, a.id ASC;
                """,
                (owner_id, range_end.isoformat(), range_start.isoformat()),
            )
            return [
                EnrichedAllocation(
                    allocation_id=int(row["id"]),
                    consultant_id=int(row["consultant_id"]),
                    project_id=int(row["project_id"]),
                    start_date=date.fromisoformat(str(row["start_date"])),
                    end_date=date.fromisoformat(str(row["end_date"])),
                    hours_per_week=float(row["hours_per_week"]),
                    cost_per_hour=float(row["cost_per_hour"]),
                    bill_rate=float(row["bill_rate"]),
                    capacity_hours_per_week=float(row["capacity_hours_per_week"]),
                    billing_model=str(row["billing_model"]),
                    flat_fee=_optional_float(row["flat_fee"]),
                )
                for row in cursor.fetchall()
            ]
