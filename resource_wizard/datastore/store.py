"""
Resource Store: the relational datastore behind the wizard.

Holds organizations, users, clients, projects, phases, allocations, PTO and
time entries, all keyed by organization.

Behavioral Contract:
- Every sqlite failure surfaces as a StoreError; callers never see sqlite3
  exceptions.
- At most one allocation exists per (user, project, week).
- Each write is its own unit of work. No transaction spans two calls.
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional
from uuid import uuid4

from resource_wizard.errors import StoreError

logger = logging.getLogger(__name__)

ACTIVE_PROJECT_STATUSES = ("planning", "active", "on-hold")

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS organizations (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        org_id TEXT NOT NULL,
        name TEXT NOT NULL,
        email TEXT,
        role TEXT NOT NULL DEFAULT 'employee',
        job_title TEXT,
        location TEXT,
        is_freelance INTEGER NOT NULL DEFAULT 0,
        specialty_notes TEXT,
        nicknames TEXT,
        weekly_capacity REAL,
        is_active INTEGER NOT NULL DEFAULT 1
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS clients (
        id TEXT PRIMARY KEY,
        org_id TEXT NOT NULL,
        name TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS projects (
        id TEXT PRIMARY KEY,
        org_id TEXT NOT NULL,
        client_id TEXT,
        name TEXT NOT NULL,
        aliases TEXT,
        budget_hours REAL NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'active'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS project_phases (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        name TEXT NOT NULL,
        budget_hours REAL NOT NULL DEFAULT 0,
        status TEXT NOT NULL DEFAULT 'pending'
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS allocations (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        project_id TEXT NOT NULL,
        phase_id TEXT,
        week_start TEXT NOT NULL,
        planned_hours REAL NOT NULL,
        is_billable INTEGER NOT NULL DEFAULT 1,
        created_by TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        UNIQUE (user_id, project_id, week_start)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS pto_entries (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        date TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS time_entries (
        id TEXT PRIMARY KEY,
        project_id TEXT NOT NULL,
        phase_id TEXT,
        user_id TEXT,
        actual_hours REAL NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_allocations_week ON allocations(week_start)",
    "CREATE INDEX IF NOT EXISTS idx_allocations_user ON allocations(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_pto_user ON pto_entries(user_id)",
]


def _placeholders(values: List[str]) -> str:
    return ", ".join("?" for _ in values)


class ResourceStore:
    """
    sqlite-backed datastore. Production deployments point db_path at a file
    (or replace this class with a client for the hosted database).
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        with self._guard("initialize schema"):
            for statement in _SCHEMA:
                self._conn.execute(statement)
            self._conn.commit()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as e:
            logger.error("Datastore failure during %s: %s", operation, e)
            raise StoreError(f"Failed to {operation}") from e

    def _rows(self, sql: str, params: Iterable = (), operation: str = "read data") -> List[dict]:
        with self._guard(operation):
            return [dict(r) for r in self._conn.execute(sql, tuple(params)).fetchall()]

    def _row(self, sql: str, params: Iterable = (), operation: str = "read data") -> Optional[dict]:
        with self._guard(operation):
            row = self._conn.execute(sql, tuple(params)).fetchone()
        return dict(row) if row else None

    def _write(self, sql: str, params: Iterable, operation: str) -> None:
        with self._guard(operation):
            self._conn.execute(sql, tuple(params))
            self._conn.commit()

    # === ORGANIZATION DATA (setup / import) ===

    def add_organization(self, name: str, org_id: Optional[str] = None) -> str:
        org_id = org_id or f"org_{uuid4().hex[:12]}"
        self._write(
            "INSERT INTO organizations (id, name) VALUES (?, ?)",
            (org_id, name),
            "create organization",
        )
        return org_id

    def add_user(
        self,
        org_id: str,
        name: str,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        role: str = "employee",
        job_title: Optional[str] = None,
        location: Optional[str] = None,
        is_freelance: bool = False,
        specialty_notes: Optional[str] = None,
        nicknames: Optional[str] = None,
        weekly_capacity: Optional[float] = None,
        is_active: bool = True,
    ) -> str:
        user_id = user_id or f"usr_{uuid4().hex[:12]}"
        self._write(
            """
            INSERT INTO users (
                id, org_id, name, email, role, job_title, location,
                is_freelance, specialty_notes, nicknames, weekly_capacity, is_active
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                user_id, org_id, name, email, role, job_title, location,
                int(is_freelance), specialty_notes, nicknames, weekly_capacity,
                int(is_active),
            ),
            "create user",
        )
        return user_id

    def add_client(self, org_id: str, name: str, client_id: Optional[str] = None) -> str:
        client_id = client_id or f"cli_{uuid4().hex[:12]}"
        self._write(
            "INSERT INTO clients (id, org_id, name) VALUES (?, ?, ?)",
            (client_id, org_id, name),
            "create client",
        )
        return client_id

    def add_project(
        self,
        org_id: str,
        name: str,
        project_id: Optional[str] = None,
        client_id: Optional[str] = None,
        budget_hours: float = 0.0,
        status: str = "active",
        aliases: Optional[str] = None,
    ) -> str:
        project_id = project_id or f"prj_{uuid4().hex[:12]}"
        self._write(
            """
            INSERT INTO projects (id, org_id, client_id, name, aliases, budget_hours, status)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (project_id, org_id, client_id, name, aliases, budget_hours, status),
            "create project",
        )
        return project_id

    def add_phase(
        self,
        project_id: str,
        name: str,
        phase_id: Optional[str] = None,
        budget_hours: float = 0.0,
        status: str = "pending",
    ) -> str:
        phase_id = phase_id or f"phs_{uuid4().hex[:12]}"
        self._write(
            """
            INSERT INTO project_phases (id, project_id, name, budget_hours, status)
            VALUES (?, ?, ?, ?, ?)
            """,
            (phase_id, project_id, name, budget_hours, status),
            "create phase",
        )
        return phase_id

    def add_pto(self, user_id: str, day: date) -> str:
        pto_id = f"pto_{uuid4().hex[:12]}"
        self._write(
            "INSERT INTO pto_entries (id, user_id, date) VALUES (?, ?, ?)",
            (pto_id, user_id, day.isoformat()),
            "create PTO entry",
        )
        return pto_id

    def add_time_entry(
        self,
        project_id: str,
        hours: float,
        phase_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> str:
        entry_id = f"te_{uuid4().hex[:12]}"
        self._write(
            """
            INSERT INTO time_entries (id, project_id, phase_id, user_id, actual_hours)
            VALUES (?, ?, ?, ?, ?)
            """,
            (entry_id, project_id, phase_id, user_id, hours),
            "create time entry",
        )
        return entry_id

    # === READS ===

    def get_organization(self, org_id: str) -> Optional[dict]:
        return self._row(
            "SELECT id, name FROM organizations WHERE id = ?",
            (org_id,),
            "fetch organization",
        )

    def count_active_users(self, org_id: str) -> int:
        row = self._row(
            "SELECT COUNT(*) AS cnt FROM users WHERE org_id = ? AND is_active = 1",
            (org_id,),
            "count users",
        )
        return row["cnt"] if row else 0

    def list_active_users(
        self,
        org_id: str,
        user_ids: Optional[List[str]] = None,
    ) -> List[dict]:
        sql = "SELECT * FROM users WHERE org_id = ? AND is_active = 1"
        params: list = [org_id]
        if user_ids:
            sql += f" AND id IN ({_placeholders(user_ids)})"
            params.extend(user_ids)
        sql += " ORDER BY name"
        return self._rows(sql, params, "fetch users")

    def get_user(self, user_id: str) -> Optional[dict]:
        return self._row("SELECT * FROM users WHERE id = ?", (user_id,), "fetch user")

    def list_allocations(
        self,
        user_ids: List[str],
        start_week: date,
        end_week: date,
    ) -> List[dict]:
        """Allocations with start_week <= week_start < end_week, joined with names."""
        if not user_ids:
            return []
        return self._rows(
            f"""
            SELECT a.*, p.name AS project_name, ph.name AS phase_name,
                   u.name AS user_name
            FROM allocations a
            LEFT JOIN projects p ON p.id = a.project_id
            LEFT JOIN project_phases ph ON ph.id = a.phase_id
            LEFT JOIN users u ON u.id = a.user_id
            WHERE a.user_id IN ({_placeholders(user_ids)})
              AND a.week_start >= ? AND a.week_start < ?
            ORDER BY a.week_start, p.name
            """,
            [*user_ids, start_week.isoformat(), end_week.isoformat()],
            "fetch allocations",
        )

    def list_pto(self, user_ids: List[str], start: date, end: date) -> List[dict]:
        """PTO entries with start <= date < end."""
        if not user_ids:
            return []
        return self._rows(
            f"""
            SELECT user_id, date FROM pto_entries
            WHERE user_id IN ({_placeholders(user_ids)})
              AND date >= ? AND date < ?
            ORDER BY date
            """,
            [*user_ids, start.isoformat(), end.isoformat()],
            "fetch PTO entries",
        )

    def list_projects(
        self,
        org_id: str,
        project_id: Optional[str] = None,
        active_only: bool = True,
    ) -> List[dict]:
        sql = """
            SELECT p.*, c.name AS client_name
            FROM projects p
            LEFT JOIN clients c ON c.id = p.client_id
            WHERE p.org_id = ?
        """
        params: list = [org_id]
        if active_only:
            sql += f" AND p.status IN ({_placeholders(list(ACTIVE_PROJECT_STATUSES))})"
            params.extend(ACTIVE_PROJECT_STATUSES)
        if project_id:
            sql += " AND p.id = ?"
            params.append(project_id)
        sql += " ORDER BY p.name"
        return self._rows(sql, params, "fetch projects")

    def get_project(self, project_id: str) -> Optional[dict]:
        return self._row(
            """
            SELECT p.*, c.name AS client_name
            FROM projects p
            LEFT JOIN clients c ON c.id = p.client_id
            WHERE p.id = ?
            """,
            (project_id,),
            "fetch project",
        )

    def list_phases(self, project_ids: List[str]) -> List[dict]:
        if not project_ids:
            return []
        return self._rows(
            f"""
            SELECT * FROM project_phases
            WHERE project_id IN ({_placeholders(project_ids)})
            ORDER BY name
            """,
            project_ids,
            "fetch phases",
        )

    def hours_used_by_project(self, project_ids: List[str]) -> dict:
        if not project_ids:
            return {}
        rows = self._rows(
            f"""
            SELECT project_id, SUM(actual_hours) AS used FROM time_entries
            WHERE project_id IN ({_placeholders(project_ids)})
            GROUP BY project_id
            """,
            project_ids,
            "fetch time entries",
        )
        return {r["project_id"]: r["used"] or 0.0 for r in rows}

    def hours_used_by_phase(self, phase_ids: List[str]) -> dict:
        if not phase_ids:
            return {}
        rows = self._rows(
            f"""
            SELECT phase_id, SUM(actual_hours) AS used FROM time_entries
            WHERE phase_id IN ({_placeholders(phase_ids)})
            GROUP BY phase_id
            """,
            phase_ids,
            "fetch phase time entries",
        )
        return {r["phase_id"]: r["used"] or 0.0 for r in rows}

    def list_project_allocations(self, project_id: str, from_week: date) -> List[dict]:
        return self._rows(
            """
            SELECT a.planned_hours, a.week_start, a.user_id, u.name AS user_name
            FROM allocations a
            LEFT JOIN users u ON u.id = a.user_id
            WHERE a.project_id = ? AND a.week_start >= ?
            ORDER BY a.week_start
            """,
            (project_id, from_week.isoformat()),
            "fetch project allocations",
        )

    def list_week_allocations(self, user_ids: List[str], week_start: date) -> List[dict]:
        if not user_ids:
            return []
        return self._rows(
            f"""
            SELECT a.*, p.name AS project_name
            FROM allocations a
            LEFT JOIN projects p ON p.id = a.project_id
            WHERE a.user_id IN ({_placeholders(user_ids)}) AND a.week_start = ?
            """,
            [*user_ids, week_start.isoformat()],
            "fetch week allocations",
        )

    # === ALLOCATION WRITES ===

    def find_allocation(self, user_id: str, project_id: str, week_start: date) -> Optional[dict]:
        return self._row(
            """
            SELECT * FROM allocations
            WHERE user_id = ? AND project_id = ? AND week_start = ?
            """,
            (user_id, project_id, week_start.isoformat()),
            "find allocation",
        )

    def count_allocations(self) -> int:
        row = self._row("SELECT COUNT(*) AS cnt FROM allocations", (), "count allocations")
        return row["cnt"] if row else 0

    def insert_allocation(
        self,
        user_id: str,
        project_id: str,
        week_start: date,
        hours: float,
        created_by: str,
        phase_id: Optional[str] = None,
        is_billable: bool = True,
    ) -> dict:
        allocation_id = f"alloc_{uuid4().hex[:12]}"
        now = datetime.utcnow().isoformat()
        self._write(
            """
            INSERT INTO allocations (
                id, user_id, project_id, phase_id, week_start, planned_hours,
                is_billable, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                allocation_id, user_id, project_id, phase_id,
                week_start.isoformat(), hours, int(is_billable), created_by,
                now, now,
            ),
            "create allocation",
        )
        return self._row(
            "SELECT * FROM allocations WHERE id = ?", (allocation_id,), "read allocation"
        )

    def update_allocation_hours(self, allocation_id: str, hours: float) -> None:
        self._write(
            "UPDATE allocations SET planned_hours = ?, updated_at = ? WHERE id = ?",
            (hours, datetime.utcnow().isoformat(), allocation_id),
            "update allocation",
        )

    def delete_allocation(self, allocation_id: str) -> None:
        self._write(
            "DELETE FROM allocations WHERE id = ?",
            (allocation_id,),
            "delete allocation",
        )

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
