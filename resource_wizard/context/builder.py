"""
Context Builder: reads organizational state into an immutable OrgSnapshot.

Behavioral Contract:
- Read-only. Never writes to the store.
- The window is [current_week_start, current_week_start + window_weeks).
- A user with no allocations or PTO still appears, with empty lists.
- Weekly capacity is the user's override when present, else the default.
- Any store failure aborts the build with a single error. A partially
  built snapshot is never returned.
"""

import logging
import time
from datetime import date, timedelta
from typing import Callable, Dict, List, Optional

from resource_wizard.context.weeks import week_start_of
from resource_wizard.datastore.store import ResourceStore
from resource_wizard.errors import NotFoundError
from resource_wizard.models.config import WizardConfig
from resource_wizard.models.snapshot import (
    AllocationView,
    ConversationTurn,
    OrgSnapshot,
    OrgView,
    PhaseView,
    ProjectView,
    UserView,
)

logger = logging.getLogger(__name__)


def resolve_capacity(user_row: dict, default: float) -> float:
    """The user's weekly capacity override, or the organization default."""
    override = user_row.get("weekly_capacity")
    if override and override > 0:
        return float(override)
    return default


class ContextBuilder:
    """
    Builds a point-in-time snapshot for one command.

    The reads (users, allocations, PTO, projects) are logically independent.
    They run sequentially here because they share a single sqlite connection;
    the snapshot is only assembled once all of them have returned.
    """

    def __init__(
        self,
        store: ResourceStore,
        config: Optional[WizardConfig] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self.config = config or WizardConfig()
        self.clock = clock or date.today

    def build(
        self,
        org_id: str,
        window_weeks: Optional[int] = None,
        focus_project_id: Optional[str] = None,
        focus_user_ids: Optional[List[str]] = None,
        history: Optional[List[ConversationTurn]] = None,
    ) -> OrgSnapshot:
        started = time.monotonic()
        weeks = window_weeks or self.config.window_weeks
        today = self.clock()
        current_week = week_start_of(today)
        window_end = current_week + timedelta(weeks=weeks)

        org = self._fetch_organization(org_id)
        users = self._fetch_users(org_id, current_week, window_end, focus_user_ids)
        projects = self._fetch_projects(org_id, focus_project_id)

        snapshot = OrgSnapshot(
            org=org,
            current_date=today,
            current_week_start=current_week,
            window_weeks=weeks,
            users=users,
            projects=projects,
            conversation_history=history or [],
        )
        logger.info(
            "Built snapshot for org %s: %d users, %d projects (%.3fs)",
            org_id,
            len(users),
            len(projects),
            time.monotonic() - started,
        )
        return snapshot

    def _fetch_organization(self, org_id: str) -> OrgView:
        org = self.store.get_organization(org_id)
        if org is None:
            raise NotFoundError("Organization not found")
        return OrgView(
            id=org["id"],
            name=org["name"],
            size=self.store.count_active_users(org_id),
        )

    def _fetch_users(
        self,
        org_id: str,
        start_week: date,
        window_end: date,
        focus_user_ids: Optional[List[str]],
    ) -> List[UserView]:
        rows = self.store.list_active_users(org_id, focus_user_ids)
        if not rows:
            return []

        user_ids = [r["id"] for r in rows]
        allocations = self.store.list_allocations(user_ids, start_week, window_end)
        pto = self.store.list_pto(user_ids, start_week, window_end)

        allocs_by_user: Dict[str, List[AllocationView]] = {uid: [] for uid in user_ids}
        for a in allocations:
            allocs_by_user[a["user_id"]].append(AllocationView(
                week_start=date.fromisoformat(a["week_start"]),
                project_id=a["project_id"],
                project_name=a["project_name"] or "Unknown",
                hours=a["planned_hours"],
                phase_id=a["phase_id"],
                phase_name=a["phase_name"],
            ))

        pto_by_user: Dict[str, List[date]] = {uid: [] for uid in user_ids}
        for p in pto:
            pto_by_user[p["user_id"]].append(date.fromisoformat(p["date"]))

        return [
            UserView(
                id=r["id"],
                name=r["name"],
                email=r["email"],
                role=r["role"] or "employee",
                job_title=r["job_title"],
                location=r["location"],
                is_freelance=bool(r["is_freelance"]),
                specialty_notes=r["specialty_notes"],
                weekly_capacity=resolve_capacity(r, self.config.default_weekly_capacity),
                allocations=allocs_by_user[r["id"]],
                pto_dates=pto_by_user[r["id"]],
            )
            for r in rows
        ]

    def _fetch_projects(self, org_id: str, focus_project_id: Optional[str]) -> List[ProjectView]:
        rows = self.store.list_projects(org_id, project_id=focus_project_id)
        if not rows:
            return []

        project_ids = [r["id"] for r in rows]
        used = self.store.hours_used_by_project(project_ids)
        phase_rows = self.store.list_phases(project_ids)
        phase_used = self.store.hours_used_by_phase([p["id"] for p in phase_rows])

        phases_by_project: Dict[str, List[PhaseView]] = {pid: [] for pid in project_ids}
        for p in phase_rows:
            phases_by_project[p["project_id"]].append(PhaseView(
                id=p["id"],
                name=p["name"],
                budget_hours=p["budget_hours"] or 0.0,
                hours_used=phase_used.get(p["id"], 0.0),
                status=p["status"] or "pending",
            ))

        return [
            ProjectView(
                id=r["id"],
                name=r["name"],
                client_name=r["client_name"] or "No Client",
                budget_hours=r["budget_hours"] or 0.0,
                hours_used=used.get(r["id"], 0.0),
                status=r["status"],
                phases=phases_by_project[r["id"]],
            )
            for r in rows
        ]
