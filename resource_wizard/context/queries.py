"""
Resource Queries: the read-only lookups behind the query tools and the
supporting search/availability endpoints.

None of these write to the store or the audit log.
"""

import logging
from collections import defaultdict
from datetime import date, timedelta
from typing import Callable, List, Optional

from resource_wizard.context.builder import resolve_capacity
from resource_wizard.context.weeks import week_start_of, weeks_between
from resource_wizard.datastore.store import ResourceStore
from resource_wizard.errors import NotFoundError
from resource_wizard.models.config import WizardConfig

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


def _split_list(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").lower().split(",") if part.strip()]


def _name_score(name: str, query: str) -> int:
    if name == query:
        return 100
    if name.startswith(query) or any(part.startswith(query) for part in name.split()):
        return 80
    if query in name:
        return 60
    return 0


def score_user(user: dict, query: str) -> tuple:
    """(score, matched_on) for one user row against a lowercased query."""
    score = _name_score(user["name"].lower(), query)
    if score:
        return score, "name"
    nicknames = user.get("nicknames") or ""
    if query in _split_list(nicknames):
        return 90, "nickname"
    if query in nicknames.lower():
        return 70, "nickname"
    if query in (user.get("job_title") or "").lower():
        return 40, "job_title"
    return 0, None


def score_project(project: dict, query: str) -> tuple:
    """(score, matched_on) for one project row against a lowercased query."""
    score = _name_score(project["name"].lower(), query)
    if score:
        return score, "name"
    aliases = project.get("aliases") or ""
    if query in _split_list(aliases):
        return 95, "alias"
    if query in aliases.lower():
        return 75, "alias"
    if query in (project.get("client_name") or "").lower():
        return 50, "client"
    return 0, None


class ResourceQueries:
    """Read-side operations over the resource store."""

    def __init__(
        self,
        store: ResourceStore,
        config: Optional[WizardConfig] = None,
        clock: Optional[Callable[[], date]] = None,
    ):
        self.store = store
        self.config = config or WizardConfig()
        self.clock = clock or date.today

    def _capacity(self, user_row: dict) -> float:
        return resolve_capacity(user_row, self.config.default_weekly_capacity)

    # === SEARCH ===

    def search_users(self, org_id: str, query: str, role: Optional[str] = None) -> List[dict]:
        """Score-ranked match on name, nickname and job title. Top 10."""
        needle = query.lower().strip()
        if not needle:
            return []
        scored = []
        for user in self.store.list_active_users(org_id):
            if role and user["role"] != role:
                continue
            score, matched_on = score_user(user, needle)
            if score > 0:
                scored.append((score, matched_on, user))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            {
                "id": user["id"],
                "name": user["name"],
                "role": user["role"],
                "job_title": user["job_title"],
                "matched_on": matched_on,
                "score": score,
            }
            for score, matched_on, user in scored[:SEARCH_LIMIT]
        ]

    def search_projects(self, org_id: str, query: str, active_only: bool = True) -> List[dict]:
        """Score-ranked match on name, alias and client. Top 10."""
        needle = query.lower().strip()
        if not needle:
            return []
        scored = []
        for project in self.store.list_projects(org_id, active_only=active_only):
            score, matched_on = score_project(project, needle)
            if score > 0:
                scored.append((score, matched_on, project))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            {
                "id": project["id"],
                "name": project["name"],
                "client_name": project["client_name"] or "No Client",
                "matched_on": matched_on,
                "score": score,
            }
            for score, matched_on, project in scored[:SEARCH_LIMIT]
        ]

    # === AVAILABILITY / ALLOCATIONS ===

    def get_user_availability(
        self,
        org_id: str,
        start_week: date,
        end_week: date,
        user_id: Optional[str] = None,
        role_filter: Optional[str] = None,
    ) -> List[dict]:
        """
        Per user, per week: allocated hours, available hours and whether any
        PTO date falls inside that week. ``role_filter`` matches job title,
        not the system role.
        """
        users = self.store.list_active_users(org_id, [user_id] if user_id else None)
        if user_id and not users:
            raise NotFoundError("User not found")
        if role_filter:
            needle = role_filter.lower()
            users = [u for u in users if needle in (u["job_title"] or "").lower()]
        if not users:
            return []

        user_ids = [u["id"] for u in users]
        weeks = weeks_between(start_week, end_week)
        window_end = end_week + timedelta(days=7)
        allocations = self.store.list_allocations(user_ids, week_start_of(start_week), window_end)
        pto = self.store.list_pto(user_ids, week_start_of(start_week), window_end)

        hours = defaultdict(float)
        for a in allocations:
            hours[(a["user_id"], a["week_start"])] += a["planned_hours"]
        pto_weeks = {(p["user_id"], week_start_of(date.fromisoformat(p["date"]))) for p in pto}

        availability = []
        for user in users:
            capacity = self._capacity(user)
            user_weeks = []
            for week in weeks:
                allocated = hours[(user["id"], week.isoformat())]
                user_weeks.append({
                    "week_start": week.isoformat(),
                    "allocated_hours": allocated,
                    "available_hours": capacity - allocated,
                    "has_pto": (user["id"], week) in pto_weeks,
                })
            availability.append({
                "user_id": user["id"],
                "user_name": user["name"],
                "role": user["role"],
                "job_title": user["job_title"],
                "weekly_capacity": capacity,
                "weeks": user_weeks,
            })
        return availability

    def get_user_allocations(
        self,
        org_id: str,
        user_id: str,
        start_week: date,
        end_week: date,
    ) -> dict:
        """A user's allocations grouped per project, largest first."""
        user = self.store.get_user(user_id)
        if user is None or user["org_id"] != org_id:
            raise NotFoundError("User not found")

        rows = self.store.list_allocations([user_id], start_week, end_week + timedelta(days=1))
        projects = {}
        for r in rows:
            entry = projects.setdefault(r["project_id"], {
                "project_id": r["project_id"],
                "project_name": r["project_name"] or "Unknown Project",
                "total_hours": 0.0,
                "weeks": [],
            })
            entry["total_hours"] += r["planned_hours"]
            entry["weeks"].append({
                "week_start": r["week_start"],
                "hours": r["planned_hours"],
                "phase": r["phase_name"],
            })

        client_names = {
            p["id"]: p["client_name"] or "No Client"
            for p in self.store.list_projects(org_id, active_only=False)
        }
        for entry in projects.values():
            entry["client_name"] = client_names.get(entry["project_id"], "No Client")

        ordered = sorted(projects.values(), key=lambda e: e["total_hours"], reverse=True)
        return {
            "user": {"id": user["id"], "name": user["name"], "role": user["role"]},
            "date_range": {"start_week": start_week.isoformat(), "end_week": end_week.isoformat()},
            "total_hours": sum(e["total_hours"] for e in ordered),
            "projects": ordered,
        }

    # === PROJECTS ===

    def get_project_status(self, org_id: str, project_id: str, include_phases: bool = False) -> dict:
        """Budget burn plus allocations from the current week onward."""
        project = self.store.get_project(project_id)
        if project is None or project["org_id"] != org_id:
            raise NotFoundError("Project not found")

        used = self.store.hours_used_by_project([project_id]).get(project_id, 0.0)
        budget = project["budget_hours"] or 0.0
        upcoming = self.store.list_project_allocations(project_id, week_start_of(self.clock()))

        status = {
            "project": {
                "id": project["id"],
                "name": project["name"],
                "client_name": project["client_name"] or "No Client",
                "status": project["status"],
            },
            "budget": {
                "total_hours": budget,
                "hours_used": used,
                "hours_remaining": budget - used,
                "percent_used": round(used / budget * 100) if budget > 0 else 0,
            },
            "upcoming_allocations": [
                {
                    "user_id": a["user_id"],
                    "user_name": a["user_name"] or "Unknown",
                    "hours": a["planned_hours"],
                    "week_start": a["week_start"],
                }
                for a in upcoming
            ],
        }
        if include_phases:
            phases = self.store.list_phases([project_id])
            phase_used = self.store.hours_used_by_phase([p["id"] for p in phases])
            status["phases"] = [
                {
                    "id": p["id"],
                    "name": p["name"],
                    "budget_hours": p["budget_hours"] or 0.0,
                    "hours_used": phase_used.get(p["id"], 0.0),
                    "status": p["status"],
                }
                for p in phases
            ]
        return status

    # === COVERAGE ===

    def suggest_coverage(
        self,
        org_id: str,
        absent_user_id: str,
        week_start: date,
        project_id: Optional[str] = None,
        preferred_role: Optional[str] = None,
    ) -> dict:
        """
        Rank stand-ins for an absent user's week: job-title matches first,
        then most available hours. Anyone without spare hours is excluded.
        """
        absent = self.store.get_user(absent_user_id)
        if absent is None or absent["org_id"] != org_id:
            raise NotFoundError("User not found")

        to_cover = self.store.list_week_allocations([absent_user_id], week_start)
        if project_id:
            to_cover = [a for a in to_cover if a["project_id"] == project_id]
        if not to_cover:
            return {
                "message": "No allocations found for this user in the specified week",
                "suggestions": [],
            }

        match_title = (preferred_role or absent["job_title"] or "").lower()
        candidates = [
            u for u in self.store.list_active_users(org_id) if u["id"] != absent_user_id
        ]
        booked = defaultdict(float)
        for a in self.store.list_week_allocations([u["id"] for u in candidates], week_start):
            booked[a["user_id"]] += a["planned_hours"]

        suggestions = []
        for user in candidates:
            available = self._capacity(user) - booked[user["id"]]
            if available <= 0:
                continue
            title = (user["job_title"] or "").lower()
            suggestions.append({
                "user_id": user["id"],
                "user_name": user["name"],
                "job_title": user["job_title"],
                "role_match": bool(match_title and match_title in title),
                "available_hours": available,
                "current_allocation": booked[user["id"]],
            })

        suggestions.sort(key=lambda s: (not s["role_match"], -s["available_hours"]))
        logger.info(
            "Coverage for %s week %s: %d candidates",
            absent_user_id,
            week_start.isoformat(),
            len(suggestions),
        )
        return {
            "absent_user": {
                "id": absent["id"],
                "name": absent["name"],
                "job_title": absent["job_title"],
            },
            "allocations_to_cover": [
                {"project_name": a["project_name"], "hours": a["planned_hours"]} for a in to_cover
            ],
            "total_hours_to_cover": sum(a["planned_hours"] for a in to_cover),
            "suggestions": suggestions,
        }
