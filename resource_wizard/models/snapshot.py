"""Org Snapshot: the immutable, point-in-time read of organizational state."""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Literal, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AllocationView(BaseModel):
    """Planned hours for one (user, project, optional phase, week)."""

    model_config = ConfigDict(frozen=True)

    week_start: date
    project_id: str
    project_name: str
    hours: float
    phase_id: Optional[str] = None
    phase_name: Optional[str] = None


class UserView(BaseModel):
    """A team member with capacity, planned work and PTO inside the window."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: Optional[str] = None
    role: str = "employee"                  # System role: "employee" | "pm" | "admin"
    job_title: Optional[str] = None         # Profession: "Designer", "Developer"
    location: Optional[str] = None
    is_freelance: bool = False
    specialty_notes: Optional[str] = None
    weekly_capacity: float = Field(gt=0, default=40.0)
    allocations: Tuple[AllocationView, ...] = ()
    pto_dates: Tuple[date, ...] = ()

    @property
    def display_role(self) -> str:
        return self.job_title or self.role or "employee"

    def hours_by_week(self) -> Dict[date, float]:
        """Planned hours grouped per week. Never summed across weeks."""
        totals: Dict[date, float] = defaultdict(float)
        for alloc in self.allocations:
            totals[alloc.week_start] += alloc.hours
        return dict(totals)

    def hours_in_week(self, week_start: date) -> float:
        return sum(a.hours for a in self.allocations if a.week_start == week_start)

    def pto_in_week(self, week_start: date) -> List[date]:
        """PTO dates falling on or after week_start and before the next week."""
        return [
            d for d in self.pto_dates
            if 0 <= (d - week_start).days < 7
        ]


class PhaseView(BaseModel):
    """A sub-budget inside a project."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    budget_hours: float = 0.0
    hours_used: float = 0.0
    status: str = "pending"


class ProjectView(BaseModel):
    """An active project with its budget burn."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    client_name: str = "No Client"
    budget_hours: float = 0.0
    hours_used: float = 0.0
    status: str = "active"
    phases: Tuple[PhaseView, ...] = ()

    @property
    def burn_rate(self) -> Optional[float]:
        """Consumed hours as a fraction of budget; None without a budget."""
        if self.budget_hours <= 0:
            return None
        return self.hours_used / self.budget_hours

    @property
    def hours_remaining(self) -> float:
        return self.budget_hours - self.hours_used


class OrgView(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    size: int = 0


class ConversationTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str


class OrgSnapshot(BaseModel):
    """
    Everything one command may reason about. Built per request and never
    mutated; superseded by building a new one.
    """

    model_config = ConfigDict(frozen=True)

    org: OrgView
    current_date: date
    current_week_start: date
    window_weeks: int = 4
    users: Tuple[UserView, ...] = ()
    projects: Tuple[ProjectView, ...] = ()
    conversation_history: Tuple[ConversationTurn, ...] = ()

    def find_user(self, user_id: Optional[str]) -> Optional[UserView]:
        if not user_id:
            return None
        return next((u for u in self.users if u.id == user_id), None)

    def find_project(self, project_id: Optional[str]) -> Optional[ProjectView]:
        if not project_id:
            return None
        return next((p for p in self.projects if p.id == project_id), None)

    def user_name(self, user_id: Optional[str]) -> str:
        user = self.find_user(user_id)
        return user.name if user else "an unknown team member"

    def project_name(self, project_id: Optional[str]) -> str:
        project = self.find_project(project_id)
        return project.name if project else "an unknown project"
