"""
Insight Engine: stateless analyzers over an OrgSnapshot.

Behavioral Contract:
- Pure: reads the snapshot only. Insights are never persisted.
- Overallocation is judged per user per week, never summed across weeks.
- Results are sorted by severity (critical, warning, info), stable within
  a tier.
"""

import logging
from datetime import date
from typing import Callable, List

from resource_wizard.agent.tools import build_action
from resource_wizard.context.weeks import week_start_of
from resource_wizard.models.actions import ToolName
from resource_wizard.models.insight import (
    SEVERITY_ORDER,
    AffectedEntities,
    EntityRef,
    Insight,
    InsightType,
    Severity,
)
from resource_wizard.models.snapshot import OrgSnapshot

logger = logging.getLogger(__name__)

UNDERUTILIZATION_THRESHOLD = 0.5
CRITICAL_OVERAGE_HOURS = 8.0
BUDGET_WARNING_BURN = 0.85


def format_week(day: date) -> str:
    return f"{day.strftime('%b')} {day.day}"


def analyze_overallocation(snapshot: OrgSnapshot) -> List[Insight]:
    """One insight per user with any single week above capacity."""
    insights = []
    for user in snapshot.users:
        over = [
            {"week": week.isoformat(), "hours": hours, "overage": hours - user.weekly_capacity}
            for week, hours in sorted(user.hours_by_week().items())
            if hours > user.weekly_capacity
        ]
        if not over:
            continue

        worst = max(over, key=lambda w: w["overage"])
        worst_week = format_week(date.fromisoformat(worst["week"]))
        if len(over) == 1:
            description = f"Week of {worst_week}: {worst['hours']:g}h planned ({worst['overage']:g}h over)"
        else:
            description = f"{len(over)} weeks over capacity. Worst: {worst_week} at {worst['hours']:g}h"

        insights.append(Insight(
            type=InsightType.OVERALLOCATION,
            severity=Severity.CRITICAL if worst["overage"] > CRITICAL_OVERAGE_HOURS else Severity.WARNING,
            title=f"{user.name} is over capacity",
            description=description,
            affected_entities=AffectedEntities(users=[EntityRef(id=user.id, name=user.name)]),
            data={
                "weeks": over,
                "total_overage": sum(w["overage"] for w in over),
                "max_overage": worst["overage"],
                "capacity": user.weekly_capacity,
            },
        ))
    return insights


def analyze_underutilization(snapshot: OrgSnapshot) -> List[Insight]:
    """Current week only. Freelancers and anyone with PTO are skipped."""
    insights = []
    week = snapshot.current_week_start
    for user in snapshot.users:
        if user.is_freelance or user.pto_dates:
            continue
        hours = user.hours_in_week(week)
        utilization = hours / user.weekly_capacity
        if utilization >= UNDERUTILIZATION_THRESHOLD:
            continue

        available = user.weekly_capacity - hours
        insights.append(Insight(
            type=InsightType.UNDERUTILIZATION,
            severity=Severity.INFO,
            title=f"{user.name} has {available:g}h available",
            description=f"This week: {hours:g}h of {user.weekly_capacity:g}h capacity",
            affected_entities=AffectedEntities(users=[EntityRef(id=user.id, name=user.name)]),
            data={
                "week": week.isoformat(),
                "allocated_hours": hours,
                "available_hours": available,
                "utilization_rate": round(utilization * 100),
                "role": user.display_role,
            },
        ))
    return insights


def analyze_budget(snapshot: OrgSnapshot) -> List[Insight]:
    insights = []
    for project in snapshot.projects:
        burn = project.burn_rate
        if burn is None:
            continue
        ref = AffectedEntities(projects=[EntityRef(id=project.id, name=project.name)])
        if burn >= 1:
            insights.append(Insight(
                type=InsightType.BUDGET_WARNING,
                severity=Severity.CRITICAL,
                title=f"{project.name} is over budget",
                description=(
                    f"{project.hours_used:g}h used of {project.budget_hours:g}h budget "
                    f"({round(burn * 100)}%)"
                ),
                affected_entities=ref,
                data={"budget": project.budget_hours, "used": project.hours_used, "burn_rate": burn},
            ))
        elif burn >= BUDGET_WARNING_BURN:
            insights.append(Insight(
                type=InsightType.BUDGET_WARNING,
                severity=Severity.WARNING,
                title=f"{project.name} budget at {round(burn * 100)}%",
                description=f"{project.hours_remaining:g}h remaining",
                affected_entities=ref,
                data={
                    "budget": project.budget_hours,
                    "used": project.hours_used,
                    "remaining": project.hours_remaining,
                    "burn_rate": burn,
                },
            ))
    return insights


def analyze_coverage_gaps(snapshot: OrgSnapshot) -> List[Insight]:
    """Users with PTO in the window who still have planned hours."""
    insights = []
    for user in snapshot.users:
        if not user.pto_dates:
            continue
        planned = sum(a.hours for a in user.allocations)
        if planned <= 0:
            continue

        first_pto_week = week_start_of(min(user.pto_dates))
        insights.append(Insight(
            type=InsightType.COVERAGE_GAP,
            severity=Severity.WARNING,
            title=f"{user.name} has PTO but {planned:g}h planned",
            description=(
                f"PTO: {', '.join(d.isoformat() for d in user.pto_dates)}. "
                "Coverage may be needed."
            ),
            affected_entities=AffectedEntities(
                users=[EntityRef(id=user.id, name=user.name)],
                projects=[
                    EntityRef(id=pid, name=name)
                    for pid, name in dict.fromkeys(
                        (a.project_id, a.project_name) for a in user.allocations
                    )
                ],
            ),
            data={
                "pto_dates": [d.isoformat() for d in user.pto_dates],
                "planned_hours": planned,
                "projects": sorted({a.project_name for a in user.allocations}),
            },
            suggested_action=build_action(
                ToolName.SUGGEST_COVERAGE,
                {"absent_user_id": user.id, "week_start": first_pto_week},
                snapshot,
            ),
        ))
    return insights


ANALYZERS: List[Callable[[OrgSnapshot], List[Insight]]] = [
    analyze_overallocation,
    analyze_underutilization,
    analyze_budget,
    analyze_coverage_gaps,
]


def generate_insights(snapshot: OrgSnapshot) -> List[Insight]:
    """Run every analyzer and rank the findings by severity."""
    insights: List[Insight] = []
    for analyzer in ANALYZERS:
        insights.extend(analyzer(snapshot))
    insights.sort(key=lambda i: SEVERITY_ORDER[i.severity])
    logger.debug("Generated %d insight(s) for org %s", len(insights), snapshot.org.id)
    return insights


def count_critical(insights: List[Insight]) -> int:
    return sum(1 for i in insights if i.severity == Severity.CRITICAL)
