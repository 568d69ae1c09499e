"""
Advisory Engine: scores one proposed allocation change.

Each factor rule looks at the request and the snapshot and returns zero or
one AdvisoryFactor. Two or more negative factors mean avoid, exactly one
means caution, none means proceed. When not proceeding, up to three
ready-to-execute alternatives are offered.
"""

import logging
import re
from typing import Callable, Dict, List, Optional

from resource_wizard.agent.tools import build_action
from resource_wizard.models.actions import ToolName
from resource_wizard.models.advisory import (
    AdvisoryFactor,
    AdvisoryRequest,
    AdvisoryResponse,
    AlternativeSuggestion,
    Assessment,
    Recommendation,
)
from resource_wizard.models.snapshot import OrgSnapshot, ProjectView, UserView

logger = logging.getLogger(__name__)

MAX_ALTERNATIVES = 3

# Specialty keyword -> prefixes of project-name words that indicate a fit
SKILL_KEYWORDS: Dict[str, tuple] = {
    "design": ("design", "brand", "ux", "ui"),
    "develop": ("dev", "build", "rebuild", "app", "web", "site", "platform"),
    "strateg": ("strategy", "research", "discovery"),
    "video": ("video", "film", "motion"),
    "copy": ("copy", "content", "campaign"),
}

FactorRule = Callable[[AdvisoryRequest, UserView, ProjectView], Optional[AdvisoryFactor]]


def _projected_load(request: AdvisoryRequest, user: UserView) -> float:
    current = user.hours_in_week(request.week_start)
    if request.action == "remove":
        return max(current - request.hours, 0.0)
    return current + request.hours


def capacity_factor(request: AdvisoryRequest, user: UserView, project: ProjectView) -> AdvisoryFactor:
    load = _projected_load(request, user)
    ratio = load / user.weekly_capacity
    if ratio > 1:
        assessment = Assessment.NEGATIVE
    elif ratio > 0.9:
        assessment = Assessment.NEUTRAL
    else:
        assessment = Assessment.POSITIVE
    return AdvisoryFactor(
        factor="User Capacity",
        assessment=assessment,
        detail=(
            f"{user.name} would be at {round(ratio * 100)}% capacity ({load:g}h) "
            f"for the week of {request.week_start.isoformat()}"
        ),
    )


def budget_factor(request: AdvisoryRequest, user: UserView, project: ProjectView) -> Optional[AdvisoryFactor]:
    if project.budget_hours <= 0:
        return None
    remaining = project.hours_remaining
    if remaining < request.hours:
        assessment = Assessment.NEGATIVE
    elif remaining < request.hours * 2:
        assessment = Assessment.NEUTRAL
    else:
        assessment = Assessment.POSITIVE
    return AdvisoryFactor(
        factor="Project Budget",
        assessment=assessment,
        detail=f"{project.name} has {remaining:g}h budget remaining",
    )


def pto_factor(request: AdvisoryRequest, user: UserView, project: ProjectView) -> AdvisoryFactor:
    conflicts = user.pto_in_week(request.week_start)
    if conflicts:
        return AdvisoryFactor(
            factor="PTO Conflicts",
            assessment=Assessment.NEGATIVE,
            detail=f"{user.name} has PTO scheduled: {', '.join(d.isoformat() for d in conflicts)}",
        )
    return AdvisoryFactor(
        factor="Availability",
        assessment=Assessment.POSITIVE,
        detail=f"No PTO conflicts for {user.name} that week",
    )


def skill_factor(request: AdvisoryRequest, user: UserView, project: ProjectView) -> Optional[AdvisoryFactor]:
    """Rough keyword match. Never negative: absence of evidence is neutral."""
    if not user.specialty_notes:
        return None
    specialty = user.specialty_notes.lower()
    words = re.findall(r"[a-z]+", project.name.lower())
    matched = any(
        skill in specialty and any(w.startswith(k) for w in words for k in keywords)
        for skill, keywords in SKILL_KEYWORDS.items()
    )
    return AdvisoryFactor(
        factor="Skill Match",
        assessment=Assessment.POSITIVE if matched else Assessment.NEUTRAL,
        detail=(
            f"{user.name}'s skills align with this project"
            if matched
            else f"Consider whether {user.name}'s skills match project needs"
        ),
    )


FACTOR_RULES: List[FactorRule] = [capacity_factor, budget_factor, pto_factor, skill_factor]


class AdvisoryEngine:
    """Evaluates proposed allocation changes against a snapshot."""

    def __init__(self, rules: Optional[List[FactorRule]] = None):
        self.rules = rules or list(FACTOR_RULES)

    def evaluate(self, request: AdvisoryRequest, snapshot: OrgSnapshot) -> AdvisoryResponse:
        user = snapshot.find_user(request.user_id)
        project = snapshot.find_project(request.project_id)
        if user is None or project is None:
            return AdvisoryResponse(
                recommendation=Recommendation.AVOID,
                reasoning=["Could not find the specified user or project."],
            )

        factors = [f for f in (rule(request, user, project) for rule in self.rules) if f is not None]
        negatives = [f for f in factors if f.assessment == Assessment.NEGATIVE]

        if len(negatives) >= 2:
            recommendation = Recommendation.AVOID
            reasoning = ["Multiple concerns identified with this allocation."]
            reasoning += [f.detail for f in negatives]
        elif len(negatives) == 1:
            recommendation = Recommendation.CAUTION
            reasoning = ["This allocation is possible but has some concerns."]
            reasoning += [f.detail for f in negatives]
        else:
            recommendation = Recommendation.PROCEED
            reasoning = ["This looks like a good allocation."]
            reasoning += [f.detail for f in factors if f.assessment == Assessment.POSITIVE]

        alternatives = None
        if recommendation != Recommendation.PROCEED:
            alternatives = self.find_alternatives(request, user, snapshot) or None

        logger.info(
            "Advisory for %s on %s: %s (%d negative factor(s))",
            user.name,
            project.name,
            recommendation.value,
            len(negatives),
        )
        return AdvisoryResponse(
            recommendation=recommendation,
            reasoning=reasoning,
            factors_considered=factors,
            alternative_suggestions=alternatives,
        )

    def find_alternatives(
        self,
        request: AdvisoryRequest,
        target: UserView,
        snapshot: OrgSnapshot,
    ) -> List[AlternativeSuggestion]:
        """Same-role users with enough spare hours and no PTO that week."""
        suggestions = []
        for user in snapshot.users:
            if user.id == target.id or user.display_role != target.display_role:
                continue
            available = user.weekly_capacity - user.hours_in_week(request.week_start)
            if available < request.hours or user.pto_in_week(request.week_start):
                continue
            suggestions.append(AlternativeSuggestion(
                description=f"Assign to {user.name} instead ({available:g}h available)",
                actions=[build_action(
                    ToolName.ADD_ALLOCATION,
                    {
                        "user_id": user.id,
                        "project_id": request.project_id,
                        "hours": request.hours,
                        "week_start": request.week_start,
                    },
                    snapshot,
                )],
            ))
            if len(suggestions) == MAX_ALTERNATIVES:
                break
        return suggestions
