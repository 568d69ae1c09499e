"""Insights: ephemeral findings recomputed from a snapshot on every request."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel

from resource_wizard.models.actions import ActionCall


class InsightType(str, Enum):
    OVERALLOCATION = "overallocation"
    UNDERUTILIZATION = "underutilization"
    BUDGET_WARNING = "budget_warning"
    COVERAGE_GAP = "coverage_gap"
    PATTERN = "pattern"


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


SEVERITY_ORDER = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}


class EntityRef(BaseModel):
    id: str
    name: str


class AffectedEntities(BaseModel):
    users: List[EntityRef] = []
    projects: List[EntityRef] = []


class Insight(BaseModel):
    type: InsightType
    severity: Severity
    title: str
    description: str
    affected_entities: AffectedEntities = AffectedEntities()
    data: Optional[dict] = None
    suggested_action: Optional[ActionCall] = None
