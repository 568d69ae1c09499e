"""Advisory models: the scored evaluation of one proposed allocation change."""

from datetime import date
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from resource_wizard.context.weeks import week_start_of
from resource_wizard.models.actions import ActionCall


class Recommendation(str, Enum):
    PROCEED = "proceed"
    CAUTION = "caution"
    AVOID = "avoid"


class Assessment(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class AdvisoryRequest(BaseModel):
    action: Literal["add", "move", "remove"] = "add"
    user_id: str
    project_id: str
    hours: float = Field(gt=0)
    week_start: date                        # Snapped to the Monday of its week

    @field_validator("week_start")
    @classmethod
    def snap_to_monday(cls, v: date) -> date:
        return week_start_of(v)


class AdvisoryFactor(BaseModel):
    factor: str                             # e.g., "User Capacity"
    assessment: Assessment
    detail: str                             # Human-readable


class AlternativeSuggestion(BaseModel):
    description: str
    actions: List[ActionCall]


class AdvisoryResponse(BaseModel):
    recommendation: Recommendation
    reasoning: List[str] = []
    factors_considered: List[AdvisoryFactor] = []
    alternative_suggestions: Optional[List[AlternativeSuggestion]] = None
