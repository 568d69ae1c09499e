"""Process responses and before/after previews returned to the caller."""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel

from resource_wizard.models.actions import ActionCall, ActionResult
from resource_wizard.models.advisory import AdvisoryResponse
from resource_wizard.models.insight import Insight


class ResponseType(str, Enum):
    DIRECTIVE = "directive"                 # Mutations pending confirmation
    INFO = "info"                           # Plain answer, or queries already executed
    SUGGESTION = "suggestion"
    CLARIFICATION = "clarification"
    INSIGHT = "insight"
    ADVISORY = "advisory"


class Tone(str, Enum):
    CASUAL = "casual"
    PROFESSIONAL = "professional"
    URGENT = "urgent"


class AllocationLine(BaseModel):
    project_name: str
    week_start: str
    hours: float


class UserState(BaseModel):
    name: str
    allocations: List[AllocationLine] = []
    weekly_totals: Dict[str, float] = {}


class StateSnapshot(BaseModel):
    users: List[UserState] = []


class PreviewResult(BaseModel):
    """
    A best-effort projection for human review. Not a dry run: the executor
    reads the store again at confirmation time and may diverge if anything
    changed in between.
    """

    before: StateSnapshot
    after: StateSnapshot
    transactional: bool = False
    caveat: str = (
        "Preview is a projection of current data. Changes made by others "
        "before you confirm may produce a different result."
    )


class ProcessResponse(BaseModel):
    type: ResponseType
    message: str
    conversation_id: str
    actions: Optional[List[ActionCall]] = None
    before_state: Optional[StateSnapshot] = None
    after_state: Optional[StateSnapshot] = None
    preview_caveat: Optional[str] = None
    query_results: Optional[List[ActionResult]] = None
    insights: Optional[List[Insight]] = None
    advisory: Optional[AdvisoryResponse] = None
    personality_tone: Optional[Tone] = None
