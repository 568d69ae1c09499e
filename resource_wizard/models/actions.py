"""
Action Calls: the closed set of tools the command agent may invoke.

Each tool has its own parameter model. A raw ``{tool, params}`` pair coming
from the language model is decoded exactly once into an ActionCall; nothing
downstream ever reads untyped model output.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, Field, ValidationError, model_validator


class ToolName(str, Enum):
    ADD_ALLOCATION = "add_allocation"
    REMOVE_ALLOCATION = "remove_allocation"
    MOVE_ALLOCATION = "move_allocation"
    BULK_UPDATE_ALLOCATIONS = "bulk_update_allocations"
    GET_USER_AVAILABILITY = "get_user_availability"
    GET_USER_ALLOCATIONS = "get_user_allocations"
    GET_PROJECT_STATUS = "get_project_status"
    SUGGEST_COVERAGE = "suggest_coverage"
    SEARCH_USERS = "search_users"
    SEARCH_PROJECTS = "search_projects"


# --- Mutating tools ---

class AddAllocationParams(BaseModel):
    user_id: str = Field(description="ID of the user (use the exact ID from context)")
    project_id: str = Field(description="ID of the project (use the exact ID from context)")
    hours: float = Field(gt=0, description="Number of hours to allocate")
    week_start: date = Field(description="Start date of the week (YYYY-MM-DD, must be a Monday)")
    phase_id: Optional[str] = Field(default=None, description="Optional: specific phase")
    is_billable: bool = Field(default=True, description="Whether the hours are billable")


class RemoveAllocationParams(BaseModel):
    user_id: str = Field(description="ID of the user")
    project_id: str = Field(description="ID of the project")
    week_start: date = Field(description="Start date of the week (YYYY-MM-DD)")


class MoveAllocationParams(BaseModel):
    from_user_id: Optional[str] = Field(default=None, description="ID of the user to take hours from")
    to_user_id: str = Field(description="ID of the user to give hours to")
    project_id: str = Field(description="ID of the project")
    hours: float = Field(gt=0, description="Number of hours to move")
    week_start: date = Field(description="Start date of the week (YYYY-MM-DD, must be a Monday)")
    phase_id: Optional[str] = Field(default=None, description="Optional: specific phase")


class BulkChange(BaseModel):
    """
    One item of a bulk update. Identifiers are optional here so that a single
    bad item fails on its own instead of rejecting the whole batch.
    """

    action: Literal["add", "remove", "update"]
    user_id: Optional[str] = None
    project_id: Optional[str] = None
    hours: float = Field(ge=0, default=0.0)
    week_start: Optional[date] = None


class BulkUpdateAllocationsParams(BaseModel):
    changes: List[BulkChange] = Field(description="Array of allocation changes")


# --- Query tools ---

class GetUserAvailabilityParams(BaseModel):
    user_id: Optional[str] = Field(default=None, description="ID of the user (omit for all users)")
    start_week: date = Field(description="Start of date range (YYYY-MM-DD)")
    end_week: date = Field(description="End of date range (YYYY-MM-DD)")
    role_filter: Optional[str] = Field(default=None, description="Optional: filter by job title")


class GetUserAllocationsParams(BaseModel):
    user_id: str = Field(description="ID of the user to get allocations for")
    start_week: date = Field(description="Start of date range (YYYY-MM-DD, a Monday)")
    end_week: date = Field(description="End of date range (YYYY-MM-DD, a Monday)")


class GetProjectStatusParams(BaseModel):
    project_id: str = Field(description="ID of the project")
    include_phases: bool = Field(default=False, description="Include phase-level breakdown")


class SuggestCoverageParams(BaseModel):
    absent_user_id: str = Field(description="ID of the user who is out")
    week_start: date = Field(description="Week to find coverage for")
    project_id: Optional[str] = Field(default=None, description="Optional: specific project to cover")
    preferred_role: Optional[str] = Field(default=None, description="Optional: preferred job title")


class SearchUsersParams(BaseModel):
    query: str
    role: Optional[str] = None


class SearchProjectsParams(BaseModel):
    query: str
    active_only: bool = True


ActionParams = Union[
    AddAllocationParams,
    RemoveAllocationParams,
    MoveAllocationParams,
    BulkUpdateAllocationsParams,
    GetUserAvailabilityParams,
    GetUserAllocationsParams,
    GetProjectStatusParams,
    SuggestCoverageParams,
    SearchUsersParams,
    SearchProjectsParams,
]

PARAM_MODELS: Dict[ToolName, Type[BaseModel]] = {
    ToolName.ADD_ALLOCATION: AddAllocationParams,
    ToolName.REMOVE_ALLOCATION: RemoveAllocationParams,
    ToolName.MOVE_ALLOCATION: MoveAllocationParams,
    ToolName.BULK_UPDATE_ALLOCATIONS: BulkUpdateAllocationsParams,
    ToolName.GET_USER_AVAILABILITY: GetUserAvailabilityParams,
    ToolName.GET_USER_ALLOCATIONS: GetUserAllocationsParams,
    ToolName.GET_PROJECT_STATUS: GetProjectStatusParams,
    ToolName.SUGGEST_COVERAGE: SuggestCoverageParams,
    ToolName.SEARCH_USERS: SearchUsersParams,
    ToolName.SEARCH_PROJECTS: SearchProjectsParams,
}

MUTATING_TOOLS = frozenset({
    ToolName.ADD_ALLOCATION,
    ToolName.REMOVE_ALLOCATION,
    ToolName.MOVE_ALLOCATION,
    ToolName.BULK_UPDATE_ALLOCATIONS,
})

# Pure reads: executed immediately, never audited.
QUERY_TOOLS = frozenset(set(ToolName) - MUTATING_TOOLS)


class ActionCall(BaseModel):
    """A single proposed mutation or query, named and parameterized."""

    tool: ToolName
    params: ActionParams
    description: str = ""

    @model_validator(mode="before")
    @classmethod
    def _decode_params(cls, data):
        # Route the params bag to the model for this tool rather than
        # letting the union guess.
        if not isinstance(data, dict):
            return data
        tool, params = data.get("tool"), data.get("params")
        try:
            tool = ToolName(tool)
        except ValueError:
            raise ValueError(f"Unknown tool: {tool}")
        model = PARAM_MODELS[tool]
        if params is None:
            params = {}
        if isinstance(params, BaseModel) and not isinstance(params, model):
            params = params.model_dump()
        if isinstance(params, dict):
            try:
                params = model.model_validate(params)
            except ValidationError as e:
                raise ValueError(f"Invalid parameters for {tool.value}: {e}")
        return {**data, "tool": tool, "params": params}

    @property
    def is_query(self) -> bool:
        return self.tool in QUERY_TOOLS


class ActionResult(BaseModel):
    """Outcome of one executed ActionCall."""

    tool: str
    success: bool
    data: Optional[dict] = None
    error: Optional[str] = None


class ExecutionOutcome(BaseModel):
    """Aggregate outcome of an ordered list of actions."""

    success: bool
    results: List[ActionResult]
    message: str
    executed_at: datetime
    execution_duration_seconds: float
