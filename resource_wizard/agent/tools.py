"""
Tool contract: the named tools offered to the language model, and the one
place raw tool invocations are decoded into typed ActionCalls.
"""

from typing import Any, Dict, List, Optional

from resource_wizard.errors import ActionValidationError
from resource_wizard.models.actions import (
    PARAM_MODELS,
    ActionCall,
    ToolName,
)
from resource_wizard.models.snapshot import OrgSnapshot

TOOL_DESCRIPTIONS: Dict[ToolName, str] = {
    ToolName.ADD_ALLOCATION: (
        "Add a new allocation for a user on a project. USE THIS when the user "
        "asks to add someone to a project or add hours."
    ),
    ToolName.REMOVE_ALLOCATION: "Remove an allocation entirely",
    ToolName.MOVE_ALLOCATION: "Move hours from one user to another on a project",
    ToolName.BULK_UPDATE_ALLOCATIONS: (
        "Apply multiple allocation changes at once. Each change is add, remove, "
        "or update (update sets the absolute hours)."
    ),
    ToolName.GET_USER_AVAILABILITY: (
        "Get a user's availability (remaining capacity) for specified weeks. "
        "Use for questions about who is available."
    ),
    ToolName.GET_USER_ALLOCATIONS: (
        "Get a specific user's allocations across ALL projects. Use when someone "
        "asks 'show me X's hours' or 'what is X working on'."
    ),
    ToolName.GET_PROJECT_STATUS: (
        "Get current status of a project including budget burn and allocations"
    ),
    ToolName.SUGGEST_COVERAGE: "Suggest how to cover work when someone is unavailable",
    ToolName.SEARCH_USERS: "Find team members by name, nickname, or job title",
    ToolName.SEARCH_PROJECTS: "Find projects by name, alias, or client",
}


def tool_definitions() -> List[dict]:
    """Function-calling schemas, one per tool, built from the parameter models."""
    return [
        {
            "type": "function",
            "function": {
                "name": tool.value,
                "description": TOOL_DESCRIPTIONS[tool],
                "parameters": PARAM_MODELS[tool].model_json_schema(),
            },
        }
        for tool in ToolName
    ]


def decode_action(raw: Dict[str, Any], snapshot: Optional[OrgSnapshot] = None) -> ActionCall:
    """
    Validate a raw ``{tool, params}`` pair into an ActionCall.

    Raises ActionValidationError for unknown tools or invalid parameters.
    When a snapshot is given and the call carries no description, one is
    generated from it.
    """
    if not isinstance(raw, dict):
        raise ActionValidationError("Action must be an object with tool and params")
    try:
        action = ActionCall.model_validate(raw)
    except ValueError as e:
        raise ActionValidationError(_first_error(e)) from e
    if snapshot is not None and not action.description:
        action = action.model_copy(update={"description": describe_action(action, snapshot)})
    return action


def build_action(tool: ToolName, params: Dict[str, Any], snapshot: OrgSnapshot) -> ActionCall:
    """Construct a suggested ActionCall for insights and advisories."""
    return decode_action({"tool": tool, "params": params}, snapshot)


def _first_error(error: ValueError) -> str:
    # pydantic wraps validator messages; surface the first one only
    errors = getattr(error, "errors", None)
    if callable(errors):
        details = errors()
        if details:
            message = str(details[0].get("msg", error))
            return message.removeprefix("Value error, ")
    return str(error)


def describe_action(action: ActionCall, snapshot: OrgSnapshot) -> str:
    """Human-readable summary using names, never identifiers."""
    p = action.params
    tool = action.tool

    if tool == ToolName.ADD_ALLOCATION:
        return (
            f"Add {p.hours:g}h for {snapshot.user_name(p.user_id)} on "
            f"{snapshot.project_name(p.project_id)} (week of {p.week_start.isoformat()})"
        )
    if tool == ToolName.REMOVE_ALLOCATION:
        return (
            f"Remove {snapshot.user_name(p.user_id)} from "
            f"{snapshot.project_name(p.project_id)} (week of {p.week_start.isoformat()})"
        )
    if tool == ToolName.MOVE_ALLOCATION:
        source = f" from {snapshot.user_name(p.from_user_id)}" if p.from_user_id else ""
        return (
            f"Move {p.hours:g}h{source} to {snapshot.user_name(p.to_user_id)} on "
            f"{snapshot.project_name(p.project_id)} (week of {p.week_start.isoformat()})"
        )
    if tool == ToolName.BULK_UPDATE_ALLOCATIONS:
        return f"Apply {len(p.changes)} allocation change(s)"
    if tool == ToolName.GET_USER_AVAILABILITY:
        who = f" for {snapshot.user_name(p.user_id)}" if p.user_id else ""
        return f"Check availability{who} from {p.start_week.isoformat()} to {p.end_week.isoformat()}"
    if tool == ToolName.GET_USER_ALLOCATIONS:
        return (
            f"Show {snapshot.user_name(p.user_id)}'s allocations from "
            f"{p.start_week.isoformat()} to {p.end_week.isoformat()}"
        )
    if tool == ToolName.GET_PROJECT_STATUS:
        return f"Get status for {snapshot.project_name(p.project_id)}"
    if tool == ToolName.SUGGEST_COVERAGE:
        return (
            f"Find coverage for {snapshot.user_name(p.absent_user_id)} "
            f"(week of {p.week_start.isoformat()})"
        )
    if tool == ToolName.SEARCH_USERS:
        return f"Search team members for '{p.query}'"
    if tool == ToolName.SEARCH_PROJECTS:
        return f"Search projects for '{p.query}'"
    return f"Execute {tool.value}"
