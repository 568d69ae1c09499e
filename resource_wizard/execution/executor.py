"""
Action Executor: applies confirmed actions to the resource store.

Behavioral Contract:
- Actions run strictly in order, one at a time. Never parallelized: later
  actions may depend on earlier ones and audit order must match execution
  order.
- Each action is individually guarded. A failure is recorded as a failed
  ActionResult and the remaining actions still run.
- Parameters are validated here before any write; model output is never
  trusted.
- Every successful mutation writes one audit entry. An audit write failure is
  logged and does not roll back the mutation.
- No transaction spans two actions. A move is two independently audited
  steps; if the destination step fails after the source step succeeded the
  result is a reported partial move, not a rollback.
"""

import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Dict, List, Optional, Union

from resource_wizard.agent.tools import decode_action
from resource_wizard.audit.log import AuditLog
from resource_wizard.context.queries import ResourceQueries
from resource_wizard.context.weeks import is_week_start
from resource_wizard.datastore.store import ResourceStore
from resource_wizard.errors import (
    ActionValidationError,
    NotFoundError,
    StoreError,
    WizardError,
)
from resource_wizard.models.actions import (
    ActionCall,
    ActionResult,
    AddAllocationParams,
    BulkChange,
    BulkUpdateAllocationsParams,
    ExecutionOutcome,
    GetProjectStatusParams,
    GetUserAllocationsParams,
    GetUserAvailabilityParams,
    MoveAllocationParams,
    RemoveAllocationParams,
    SearchProjectsParams,
    SearchUsersParams,
    SuggestCoverageParams,
    ToolName,
)
from resource_wizard.models.audit import AuditAction

logger = logging.getLogger(__name__)

ENTITY_TYPE = "allocations"


class ActionFailed(WizardError):
    """An action that did some work but did not fully succeed."""

    def __init__(self, message: str, data: Optional[dict] = None):
        super().__init__(message)
        self.data = data


@dataclass
class ExecutionContext:
    org_id: str
    acting_user_id: str


def summarize(results: List[ActionResult]) -> str:
    succeeded = sum(1 for r in results if r.success)
    if succeeded == len(results):
        noun = "action" if len(results) == 1 else "actions"
        return f"Successfully completed {len(results)} {noun}"
    return f"Completed {succeeded} of {len(results)} actions"


def _error_message(error: Exception) -> str:
    if isinstance(error, WizardError):
        return str(error)
    return "Unexpected error while applying the change"


def _require_week(week_start: date) -> None:
    if not is_week_start(week_start):
        raise ActionValidationError(
            f"week_start must be a Monday (got {week_start.strftime('%A')}: {week_start.isoformat()})"
        )


class ActionExecutor:
    """
    Dispatches ActionCalls to registered executors. Mutating executors write
    to the store and the audit log; query executors only read.
    """

    def __init__(
        self,
        store: ResourceStore,
        audit_log: AuditLog,
        queries: Optional[ResourceQueries] = None,
    ):
        self.store = store
        self.audit_log = audit_log
        self.queries = queries or ResourceQueries(store)
        self._executors: Dict[ToolName, Callable] = {}
        self._register_default_executors()

    def _register_default_executors(self) -> None:
        self._executors[ToolName.ADD_ALLOCATION] = self._execute_add
        self._executors[ToolName.REMOVE_ALLOCATION] = self._execute_remove
        self._executors[ToolName.MOVE_ALLOCATION] = self._execute_move
        self._executors[ToolName.BULK_UPDATE_ALLOCATIONS] = self._execute_bulk
        self._executors[ToolName.GET_USER_AVAILABILITY] = self._query_availability
        self._executors[ToolName.GET_USER_ALLOCATIONS] = self._query_user_allocations
        self._executors[ToolName.GET_PROJECT_STATUS] = self._query_project_status
        self._executors[ToolName.SUGGEST_COVERAGE] = self._query_coverage
        self._executors[ToolName.SEARCH_USERS] = self._query_search_users
        self._executors[ToolName.SEARCH_PROJECTS] = self._query_search_projects

    def register_executor(self, tool: ToolName, executor: Callable) -> None:
        """Replace the executor for a tool."""
        self._executors[tool] = executor

    def execute(
        self,
        actions: List[Union[ActionCall, dict]],
        acting_user_id: str,
        org_id: str,
    ) -> ExecutionOutcome:
        """Execute actions in order and aggregate their results."""
        start_time = time.monotonic()
        ctx = ExecutionContext(org_id=org_id, acting_user_id=acting_user_id)

        results = []
        for index, raw in enumerate(actions, start=1):
            result = self._dispatch_action(raw, ctx)
            logger.info(
                "[%d/%d] %s %s",
                index,
                len(actions),
                result.tool,
                "succeeded" if result.success else f"failed: {result.error}",
            )
            results.append(result)

        elapsed = time.monotonic() - start_time
        return ExecutionOutcome(
            success=all(r.success for r in results),
            results=results,
            message=summarize(results),
            executed_at=datetime.utcnow(),
            execution_duration_seconds=round(elapsed, 3),
        )

    def _dispatch_action(self, raw: Union[ActionCall, dict], ctx: ExecutionContext) -> ActionResult:
        """Decode (if needed) and run one action. Never raises."""
        if isinstance(raw, ActionCall):
            action = raw
        else:
            tool_name = str(raw.get("tool", "unknown")) if isinstance(raw, dict) else "unknown"
            try:
                action = decode_action(raw)
            except ActionValidationError as e:
                return ActionResult(tool=tool_name, success=False, error=str(e))

        executor = self._executors.get(action.tool)
        if executor is None:
            return ActionResult(
                tool=action.tool.value,
                success=False,
                error=f"No executor registered for tool: {action.tool.value}",
            )

        try:
            data = executor(action.params, ctx)
            return ActionResult(tool=action.tool.value, success=True, data=data)
        except ActionFailed as e:
            return ActionResult(tool=action.tool.value, success=False, data=e.data, error=str(e))
        except WizardError as e:
            return ActionResult(tool=action.tool.value, success=False, error=str(e))
        except Exception:
            logger.exception("Unexpected failure executing %s", action.tool.value)
            return ActionResult(
                tool=action.tool.value,
                success=False,
                error="Unexpected error while applying the change",
            )

    # --- Validation ---

    def _require_user(self, user_id: Optional[str], ctx: ExecutionContext) -> dict:
        if not user_id:
            raise ActionValidationError("user_id is required")
        user = self.store.get_user(user_id)
        if user is None or user["org_id"] != ctx.org_id:
            raise NotFoundError("User not found")
        return user

    def _require_project(self, project_id: Optional[str], ctx: ExecutionContext) -> dict:
        if not project_id:
            raise ActionValidationError("project_id is required")
        project = self.store.get_project(project_id)
        if project is None or project["org_id"] != ctx.org_id:
            raise NotFoundError("Project not found")
        return project

    # --- Audit ---

    def _audit(
        self,
        ctx: ExecutionContext,
        allocation_id: str,
        action: AuditAction,
        old: Optional[dict] = None,
        new: Optional[dict] = None,
    ) -> None:
        try:
            self.audit_log.record(
                org_id=ctx.org_id,
                entity_type=ENTITY_TYPE,
                entity_id=allocation_id,
                action=action,
                user_id=ctx.acting_user_id,
                old=old,
                new=new,
            )
        except StoreError as e:
            # The mutation stands; the gap is logged rather than rolled back
            logger.warning(
                "Audit write failed for %s %s (not rolled back): %s",
                action.value,
                allocation_id,
                e,
            )

    # --- Mutations ---

    def _add(
        self,
        user_id: Optional[str],
        project_id: Optional[str],
        hours: float,
        week_start: Optional[date],
        ctx: ExecutionContext,
        phase_id: Optional[str] = None,
        is_billable: bool = True,
    ) -> dict:
        if week_start is None:
            raise ActionValidationError("week_start is required")
        _require_week(week_start)
        if hours <= 0:
            raise ActionValidationError("hours must be greater than zero")
        self._require_user(user_id, ctx)
        self._require_project(project_id, ctx)

        existing = self.store.find_allocation(user_id, project_id, week_start)
        if existing:
            total = existing["planned_hours"] + hours
            self.store.update_allocation_hours(existing["id"], total)
            self._audit(
                ctx,
                existing["id"],
                AuditAction.UPDATE,
                old={"planned_hours": existing["planned_hours"]},
                new={"planned_hours": total},
            )
            return {"allocation_id": existing["id"], "total_hours": total, "merged": True}

        created = self.store.insert_allocation(
            user_id=user_id,
            project_id=project_id,
            week_start=week_start,
            hours=hours,
            created_by=ctx.acting_user_id,
            phase_id=phase_id,
            is_billable=is_billable,
        )
        self._audit(
            ctx,
            created["id"],
            AuditAction.CREATE,
            new={
                "user_id": user_id,
                "project_id": project_id,
                "planned_hours": hours,
                "week_start": week_start.isoformat(),
            },
        )
        return {"allocation_id": created["id"], "total_hours": hours, "merged": False}

    def _remove(
        self,
        user_id: Optional[str],
        project_id: Optional[str],
        week_start: Optional[date],
        ctx: ExecutionContext,
    ) -> dict:
        self._require_user(user_id, ctx)
        self._require_project(project_id, ctx)
        if week_start is None:
            raise ActionValidationError("week_start is required")

        allocation = self.store.find_allocation(user_id, project_id, week_start)
        if allocation is None:
            raise NotFoundError("Allocation not found")

        self.store.delete_allocation(allocation["id"])
        self._audit(ctx, allocation["id"], AuditAction.DELETE, old=allocation)
        return {"allocation_id": allocation["id"], "removed_hours": allocation["planned_hours"]}

    def _set_hours(self, change: BulkChange, ctx: ExecutionContext) -> dict:
        """Set an absolute hour value, creating the allocation if absent."""
        if change.week_start is None:
            raise ActionValidationError("week_start is required")
        self._require_user(change.user_id, ctx)
        self._require_project(change.project_id, ctx)

        existing = self.store.find_allocation(change.user_id, change.project_id, change.week_start)
        if existing is None:
            return self._add(change.user_id, change.project_id, change.hours, change.week_start, ctx)

        if change.hours <= 0:
            # No zero-hour rows: setting to zero removes the allocation
            return self._remove(change.user_id, change.project_id, change.week_start, ctx)

        self.store.update_allocation_hours(existing["id"], change.hours)
        self._audit(
            ctx,
            existing["id"],
            AuditAction.UPDATE,
            old={"planned_hours": existing["planned_hours"]},
            new={"planned_hours": change.hours},
        )
        return {"allocation_id": existing["id"], "total_hours": change.hours}

    def _execute_add(self, params: AddAllocationParams, ctx: ExecutionContext) -> dict:
        return self._add(
            params.user_id,
            params.project_id,
            params.hours,
            params.week_start,
            ctx,
            phase_id=params.phase_id,
            is_billable=params.is_billable,
        )

    def _execute_remove(self, params: RemoveAllocationParams, ctx: ExecutionContext) -> dict:
        return self._remove(params.user_id, params.project_id, params.week_start, ctx)

    def _execute_move(self, params: MoveAllocationParams, ctx: ExecutionContext) -> dict:
        # Validate everything the destination step needs before the source write
        _require_week(params.week_start)
        self._require_user(params.to_user_id, ctx)
        self._require_project(params.project_id, ctx)
        if params.from_user_id:
            self._require_user(params.from_user_id, ctx)

        source_adjusted = False
        if params.from_user_id:
            source = self.store.find_allocation(params.from_user_id, params.project_id, params.week_start)
            if source is None:
                logger.warning(
                    "Move source allocation not found for %s; proceeding with add only",
                    params.from_user_id,
                )
            else:
                remaining = source["planned_hours"] - params.hours
                if remaining <= 0:
                    self.store.delete_allocation(source["id"])
                    self._audit(
                        ctx,
                        source["id"],
                        AuditAction.DELETE,
                        old={"planned_hours": source["planned_hours"]},
                    )
                else:
                    self.store.update_allocation_hours(source["id"], remaining)
                    self._audit(
                        ctx,
                        source["id"],
                        AuditAction.UPDATE,
                        old={"planned_hours": source["planned_hours"]},
                        new={"planned_hours": remaining},
                    )
                source_adjusted = True

        try:
            added = self._add(
                params.to_user_id,
                params.project_id,
                params.hours,
                params.week_start,
                ctx,
                phase_id=params.phase_id,
            )
        except WizardError as e:
            raise ActionFailed(
                f"Failed to add allocation to target user: {e}",
                data={
                    "from_user_id": params.from_user_id,
                    "to_user_id": params.to_user_id,
                    "source_adjusted": source_adjusted,
                    "partial": source_adjusted,
                },
            ) from e

        return {
            "from_user_id": params.from_user_id,
            "to_user_id": params.to_user_id,
            "hours_moved": params.hours,
            "source_adjusted": source_adjusted,
            "destination_allocation_id": added["allocation_id"],
        }

    def _execute_bulk(self, params: BulkUpdateAllocationsParams, ctx: ExecutionContext) -> dict:
        succeeded = 0
        failures = []
        for index, change in enumerate(params.changes):
            try:
                if change.action == "add":
                    self._add(change.user_id, change.project_id, change.hours, change.week_start, ctx)
                elif change.action == "remove":
                    self._remove(change.user_id, change.project_id, change.week_start, ctx)
                else:
                    self._set_hours(change, ctx)
                succeeded += 1
            except Exception as e:
                if not isinstance(e, WizardError):
                    logger.exception("Unexpected failure in bulk change %d", index)
                failures.append({"index": index, "action": change.action, "error": _error_message(e)})

        data = {
            "changes_attempted": len(params.changes),
            "changes_succeeded": succeeded,
            "failures": failures,
        }
        if failures:
            raise ActionFailed("Some changes failed", data=data)
        return data

    # --- Queries (pure reads, never audited) ---

    def _query_availability(self, params: GetUserAvailabilityParams, ctx: ExecutionContext) -> dict:
        return {
            "availability": self.queries.get_user_availability(
                ctx.org_id,
                params.start_week,
                params.end_week,
                user_id=params.user_id,
                role_filter=params.role_filter,
            )
        }

    def _query_user_allocations(self, params: GetUserAllocationsParams, ctx: ExecutionContext) -> dict:
        return self.queries.get_user_allocations(
            ctx.org_id, params.user_id, params.start_week, params.end_week
        )

    def _query_project_status(self, params: GetProjectStatusParams, ctx: ExecutionContext) -> dict:
        return self.queries.get_project_status(ctx.org_id, params.project_id, params.include_phases)

    def _query_coverage(self, params: SuggestCoverageParams, ctx: ExecutionContext) -> dict:
        return self.queries.suggest_coverage(
            ctx.org_id,
            params.absent_user_id,
            params.week_start,
            project_id=params.project_id,
            preferred_role=params.preferred_role,
        )

    def _query_search_users(self, params: SearchUsersParams, ctx: ExecutionContext) -> dict:
        return {"users": self.queries.search_users(ctx.org_id, params.query, params.role)}

    def _query_search_projects(self, params: SearchProjectsParams, ctx: ExecutionContext) -> dict:
        return {"projects": self.queries.search_projects(ctx.org_id, params.query, params.active_only)}
