"""
Preview Engine: best-effort before/after projection of proposed actions.

The projection is computed from the snapshot alone and never touches the
store. It is not a dry run: the executor re-reads the store at confirmation
time, so concurrent changes made in between can make the real outcome
differ from the preview.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Tuple

from resource_wizard.models.actions import ActionCall, ToolName
from resource_wizard.models.response import (
    AllocationLine,
    PreviewResult,
    StateSnapshot,
    UserState,
)
from resource_wizard.models.snapshot import OrgSnapshot

logger = logging.getLogger(__name__)

# user_id -> (project_id, week_start) -> hours
Plan = Dict[str, Dict[Tuple[str, date], float]]


def referenced_user_ids(actions: List[ActionCall]) -> List[str]:
    """Users touched by mutating actions, in first-mention order."""
    seen: List[str] = []

    def note(user_id):
        if user_id and user_id not in seen:
            seen.append(user_id)

    for action in actions:
        p = action.params
        if action.tool in (ToolName.ADD_ALLOCATION, ToolName.REMOVE_ALLOCATION):
            note(p.user_id)
        elif action.tool == ToolName.MOVE_ALLOCATION:
            note(p.from_user_id)
            note(p.to_user_id)
        elif action.tool == ToolName.BULK_UPDATE_ALLOCATIONS:
            for change in p.changes:
                note(change.user_id)
    return seen


class PreviewEngine:
    """Simulates add, remove, move and bulk actions over a snapshot."""

    def preview(self, actions: List[ActionCall], snapshot: OrgSnapshot) -> PreviewResult:
        user_ids = referenced_user_ids(actions)
        plan = self._current_plan(user_ids, snapshot)
        before = self._render(plan, user_ids, snapshot)

        for action in actions:
            self._apply(action, plan)

        after = self._render(plan, user_ids, snapshot)
        logger.debug("Previewed %d action(s) across %d user(s)", len(actions), len(user_ids))
        return PreviewResult(before=before, after=after)

    def _current_plan(self, user_ids: List[str], snapshot: OrgSnapshot) -> Plan:
        plan: Plan = {uid: defaultdict(float) for uid in user_ids}
        for uid in user_ids:
            user = snapshot.find_user(uid)
            if user is None:
                continue
            for alloc in user.allocations:
                plan[uid][(alloc.project_id, alloc.week_start)] += alloc.hours
        return plan

    def _apply(self, action: ActionCall, plan: Plan) -> None:
        p = action.params
        if action.tool == ToolName.ADD_ALLOCATION:
            plan[p.user_id][(p.project_id, p.week_start)] += p.hours
        elif action.tool == ToolName.REMOVE_ALLOCATION:
            plan[p.user_id].pop((p.project_id, p.week_start), None)
        elif action.tool == ToolName.MOVE_ALLOCATION:
            key = (p.project_id, p.week_start)
            if p.from_user_id and key in plan[p.from_user_id]:
                remaining = plan[p.from_user_id][key] - p.hours
                if remaining <= 0:
                    del plan[p.from_user_id][key]
                else:
                    plan[p.from_user_id][key] = remaining
            plan[p.to_user_id][key] += p.hours
        elif action.tool == ToolName.BULK_UPDATE_ALLOCATIONS:
            for change in p.changes:
                if not (change.user_id and change.project_id and change.week_start):
                    continue
                key = (change.project_id, change.week_start)
                if change.action == "add":
                    plan[change.user_id][key] += change.hours
                elif change.action == "remove":
                    plan[change.user_id].pop(key, None)
                else:
                    plan[change.user_id][key] = change.hours

    def _render(self, plan: Plan, user_ids: List[str], snapshot: OrgSnapshot) -> StateSnapshot:
        users = []
        for uid in user_ids:
            lines = []
            totals: Dict[str, float] = defaultdict(float)
            for (project_id, week), hours in sorted(plan[uid].items(), key=lambda kv: (kv[0][1], kv[0][0])):
                lines.append(AllocationLine(
                    project_name=self._project_name(project_id, snapshot),
                    week_start=week.isoformat(),
                    hours=hours,
                ))
                totals[week.isoformat()] += hours
            users.append(UserState(
                name=snapshot.user_name(uid),
                allocations=lines,
                weekly_totals=dict(totals),
            ))
        return StateSnapshot(users=users)

    def _project_name(self, project_id: str, snapshot: OrgSnapshot) -> str:
        project = snapshot.find_project(project_id)
        if project is not None:
            return project.name
        # Inactive projects can still carry allocations
        for user in snapshot.users:
            for alloc in user.allocations:
                if alloc.project_id == project_id:
                    return alloc.project_name
        return snapshot.project_name(project_id)
