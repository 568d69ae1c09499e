"""Tests for the Preview Engine."""

from datetime import date

from resource_wizard.agent.tools import decode_action
from resource_wizard.models.snapshot import (
    AllocationView,
    OrgSnapshot,
    OrgView,
    ProjectView,
    UserView,
)
from resource_wizard.preview.engine import PreviewEngine, referenced_user_ids

WEEK = date(2026, 10, 19)
NEXT = date(2026, 10, 26)


def _alloc(project_id: str, hours: float, week: date = WEEK) -> AllocationView:
    names = {"prj_web": "Website Rebuild", "prj_brand": "Brand Refresh"}
    return AllocationView(week_start=week, project_id=project_id, project_name=names[project_id], hours=hours)


def _make_snapshot() -> OrgSnapshot:
    return OrgSnapshot(
        org=OrgView(id="org_acme", name="Acme Studio", size=2),
        current_date=date(2026, 10, 21),
        current_week_start=WEEK,
        users=[
            UserView(id="usr_ryan", name="Ryan Daniels", allocations=[_alloc("prj_web", 16), _alloc("prj_brand", 8)]),
            UserView(id="usr_sam", name="Sam Lee", allocations=[_alloc("prj_web", 10)]),
        ],
        projects=[
            ProjectView(id="prj_web", name="Website Rebuild"),
            ProjectView(id="prj_brand", name="Brand Refresh"),
        ],
    )


def _action(tool: str, **params):
    for key, value in params.items():
        if isinstance(value, date):
            params[key] = value.isoformat()
    return decode_action({"tool": tool, "params": params})


def _hours(state, user_name: str, project_name: str, week: str = "2026-10-19"):
    user = next(u for u in state.users if u.name == user_name)
    return next(
        (a.hours for a in user.allocations if a.project_name == project_name and a.week_start == week),
        None,
    )


class TestPreviewEngine:
    def setup_method(self):
        self.engine = PreviewEngine()
        self.snapshot = _make_snapshot()

    def test_add_merges_with_existing(self):
        action = _action("add_allocation", user_id="usr_ryan", project_id="prj_web", hours=8, week_start=WEEK)
        result = self.engine.preview([action], self.snapshot)

        assert _hours(result.before, "Ryan Daniels", "Website Rebuild") == 16
        assert _hours(result.after, "Ryan Daniels", "Website Rebuild") == 24
        assert result.after.users[0].weekly_totals == {"2026-10-19": 32}

    def test_add_new_week(self):
        action = _action("add_allocation", user_id="usr_ryan", project_id="prj_web", hours=8, week_start=NEXT)
        result = self.engine.preview([action], self.snapshot)
        assert _hours(result.after, "Ryan Daniels", "Website Rebuild", "2026-10-26") == 8
        assert result.after.users[0].weekly_totals["2026-10-19"] == 24

    def test_remove(self):
        action = _action("remove_allocation", user_id="usr_ryan", project_id="prj_brand", week_start=WEEK)
        result = self.engine.preview([action], self.snapshot)
        assert _hours(result.after, "Ryan Daniels", "Brand Refresh") is None
        assert _hours(result.before, "Ryan Daniels", "Brand Refresh") == 8

    def test_move_partial(self):
        action = _action(
            "move_allocation", from_user_id="usr_ryan", to_user_id="usr_sam",
            project_id="prj_web", hours=6, week_start=WEEK,
        )
        result = self.engine.preview([action], self.snapshot)
        assert _hours(result.after, "Ryan Daniels", "Website Rebuild") == 10
        assert _hours(result.after, "Sam Lee", "Website Rebuild") == 16

    def test_move_full_hours_removes_source(self):
        action = _action(
            "move_allocation", from_user_id="usr_ryan", to_user_id="usr_sam",
            project_id="prj_web", hours=16, week_start=WEEK,
        )
        result = self.engine.preview([action], self.snapshot)
        assert _hours(result.after, "Ryan Daniels", "Website Rebuild") is None
        assert _hours(result.after, "Sam Lee", "Website Rebuild") == 26

    def test_bulk(self):
        action = _action("bulk_update_allocations", changes=[
            {"action": "update", "user_id": "usr_ryan", "project_id": "prj_web", "hours": 4, "week_start": "2026-10-19"},
            {"action": "remove", "user_id": "usr_ryan", "project_id": "prj_brand", "week_start": "2026-10-19"},
            {"action": "add", "user_id": "usr_sam", "project_id": "prj_brand", "hours": 5, "week_start": "2026-10-19"},
            {"action": "add", "user_id": "usr_sam", "hours": 99, "week_start": "2026-10-19"},
        ])
        result = self.engine.preview([action], self.snapshot)
        assert _hours(result.after, "Ryan Daniels", "Website Rebuild") == 4
        assert _hours(result.after, "Ryan Daniels", "Brand Refresh") is None
        assert _hours(result.after, "Sam Lee", "Brand Refresh") == 5
        assert result.after.users[1].weekly_totals == {"2026-10-19": 15}

    def test_queries_are_ignored(self):
        action = _action("search_users", query="ryan")
        result = self.engine.preview([action], self.snapshot)
        assert result.before.users == []
        assert result.after.users == []

    def test_preview_carries_caveat(self):
        action = _action("remove_allocation", user_id="usr_sam", project_id="prj_web", week_start=WEEK)
        result = self.engine.preview([action], self.snapshot)
        assert result.transactional is False
        assert "different result" in result.caveat

    def test_snapshot_is_not_mutated(self):
        action = _action("remove_allocation", user_id="usr_ryan", project_id="prj_web", week_start=WEEK)
        self.engine.preview([action], self.snapshot)
        assert len(self.snapshot.find_user("usr_ryan").allocations) == 2

    def test_referenced_user_ids_order(self):
        actions = [
            _action("move_allocation", from_user_id="usr_sam", to_user_id="usr_ryan",
                    project_id="prj_web", hours=1, week_start=WEEK),
            _action("add_allocation", user_id="usr_sam", project_id="prj_web", hours=1, week_start=WEEK),
        ]
        assert referenced_user_ids(actions) == ["usr_sam", "usr_ryan"]
