"""Tests for the Advisory Engine."""

from datetime import date

from resource_wizard.advisory.engine import (
    AdvisoryEngine,
    budget_factor,
    capacity_factor,
    pto_factor,
    skill_factor,
)
from resource_wizard.models.actions import ToolName
from resource_wizard.models.advisory import AdvisoryRequest, Assessment, Recommendation
from resource_wizard.models.snapshot import (
    AllocationView,
    OrgSnapshot,
    OrgView,
    ProjectView,
    UserView,
)

WEEK = date(2026, 10, 19)


def _alloc(hours: float, week: date = WEEK) -> AllocationView:
    return AllocationView(week_start=week, project_id="prj_web", project_name="Website Rebuild", hours=hours)


def _make_user(user_id: str, name: str, hours: float = 0, job_title: str = "Developer", **kwargs) -> UserView:
    allocations = [_alloc(hours)] if hours else []
    return UserView(id=user_id, name=name, job_title=job_title, allocations=allocations, **kwargs)


def _make_snapshot(users, budget_hours: float = 500, hours_used: float = 100) -> OrgSnapshot:
    return OrgSnapshot(
        org=OrgView(id="org_acme", name="Acme Studio"),
        current_date=date(2026, 10, 21),
        current_week_start=WEEK,
        users=users,
        projects=[
            ProjectView(id="prj_web", name="Website Rebuild", budget_hours=budget_hours, hours_used=hours_used),
            ProjectView(id="prj_brand", name="Brand Refresh", budget_hours=100),
        ],
    )


def _request(user_id: str = "usr_ryan", hours: float = 16, action: str = "add", project_id="prj_web"):
    return AdvisoryRequest(action=action, user_id=user_id, project_id=project_id, hours=hours, week_start=WEEK)


class TestAdvisoryEngine:
    def setup_method(self):
        self.engine = AdvisoryEngine()

    def test_over_capacity_with_pto_is_avoid(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=34, pto_dates=[date(2026, 10, 23)])
        response = self.engine.evaluate(_request(), _make_snapshot([ryan]))

        assert response.recommendation == Recommendation.AVOID
        assert response.reasoning[0] == "Multiple concerns identified with this allocation."
        capacity = response.factors_considered[0]
        assert capacity.assessment == Assessment.NEGATIVE
        assert "125% capacity (50h)" in capacity.detail

    def test_over_capacity_without_pto_is_caution(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=34)
        response = self.engine.evaluate(_request(), _make_snapshot([ryan]))

        assert response.recommendation == Recommendation.CAUTION
        budget = next(f for f in response.factors_considered if f.factor == "Project Budget")
        assert budget.assessment == Assessment.POSITIVE
        assert len(response.reasoning) == 2

    def test_mid_week_date_is_judged_against_its_week(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=40)
        request = AdvisoryRequest(
            user_id="usr_ryan", project_id="prj_web", hours=10, week_start=date(2026, 10, 21)
        )
        assert request.week_start == WEEK

        response = self.engine.evaluate(request, _make_snapshot([ryan]))
        assert response.recommendation == Recommendation.CAUTION
        assert "125% capacity (50h)" in response.factors_considered[0].detail

    def test_comfortable_allocation_proceeds(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=8)
        response = self.engine.evaluate(_request(), _make_snapshot([ryan]))

        assert response.recommendation == Recommendation.PROCEED
        assert response.alternative_suggestions is None
        assert response.reasoning[0] == "This looks like a good allocation."

    def test_unknown_user_is_avoid(self):
        response = self.engine.evaluate(_request("usr_ghost"), _make_snapshot([]))
        assert response.recommendation == Recommendation.AVOID
        assert response.factors_considered == []

    def test_alternatives_same_role_with_room(self):
        users = [
            _make_user("usr_ryan", "Ryan Daniels", hours=34),
            _make_user("usr_sam", "Sam Lee", hours=8),
            _make_user("usr_busy", "Busy Bee", hours=30),
            _make_user("usr_away", "Away Person", pto_dates=[date(2026, 10, 20)]),
            _make_user("usr_alex", "Alex Kim", job_title="Designer"),
        ]
        response = self.engine.evaluate(_request(), _make_snapshot(users))

        alternatives = response.alternative_suggestions
        assert [a.description for a in alternatives] == ["Assign to Sam Lee instead (32h available)"]
        action = alternatives[0].actions[0]
        assert action.tool == ToolName.ADD_ALLOCATION
        assert action.params.user_id == "usr_sam"
        assert action.params.hours == 16

    def test_alternatives_capped_at_three(self):
        users = [_make_user("usr_ryan", "Ryan Daniels", hours=34)]
        users += [_make_user(f"usr_dev{i}", f"Dev {i}") for i in range(5)]
        response = self.engine.evaluate(_request(), _make_snapshot(users))
        assert len(response.alternative_suggestions) == 3

    def test_custom_rules(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=34)
        response = AdvisoryEngine(rules=[pto_factor]).evaluate(_request(), _make_snapshot([ryan]))
        assert response.recommendation == Recommendation.PROCEED
        assert [f.factor for f in response.factors_considered] == ["Availability"]


class TestFactors:
    def test_capacity_is_per_target_week(self):
        ryan = UserView(
            id="usr_ryan", name="Ryan Daniels",
            allocations=[_alloc(40, date(2026, 10, 26))],
        )
        factor = capacity_factor(_request(hours=8), ryan, ProjectView(id="prj_web", name="Website Rebuild"))
        assert factor.assessment == Assessment.POSITIVE

    def test_capacity_near_full_is_neutral(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=30)
        factor = capacity_factor(_request(hours=8), ryan, ProjectView(id="prj_web", name="Website Rebuild"))
        assert factor.assessment == Assessment.NEUTRAL

    def test_remove_reduces_load(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", hours=48)
        factor = capacity_factor(
            _request(hours=16, action="remove"), ryan, ProjectView(id="prj_web", name="Website Rebuild")
        )
        assert factor.assessment == Assessment.POSITIVE
        assert "(32h)" in factor.detail

    def test_budget(self):
        user = _make_user("usr_ryan", "Ryan Daniels")
        tight = ProjectView(id="prj_web", name="Website Rebuild", budget_hours=100, hours_used=90)
        snug = ProjectView(id="prj_web", name="Website Rebuild", budget_hours=100, hours_used=80)
        unbudgeted = ProjectView(id="prj_web", name="Website Rebuild")

        assert budget_factor(_request(hours=16), user, tight).assessment == Assessment.NEGATIVE
        assert budget_factor(_request(hours=16), user, snug).assessment == Assessment.NEUTRAL
        assert budget_factor(_request(hours=16), user, unbudgeted) is None

    def test_pto_outside_target_week_is_not_a_conflict(self):
        ryan = _make_user("usr_ryan", "Ryan Daniels", pto_dates=[date(2026, 10, 28)])
        factor = pto_factor(_request(), ryan, ProjectView(id="prj_web", name="Website Rebuild"))
        assert factor.factor == "Availability"
        assert factor.assessment == Assessment.POSITIVE

    def test_skill_match(self):
        alex = _make_user("usr_alex", "Alex Kim", specialty_notes="Brand design and illustration")
        brand = ProjectView(id="prj_brand", name="Brand Refresh")
        web = ProjectView(id="prj_web", name="Website Rebuild")

        assert skill_factor(_request(), alex, brand).assessment == Assessment.POSITIVE
        assert skill_factor(_request(), alex, web).assessment == Assessment.NEUTRAL
        assert skill_factor(_request(), _make_user("usr_sam", "Sam Lee"), web) is None
