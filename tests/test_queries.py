"""Tests for the read-only resource queries."""

from datetime import date, timedelta

import pytest

from resource_wizard.context.queries import ResourceQueries, score_project, score_user
from resource_wizard.errors import NotFoundError


def _make_queries(store, seed) -> ResourceQueries:
    return ResourceQueries(store, clock=lambda: seed.today)


class TestScoring:
    def test_user_name_scores(self):
        user = {"name": "Ryan Daniels", "nicknames": "RD, Ry", "job_title": "Developer"}
        assert score_user(user, "ryan daniels") == (100, "name")
        assert score_user(user, "ryan") == (80, "name")
        assert score_user(user, "dan") == (80, "name")
        assert score_user(user, "aniel") == (60, "name")

    def test_user_nickname_and_title_scores(self):
        user = {"name": "Ryan Daniels", "nicknames": "RD, Bud", "job_title": "Developer"}
        assert score_user(user, "bud") == (90, "nickname")
        assert score_user(user, "d, b") == (70, "nickname")
        assert score_user(user, "develop") == (40, "job_title")
        assert score_user(user, "zzz") == (0, None)

    def test_project_scores(self):
        project = {"name": "Website Rebuild", "aliases": "site, web", "client_name": "Globex"}
        assert score_project(project, "website rebuild") == (100, "name")
        assert score_project(project, "site") == (60, "name")
        assert score_project(project, "web") == (80, "name")
        assert score_project(project, "glob") == (50, "client")

    def test_project_alias_exact(self):
        project = {"name": "Website Rebuild", "aliases": "WR, marketing", "client_name": None}
        assert score_project(project, "wr") == (95, "alias")
        assert score_project(project, "market") == (75, "alias")


class TestSearch:
    def test_search_users_ranked(self, store, seed):
        results = _make_queries(store, seed).search_users(seed.org, "ry")
        assert results[0]["id"] == seed.ryan
        assert results[0]["matched_on"] == "name"

    def test_search_users_by_title(self, store, seed):
        results = _make_queries(store, seed).search_users(seed.org, "designer")
        assert {r["id"] for r in results} == {seed.alex, seed.fay}
        assert all(r["score"] == 40 for r in results)

    def test_search_users_role_filter(self, store, seed):
        store.add_user(seed.org, "Rita Manager", user_id="usr_rita", role="pm")
        results = _make_queries(store, seed).search_users(seed.org, "r", role="pm")
        assert [r["id"] for r in results] == ["usr_rita"]

    def test_empty_query_returns_nothing(self, store, seed):
        assert _make_queries(store, seed).search_users(seed.org, "  ") == []
        assert _make_queries(store, seed).search_projects(seed.org, "") == []

    def test_search_projects_active_only(self, store, seed):
        queries = _make_queries(store, seed)
        assert queries.search_projects(seed.org, "legacy") == []
        archived = queries.search_projects(seed.org, "legacy", active_only=False)
        assert [p["id"] for p in archived] == [seed.legacy]
        assert archived[0]["client_name"] == "No Client"

    def test_search_is_org_scoped(self, store, seed):
        other = store.add_organization("Other Co")
        store.add_user(other, "Ryan Other")
        results = _make_queries(store, seed).search_users(seed.org, "ryan")
        assert [r["id"] for r in results] == [seed.ryan]


class TestAvailability:
    def test_per_week_availability(self, store, seed):
        seed.allocate(seed.ryan, seed.web, seed.this_week, 30)
        store.add_pto(seed.ryan, date(2026, 10, 27))

        result = _make_queries(store, seed).get_user_availability(
            seed.org, seed.this_week, seed.next_week, user_id=seed.ryan
        )
        assert len(result) == 1
        weeks = result[0]["weeks"]
        assert weeks[0] == {
            "week_start": "2026-10-19",
            "allocated_hours": 30,
            "available_hours": 10,
            "has_pto": False,
        }
        assert weeks[1]["allocated_hours"] == 0
        assert weeks[1]["available_hours"] == 40
        assert weeks[1]["has_pto"] is True

    def test_role_filter_matches_job_title(self, store, seed):
        result = _make_queries(store, seed).get_user_availability(
            seed.org, seed.this_week, seed.this_week, role_filter="design"
        )
        assert {u["user_id"] for u in result} == {seed.alex, seed.fay}
        fay = next(u for u in result if u["user_id"] == seed.fay)
        assert fay["weekly_capacity"] == 20

    def test_unknown_user_raises(self, store, seed):
        with pytest.raises(NotFoundError):
            _make_queries(store, seed).get_user_availability(
                seed.org, seed.this_week, seed.this_week, user_id="usr_missing"
            )


class TestUserAllocations:
    def test_grouped_by_project_largest_first(self, store, seed):
        seed.allocate(seed.ryan, seed.brand, seed.this_week, 8)
        seed.allocate(seed.ryan, seed.web, seed.this_week, 16)
        seed.allocate(seed.ryan, seed.web, seed.next_week, 16)

        result = _make_queries(store, seed).get_user_allocations(
            seed.org, seed.ryan, seed.this_week, seed.next_week
        )
        assert result["total_hours"] == 40
        assert [p["project_id"] for p in result["projects"]] == [seed.web, seed.brand]
        assert result["projects"][0]["total_hours"] == 32
        assert result["projects"][0]["client_name"] == "Globex"
        assert len(result["projects"][0]["weeks"]) == 2

    def test_user_from_other_org_is_not_found(self, store, seed):
        other = store.add_organization("Other Co")
        stranger = store.add_user(other, "Stranger")
        with pytest.raises(NotFoundError):
            _make_queries(store, seed).get_user_allocations(
                seed.org, stranger, seed.this_week, seed.next_week
            )


class TestProjectStatus:
    def test_budget_and_upcoming(self, store, seed):
        store.add_time_entry(seed.web, 50)
        seed.allocate(seed.ryan, seed.web, seed.this_week - timedelta(weeks=1), 10)
        seed.allocate(seed.sam, seed.web, seed.next_week, 12)

        status = _make_queries(store, seed).get_project_status(seed.org, seed.web)
        assert status["budget"] == {
            "total_hours": 200,
            "hours_used": 50,
            "hours_remaining": 150,
            "percent_used": 25,
        }
        assert status["upcoming_allocations"] == [
            {"user_id": seed.sam, "user_name": "Sam Lee", "hours": 12, "week_start": "2026-10-26"},
        ]
        assert "phases" not in status

    def test_include_phases(self, store, seed):
        phase = store.add_phase(seed.web, "Build", budget_hours=120)
        store.add_time_entry(seed.web, 20, phase_id=phase)
        status = _make_queries(store, seed).get_project_status(
            seed.org, seed.web, include_phases=True
        )
        assert status["phases"][0]["name"] == "Build"
        assert status["phases"][0]["hours_used"] == 20

    def test_zero_budget_percent(self, store, seed):
        status = _make_queries(store, seed).get_project_status(seed.org, seed.legacy)
        assert status["budget"]["percent_used"] == 0

    def test_unknown_project_raises(self, store, seed):
        with pytest.raises(NotFoundError):
            _make_queries(store, seed).get_project_status(seed.org, "prj_missing")


class TestSuggestCoverage:
    def test_role_match_ranks_first(self, store, seed):
        seed.allocate(seed.alex, seed.brand, seed.this_week, 24)
        seed.allocate(seed.fay, seed.web, seed.this_week, 10)

        result = _make_queries(store, seed).suggest_coverage(seed.org, seed.alex, seed.this_week)
        assert result["total_hours_to_cover"] == 24
        ranked = [s["user_id"] for s in result["suggestions"]]
        # Fay is the only other designer; developers follow by spare hours
        assert ranked[0] == seed.fay
        assert set(ranked[1:]) == {seed.ryan, seed.sam}
        assert result["suggestions"][0]["available_hours"] == 10

    def test_fully_booked_excluded(self, store, seed):
        seed.allocate(seed.ryan, seed.web, seed.this_week, 16)
        seed.allocate(seed.sam, seed.web, seed.this_week, 40)

        result = _make_queries(store, seed).suggest_coverage(seed.org, seed.ryan, seed.this_week)
        assert seed.sam not in [s["user_id"] for s in result["suggestions"]]

    def test_nothing_to_cover(self, store, seed):
        result = _make_queries(store, seed).suggest_coverage(seed.org, seed.ryan, seed.this_week)
        assert result["suggestions"] == []
        assert "No allocations found" in result["message"]

    def test_project_filter(self, store, seed):
        seed.allocate(seed.ryan, seed.web, seed.this_week, 16)
        result = _make_queries(store, seed).suggest_coverage(
            seed.org, seed.ryan, seed.this_week, project_id=seed.brand
        )
        assert result["suggestions"] == []
