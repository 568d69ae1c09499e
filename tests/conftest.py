"""Shared fixtures: an in-memory store seeded with one small agency."""

from datetime import date
from types import SimpleNamespace
from typing import List

import pytest

from resource_wizard.agent.provider import LLMReply, ToolInvocation
from resource_wizard.audit.log import AuditLog
from resource_wizard.datastore.store import ResourceStore

# Wednesday; its week starts Monday 2026-10-19
TODAY = date(2026, 10, 21)


class ScriptedProvider:
    """Returns queued replies in order and records every prompt it was sent."""

    def __init__(self):
        self.replies: List[LLMReply] = []
        self.calls: List[List[dict]] = []

    def reply(self, text: str = "") -> None:
        self.replies.append(LLMReply(text=text))

    def reply_with_tools(self, text: str, *calls: tuple) -> None:
        self.replies.append(LLMReply(
            text=text,
            tool_calls=[ToolInvocation(name=name, arguments=args) for name, args in calls],
        ))

    def complete(self, messages, tools):
        self.calls.append(messages)
        if not self.replies:
            return LLMReply(text="")
        return self.replies.pop(0)


@pytest.fixture
def store():
    s = ResourceStore(":memory:")
    yield s
    s.close()


@pytest.fixture
def audit_log():
    log = AuditLog(":memory:")
    yield log
    log.close()


@pytest.fixture
def provider():
    return ScriptedProvider()


@pytest.fixture
def seed(store):
    """One organization with four people and three projects, no allocations."""
    org = store.add_organization("Acme Studio", org_id="org_acme")
    ryan = store.add_user(org, "Ryan Daniels", user_id="usr_ryan", job_title="Developer", nicknames="RD, Ry")
    sam = store.add_user(org, "Sam Lee", user_id="usr_sam", job_title="Developer")
    alex = store.add_user(
        org, "Alex Kim", user_id="usr_alex", job_title="Designer",
        specialty_notes="Brand design and illustration",
    )
    fay = store.add_user(
        org, "Fay Wong", user_id="usr_fay", job_title="Designer",
        is_freelance=True, weekly_capacity=20,
    )
    globex = store.add_client(org, "Globex")
    initech = store.add_client(org, "Initech")
    web = store.add_project(
        org, "Website Rebuild", project_id="prj_web", client_id=globex,
        budget_hours=200, aliases="site, web",
    )
    brand = store.add_project(
        org, "Brand Refresh", project_id="prj_brand", client_id=initech, budget_hours=100,
    )
    legacy = store.add_project(org, "Legacy Portal", project_id="prj_legacy", status="archived")

    def allocate(user_id: str, project_id: str, week: date, hours: float):
        return store.insert_allocation(user_id, project_id, week, hours, created_by="usr_admin")

    return SimpleNamespace(
        org=org,
        ryan=ryan,
        sam=sam,
        alex=alex,
        fay=fay,
        web=web,
        brand=brand,
        legacy=legacy,
        admin="usr_admin",
        today=TODAY,
        this_week=date(2026, 10, 19),
        next_week=date(2026, 10, 26),
        allocate=allocate,
    )
