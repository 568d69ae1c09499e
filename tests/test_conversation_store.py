"""Tests for the Conversation Store."""

import asyncio
from datetime import datetime, timedelta

import pytest

from resource_wizard.agent.tools import decode_action
from resource_wizard.conversation.store import ConversationStore, new_conversation_id
from resource_wizard.errors import NotFoundError
from resource_wizard.models.response import Tone
from resource_wizard.models.snapshot import ConversationTurn

START = datetime(2026, 10, 21, 9, 0, 0)


class _Clock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def _turns(*pairs):
    return [ConversationTurn(role=role, content=content) for role, content in pairs]


class TestConversationStore:
    def setup_method(self):
        self.clock = _Clock()
        self.store = ConversationStore(ttl_seconds=1800, clock=self.clock)

    def test_new_conversation_id(self):
        cid = new_conversation_id()
        assert cid.startswith("conv_")
        assert cid != new_conversation_id()

    def test_append_creates_and_extends(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))
        state = self.store.append_turns(
            "conv_1", "org_acme", "usr_admin", _turns(("assistant", "hello")), tone=Tone.CASUAL
        )

        assert [t.content for t in state.messages] == ["hi", "hello"]
        assert state.last_tone == Tone.CASUAL
        assert state.created_at == START
        assert len(self.store) == 1

    def test_get_returns_copies(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))
        copy = self.store.get("conv_1")
        copy.messages.append(ConversationTurn(role="user", content="sneaky"))
        assert len(self.store.history("conv_1")) == 1

    def test_missing_conversation(self):
        assert self.store.get("conv_nope") is None
        assert self.store.history("conv_nope") == []

    def test_expiry_measured_from_creation(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))
        self.clock.advance(minutes=20)
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "still here")))
        self.clock.advance(minutes=11)
        assert self.store.get("conv_1") is None

    def test_append_after_expiry_starts_fresh(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "old")))
        self.clock.advance(minutes=31)
        state = self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "new")))
        assert [t.content for t in state.messages] == ["new"]

    def test_pending_actions(self):
        action = decode_action({"tool": "search_users", "params": {"query": "ryan"}})
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))
        self.store.set_pending("conv_1", [action])
        assert self.store.get("conv_1").pending_actions == [action]

        self.store.set_pending("conv_1", [])
        assert self.store.get("conv_1").pending_actions == []

    def test_clear(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))
        assert self.store.clear("conv_1") is True
        assert self.store.clear("conv_1") is False

    def test_scoped_to_owner(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "private")))

        assert self.store.get("conv_1", "org_acme", "usr_admin") is not None
        assert self.store.get("conv_1", "org_rival", "usr_admin") is None
        assert self.store.get("conv_1", "org_acme", "usr_ryan") is None
        with pytest.raises(NotFoundError):
            self.store.append_turns("conv_1", "org_rival", "usr_x", _turns(("user", "let me in")))
        assert self.store.clear("conv_1", "org_rival", "usr_x") is False
        assert [t.content for t in self.store.history("conv_1")] == ["private"]

    def test_claim(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "hi")))

        assert self.store.claim("conv_1", "org_acme", "usr_admin") == "conv_1"
        assert self.store.claim("conv_unused", "org_rival", "usr_x") == "conv_unused"
        assert self.store.claim(None, "org_acme", "usr_admin").startswith("conv_")
        other = self.store.claim("conv_1", "org_rival", "usr_x")
        assert other != "conv_1"
        assert other.startswith("conv_")

    def test_expired_conversation_can_be_reclaimed(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "old")))
        self.clock.advance(minutes=31)
        assert self.store.claim("conv_1", "org_rival", "usr_x") == "conv_1"
        state = self.store.append_turns("conv_1", "org_rival", "usr_x", _turns(("user", "new")))
        assert state.org_id == "org_rival"
        assert [t.content for t in state.messages] == ["new"]

    def test_sweep_removes_only_expired(self):
        self.store.append_turns("conv_old", "org_acme", "usr_admin", _turns(("user", "a")))
        self.clock.advance(minutes=25)
        self.store.append_turns("conv_new", "org_acme", "usr_admin", _turns(("user", "b")))
        self.clock.advance(minutes=10)

        assert self.store.sweep_once() == 1
        assert self.store.get("conv_old") is None
        assert self.store.get("conv_new") is not None

    def test_sweeper_stops_on_event(self):
        self.store.append_turns("conv_1", "org_acme", "usr_admin", _turns(("user", "a")))
        self.clock.advance(hours=1)

        async def run():
            stop = asyncio.Event()
            task = asyncio.create_task(self.store.run_sweeper(stop))
            await asyncio.sleep(0)
            assert self.store.is_running is True
            stop.set()
            await asyncio.wait_for(task, timeout=1)

        asyncio.run(run())
        assert self.store.is_running is False
        assert len(self.store) == 0
