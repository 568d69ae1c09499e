"""
Conversation Store: time-bounded key-value cache of in-flight dialogue.

Behavioral Contract:
- Keyed by conversation id. Injected into the pipeline; not module state.
- A conversation belongs to the org and user that started it. Nobody else
  can read it, append to it or clear it.
- An entry expires once older than the TTL, measured from its creation.
- The sweep only removes expired entries. It never edits live ones.
- Callers receive copies; no one holds a reference to stored state across
  requests.
- In-process only. Multiple server instances need a shared external store
  for conversations to survive load balancing.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional
from uuid import uuid4

from resource_wizard.errors import NotFoundError
from resource_wizard.models.actions import ActionCall
from resource_wizard.models.conversation import ConversationState
from resource_wizard.models.response import Tone
from resource_wizard.models.snapshot import ConversationTurn

logger = logging.getLogger(__name__)


def new_conversation_id() -> str:
    return f"conv_{uuid4().hex[:12]}"


def _owned_by(state: ConversationState, org_id: Optional[str], user_id: Optional[str]) -> bool:
    """None on either side means the caller did not scope by it."""
    if org_id is not None and state.org_id != org_id:
        return False
    if user_id is not None and state.user_id != user_id:
        return False
    return True


class ConversationStore:
    """In-memory conversation cache with TTL eviction."""

    def __init__(
        self,
        ttl_seconds: int = 1800,
        sweep_interval_seconds: int = 300,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.sweep_interval_seconds = sweep_interval_seconds
        self.clock = clock or datetime.utcnow
        self._entries: Dict[str, ConversationState] = {}
        self._lock = threading.Lock()
        self._running = False

    def _expired(self, state: ConversationState, now: datetime) -> bool:
        return now - state.created_at > self.ttl

    def _live(self, conversation_id: str, now: datetime) -> Optional[ConversationState]:
        state = self._entries.get(conversation_id)
        if state is None or self._expired(state, now):
            return None
        return state

    def get(
        self,
        conversation_id: str,
        org_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Optional[ConversationState]:
        """
        A copy of the live state, or None if absent or expired. When an
        owner is given, a conversation belonging to anyone else is None too.
        """
        with self._lock:
            state = self._live(conversation_id, self.clock())
            if state is None or not _owned_by(state, org_id, user_id):
                return None
            return state.model_copy(deep=True)

    def claim(self, conversation_id: Optional[str], org_id: str, user_id: str) -> str:
        """
        The id this caller may use: the given one unless it is live and
        belongs to someone else, in which case a fresh id.
        """
        if not conversation_id:
            return new_conversation_id()
        with self._lock:
            state = self._live(conversation_id, self.clock())
            if state is None or _owned_by(state, org_id, user_id):
                return conversation_id
        logger.warning("Conversation %s belongs to another user; starting a new one", conversation_id)
        return new_conversation_id()

    def history(self, conversation_id: str) -> List[ConversationTurn]:
        state = self.get(conversation_id)
        return state.messages if state else []

    def append_turns(
        self,
        conversation_id: str,
        org_id: str,
        user_id: str,
        turns: List[ConversationTurn],
        tone: Optional[Tone] = None,
    ) -> ConversationState:
        """
        Append turns, creating the conversation on first use. Raises
        NotFoundError if the live conversation belongs to someone else.
        """
        now = self.clock()
        with self._lock:
            state = self._live(conversation_id, now)
            if state is not None and not _owned_by(state, org_id, user_id):
                raise NotFoundError("Conversation not found")
            if state is None:
                state = ConversationState(
                    id=conversation_id,
                    org_id=org_id,
                    user_id=user_id,
                    created_at=now,
                    updated_at=now,
                )
                self._entries[conversation_id] = state
            state.messages.extend(turns)
            if tone is not None:
                state.last_tone = tone
            state.updated_at = now
            return state.model_copy(deep=True)

    def set_pending(self, conversation_id: str, actions: List[ActionCall]) -> None:
        with self._lock:
            state = self._entries.get(conversation_id)
            if state is not None:
                state.pending_actions = list(actions)

    def clear(
        self,
        conversation_id: str,
        org_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> bool:
        """Drop a conversation. Returns whether it existed for this owner."""
        with self._lock:
            state = self._entries.get(conversation_id)
            if state is None or not _owned_by(state, org_id, user_id):
                return False
            del self._entries[conversation_id]
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def sweep_once(self, now: Optional[datetime] = None) -> int:
        """Remove expired entries. Returns how many were evicted."""
        now = now or self.clock()
        with self._lock:
            expired = [cid for cid, s in self._entries.items() if self._expired(s, now)]
            for cid in expired:
                del self._entries[cid]
        if expired:
            logger.info("Evicted %d expired conversation(s)", len(expired))
        return len(expired)

    @property
    def is_running(self) -> bool:
        return self._running

    async def run_sweeper(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Sweep on a fixed interval until stop_event is set."""
        self._running = True
        if stop_event is None:
            stop_event = asyncio.Event()

        try:
            while not stop_event.is_set():
                self.sweep_once()
                try:
                    await asyncio.wait_for(
                        stop_event.wait(),
                        timeout=self.sweep_interval_seconds,
                    )
                except asyncio.TimeoutError:
                    continue
        finally:
            self._running = False
