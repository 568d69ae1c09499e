"""Conversation State: in-flight dialogue owned by the conversation store."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from resource_wizard.models.actions import ActionCall
from resource_wizard.models.response import Tone
from resource_wizard.models.snapshot import ConversationTurn


class ConversationState(BaseModel):
    id: str
    org_id: str
    user_id: str
    messages: List[ConversationTurn] = []
    pending_actions: List[ActionCall] = []
    last_tone: Optional[Tone] = None
    created_at: datetime
    updated_at: datetime
