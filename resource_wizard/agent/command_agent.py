"""
Command Agent: turns a request plus a snapshot into a reply and, optionally,
a list of proposed actions.

Behavioral Contract:
- Every tool invocation is decoded into a typed ActionCall before it leaves
  the agent. One malformed invocation fails the whole turn; a partial action
  list is never returned.
- Internal identifiers are stripped from the reply text.
- Provider failures surface as AgentError and are not retried.
"""

import logging
import time
from typing import List, Optional

from pydantic import BaseModel

from resource_wizard.agent.prompts import (
    CATEGORY_HINTS,
    build_context_summary,
    build_system_prompt,
    strip_internal_ids,
)
from resource_wizard.agent.provider import LLMProvider
from resource_wizard.agent.tools import decode_action, tool_definitions
from resource_wizard.errors import ActionValidationError, AgentError
from resource_wizard.models.actions import ActionCall
from resource_wizard.models.classification import ClassifiedRequest
from resource_wizard.models.snapshot import OrgSnapshot

logger = logging.getLogger(__name__)

DEFAULT_ACTION_MESSAGE = "I will make the following changes:"


class AgentReply(BaseModel):
    message: str
    actions: List[ActionCall] = []

    @property
    def is_query_only(self) -> bool:
        return bool(self.actions) and all(a.is_query for a in self.actions)


class CommandAgent:
    """Delegates one command to a tool-calling language model."""

    def __init__(self, provider: LLMProvider):
        self.provider = provider
        self._tools = tool_definitions()

    def build_messages(
        self,
        text: str,
        snapshot: OrgSnapshot,
        classification: Optional[ClassifiedRequest] = None,
    ) -> List[dict]:
        messages = [{"role": "system", "content": build_system_prompt(snapshot)}]
        for turn in snapshot.conversation_history:
            messages.append({"role": turn.role, "content": turn.content})

        parts = [build_context_summary(snapshot)]
        if classification is not None:
            hint = CATEGORY_HINTS[classification.category.value]
            parts.append(f"Request type hint ({classification.confidence:.2f}): {hint}")
        parts.append(f"User command: {text}")
        messages.append({"role": "user", "content": "\n\n".join(parts)})
        return messages

    def process(
        self,
        text: str,
        snapshot: OrgSnapshot,
        classification: Optional[ClassifiedRequest] = None,
    ) -> AgentReply:
        started = time.monotonic()
        reply = self.provider.complete(self.build_messages(text, snapshot, classification), self._tools)
        duration = time.monotonic() - started

        actions = []
        for call in reply.tool_calls:
            try:
                actions.append(decode_action({"tool": call.name, "params": call.arguments}, snapshot))
            except ActionValidationError as e:
                logger.warning("Rejected tool call %s from the model: %s", call.name, e)
                raise AgentError(f"The assistant proposed an invalid action: {e}") from e

        message = strip_internal_ids(reply.text).strip()
        if actions and not message:
            message = DEFAULT_ACTION_MESSAGE

        logger.info(
            "Agent replied in %.2fs with %d tool call(s)",
            duration,
            len(actions),
        )
        return AgentReply(message=message, actions=actions)
