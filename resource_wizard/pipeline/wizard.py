"""
Resource Wizard: the end-to-end command pipeline.

process: classify -> build snapshot -> insights -> agent. Query-only replies
are executed immediately and returned as data. Mutating replies come back
with a preview and wait for an explicit execute call.

Owns no state of its own; every collaborator is injected.
"""

import logging
import random
from typing import List, Optional, Union

from resource_wizard.advisory.engine import AdvisoryEngine
from resource_wizard.agent.command_agent import CommandAgent
from resource_wizard.agent.personality import (
    acknowledgment,
    classify_reply_type,
    proactive_opener,
    select_tone,
)
from resource_wizard.agent.prompts import strip_internal_ids
from resource_wizard.classifier.patterns import classify
from resource_wizard.context.builder import ContextBuilder
from resource_wizard.conversation.store import ConversationStore
from resource_wizard.errors import NotFoundError
from resource_wizard.execution.executor import ActionExecutor
from resource_wizard.insights.engine import count_critical, generate_insights
from resource_wizard.models.actions import ActionCall, ExecutionOutcome
from resource_wizard.models.advisory import AdvisoryRequest, AdvisoryResponse
from resource_wizard.models.classification import RequestCategory
from resource_wizard.models.insight import Insight, Severity
from resource_wizard.models.response import ProcessResponse, ResponseType
from resource_wizard.models.snapshot import ConversationTurn, OrgSnapshot
from resource_wizard.preview.engine import PreviewEngine

logger = logging.getLogger(__name__)


class ResourceWizard:
    def __init__(
        self,
        builder: ContextBuilder,
        agent: CommandAgent,
        executor: ActionExecutor,
        conversations: ConversationStore,
        preview: Optional[PreviewEngine] = None,
        advisory: Optional[AdvisoryEngine] = None,
        rng: Optional[random.Random] = None,
    ):
        self.builder = builder
        self.agent = agent
        self.executor = executor
        self.conversations = conversations
        self.preview = preview or PreviewEngine()
        self.advisory = advisory or AdvisoryEngine()
        self.rng = rng or random.Random()

    def snapshot(
        self,
        org_id: str,
        focus_project_id: Optional[str] = None,
        focus_user_ids: Optional[List[str]] = None,
        window_weeks: Optional[int] = None,
    ) -> OrgSnapshot:
        return self.builder.build(
            org_id,
            window_weeks=window_weeks,
            focus_project_id=focus_project_id,
            focus_user_ids=focus_user_ids,
        )

    def process(
        self,
        org_id: str,
        user_id: str,
        text: str,
        conversation_id: Optional[str] = None,
        focus_project_id: Optional[str] = None,
        focus_user_ids: Optional[List[str]] = None,
    ) -> ProcessResponse:
        """Handle one natural-language turn."""
        classification = classify(text)
        logger.info(
            "Processing request for org %s (classified %s, %.2f)",
            org_id,
            classification.category.value,
            classification.confidence,
        )

        conversation_id = self.conversations.claim(conversation_id, org_id, user_id)
        state = self.conversations.get(conversation_id, org_id, user_id)
        history = state.messages if state else []
        snapshot = self.builder.build(
            org_id,
            focus_project_id=focus_project_id,
            focus_user_ids=focus_user_ids,
            history=history,
        )
        insights = generate_insights(snapshot)
        critical = count_critical(insights)
        tone = select_tone(
            has_urgent_issues=critical > 0,
            is_first_message=not history,
            recent_tone=state.last_tone if state else None,
        )

        reply = self.agent.process(text, snapshot, classification)
        response = ProcessResponse(
            type=ResponseType.INFO,
            message=reply.message,
            conversation_id=conversation_id,
            personality_tone=tone,
        )

        if reply.is_query_only:
            outcome = self.executor.execute(reply.actions, user_id, org_id)
            response.actions = reply.actions
            response.query_results = outcome.results
        elif reply.actions:
            preview = self.preview.preview(reply.actions, snapshot)
            response.type = ResponseType.DIRECTIVE
            response.message = f"{acknowledgment(tone, self.rng)} {reply.message}"
            response.actions = reply.actions
            response.before_state = preview.before
            response.after_state = preview.after
            response.preview_caveat = preview.caveat
        elif classification.category == RequestCategory.INSIGHT:
            response.type = ResponseType.INSIGHT
            response.insights = insights
        elif classification.category == RequestCategory.ADVISORY:
            response.type = ResponseType.ADVISORY
        else:
            response.type = classify_reply_type(reply.message)

        if critical and response.type != ResponseType.INSIGHT:
            opener = proactive_opener(len(insights), critical)
            response.message = f"{opener}\n\n{response.message}"
            response.insights = [i for i in insights if i.severity == Severity.CRITICAL]

        response.message = strip_internal_ids(response.message)

        self.conversations.append_turns(
            conversation_id,
            org_id,
            user_id,
            [
                ConversationTurn(role="user", content=text),
                ConversationTurn(role="assistant", content=response.message),
            ],
            tone=tone,
        )
        if response.type == ResponseType.DIRECTIVE:
            self.conversations.set_pending(conversation_id, reply.actions)

        logger.info("Responded with %s for conversation %s", response.type.value, conversation_id)
        return response

    def execute(
        self,
        org_id: str,
        user_id: str,
        actions: List[Union[ActionCall, dict]],
        conversation_id: Optional[str] = None,
    ) -> ExecutionOutcome:
        """Apply confirmed actions and record the outcome in the conversation."""
        if conversation_id and self.conversations.claim(conversation_id, org_id, user_id) != conversation_id:
            raise NotFoundError("Conversation not found")

        outcome = self.executor.execute(actions, user_id, org_id)
        if conversation_id:
            self.conversations.append_turns(
                conversation_id,
                org_id,
                user_id,
                [ConversationTurn(role="assistant", content=outcome.message)],
            )
            self.conversations.set_pending(conversation_id, [])
        return outcome

    def insights(self, org_id: str) -> List[Insight]:
        return generate_insights(self.builder.build(org_id))

    def advise(self, org_id: str, request: AdvisoryRequest) -> AdvisoryResponse:
        snapshot = self.builder.build(org_id)
        return self.advisory.evaluate(request, snapshot)

    def clear_conversation(self, conversation_id: str, org_id: str, user_id: str) -> bool:
        return self.conversations.clear(conversation_id, org_id, user_id)
