"""
Resource Wizard API: FastAPI endpoints.

Exposes:
- Natural-language command processing and confirmed execution
- Snapshot, insight and advisory reads
- Search, availability, allocation and project-status lookups
- Conversation clearing
- Audit trail queries
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Callable, List, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from resource_wizard.advisory.engine import AdvisoryEngine
from resource_wizard.agent.command_agent import CommandAgent
from resource_wizard.agent.prompts import strip_internal_ids
from resource_wizard.agent.provider import LLMProvider, OpenAIToolProvider
from resource_wizard.audit.log import AuditLog
from resource_wizard.context.builder import ContextBuilder
from resource_wizard.context.queries import ResourceQueries
from resource_wizard.conversation.store import ConversationStore
from resource_wizard.datastore.store import ResourceStore
from resource_wizard.errors import (
    ActionValidationError,
    NotFoundError,
    UpstreamError,
    WizardError,
)
from resource_wizard.execution.executor import ActionExecutor
from resource_wizard.models.advisory import AdvisoryRequest
from resource_wizard.models.config import WizardConfig
from resource_wizard.observability.logging import configure_logging
from resource_wizard.pipeline.wizard import ResourceWizard
from resource_wizard.preview.engine import PreviewEngine

logger = logging.getLogger(__name__)


# --- Request/Response Models ---

class ProcessRequest(BaseModel):
    text: str
    conversation_id: Optional[str] = None
    focus_project_id: Optional[str] = None
    focus_user_ids: Optional[List[str]] = None


class ExecuteRequest(BaseModel):
    actions: List[dict]
    conversation_id: Optional[str] = None


def status_for(error: WizardError) -> int:
    if isinstance(error, UpstreamError):
        return 502
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, ActionValidationError):
        return 400
    return 500


# --- Application Factory ---

def create_app(
    store: Optional[ResourceStore] = None,
    audit_log: Optional[AuditLog] = None,
    provider: Optional[LLMProvider] = None,
    config: Optional[WizardConfig] = None,
    conversation_store: Optional[ConversationStore] = None,
    clock: Optional[Callable[[], date]] = None,
    rng: Optional[random.Random] = None,
    configure_logs: bool = False,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    cfg = config or WizardConfig()
    rs = store or ResourceStore(cfg.db_path)
    al = audit_log or AuditLog(cfg.audit_db_path)
    llm = provider or OpenAIToolProvider(
        api_key=cfg.llm_api_key,
        model=cfg.model,
        base_url=cfg.llm_base_url,
    )
    conversations = conversation_store or ConversationStore(
        ttl_seconds=cfg.conversation_ttl_seconds,
        sweep_interval_seconds=cfg.sweep_interval_seconds,
    )

    builder = ContextBuilder(rs, cfg, clock=clock)
    queries = ResourceQueries(rs, cfg, clock=clock)
    executor = ActionExecutor(rs, al, queries)
    wizard = ResourceWizard(
        builder=builder,
        agent=CommandAgent(llm),
        executor=executor,
        conversations=conversations,
        preview=PreviewEngine(),
        advisory=AdvisoryEngine(),
        rng=rng,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logs:
            configure_logging(cfg.log_level, cfg.log_json)
        stop_event = asyncio.Event()
        sweeper = asyncio.create_task(conversations.run_sweeper(stop_event))
        app.state.sweeper = sweeper
        logger.info("Conversation sweeper started (every %ss)", cfg.sweep_interval_seconds)
        try:
            yield
        finally:
            stop_event.set()
            await sweeper

    app = FastAPI(
        title="Resource Wizard API",
        description="Natural-language allocation commands for resource planning",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store components on app state for access in endpoints
    app.state.config = cfg
    app.state.store = rs
    app.state.audit_log = al
    app.state.conversations = conversations
    app.state.queries = queries
    app.state.executor = executor
    app.state.wizard = wizard

    @app.exception_handler(WizardError)
    async def handle_wizard_error(request: Request, exc: WizardError):
        status = status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse(
            status_code=status,
            content={"detail": strip_internal_ids(str(exc))},
        )

    # === COMMANDS ===

    @app.post("/wizard/process")
    def process_command(req: ProcessRequest, org_id: str, user_id: str):
        """Turn free text into an answer or a previewed set of changes."""
        if not req.text.strip():
            raise HTTPException(400, "text is required")
        response = wizard.process(
            org_id,
            user_id,
            req.text,
            conversation_id=req.conversation_id,
            focus_project_id=req.focus_project_id,
            focus_user_ids=req.focus_user_ids,
        )
        return response.model_dump(mode="json", exclude_none=True)

    @app.post("/wizard/execute")
    def execute_actions(req: ExecuteRequest, org_id: str, user_id: str):
        """Apply actions the user has confirmed."""
        if not req.actions:
            raise HTTPException(400, "actions are required")
        outcome = wizard.execute(org_id, user_id, req.actions, req.conversation_id)
        return outcome.model_dump(mode="json")

    @app.delete("/wizard/conversation/{conversation_id}")
    def clear_conversation(conversation_id: str, org_id: str, user_id: str):
        cleared = wizard.clear_conversation(conversation_id, org_id, user_id)
        return {"status": "cleared" if cleared else "not_found", "conversation_id": conversation_id}

    # === ANALYSIS ===

    @app.get("/wizard/context")
    def get_context(org_id: str, window_weeks: Optional[int] = None):
        """The snapshot the agent would reason over."""
        return wizard.snapshot(org_id, window_weeks=window_weeks).model_dump(mode="json")

    @app.get("/wizard/insights")
    def get_insights(org_id: str):
        return [i.model_dump(mode="json") for i in wizard.insights(org_id)]

    @app.post("/wizard/advisory")
    def get_advisory(req: AdvisoryRequest, org_id: str):
        return wizard.advise(org_id, req).model_dump(mode="json")

    # === LOOKUPS ===

    @app.get("/wizard/search/users")
    def search_users(org_id: str, q: str, role: Optional[str] = None):
        return queries.search_users(org_id, q, role)

    @app.get("/wizard/search/projects")
    def search_projects(org_id: str, q: str, active_only: bool = True):
        return queries.search_projects(org_id, q, active_only)

    @app.get("/wizard/availability")
    def get_availability(
        org_id: str,
        start_week: date,
        end_week: date,
        user_id: Optional[str] = None,
        role_filter: Optional[str] = None,
    ):
        return queries.get_user_availability(
            org_id, start_week, end_week, user_id=user_id, role_filter=role_filter
        )

    @app.get("/wizard/users/{user_id}/allocations")
    def get_user_allocations(user_id: str, org_id: str, start_week: date, end_week: date):
        return queries.get_user_allocations(org_id, user_id, start_week, end_week)

    @app.get("/wizard/projects/{project_id}/status")
    def get_project_status(project_id: str, org_id: str, include_phases: bool = False):
        return queries.get_project_status(org_id, project_id, include_phases)

    # === AUDIT ===

    @app.get("/wizard/audit")
    def get_audit(org_id: str, limit: int = 100):
        """Most recent audit entries for an organization."""
        return [e.model_dump(mode="json") for e in al.list_for_org(org_id, limit)]

    @app.get("/wizard/audit/verify")
    def verify_audit():
        """Verify the audit chain has not been tampered with."""
        return {
            "valid": al.verify_chain_integrity(),
            "entry_count": al.count(),
            "verified_at": datetime.utcnow().isoformat(),
        }

    return app


# Default application instance
app = create_app(config=WizardConfig.from_env(), configure_logs=True)
