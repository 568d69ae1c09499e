"""Resource wizard data models."""

from resource_wizard.models.actions import (
    ActionCall,
    ActionResult,
    AddAllocationParams,
    BulkChange,
    BulkUpdateAllocationsParams,
    ExecutionOutcome,
    GetProjectStatusParams,
    GetUserAllocationsParams,
    GetUserAvailabilityParams,
    MoveAllocationParams,
    MUTATING_TOOLS,
    QUERY_TOOLS,
    RemoveAllocationParams,
    SearchProjectsParams,
    SearchUsersParams,
    SuggestCoverageParams,
    ToolName,
)
from resource_wizard.models.advisory import (
    AdvisoryFactor,
    AdvisoryRequest,
    AdvisoryResponse,
    AlternativeSuggestion,
    Assessment,
    Recommendation,
)
from resource_wizard.models.audit import AuditAction, AuditEntry
from resource_wizard.models.classification import (
    ClassifiedRequest,
    ExtractedEntities,
    RequestCategory,
)
from resource_wizard.models.config import WizardConfig
from resource_wizard.models.conversation import ConversationState
from resource_wizard.models.insight import (
    AffectedEntities,
    EntityRef,
    Insight,
    InsightType,
    Severity,
)
from resource_wizard.models.response import (
    PreviewResult,
    ProcessResponse,
    ResponseType,
    StateSnapshot,
    Tone,
    UserState,
)
from resource_wizard.models.snapshot import (
    AllocationView,
    ConversationTurn,
    OrgSnapshot,
    OrgView,
    PhaseView,
    ProjectView,
    UserView,
)

__all__ = [
    "ActionCall",
    "ActionResult",
    "AddAllocationParams",
    "AdvisoryFactor",
    "AdvisoryRequest",
    "AdvisoryResponse",
    "AffectedEntities",
    "AllocationView",
    "AlternativeSuggestion",
    "Assessment",
    "AuditAction",
    "AuditEntry",
    "BulkChange",
    "BulkUpdateAllocationsParams",
    "ClassifiedRequest",
    "ConversationState",
    "ConversationTurn",
    "EntityRef",
    "ExecutionOutcome",
    "ExtractedEntities",
    "GetProjectStatusParams",
    "GetUserAllocationsParams",
    "GetUserAvailabilityParams",
    "Insight",
    "InsightType",
    "MoveAllocationParams",
    "MUTATING_TOOLS",
    "OrgSnapshot",
    "OrgView",
    "PhaseView",
    "PreviewResult",
    "ProcessResponse",
    "ProjectView",
    "QUERY_TOOLS",
    "Recommendation",
    "RemoveAllocationParams",
    "RequestCategory",
    "ResponseType",
    "SearchProjectsParams",
    "SearchUsersParams",
    "Severity",
    "StateSnapshot",
    "SuggestCoverageParams",
    "Tone",
    "ToolName",
    "UserState",
    "UserView",
    "WizardConfig",
]
