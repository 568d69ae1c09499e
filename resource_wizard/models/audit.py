"""Audit Entry: the system of record for who changed what."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class AuditAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class AuditEntry(BaseModel):
    """
    One successful mutation. Written once, never edited or deleted.
    ``changes`` carries ``{"old": ..., "new": ...}``; either side may be absent.
    """

    id: str
    org_id: str
    entity_type: str                        # e.g., "allocations"
    entity_id: str
    action: AuditAction
    user_id: str                            # Acting user
    changes: dict
    created_at: datetime

    # INTEGRITY
    signature: str = ""
    prior_entry_hash: Optional[str] = None
