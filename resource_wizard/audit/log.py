"""
Audit Log: append-only, hash-chained record of every allocation mutation.

Behavioral Contract:
- Append-only. There is no update or delete path.
- Each entry is hashed and chained to the previous entry (tamper-evident).
- Queryable per organization and per entity.
"""

import hashlib
import json
import sqlite3
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from resource_wizard.errors import StoreError
from resource_wizard.models.audit import AuditAction, AuditEntry


def _entry_signature(entry: AuditEntry) -> str:
    entry_dict = entry.model_dump(mode="json")
    # Signature is what we're computing
    entry_dict["signature"] = ""
    entry_bytes = json.dumps(entry_dict, sort_keys=True, default=str).encode()
    return hashlib.sha256(entry_bytes).hexdigest()


class AuditLog:
    """
    Audit sink for allocation changes.
    Prototype: SQLite. Production: the organization's relational datastore.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS audit_log (
                id TEXT PRIMARY KEY,
                org_id TEXT NOT NULL,
                entity_type TEXT NOT NULL,
                entity_id TEXT NOT NULL,
                action TEXT NOT NULL,
                user_id TEXT NOT NULL,
                signature TEXT NOT NULL,
                prior_entry_hash TEXT,
                entry_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_audit_org ON audit_log(org_id)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_audit_entity ON audit_log(entity_type, entity_id)
        """)
        self._conn.commit()

    def record(
        self,
        org_id: str,
        entity_type: str,
        entity_id: str,
        action: AuditAction,
        user_id: str,
        old: Optional[dict] = None,
        new: Optional[dict] = None,
    ) -> AuditEntry:
        """Build and append one entry. ``changes`` omits a side that is None."""
        changes = {}
        if old is not None:
            changes["old"] = old
        if new is not None:
            changes["new"] = new
        entry = AuditEntry(
            id=f"aud_{uuid4().hex[:12]}",
            org_id=org_id,
            entity_type=entity_type,
            entity_id=entity_id,
            action=action,
            user_id=user_id,
            changes=changes,
            created_at=datetime.utcnow(),
        )
        return self.append(entry)

    def append(self, entry: AuditEntry) -> AuditEntry:
        """
        Append an audit entry. Computes its hash and chains it to the
        previous entry.
        """
        try:
            entry.prior_entry_hash = self._get_latest_hash()
            entry.signature = _entry_signature(entry)
            full_json = json.dumps(entry.model_dump(mode="json"), default=str)

            self._conn.execute(
                """
                INSERT INTO audit_log (
                    id, org_id, entity_type, entity_id, action, user_id,
                    signature, prior_entry_hash, entry_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.org_id,
                    entry.entity_type,
                    entry.entity_id,
                    entry.action.value,
                    entry.user_id,
                    entry.signature,
                    entry.prior_entry_hash,
                    full_json,
                    entry.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        except sqlite3.Error as e:
            raise StoreError("Failed to write audit entry") from e
        return entry

    def _get_latest_hash(self) -> Optional[str]:
        row = self._conn.execute(
            "SELECT signature FROM audit_log ORDER BY rowid DESC LIMIT 1"
        ).fetchone()
        return row["signature"] if row else None

    def _fetch(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StoreError("Failed to read audit entries") from e

    def _deserialize(self, row: sqlite3.Row) -> AuditEntry:
        return AuditEntry.model_validate_json(row["entry_json"])

    def list_for_org(self, org_id: str, limit: int = 100) -> List[AuditEntry]:
        """Most recent entries for an organization, oldest first."""
        rows = self._fetch(
            "SELECT entry_json FROM audit_log WHERE org_id = ? ORDER BY rowid DESC LIMIT ?",
            (org_id, limit),
        )
        return [self._deserialize(r) for r in reversed(rows)]

    def list_for_entity(self, entity_type: str, entity_id: str) -> List[AuditEntry]:
        """Full history of one entity."""
        rows = self._fetch(
            "SELECT entry_json FROM audit_log WHERE entity_type = ? AND entity_id = ? "
            "ORDER BY rowid",
            (entity_type, entity_id),
        )
        return [self._deserialize(r) for r in rows]

    def verify_chain_integrity(self) -> bool:
        """Verify no entries have been tampered with or reordered."""
        rows = self._fetch("SELECT entry_json FROM audit_log ORDER BY rowid")

        prior_sig = None
        for row in rows:
            entry = self._deserialize(row)
            if entry.signature != _entry_signature(entry):
                return False
            if entry.prior_entry_hash != prior_sig:
                return False
            prior_sig = entry.signature

        return True

    def count(self) -> int:
        rows = self._fetch("SELECT COUNT(*) as cnt FROM audit_log")
        return rows[0]["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
