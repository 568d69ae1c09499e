"""Tests for the Audit Log."""

import json

import pytest

from resource_wizard.audit.log import AuditLog
from resource_wizard.errors import StoreError
from resource_wizard.models.audit import AuditAction


def _record(log: AuditLog, entity_id: str = "alloc_1", action=AuditAction.CREATE, org_id="org_acme"):
    return log.record(
        org_id=org_id,
        entity_type="allocations",
        entity_id=entity_id,
        action=action,
        user_id="usr_admin",
        new={"planned_hours": 8},
    )


class TestAuditLog:
    def setup_method(self):
        self.log = AuditLog(db_path=":memory:")

    def teardown_method(self):
        self.log.close()

    def test_record_and_list(self):
        entry = _record(self.log)

        assert entry.id.startswith("aud_")
        assert entry.signature != ""
        assert entry.prior_entry_hash is None  # First entry
        assert entry.changes == {"new": {"planned_hours": 8}}

        entries = self.log.list_for_org("org_acme")
        assert len(entries) == 1
        assert entries[0].id == entry.id
        assert entries[0].action == AuditAction.CREATE

    def test_old_and_new_sides(self):
        entry = self.log.record(
            "org_acme", "allocations", "alloc_1", AuditAction.UPDATE, "usr_admin",
            old={"planned_hours": 8}, new={"planned_hours": 16},
        )
        assert entry.changes == {"old": {"planned_hours": 8}, "new": {"planned_hours": 16}}

    def test_hash_chaining(self):
        first = _record(self.log, "alloc_1")
        second = _record(self.log, "alloc_2")
        assert second.prior_entry_hash == first.signature

    def test_chain_integrity(self):
        for i in range(20):
            _record(self.log, f"alloc_{i}")
        assert self.log.count() == 20
        assert self.log.verify_chain_integrity() is True

    def test_empty_chain_is_valid(self):
        assert self.log.verify_chain_integrity() is True

    def test_tampering_is_detected(self):
        _record(self.log, "alloc_1")
        _record(self.log, "alloc_2")

        row = self.log._conn.execute(
            "SELECT rowid, entry_json FROM audit_log ORDER BY rowid LIMIT 1"
        ).fetchone()
        data = json.loads(row["entry_json"])
        data["changes"]["new"]["planned_hours"] = 80
        self.log._conn.execute(
            "UPDATE audit_log SET entry_json = ? WHERE rowid = ?",
            (json.dumps(data), row["rowid"]),
        )

        assert self.log.verify_chain_integrity() is False

    def test_list_for_entity(self):
        _record(self.log, "alloc_1", AuditAction.CREATE)
        _record(self.log, "alloc_2", AuditAction.CREATE)
        _record(self.log, "alloc_1", AuditAction.DELETE)

        history = self.log.list_for_entity("allocations", "alloc_1")
        assert [e.action for e in history] == [AuditAction.CREATE, AuditAction.DELETE]

    def test_list_for_org_is_scoped_and_limited(self):
        for i in range(5):
            _record(self.log, f"alloc_{i}")
        _record(self.log, "alloc_other", org_id="org_other")

        recent = self.log.list_for_org("org_acme", limit=3)
        assert [e.entity_id for e in recent] == ["alloc_2", "alloc_3", "alloc_4"]

    def test_write_failure_raises_store_error(self):
        self.log.close()
        with pytest.raises(StoreError):
            _record(self.log)

    def test_read_failures_raise_store_error(self):
        _record(self.log)
        self.log.close()
        with pytest.raises(StoreError):
            self.log.list_for_org("org_acme")
        with pytest.raises(StoreError):
            self.log.list_for_entity("allocations", "alloc_1")
        with pytest.raises(StoreError):
            self.log.verify_chain_integrity()
        with pytest.raises(StoreError):
            self.log.count()
