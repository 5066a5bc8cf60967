"""Tests for the hash-chained audit ledger."""

import pytest
from sqlalchemy.exc import IntegrityError

from sealsign_api.ledger.service import APPEND_ATTEMPTS, AuditLedger
from sealsign_api.models import AuditAction, AuditLogEntry

from conftest import FakeClock, FIXED_NOW


@pytest.fixture
def ledger(db, clock):
    return AuditLedger(db, clock)


def _append_three(ledger, clock, document_id="doc-1"):
    ledger.append(document_id, "owner-1", AuditAction.CREATED, {"title": "Lease"})
    clock.advance(minutes=1)
    ledger.append(document_id, "owner-1", AuditAction.SIGNATURE_REQUESTED, {"signer_email": "s@x.com"})
    clock.advance(minutes=1)
    ledger.append(document_id, None, AuditAction.SIGNED, {"signature_id": "sig-1"}, ip="10.0.0.1")


def test_entries_are_chained(db, ledger, clock):
    _append_three(ledger, clock)
    db.commit()

    entries = db.query(AuditLogEntry).order_by(AuditLogEntry.sequence).all()
    assert [e.sequence for e in entries] == [1, 2, 3]
    assert entries[0].previous_hash is None
    assert entries[1].previous_hash == entries[0].entry_hash
    assert entries[2].previous_hash == entries[1].entry_hash
    assert ledger.verify_chain("doc-1") == (True, None)


def test_chains_are_per_document(db, ledger, clock):
    _append_three(ledger, clock, "doc-1")
    first_other = ledger.append("doc-2", "owner-2", AuditAction.CREATED)

    assert first_other.sequence == 1
    assert first_other.previous_hash is None
    assert ledger.verify_chain("doc-2") == (True, None)


def test_list_is_newest_first(db, ledger, clock):
    _append_three(ledger, clock)

    actions = [e.action for e in ledger.list_by_document("doc-1")]
    assert actions == ["SIGNED", "SIGNATURE_REQUESTED", "CREATED"]


def test_same_timestamp_orders_by_insertion(db, ledger):
    ledger.append("doc-1", "owner-1", AuditAction.CREATED)
    ledger.append("doc-1", "owner-1", AuditAction.DOWNLOADED)

    assert [e.action for e in ledger.list_by_document("doc-1")] == ["DOWNLOADED", "CREATED"]


def test_modified_details_detected(db, ledger, clock):
    _append_three(ledger, clock)
    db.commit()

    entry = db.query(AuditLogEntry).filter(AuditLogEntry.sequence == 2).one()
    entry.details = {"signer_email": "attacker@x.com"}
    db.commit()

    ok, reason = ledger.verify_chain("doc-1")
    assert ok is False
    assert "sequence 2" in reason


def test_removed_entry_detected(db, ledger, clock):
    _append_three(ledger, clock)
    db.commit()

    db.query(AuditLogEntry).filter(AuditLogEntry.sequence == 2).delete()
    db.commit()

    ok, reason = ledger.verify_chain("doc-1")
    assert ok is False
    assert "Sequence gap" in reason


def _stale_tail(ledger, db, monkeypatch, stale_lookups=1):
    """Make the first tail lookups miss an entry that a concurrent writer already added."""
    stale = db.query(AuditLogEntry).filter(AuditLogEntry.sequence == 2).one()
    original = ledger._get_last_entry
    calls = []

    def lookup(document_id):
        calls.append(document_id)
        return stale if len(calls) <= stale_lookups else original(document_id)

    monkeypatch.setattr(ledger, "_get_last_entry", lookup)
    return calls


def test_append_retries_when_sequence_taken(db, ledger, clock, monkeypatch):
    _append_three(ledger, clock)
    calls = _stale_tail(ledger, db, monkeypatch)

    entry = ledger.append("doc-1", None, AuditAction.VIEWED)
    db.commit()

    assert len(calls) == 2
    assert entry.sequence == 4
    assert db.query(AuditLogEntry).count() == 4
    assert ledger.verify_chain("doc-1") == (True, None)


def test_append_gives_up_after_repeated_races(db, ledger, clock, monkeypatch):
    _append_three(ledger, clock)
    calls = _stale_tail(ledger, db, monkeypatch, stale_lookups=APPEND_ATTEMPTS)

    with pytest.raises(IntegrityError):
        ledger.append("doc-1", None, AuditAction.VIEWED)

    assert len(calls) == APPEND_ATTEMPTS
    # Only the savepoint was rolled back; earlier entries survive
    assert db.query(AuditLogEntry).count() == 3


def test_append_rolls_back_with_caller(db, ledger):
    ledger.append("doc-1", "owner-1", AuditAction.CREATED)
    db.rollback()

    assert db.query(AuditLogEntry).count() == 0


def test_unknown_action_rejected(ledger):
    with pytest.raises(ValueError):
        ledger.append("doc-1", "owner-1", "TELEPORTED")


def test_timestamps_come_from_clock(db):
    clock = FakeClock(FIXED_NOW)
    entry = AuditLedger(db, clock).append("doc-1", "owner-1", AuditAction.CREATED)
    assert entry.created_at == FIXED_NOW
