"""Audit ledger service with per-document hash chaining."""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sealsign_api.models import AuditAction, AuditLogEntry
from sealsign_api.utils.clock import Clock, utcnow
from sealsign_api.utils.hashing import canonical_json, sha256_hex
from sealsign_api.utils.metrics import audit_entries_appended

logger = logging.getLogger(__name__)

APPEND_ATTEMPTS = 3


class AuditLedger:
    """Append-only, tamper-evident audit log keyed by document id.

    Writes happen inside the caller's transaction (a savepoint, never a commit), so an
    audit entry commits or rolls back together with the state change it
    records. Database errors other than a lost sequence race are never swallowed here.
    """

    def __init__(self, db: Session, clock: Clock = utcnow):
        """Initialize ledger service."""
        self.db = db
        self.clock = clock

    @staticmethod
    def _hash_entry(entry_data: dict) -> str:
        """Compute hash of canonical entry data."""
        return sha256_hex(canonical_json(entry_data))

    @staticmethod
    def _entry_data(entry: AuditLogEntry) -> dict:
        return {
            "document_id": entry.document_id,
            "sequence": entry.sequence,
            "user_id": entry.user_id,
            "action": entry.action,
            "details": entry.details,
            "ip_address": entry.ip_address,
            "user_agent": entry.user_agent,
            "previous_hash": entry.previous_hash,
            "timestamp": entry.created_at.isoformat(),
        }

    def _get_last_entry(self, document_id: str) -> Optional[AuditLogEntry]:
        return (
            self.db.query(AuditLogEntry)
            .filter(AuditLogEntry.document_id == document_id)
            .order_by(AuditLogEntry.sequence.desc())
            .first()
        )

    def append(
        self,
        document_id: str,
        user_id: Optional[str],
        action: AuditAction,
        details: Optional[dict] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> AuditLogEntry:
        """Append an entry to the document's chain.

        The entry is inserted inside a savepoint. When a concurrent writer
        has already taken the next sequence, only the savepoint is rolled
        back and the entry is rebuilt on top of the new tail.
        """
        # Pending caller state must not be retried with the entry.
        self.db.flush()

        for attempt in range(1, APPEND_ATTEMPTS + 1):
            last = self._get_last_entry(document_id)
            entry = AuditLogEntry(
                document_id=document_id,
                sequence=(last.sequence + 1) if last else 1,
                user_id=user_id,
                action=AuditAction(action).value,
                details=details or {},
                ip_address=ip,
                user_agent=user_agent,
                previous_hash=last.entry_hash if last else None,
                created_at=self.clock(),
            )
            entry.entry_hash = self._hash_entry(self._entry_data(entry))

            try:
                with self.db.begin_nested():
                    self.db.add(entry)
            except IntegrityError:
                if attempt == APPEND_ATTEMPTS:
                    logger.error(
                        f"Audit append for {document_id} lost the sequence race {attempt} times",
                        extra={"document_id": document_id, "action": entry.action},
                    )
                    raise
                logger.warning(
                    f"Audit sequence {entry.sequence} already taken for {document_id}, retrying",
                    extra={"document_id": document_id, "action": entry.action, "attempt": attempt},
                )
                continue
            break

        audit_entries_appended.labels(action=entry.action).inc()
        logger.debug(
            "Audit entry appended",
            extra={"document_id": document_id, "action": entry.action, "sequence": entry.sequence},
        )
        return entry

    def list_by_document(self, document_id: str) -> list[AuditLogEntry]:
        """Entries for a document, newest first. Read-side reporting only."""
        return (
            self.db.query(AuditLogEntry)
            .filter(AuditLogEntry.document_id == document_id)
            .order_by(AuditLogEntry.created_at.desc(), AuditLogEntry.id.desc())
            .all()
        )

    def verify_chain(self, document_id: str) -> tuple[bool, Optional[str]]:
        """Verify hash chain integrity for a document.

        Returns:
            ``(True, None)`` when intact, otherwise ``(False, reason)``.
        """
        entries = (
            self.db.query(AuditLogEntry)
            .filter(AuditLogEntry.document_id == document_id)
            .order_by(AuditLogEntry.sequence.asc())
            .all()
        )

        previous_hash = None
        for expected_sequence, entry in enumerate(entries, start=1):
            if entry.sequence != expected_sequence:
                return False, f"Sequence gap at entry {entry.id}: expected {expected_sequence}, got {entry.sequence}"
            if entry.previous_hash != previous_hash:
                return False, f"Broken link at sequence {entry.sequence}"
            if self._hash_entry(self._entry_data(entry)) != entry.entry_hash:
                return False, f"Hash mismatch at sequence {entry.sequence}"
            previous_hash = entry.entry_hash

        return True, None
