"""Audit log models."""

import enum
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, String, UniqueConstraint

from sealsign_api.db.base import Base


class AuditAction(str, enum.Enum):
    CREATED = "CREATED"
    VIEWED = "VIEWED"
    DOWNLOADED = "DOWNLOADED"
    SIGNATURE_REQUESTED = "SIGNATURE_REQUESTED"
    SIGNED = "SIGNED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"
    DELETED = "DELETED"


class AuditLogEntry(Base):
    """Append-only, per-document hash-chained audit entry.

    ``document_id`` is deliberately not a foreign key: the trail outlives
    the document it describes.
    """

    __tablename__ = "audit_log_entries"
    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_audit_document_sequence"),
        {"sqlite_autoincrement": True},
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(String(36), nullable=False, index=True)
    sequence = Column(Integer, nullable=False)
    user_id = Column(String(255), nullable=True)  # NULL for signer actions
    action = Column(String(50), nullable=False, index=True)
    details = Column(JSON, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    previous_hash = Column(String(64), nullable=True)  # NULL for first entry
    entry_hash = Column(String(64), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
