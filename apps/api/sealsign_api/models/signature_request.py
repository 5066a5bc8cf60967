"""Signature request and signature models."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String, Text

from sealsign_api.db.base import Base


class SignatureRequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class MarkType(str, enum.Enum):
    DRAWN = "DRAWN"
    TYPED = "TYPED"


class SignatureRequest(Base):
    """A single signer's authorization to sign one document.

    Never deleted. ``signed_at`` is set iff status is COMPLETED.
    """

    __tablename__ = "signature_requests"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    document_id = Column(String(36), nullable=False, index=True)  # survives document deletion
    requester_id = Column(String(255), nullable=False, index=True)
    requester_email = Column(String(255), nullable=True)  # from the owner token, for notices
    signer_id = Column(String(255), nullable=True)  # resolved out of band, if ever
    signer_email = Column(String(255), nullable=False, index=True)
    message = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, default=SignatureRequestStatus.PENDING.value, index=True)
    signed_at = Column(DateTime, nullable=True)
    declined_at = Column(DateTime, nullable=True)
    decline_reason = Column(String(500), nullable=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class Signature(Base):
    """Completion artifact of a signature request. Immutable evidence."""

    __tablename__ = "signatures"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Unique: at most one signature per request, even if the status guard is bypassed
    signature_request_id = Column(
        String(36), ForeignKey("signature_requests.id"), nullable=False, unique=True, index=True
    )
    signer_id = Column(String(255), nullable=True)
    signer_email = Column(String(255), nullable=False)
    mark_data = Column(Text, nullable=False)
    mark_type = Column(String(20), nullable=False)
    mark_hash = Column(String(64), nullable=False)
    ip_address = Column(String(45), nullable=False)
    user_agent = Column(String(500), nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
