"""Document model."""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text

from sealsign_api.db.base import Base


class DocumentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class Document(Base):
    """Uploaded document owned by a single user.

    Mutated only by the sealing pipeline (status, hash, sealed key), by
    signature-request transitions (DRAFT <-> PENDING) and by owner delete.
    """

    __tablename__ = "documents"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    storage_key = Column(String(512), nullable=False)
    sealed_storage_key = Column(String(512), nullable=True)
    original_hash = Column(String(64), nullable=False)
    content_hash = Column(String(64), nullable=True)  # SHA-256 of the sealed artifact
    content_type = Column(String(100), nullable=False, default="application/pdf")
    size_bytes = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=DocumentStatus.DRAFT.value, index=True)
    owner_id = Column(String(255), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
