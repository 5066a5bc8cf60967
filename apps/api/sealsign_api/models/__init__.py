"""Database models - import all models here for Alembic discovery."""

from sealsign_api.models.audit import AuditAction, AuditLogEntry
from sealsign_api.models.document import Document, DocumentStatus
from sealsign_api.models.signature_request import (
    MarkType,
    Signature,
    SignatureRequest,
    SignatureRequestStatus,
)

__all__ = [
    "AuditAction",
    "AuditLogEntry",
    "Document",
    "DocumentStatus",
    "MarkType",
    "Signature",
    "SignatureRequest",
    "SignatureRequestStatus",
]
