"""Document registry: upload, ownership checks, download and deletion."""

import logging
import os
import re
import uuid
from dataclasses import dataclass
from io import BytesIO
from typing import Optional

from pypdf import PdfReader
from sqlalchemy.orm import Session

from sealsign_api.errors import (
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    SealIntegrityError,
    ValidationError,
)
from sealsign_api.ledger.service import AuditLedger
from sealsign_api.models import (
    AuditAction,
    AuditLogEntry,
    Document,
    DocumentStatus,
    SignatureRequest,
    SignatureRequestStatus,
)
from sealsign_api.settings import get_settings
from sealsign_api.storage.service import BlobStore
from sealsign_api.utils.clock import Clock, utcnow
from sealsign_api.utils.hashing import sha256_hex

logger = logging.getLogger(__name__)

ORIGINAL_PREFIX = "documents"
PDF_CONTENT_TYPES = {"application/pdf", "application/x-pdf"}


@dataclass
class DocumentContent:
    document: Document
    data: bytes
    sealed: bool

    @property
    def filename(self) -> str:
        base = re.sub(r"[^A-Za-z0-9._-]+", "_", os.path.splitext(self.document.title)[0]).strip("_") or self.document.id
        return f"{base}-signed.pdf" if self.sealed else f"{base}.pdf"


def _validate_pdf(data: bytes, filename: Optional[str], content_type: Optional[str], max_bytes: int) -> int:
    """Check an upload is a readable PDF and return its page count."""
    if not data:
        raise ValidationError("Uploaded file is empty")
    if len(data) > max_bytes:
        raise ValidationError(f"File exceeds maximum size of {max_bytes} bytes")

    is_pdf_type = (content_type or "").split(";")[0].strip().lower() in PDF_CONTENT_TYPES
    is_pdf_name = (filename or "").lower().endswith(".pdf")
    if not (is_pdf_type or is_pdf_name):
        raise ValidationError("Only PDF documents are supported")

    try:
        reader = PdfReader(BytesIO(data))
        if reader.is_encrypted:
            raise ValidationError("Encrypted PDFs are not supported")
        pages = len(reader.pages)
    except ValidationError:
        raise
    except Exception as e:  # pypdf raises assorted types on malformed input
        raise ValidationError(f"File is not a readable PDF: {e}") from e
    if pages < 1:
        raise ValidationError("PDF has no pages")
    return pages


class DocumentRegistry:
    """Owner-facing document operations."""

    def __init__(self, db: Session, blob_store: BlobStore, clock: Clock = utcnow):
        self.db = db
        self.blob_store = blob_store
        self.clock = clock
        self.ledger = AuditLedger(db, clock)
        self.settings = get_settings()

    def upload(
        self,
        owner_id: str,
        title: str,
        description: Optional[str],
        data: bytes,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Document:
        """Validate and store a PDF as a new DRAFT document."""
        title = (title or "").strip()
        if not title:
            raise ValidationError("Title is required")
        pages = _validate_pdf(data, filename, content_type, self.settings.max_upload_bytes)

        storage_key = self.blob_store.put(
            data,
            prefix=f"{ORIGINAL_PREFIX}/{owner_id}",
            content_type="application/pdf",
        )

        now = self.clock()
        document = Document(
            id=str(uuid.uuid4()),
            title=title,
            description=description,
            storage_key=storage_key,
            original_hash=sha256_hex(data),
            content_type="application/pdf",
            size_bytes=len(data),
            status=DocumentStatus.DRAFT.value,
            owner_id=owner_id,
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(document)
            self.db.flush()
            self.ledger.append(
                document.id,
                owner_id,
                AuditAction.CREATED,
                {"title": title, "original_hash": document.original_hash, "size_bytes": len(data), "pages": pages},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            self.blob_store.delete(storage_key)
            raise

        self.db.refresh(document)
        logger.info(
            f"Document uploaded: {document.id}",
            extra={"document_id": document.id, "owner_id": owner_id, "size_bytes": len(data)},
        )
        return document

    def get_owned(self, document_id: str, owner_id: str) -> Document:
        document = self.db.query(Document).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document not found")
        if document.owner_id != owner_id:
            raise ForbiddenError("You do not have access to this document")
        return document

    def list_owned(self, owner_id: str) -> list[Document]:
        return (
            self.db.query(Document)
            .filter(Document.owner_id == owner_id)
            .order_by(Document.created_at.desc())
            .all()
        )

    def has_pending_request(self, document_id: str) -> bool:
        return (
            self.db.query(SignatureRequest.id)
            .filter(
                SignatureRequest.document_id == document_id,
                SignatureRequest.status == SignatureRequestStatus.PENDING.value,
            )
            .first()
            is not None
        )

    def delete(
        self,
        document_id: str,
        owner_id: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """Delete a document and its stored objects.

        Signature requests, signatures and audit entries are kept.
        """
        document = self.get_owned(document_id, owner_id)
        if self.has_pending_request(document_id):
            raise InvalidStateTransitionError("Cannot delete a document with a pending signature request")

        self.blob_store.delete(document.storage_key)
        if document.sealed_storage_key:
            self.blob_store.delete(document.sealed_storage_key)

        try:
            self.ledger.append(
                document.id,
                owner_id,
                AuditAction.DELETED,
                {"title": document.title, "status": document.status},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.delete(document)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Document deleted: {document_id}", extra={"document_id": document_id, "owner_id": owner_id})

    def download(
        self,
        document_id: str,
        owner_id: str,
        sealed: bool = True,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> DocumentContent:
        """Fetch document bytes, re-validating the recorded hash."""
        document = self.get_owned(document_id, owner_id)

        if sealed:
            if not document.sealed_storage_key:
                raise NotFoundError("Document has not been sealed yet")
            key, expected = document.sealed_storage_key, document.content_hash
        else:
            key, expected = document.storage_key, document.original_hash

        data = self.blob_store.get(key)
        actual = sha256_hex(data)
        if actual != expected:
            logger.error(
                f"Stored content hash mismatch for document {document.id}",
                extra={"document_id": document.id, "expected": expected, "actual": actual, "sealed": sealed},
            )
            raise SealIntegrityError("Stored document does not match its recorded hash")

        try:
            self.ledger.append(
                document.id,
                owner_id,
                AuditAction.DOWNLOADED,
                {"sealed": sealed, "content_hash": actual},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return DocumentContent(document=document, data=data, sealed=sealed)

    def verify_seal(self, document_id: str) -> tuple[bool, str]:
        """Re-hash the stored sealed artifact without an ownership check (operator use)."""
        document = self.db.query(Document).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document not found")
        if not document.sealed_storage_key:
            return False, "Document has not been sealed"
        actual = sha256_hex(self.blob_store.get(document.sealed_storage_key))
        if actual != document.content_hash:
            return False, f"Hash mismatch: recorded {document.content_hash}, stored {actual}"
        return True, actual

    def presign_view(self, document: Document, ttl_seconds: Optional[int] = None) -> str:
        """Time-boxed URL for the original, used by signing sessions."""
        ttl = ttl_seconds or self.settings.document_view_url_ttl_seconds
        return self.blob_store.presign(document.storage_key, ttl)

    def audit_trail(self, document_id: str, owner_id: str) -> list[AuditLogEntry]:
        self.get_owned(document_id, owner_id)
        return self.ledger.list_by_document(document_id)
