"""Document sealing pipeline.

Stamps the first page of the original PDF, stores the result as a new object
and records its SHA-256 on the document. The overlay is rendered by reportlab
in invariant mode and merged with pypdf, so sealing the same bytes with the
same signature id and timestamp always yields the same artifact.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from typing import Optional

from pypdf import PdfReader, PdfWriter
from reportlab.pdfgen import canvas

from sealsign_api.errors import BlobStoreError, BlobStoreTimeout, SealingFailedError
from sealsign_api.models import Document, DocumentStatus, Signature
from sealsign_api.settings import get_settings
from sealsign_api.storage.service import BlobStore
from sealsign_api.utils.hashing import sha256_hex
from sealsign_api.utils.metrics import sealing_duration, sealing_failures

logger = logging.getLogger(__name__)

SEALED_PREFIX = "signed-documents"
STAMP_FONT = "Helvetica-Bold"
STAMP_FONT_SIZE = 12
PROVENANCE_FONT = "Helvetica"
PROVENANCE_FONT_SIZE = 7


@dataclass(frozen=True)
class SealResult:
    sealed_key: str
    content_hash: str


class DocumentSealer:
    """Produce the sealed artifact for a completed signature."""

    def __init__(self, blob_store: BlobStore, stamp_text: Optional[str] = None):
        self.blob_store = blob_store
        self.stamp_text = stamp_text or get_settings().seal_stamp_text

    def _overlay(self, width: float, height: float, signature_id: str, sealed_at: datetime) -> bytes:
        buf = BytesIO()
        c = canvas.Canvas(buf, pagesize=(width, height), invariant=1)
        c.setFont(STAMP_FONT, STAMP_FONT_SIZE)
        c.drawString(width / 2 - 50, height - 50, self.stamp_text)
        c.setFont(PROVENANCE_FONT, PROVENANCE_FONT_SIZE)
        c.drawString(36, 24, f"Signature {signature_id} sealed {sealed_at.isoformat()}Z")
        c.save()
        return buf.getvalue()

    def render(self, original_bytes: bytes, signature_id: str, sealed_at: datetime) -> bytes:
        """Return sealed PDF bytes for ``original_bytes``.

        Raises:
            SealingFailedError: input is empty, encrypted or not a PDF
        """
        if not original_bytes:
            raise SealingFailedError("Original document is empty")

        try:
            reader = PdfReader(BytesIO(original_bytes))
            if reader.is_encrypted:
                raise SealingFailedError("Encrypted documents cannot be sealed")
            if len(reader.pages) == 0:
                raise SealingFailedError("Original document has no pages")

            writer = PdfWriter()
            for page in reader.pages:
                writer.add_page(page)

            first = writer.pages[0]
            width = float(first.mediabox.width)
            height = float(first.mediabox.height)
            overlay = PdfReader(BytesIO(self._overlay(width, height, signature_id, sealed_at)))
            first.merge_page(overlay.pages[0])

            out = BytesIO()
            writer.write(out)
            return out.getvalue()
        except SealingFailedError:
            raise
        except Exception as e:  # pypdf raises assorted types on malformed input
            raise SealingFailedError(f"Could not parse original document: {e}") from e

    def seal(self, document: Document, signature: Signature, sealed_at: datetime) -> SealResult:
        """Seal ``document`` for ``signature`` and mark it COMPLETED.

        Document changes are left for the caller's transaction to flush.
        The original object is never overwritten.
        """
        try:
            with sealing_duration.time():
                try:
                    original = self.blob_store.get(document.storage_key)
                    sealed = self.render(original, signature.id, sealed_at)
                    content_hash = sha256_hex(sealed)
                    sealed_key = self.blob_store.put(
                        sealed,
                        prefix=f"{SEALED_PREFIX}/{document.owner_id}",
                        suffix=".pdf",
                        content_type="application/pdf",
                    )
                except BlobStoreTimeout as e:
                    raise SealingFailedError("Document storage timed out, try again", retryable=True) from e
                except BlobStoreError as e:
                    raise SealingFailedError(f"Document storage failed: {e.message}") from e
        except SealingFailedError as e:
            sealing_failures.labels(retryable=str(e.retryable).lower()).inc()
            logger.error(
                f"Sealing failed for document {document.id}: {e.message}",
                extra={"document_id": document.id, "signature_id": signature.id, "retryable": e.retryable},
            )
            raise

        document.sealed_storage_key = sealed_key
        document.content_hash = content_hash
        document.status = DocumentStatus.COMPLETED.value
        document.updated_at = sealed_at

        logger.info(
            f"Sealed document {document.id}",
            extra={"document_id": document.id, "sealed_key": sealed_key, "content_hash": content_hash},
        )
        return SealResult(sealed_key=sealed_key, content_hash=content_hash)
