"""Signature request lifecycle.

PENDING is the only non-terminal state. Every transition out of it is a
conditional ``UPDATE ... WHERE status = 'PENDING'``; the row count decides
which caller won, so concurrent sign/decline/expire calls on one request
resolve to exactly one outcome across any number of API instances.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from email_validator import EmailNotValidError, validate_email
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sealsign_api.documents.service import DocumentRegistry
from sealsign_api.errors import (
    AlreadyResolvedError,
    BlobStoreError,
    ConsentRequiredError,
    ForbiddenError,
    InvalidStateTransitionError,
    NotFoundError,
    RequestExpiredError,
    SealingFailedError,
    ValidationError,
)
from sealsign_api.ledger.service import AuditLedger
from sealsign_api.models import (
    AuditAction,
    Document,
    DocumentStatus,
    MarkType,
    Signature,
    SignatureRequest,
    SignatureRequestStatus,
)
from sealsign_api.notifications.service import Notifier
from sealsign_api.sealing.pipeline import DocumentSealer
from sealsign_api.settings import get_settings
from sealsign_api.storage.service import BlobStore
from sealsign_api.tokens.service import SigningTokenClaims, SigningTokenService
from sealsign_api.utils.clock import Clock, utcnow
from sealsign_api.utils.hashing import sha256_hex
from sealsign_api.utils.metrics import notification_failures, signature_requests_created, signing_outcomes

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500
MAX_MARK_LENGTH = 1_000_000
DEFAULT_SIGNER_IP = "0.0.0.0"

REQUEST_KINDS = ("sent", "received", "all")


@dataclass
class SigningSession:
    """A validated signer view of a pending request."""

    request: SignatureRequest
    document: Document
    document_url: str
    claims: SigningTokenClaims


def normalize_email(value: str) -> str:
    try:
        return validate_email(value or "", check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid signer email: {e}") from e


class SignatureRequestService:
    """Create, open, sign and decline signature requests."""

    def __init__(
        self,
        db: Session,
        blob_store: BlobStore,
        notifier: Notifier,
        token_service: SigningTokenService,
        sealer: Optional[DocumentSealer] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.blob_store = blob_store
        self.notifier = notifier
        self.token_service = token_service
        self.sealer = sealer or DocumentSealer(blob_store)
        self.clock = clock
        self.registry = DocumentRegistry(db, blob_store, clock)
        self.ledger = AuditLedger(db, clock)
        self.settings = get_settings()

    # Transitions

    def transition(self, request_id: str, to_status: SignatureRequestStatus, now: datetime, **fields) -> None:
        """Move a request out of PENDING, or raise if another caller already did.

        Runs inside the caller's transaction; the caller commits or rolls back.
        """
        if to_status is SignatureRequestStatus.PENDING:
            raise InvalidStateTransitionError("PENDING is not a target state")

        values = {"status": to_status.value, "updated_at": now, **fields}
        rows = (
            self.db.query(SignatureRequest)
            .filter(
                SignatureRequest.id == request_id,
                SignatureRequest.status == SignatureRequestStatus.PENDING.value,
            )
            .update(values, synchronize_session=False)
        )
        if rows == 0:
            current = (
                self.db.query(SignatureRequest.status).filter(SignatureRequest.id == request_id).scalar()
            )
            if current is None:
                raise NotFoundError("Signature request not found")
            raise AlreadyResolvedError(current)

    def _release_document(self, document_id: str, now: datetime) -> None:
        """Return a PENDING document to DRAFT once it has no pending request left."""
        document = self.db.query(Document).filter(Document.id == document_id).first()
        if not document or document.status != DocumentStatus.PENDING.value:
            return
        if not self.registry.has_pending_request(document_id):
            document.status = DocumentStatus.DRAFT.value
            document.updated_at = now

    def expire_if_due(
        self,
        request: SignatureRequest,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> bool:
        """Lazily expire ``request``. Returns True if it is (now) EXPIRED.

        Only the caller whose conditional update wins writes ``updated_at``
        and the EXPIRED audit entry; later calls are no-ops.
        """
        if request.status == SignatureRequestStatus.EXPIRED.value:
            return True
        now = self.clock()
        if request.status != SignatureRequestStatus.PENDING.value or now <= request.expires_at:
            return False

        try:
            self.transition(request.id, SignatureRequestStatus.EXPIRED, now)
        except AlreadyResolvedError:
            self.db.rollback()
            self.db.refresh(request)
            return request.status == SignatureRequestStatus.EXPIRED.value

        try:
            self._release_document(request.document_id, now)
            self.ledger.append(
                request.document_id,
                None,
                AuditAction.EXPIRED,
                {"signature_request_id": request.id, "expires_at": request.expires_at.isoformat()},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(request)
        signing_outcomes.labels(operation="expire", result="expired").inc()
        logger.info(
            f"Signature request expired: {request.id}",
            extra={"request_id": request.id, "document_id": request.document_id},
        )
        return True

    # Owner operations

    def create(
        self,
        document_id: str,
        signer_email: str,
        message: Optional[str],
        requester_id: str,
        requester_email: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignatureRequest:
        """Create a PENDING request and invite the signer."""
        signer_email = normalize_email(signer_email)
        if message is not None:
            message = message.strip() or None
        if message and len(message) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message must be at most {MAX_MESSAGE_LENGTH} characters")

        document = self.registry.get_owned(document_id, requester_id)
        if document.status == DocumentStatus.COMPLETED.value:
            raise InvalidStateTransitionError("Document has already been signed")

        pending = (
            self.db.query(SignatureRequest)
            .filter(
                SignatureRequest.document_id == document.id,
                SignatureRequest.status == SignatureRequestStatus.PENDING.value,
            )
            .all()
        )
        for existing in pending:
            if not self.expire_if_due(existing, ip=ip, user_agent=user_agent):
                raise InvalidStateTransitionError("Document already has a pending signature request")
        self.db.refresh(document)

        now = self.clock()
        request = SignatureRequest(
            id=str(uuid.uuid4()),
            document_id=document.id,
            requester_id=requester_id,
            requester_email=requester_email,
            signer_email=signer_email,
            message=message,
            status=SignatureRequestStatus.PENDING.value,
            expires_at=now + timedelta(days=self.settings.signature_request_ttl_days),
            created_at=now,
            updated_at=now,
        )
        try:
            self.db.add(request)
            document.status = DocumentStatus.PENDING.value
            document.updated_at = now
            self.db.flush()
            self.ledger.append(
                document.id,
                requester_id,
                AuditAction.SIGNATURE_REQUESTED,
                {
                    "signature_request_id": request.id,
                    "signer_email": signer_email,
                    "expires_at": request.expires_at.isoformat(),
                },
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(request)
        signature_requests_created.inc()
        logger.info(
            f"Signature request created: {request.id}",
            extra={"request_id": request.id, "document_id": document.id},
        )

        token = self.token_service.mint(request.id, signer_email)
        signing_url = f"{self.settings.frontend_url.rstrip('/')}/sign/{request.id}?token={token}"
        self._notify(
            "signing_invite",
            self.notifier.send_signing_invite,
            signer_email,
            signing_url,
            message=message,
            document_title=document.title,
            expires_at=request.expires_at,
        )
        return request

    def list_for_user(self, user_id: str, kind: str = "all", user_email: Optional[str] = None) -> list[SignatureRequest]:
        """Requests sent by or addressed to the user, newest first."""
        if kind not in REQUEST_KINDS:
            raise ValidationError(f"type must be one of: {', '.join(REQUEST_KINDS)}")

        received = SignatureRequest.signer_id == user_id
        if user_email:
            received = or_(received, SignatureRequest.signer_email == user_email.lower())

        query = self.db.query(SignatureRequest)
        if kind == "sent":
            query = query.filter(SignatureRequest.requester_id == user_id)
        elif kind == "received":
            query = query.filter(received)
        else:
            query = query.filter(or_(SignatureRequest.requester_id == user_id, received))

        requests = query.order_by(SignatureRequest.created_at.desc()).all()
        for request in requests:
            self.expire_if_due(request)
        return requests

    def get_for_user(self, request_id: str, user_id: str, user_email: Optional[str] = None) -> SignatureRequest:
        """A request the user sent or that is addressed to them."""
        request = self._load(request_id)
        is_requester = request.requester_id == user_id
        is_signer = request.signer_id == user_id or (
            user_email is not None and request.signer_email.lower() == user_email.lower()
        )
        if not (is_requester or is_signer):
            raise ForbiddenError("You do not have access to this signature request")
        self.expire_if_due(request)
        return request

    # Signer operations

    def _load(self, request_id: str) -> SignatureRequest:
        request = self.db.query(SignatureRequest).filter(SignatureRequest.id == request_id).first()
        if not request:
            raise NotFoundError("Signature request not found")
        return request

    def _validate_session(
        self,
        request_id: str,
        token: Optional[str],
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> tuple[SignatureRequest, SigningTokenClaims]:
        claims = self.token_service.verify(token, request_id=request_id)
        request = self._load(request_id)
        if claims.signer_email != request.signer_email.lower():
            raise ForbiddenError("This signing link was issued to a different signer")
        if request.status != SignatureRequestStatus.PENDING.value:
            raise AlreadyResolvedError(request.status)
        if self.expire_if_due(request, ip=ip, user_agent=user_agent):
            raise RequestExpiredError()
        return request, claims

    def open_signing_session(
        self,
        request_id: str,
        token: Optional[str],
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SigningSession:
        """Validate a signer's token and return the request with a view URL."""
        request, claims = self._validate_session(request_id, token, ip, user_agent)

        document = self.db.query(Document).filter(Document.id == request.document_id).first()
        if not document:
            raise NotFoundError("Document not found")
        document_url = self.registry.presign_view(document)

        try:
            self.ledger.append(
                document.id,
                None,
                AuditAction.VIEWED,
                {"signature_request_id": request.id, "signer_email": request.signer_email},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        signing_outcomes.labels(operation="open", result="ok").inc()
        return SigningSession(request=request, document=document, document_url=document_url, claims=claims)

    def sign(
        self,
        request_id: str,
        token: Optional[str],
        consent: bool,
        mark_data: str,
        mark_type: str,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> Signature:
        """Complete a request: record the mark, seal the document, audit, notify.

        Either all of it commits or none of it does.
        """
        request, claims = self._validate_session(request_id, token, ip, user_agent)

        if not consent:
            signing_outcomes.labels(operation="sign", result="no_consent").inc()
            raise ConsentRequiredError()
        if not mark_data or not mark_data.strip():
            raise ValidationError("Signature data is required")
        if len(mark_data) > MAX_MARK_LENGTH:
            raise ValidationError("Signature data is too large")
        try:
            mark = MarkType((mark_type or "").upper())
        except ValueError:
            raise ValidationError(f"Unknown signature type: {mark_type}") from None

        ip = ip or DEFAULT_SIGNER_IP
        now = self.clock()
        sealed_key = None
        try:
            self.transition(request.id, SignatureRequestStatus.COMPLETED, now, signed_at=now)

            signature = Signature(
                id=str(uuid.uuid4()),
                signature_request_id=request.id,
                signer_id=request.signer_id,
                signer_email=claims.signer_email,
                mark_data=mark_data,
                mark_type=mark.value,
                mark_hash=sha256_hex(mark_data),
                ip_address=ip,
                user_agent=user_agent,
                metadata_json=metadata or {},
                created_at=now,
            )
            self.db.add(signature)
            self.db.flush()

            document = self.db.query(Document).filter(Document.id == request.document_id).first()
            if not document:
                raise SealingFailedError("Document no longer exists")
            result = self.sealer.seal(document, signature, now)
            sealed_key = result.sealed_key

            self.ledger.append(
                document.id,
                None,
                AuditAction.SIGNED,
                {
                    "signature_request_id": request.id,
                    "signature_id": signature.id,
                    "signer_email": signature.signer_email,
                    "mark_type": signature.mark_type,
                    "mark_hash": signature.mark_hash,
                    "content_hash": result.content_hash,
                },
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except IntegrityError as e:
            self._abort(sealed_key)
            # A duplicate signature row means another signer won; anything else is a real fault
            current = (
                self.db.query(SignatureRequest.status).filter(SignatureRequest.id == request.id).scalar()
            )
            if current and current != SignatureRequestStatus.PENDING.value:
                signing_outcomes.labels(operation="sign", result="conflict").inc()
                raise AlreadyResolvedError(current) from e
            signing_outcomes.labels(operation="sign", result="error").inc()
            logger.error(
                f"Integrity error while signing {request.id}: {e.orig}",
                extra={"request_id": request.id},
            )
            raise
        except Exception as e:
            self._abort(sealed_key)
            result_label = "conflict" if isinstance(e, AlreadyResolvedError) else "error"
            signing_outcomes.labels(operation="sign", result=result_label).inc()
            raise

        self.db.refresh(request)
        signing_outcomes.labels(operation="sign", result="completed").inc()
        logger.info(
            f"Signature request completed: {request.id}",
            extra={"request_id": request.id, "document_id": document.id, "signature_id": signature.id},
        )

        self._notify(
            "completion",
            self.notifier.send_completion_notices,
            request.requester_email,
            signature.signer_email,
            document.title,
            signed_at=now,
        )
        return signature

    def decline(
        self,
        request_id: str,
        token: Optional[str],
        reason: Optional[str] = None,
        ip: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SignatureRequest:
        """Decline a pending request on behalf of its signer."""
        request, claims = self._validate_session(request_id, token, ip, user_agent)

        if reason is not None:
            reason = reason.strip() or None
        if reason and len(reason) > MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Reason must be at most {MAX_MESSAGE_LENGTH} characters")

        now = self.clock()
        try:
            self.transition(
                request.id,
                SignatureRequestStatus.DECLINED,
                now,
                declined_at=now,
                decline_reason=reason,
            )
            self._release_document(request.document_id, now)
            self.ledger.append(
                request.document_id,
                None,
                AuditAction.DECLINED,
                {"signature_request_id": request.id, "signer_email": claims.signer_email, "reason": reason},
                ip=ip,
                user_agent=user_agent,
            )
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            result_label = "conflict" if isinstance(e, AlreadyResolvedError) else "error"
            signing_outcomes.labels(operation="decline", result=result_label).inc()
            raise

        self.db.refresh(request)
        signing_outcomes.labels(operation="decline", result="declined").inc()
        logger.info(
            f"Signature request declined: {request.id}",
            extra={"request_id": request.id, "document_id": request.document_id},
        )

        document = self.db.query(Document).filter(Document.id == request.document_id).first()
        self._notify(
            "decline",
            self.notifier.send_decline_notice,
            request.requester_email,
            claims.signer_email,
            document.title if document else request.document_id,
            reason=reason,
        )
        return request

    # Helpers

    def _abort(self, sealed_key: Optional[str]) -> None:
        self.db.rollback()
        if not sealed_key:
            return
        try:
            self.blob_store.delete(sealed_key)
        except BlobStoreError as e:
            logger.error(f"Failed to remove orphaned sealed object {sealed_key}: {e}")

    def _notify(self, kind: str, send, *args, **kwargs) -> None:
        try:
            send(*args, **kwargs)
        except Exception as e:
            notification_failures.labels(kind=kind).inc()
            logger.error(f"Failed to send {kind} notification: {e}", exc_info=True, extra={"kind": kind})
