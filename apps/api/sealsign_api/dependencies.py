"""FastAPI dependency wiring for services."""

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from sealsign_api.db.session import get_db
from sealsign_api.documents.service import DocumentRegistry
from sealsign_api.notifications.service import Notifier, get_notifier
from sealsign_api.sealing.pipeline import DocumentSealer
from sealsign_api.signing.service import SignatureRequestService
from sealsign_api.storage.service import BlobStore, get_blob_store
from sealsign_api.tokens.service import SigningTokenService, get_token_service
from sealsign_api.utils.clock import Clock, utcnow


def get_clock() -> Clock:
    return utcnow


def get_document_registry(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    clock: Clock = Depends(get_clock),
) -> DocumentRegistry:
    return DocumentRegistry(db, blob_store, clock)


def get_signature_service(
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
    notifier: Notifier = Depends(get_notifier),
    token_service: SigningTokenService = Depends(get_token_service),
    clock: Clock = Depends(get_clock),
) -> SignatureRequestService:
    return SignatureRequestService(
        db,
        blob_store,
        notifier,
        token_service,
        sealer=DocumentSealer(blob_store),
        clock=clock,
    )


def client_ip(request: Request) -> Optional[str]:
    """Caller IP from the connection."""
    return request.client.host if request.client else None


def client_user_agent(request: Request) -> Optional[str]:
    user_agent = request.headers.get("user-agent")
    return user_agent[:500] if user_agent else None
