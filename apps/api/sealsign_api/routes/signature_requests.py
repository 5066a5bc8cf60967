"""Signature request routes.

Owner routes need a bearer token. Signer routes under ``/sign`` are
authorized by the signing token in the ``token`` query parameter only.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status

from sealsign_api.auth.owner import Owner, get_current_owner
from sealsign_api.dependencies import client_ip, client_user_agent, get_signature_service
from sealsign_api.routes.schemas import (
    DeclineRequestBody,
    SignatureRequestCreate,
    SignatureRequestResponse,
    SigningDocument,
    SigningResultResponse,
    SigningSessionResponse,
    SignRequestBody,
)
from sealsign_api.signing.service import SignatureRequestService

router = APIRouter(prefix="/signature-requests", tags=["signature-requests"])


@router.post("", response_model=SignatureRequestResponse, status_code=status.HTTP_201_CREATED)
def create_signature_request(
    body: SignatureRequestCreate,
    request: Request,
    owner: Owner = Depends(get_current_owner),
    service: SignatureRequestService = Depends(get_signature_service),
):
    """Request a signature on an owned document and e-mail the signer."""
    return service.create(
        body.document_id,
        str(body.signer_email),
        body.message,
        requester_id=owner.id,
        requester_email=owner.email,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )


@router.get("", response_model=list[SignatureRequestResponse])
def list_signature_requests(
    type: str = Query("all", pattern="^(sent|received|all)$"),
    owner: Owner = Depends(get_current_owner),
    service: SignatureRequestService = Depends(get_signature_service),
):
    return service.list_for_user(owner.id, type, user_email=owner.email)


@router.get("/sign/{request_id}", response_model=SigningSessionResponse)
def open_signing_session(
    request_id: str,
    request: Request,
    token: Optional[str] = None,
    service: SignatureRequestService = Depends(get_signature_service),
):
    """Signer view of a pending request with a short-lived document URL."""
    session = service.open_signing_session(
        request_id,
        token,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )
    return SigningSessionResponse(
        signature_request=SignatureRequestResponse.model_validate(session.request),
        document=SigningDocument.model_validate(session.document),
        document_url=session.document_url,
    )


@router.post("/sign/{request_id}", response_model=SigningResultResponse)
def sign_document(
    request_id: str,
    body: SignRequestBody,
    request: Request,
    token: Optional[str] = None,
    service: SignatureRequestService = Depends(get_signature_service),
):
    signature = service.sign(
        request_id,
        token,
        consent=body.consent_to_electronic_signature,
        mark_data=body.signature_data,
        mark_type=body.signature_type,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
        metadata=body.metadata,
    )
    return SigningResultResponse(
        success=True,
        message="Document signed successfully",
        signature_id=signature.id,
        status="COMPLETED",
    )


@router.post("/sign/{request_id}/decline", response_model=SigningResultResponse)
def decline_signature_request(
    request_id: str,
    request: Request,
    body: Optional[DeclineRequestBody] = None,
    token: Optional[str] = None,
    service: SignatureRequestService = Depends(get_signature_service),
):
    declined = service.decline(
        request_id,
        token,
        reason=body.reason if body else None,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )
    return SigningResultResponse(success=True, message="Signature request declined", status=declined.status)


@router.get("/{request_id}", response_model=SignatureRequestResponse)
def get_signature_request(
    request_id: str,
    owner: Owner = Depends(get_current_owner),
    service: SignatureRequestService = Depends(get_signature_service),
):
    return service.get_for_user(request_id, owner.id, user_email=owner.email)
