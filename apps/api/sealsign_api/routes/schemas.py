"""Request and response bodies (camelCase on the wire)."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class DocumentResponse(CamelModel):
    """Document as seen by its owner."""

    id: str
    title: str
    description: Optional[str] = None
    status: str
    original_hash: str
    content_hash: Optional[str] = None
    content_type: str
    size_bytes: int
    owner_id: str
    sealed: bool = False
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_document(cls, document) -> "DocumentResponse":
        response = cls.model_validate(document)
        response.sealed = document.sealed_storage_key is not None
        return response


class AuditEntryResponse(CamelModel):
    id: int
    document_id: str
    sequence: int
    user_id: Optional[str] = None
    action: str
    details: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    previous_hash: Optional[str] = None
    entry_hash: str
    created_at: datetime


class SignatureRequestCreate(CamelModel):
    document_id: str
    signer_email: EmailStr
    message: Optional[str] = Field(None, max_length=500)


class SignatureRequestResponse(CamelModel):
    id: str
    document_id: str
    requester_id: str
    signer_id: Optional[str] = None
    signer_email: str
    message: Optional[str] = None
    status: str
    signed_at: Optional[datetime] = None
    declined_at: Optional[datetime] = None
    decline_reason: Optional[str] = None
    expires_at: datetime
    created_at: datetime
    updated_at: datetime


class SigningDocument(CamelModel):
    id: str
    title: str
    description: Optional[str] = None


class SigningSessionResponse(CamelModel):
    signature_request: SignatureRequestResponse
    document: SigningDocument
    document_url: str


class SignRequestBody(CamelModel):
    """Signer's submission."""

    signature_data: str = Field(..., min_length=1)
    signature_type: str
    consent_to_electronic_signature: bool = False
    metadata: Optional[dict[str, Any]] = None


class DeclineRequestBody(CamelModel):
    reason: Optional[str] = Field(None, max_length=500)


class SigningResultResponse(CamelModel):
    success: bool
    message: str
    signature_id: Optional[str] = None
    status: str
