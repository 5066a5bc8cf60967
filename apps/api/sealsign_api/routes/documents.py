"""Document routes (owner only)."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status

from sealsign_api.auth.owner import Owner, get_current_owner
from sealsign_api.dependencies import client_ip, client_user_agent, get_document_registry
from sealsign_api.documents.service import DocumentRegistry
from sealsign_api.routes.schemas import AuditEntryResponse, DocumentResponse
from sealsign_api.settings import get_settings

router = APIRouter(prefix="/documents", tags=["documents"])


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
def upload_document(
    request: Request,
    file: UploadFile = File(...),
    title: str = Form(...),
    description: Optional[str] = Form(None),
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    """Upload a PDF as a new draft document."""
    # One byte over the limit is enough to reject it
    data = file.file.read(get_settings().max_upload_bytes + 1)
    document = registry.upload(
        owner.id,
        title,
        description,
        data,
        filename=file.filename,
        content_type=file.content_type,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )
    return DocumentResponse.from_document(document)


@router.get("", response_model=list[DocumentResponse])
def list_documents(
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    return [DocumentResponse.from_document(d) for d in registry.list_owned(owner.id)]


@router.get("/{document_id}", response_model=DocumentResponse)
def get_document(
    document_id: str,
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    return DocumentResponse.from_document(registry.get_owned(document_id, owner.id))


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    request: Request,
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    """Delete a document and its stored objects. Signature history is kept."""
    registry.delete(document_id, owner.id, ip=client_ip(request), user_agent=client_user_agent(request))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    request: Request,
    sealed: bool = True,
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    """Download the sealed (default) or original PDF after re-checking its hash."""
    content = registry.download(
        document_id,
        owner.id,
        sealed=sealed,
        ip=client_ip(request),
        user_agent=client_user_agent(request),
    )
    expected = content.document.content_hash if sealed else content.document.original_hash
    return Response(
        content=content.data,
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{content.filename}"',
            "x-content-sha256": expected,
        },
    )


@router.get("/{document_id}/audit", response_model=list[AuditEntryResponse])
def get_audit_trail(
    document_id: str,
    owner: Owner = Depends(get_current_owner),
    registry: DocumentRegistry = Depends(get_document_registry),
):
    """Audit entries for a document, newest first."""
    return registry.audit_trail(document_id, owner.id)
