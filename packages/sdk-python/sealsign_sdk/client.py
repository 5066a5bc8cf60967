"""SealSign API clients."""

from typing import Optional

import requests


class SealSignClient:
    """Client for document owners (bearer token from the identity provider)."""

    def __init__(self, access_token: str, base_url: str = "http://localhost:8000", timeout: float = 30.0):
        """Initialize client."""
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()
        self.session.headers.update({"Authorization": f"Bearer {access_token}"})

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        response = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        response.raise_for_status()
        return response

    def upload_document(self, path: str, title: str, description: Optional[str] = None) -> dict:
        """Upload a PDF from disk."""
        data = {"title": title}
        if description:
            data["description"] = description
        with open(path, "rb") as fh:
            files = {"file": (path.rsplit("/", 1)[-1], fh, "application/pdf")}
            return self._request("POST", "/documents", data=data, files=files).json()

    def list_documents(self) -> list[dict]:
        return self._request("GET", "/documents").json()

    def get_document(self, document_id: str) -> dict:
        return self._request("GET", f"/documents/{document_id}").json()

    def delete_document(self, document_id: str) -> None:
        self._request("DELETE", f"/documents/{document_id}")

    def download_document(self, document_id: str, sealed: bool = True) -> bytes:
        """Download the sealed (default) or original PDF."""
        params = {"sealed": "true" if sealed else "false"}
        return self._request("GET", f"/documents/{document_id}/download", params=params).content

    def get_audit_trail(self, document_id: str) -> list[dict]:
        return self._request("GET", f"/documents/{document_id}/audit").json()

    def request_signature(self, document_id: str, signer_email: str, message: Optional[str] = None) -> dict:
        """Ask ``signer_email`` to sign a document."""
        payload = {"documentId": document_id, "signerEmail": signer_email}
        if message:
            payload["message"] = message
        return self._request("POST", "/signature-requests", json=payload).json()

    def list_signature_requests(self, type: str = "all") -> list[dict]:
        return self._request("GET", "/signature-requests", params={"type": type}).json()

    def get_signature_request(self, request_id: str) -> dict:
        return self._request("GET", f"/signature-requests/{request_id}").json()


class SignerClient:
    """Client for the unauthenticated signing flow, driven by a signing token."""

    def __init__(self, token: str, base_url: str = "http://localhost:8000", timeout: float = 30.0):
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def _post(self, path: str, payload: dict) -> dict:
        response = self.session.post(
            f"{self.base_url}{path}", params={"token": self.token}, json=payload, timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()

    def open(self, request_id: str) -> dict:
        """Signing session: request details plus a short-lived document URL."""
        response = self.session.get(
            f"{self.base_url}/signature-requests/sign/{request_id}",
            params={"token": self.token},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response.json()

    def sign(
        self,
        request_id: str,
        signature_data: str,
        signature_type: str = "TYPED",
        consent: bool = True,
        metadata: Optional[dict] = None,
    ) -> dict:
        payload = {
            "signatureData": signature_data,
            "signatureType": signature_type,
            "consentToElectronicSignature": consent,
        }
        if metadata:
            payload["metadata"] = metadata
        return self._post(f"/signature-requests/sign/{request_id}", payload)

    def decline(self, request_id: str, reason: Optional[str] = None) -> dict:
        return self._post(f"/signature-requests/sign/{request_id}/decline", {"reason": reason})
