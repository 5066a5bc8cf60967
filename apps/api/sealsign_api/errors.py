"""Error taxonomy for the signing workflow.

Each error carries the HTTP status and machine-readable code the API renders,
so services raise domain errors and routes never build ``HTTPException`` by hand.
"""

from typing import Optional


class SealSignError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    error_code = "INTERNAL_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__

    def to_dict(self) -> dict:
        return {"detail": self.message, "error_code": self.error_code}


class ValidationError(SealSignError):
    """Malformed input."""

    status_code = 400
    error_code = "VALIDATION_ERROR"


class ConsentRequiredError(ValidationError):
    """Signer did not consent to electronic signature."""

    error_code = "CONSENT_REQUIRED"

    def __init__(self, message: str = "You must consent to electronic signature"):
        super().__init__(message)


class InvalidTokenError(SealSignError):
    """Signing token is malformed, forged, or bound to another request."""

    status_code = 401
    error_code = "INVALID_TOKEN"

    def __init__(self, message: str = "Invalid signing token"):
        super().__init__(message)


class TokenExpiredError(InvalidTokenError):
    """Signing token TTL elapsed."""

    error_code = "TOKEN_EXPIRED"

    def __init__(self, message: str = "Signing token has expired"):
        super().__init__(message)


class ForbiddenError(SealSignError):
    """Caller is not the owner or not the addressed signer."""

    status_code = 403
    error_code = "FORBIDDEN"


class NotFoundError(SealSignError):
    """Document or signature request does not exist."""

    status_code = 404
    error_code = "NOT_FOUND"


class InvalidStateTransitionError(SealSignError):
    """Transition not defined from the current state."""

    status_code = 409
    error_code = "INVALID_STATE_TRANSITION"


class AlreadyResolvedError(InvalidStateTransitionError):
    """Signature request already reached a terminal state."""

    error_code = "ALREADY_RESOLVED"

    def __init__(self, status: str, message: Optional[str] = None):
        super().__init__(message or f"Document already {status.lower()}")
        self.status = status

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["status"] = self.status
        return data


class SealIntegrityError(SealSignError):
    """Stored sealed artifact no longer matches its recorded hash."""

    status_code = 409
    error_code = "SEAL_INTEGRITY"


class RequestExpiredError(SealSignError):
    """Signature request passed its expires_at."""

    status_code = 410
    error_code = "REQUEST_EXPIRED"

    def __init__(self, message: str = "Signature request has expired"):
        super().__init__(message)


class SealingFailedError(SealSignError):
    """Producing the sealed artifact failed; the sign call was rolled back."""

    status_code = 502
    error_code = "SEALING_FAILED"

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable
        if retryable:
            self.status_code = 503

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["retryable"] = self.retryable
        return data


class BlobStoreError(SealSignError):
    """Object storage failure."""

    status_code = 502
    error_code = "BLOB_STORE_ERROR"


class BlobNotFoundError(BlobStoreError):
    """Object key does not exist."""

    status_code = 404
    error_code = "BLOB_NOT_FOUND"


class BlobStoreTimeout(BlobStoreError):
    """Object storage call timed out after all retries."""

    status_code = 503
    error_code = "BLOB_STORE_TIMEOUT"


class NotificationError(SealSignError):
    """Notifier could not hand off a message. Logged, never surfaced to clients."""

    error_code = "NOTIFICATION_FAILED"
