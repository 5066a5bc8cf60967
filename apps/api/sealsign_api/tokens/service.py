"""Signing-session tokens.

A signing token is a compact JWS (HS256) binding one signature request to one
signer e-mail. It is self-contained: validity is judged from the token alone,
without a storage lookup. Token validity never authorizes signing by itself;
the state machine re-checks the request's status and ``expires_at`` after
verification.
"""

import logging
from calendar import timegm
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

from jose import jwt
from jose.exceptions import JWTError

from sealsign_api.errors import InvalidTokenError, TokenExpiredError
from sealsign_api.settings import get_settings
from sealsign_api.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

TOKEN_PURPOSE = "signing"


@dataclass(frozen=True)
class SigningTokenClaims:
    """Verified contents of a signing token."""

    request_id: str
    signer_email: str
    issued_at: datetime
    expires_at: datetime


def _to_epoch(value: datetime) -> int:
    return timegm(value.utctimetuple())


def _from_epoch(value: int) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc).replace(tzinfo=None)


class SigningTokenService:
    """Mint and verify signing tokens. Verification is pure."""

    def __init__(
        self,
        secret: Optional[str] = None,
        algorithm: Optional[str] = None,
        default_ttl: Optional[timedelta] = None,
        clock: Clock = utcnow,
    ):
        settings = get_settings()
        self._secret = secret or settings.signing_token_secret
        self._algorithm = algorithm or settings.signing_token_algorithm
        self.default_ttl = default_ttl or timedelta(seconds=settings.signing_token_ttl_seconds)
        self._clock = clock

    def mint(
        self,
        request_id: str,
        signer_email: str,
        ttl: Optional[Union[timedelta, int]] = None,
    ) -> str:
        """Create a signed token for ``(request_id, signer_email)``.

        Args:
            request_id: Signature request id the token is bound to
            signer_email: Addressed signer
            ttl: Validity window (timedelta or seconds), defaults to settings

        Returns:
            Compact JWS string (header.payload.signature)
        """
        if ttl is None:
            ttl = self.default_ttl
        elif isinstance(ttl, int):
            ttl = timedelta(seconds=ttl)
        if ttl.total_seconds() <= 0:
            raise ValueError("Token TTL must be positive")

        issued_at = self._clock().replace(microsecond=0)
        claims = {
            "rid": str(request_id),
            "email": signer_email.lower(),
            "purpose": TOKEN_PURPOSE,
            "iat": _to_epoch(issued_at),
            "ttl": int(ttl.total_seconds()),
            "exp": _to_epoch(issued_at + ttl),
        }
        return jwt.encode(claims, self._secret, algorithm=self._algorithm)

    def verify(self, token: Optional[str], request_id: Optional[str] = None) -> SigningTokenClaims:
        """Verify a token's signature, purpose, binding and expiry.

        Raises:
            InvalidTokenError: missing/malformed/forged token or wrong request id
            TokenExpiredError: ``now >= exp``
        """
        if not token:
            raise InvalidTokenError("Missing signing token")

        try:
            # Expiry is judged against the injected clock below
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"verify_exp": False, "verify_iat": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.info(f"Rejected signing token: {e}")
            raise InvalidTokenError() from e

        try:
            token_request_id = str(claims["rid"])
            signer_email = str(claims["email"])
            issued_at = _from_epoch(int(claims["iat"]))
            expires_at = _from_epoch(int(claims["exp"]))
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError("Malformed signing token") from e

        if claims.get("purpose") != TOKEN_PURPOSE:
            raise InvalidTokenError("Token is not a signing token")
        if request_id is not None and token_request_id != str(request_id):
            raise InvalidTokenError("Signing token does not match this request")
        if self._clock() >= expires_at:
            raise TokenExpiredError()

        return SigningTokenClaims(
            request_id=token_request_id,
            signer_email=signer_email,
            issued_at=issued_at,
            expires_at=expires_at,
        )


# Global instance
_token_service: Optional[SigningTokenService] = None


def get_token_service() -> SigningTokenService:
    """Get or create signing token service instance."""
    global _token_service
    if _token_service is None:
        _token_service = SigningTokenService()
    return _token_service
