"""Owner authentication from identity-provider bearer tokens.

The identity provider is external; this module only verifies its JWT and
reads ``sub`` (owner id) and, when present, ``email``.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from sealsign_api.settings import get_settings
from sealsign_api.utils.clock import utcnow

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Owner:
    id: str
    email: Optional[str] = None


def decode_owner_token(token: str) -> Owner:
    """Verify an owner JWT and return the caller identity."""
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
            options={"verify_aud": False},
        )
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except JWTError as e:
        logger.info(f"Rejected owner token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    subject = claims.get("sub")
    if not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token has no subject",
            headers={"WWW-Authenticate": "Bearer"},
        )
    email = claims.get("email")
    return Owner(id=str(subject), email=email.lower() if isinstance(email, str) else None)


def get_current_owner(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
) -> Owner:
    """FastAPI dependency for owner-only routes."""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing bearer token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return decode_owner_token(credentials.credentials)


def issue_owner_token(owner_id: str, email: Optional[str] = None, expires_in_seconds: int = 3600) -> str:
    """Mint an owner token with the configured secret (development and tests)."""
    settings = get_settings()
    claims = {"sub": owner_id, "exp": utcnow() + timedelta(seconds=expires_in_seconds)}
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
