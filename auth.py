"""Session credential issuer (the identity provider seen by the API).

Accounts prove ownership of their email through the OTP flow; once verified we
hand out a signed HS256 session JWT whose ``sub`` is the account id.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

import jwt

from config import (
    SESSION_JWT_ALGORITHM,
    SESSION_JWT_LEEWAY,
    SESSION_JWT_SECRET,
    SESSION_TOKEN_TTL_HOURS,
)
from core.errors import UnauthenticatedError

logger = logging.getLogger(__name__)

SESSION_ISSUER = "earnrewardzz"


def issue_session_token(account_id: int, email: str, now: Optional[datetime] = None) -> str:
    iat = now or datetime.utcnow()
    payload = {
        "iss": SESSION_ISSUER,
        "sub": str(account_id),
        "email": email,
        "iat": int((iat - datetime(1970, 1, 1)).total_seconds()),
        "exp": int((iat + timedelta(hours=SESSION_TOKEN_TTL_HOURS) - datetime(1970, 1, 1)).total_seconds()),
    }
    return jwt.encode(payload, SESSION_JWT_SECRET, algorithm=SESSION_JWT_ALGORITHM)


def validate_session_token(token: str) -> dict:
    """
    Validate a session JWT and return its claims.

    Raises:
        UnauthenticatedError: expired, tampered, or otherwise unusable token
    """
    try:
        claims = jwt.decode(
            token,
            SESSION_JWT_SECRET,
            algorithms=[SESSION_JWT_ALGORITHM],
            issuer=SESSION_ISSUER,
            leeway=SESSION_JWT_LEEWAY,
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise UnauthenticatedError("Session expired. Please log in again.") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug(f"Session token rejected: {exc}")
        raise UnauthenticatedError() from exc

    try:
        claims["account_id"] = int(claims["sub"])
    except (TypeError, ValueError) as exc:
        raise UnauthenticatedError() from exc
    return claims
