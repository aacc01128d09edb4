"""Bearer token issuance and verification (HS256 JWT via python-jose)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTError

from prototyper.config import Settings


class InvalidTokenError(Exception):
    """The bearer token is missing, malformed, expired or has no subject."""


def issue_access_token(user_id: str, settings: Settings) -> tuple[str, int]:
    """Return a signed token for ``user_id`` and its lifetime in seconds."""
    expires_in = settings.jwt_access_token_expire_minutes * 60
    now = datetime.now(timezone.utc)
    claims = {
        "sub": user_id,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    token = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return token, expires_in


def read_token_subject(token: str, settings: Settings) -> str:
    """Verify ``token`` and return its subject (the user id)."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError as e:
        raise InvalidTokenError("Token has expired") from e
    except JWTError as e:
        raise InvalidTokenError("Token is invalid") from e

    subject = claims.get("sub")
    if not subject:
        raise InvalidTokenError("Token has no subject")
    return subject
