"""
JWT session tokens for devices.

A device that proved possession of its secret at login receives a
session token valid for one hour. The token is the only proof of
identity accepted when a relay connection is opened. Tokens are
self-contained: nothing is stored server-side.
"""

import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel

from app.errors import ExpiredTokenError, InvalidTokenError

# Configuration
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
ALGORITHM = "HS256"

# Token expiration time
SESSION_TOKEN_EXPIRE_HOURS = 1


class TokenData(BaseModel):
    """Decoded token data."""

    device_id: str
    expires_at: datetime
    issued_at: datetime
    jti: Optional[str] = None


def create_session_token(
    device_id: str,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    """
    Create a signed session token for a device.

    Args:
        device_id: The authenticated device identity
        expires_delta: Custom lifetime (default 1 hour)
        secret_key: Signing key override (defaults to SECRET_KEY)

    Returns:
        Encoded JWT token string
    """
    if expires_delta is None:
        expires_delta = timedelta(hours=SESSION_TOKEN_EXPIRE_HOURS)

    now = datetime.now(timezone.utc)
    expire = now + expires_delta

    to_encode = {
        "clientId": device_id,
        "sub": device_id,
        "exp": expire,
        "iat": now,
        "jti": secrets.token_urlsafe(12),
    }

    return jwt.encode(to_encode, secret_key or SECRET_KEY, algorithm=ALGORITHM)


def validate_session_token(token: str, secret_key: Optional[str] = None) -> TokenData:
    """
    Verify signature and expiry of a session token.

    Raises:
        ExpiredTokenError: the token is past its expiry
        InvalidTokenError: bad signature, malformed token or missing identity
    """
    if not token:
        raise InvalidTokenError("Missing token")

    try:
        payload = jwt.decode(token, secret_key or SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError as e:
        raise ExpiredTokenError() from e
    except JWTError as e:
        raise InvalidTokenError(str(e)) from e

    device_id = payload.get("clientId") or payload.get("sub")
    if not device_id or not isinstance(device_id, str):
        raise InvalidTokenError("Token carries no clientId")

    token_data = TokenData(
        device_id=device_id,
        expires_at=datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc),
        issued_at=datetime.fromtimestamp(payload.get("iat", 0), tz=timezone.utc),
        jti=payload.get("jti"),
    )

    # jose checks exp already; a token without exp is not a session token
    if token_data.expires_at <= datetime.now(timezone.utc):
        raise ExpiredTokenError()

    return token_data
