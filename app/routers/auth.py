"""
Authentication routes for device session tokens.

This module provides endpoints for:
- Device login (HMAC proof of the shared secret -> session token)
- Session introspection (who does this token belong to, until when)
"""

import logging

from fastapi import APIRouter, Depends

from app.auth import TokenData, create_session_token
from app.dependencies import get_current_device, get_store
from app.errors import AuthenticationError
from app.models import LoginRequest, LoginResponse, SessionInfoResponse
from app.signing import PayloadKind, verify_signature
from app.store import CredentialStore

router = APIRouter(tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/login", response_model=LoginResponse)
async def login(
    login_request: LoginRequest,
    store: CredentialStore = Depends(get_store),
) -> LoginResponse:
    """
    Exchange a signed login for a session token.

    The device signs f"{clientId}{timestamp}" with HMAC-SHA256 keyed by
    its shared secret. An unknown clientId and a wrong signature both
    answer 401, with different messages.
    """
    device_id = login_request.client_id

    try:
        verify_signature(
            store,
            device_id,
            login_request.timestamp,
            login_request.signature,
            PayloadKind.LOGIN,
        )
    except AuthenticationError as e:
        logger.info(f"Login rejected for {device_id}: {e.message}")
        raise

    token = create_session_token(device_id)
    logger.info(f"JWT issued for: {device_id}")

    return LoginResponse(token=token)


@router.get("/auth/session", response_model=SessionInfoResponse)
async def get_session(
    token_data: TokenData = Depends(get_current_device),
) -> SessionInfoResponse:
    """
    Describe the session token sent as a bearer credential.

    Lets a device check how long its token remains valid before opening
    a relay connection.
    """
    return SessionInfoResponse(
        client_id=token_data.device_id,
        expires_at=token_data.expires_at,
    )
