"""
Shared dependencies: relay components held on app.state, and bearer
token authentication for HTTP routes.
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.auth import TokenData, validate_session_token
from app.config import Settings
from app.dispatcher import RelayDispatcher
from app.errors import InvalidTokenError
from app.registry import ConnectionRegistry
from app.store import CredentialStore

security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> CredentialStore:
    return request.app.state.store


def get_registry(request: Request) -> ConnectionRegistry:
    return request.app.state.registry


def get_dispatcher(request: Request) -> RelayDispatcher:
    return request.app.state.dispatcher


async def get_current_device(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> TokenData:
    """
    Validate a session token sent as a bearer credential.

    Token errors propagate to the relay error handler, which answers 401.
    """
    if not credentials or not credentials.credentials:
        raise InvalidTokenError("Missing authentication credentials")

    return validate_session_token(credentials.credentials)
