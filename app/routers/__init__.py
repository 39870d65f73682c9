"""
Routers Package
"""

from app.routers.auth import router as auth_router
from app.routers.relay import router as relay_router
from app.routers.status import router as status_router

__all__ = [
    "auth_router",
    "relay_router",
    "status_router",
]
