"""
Sensor Relay

Real-time message relay for embedded sensor boards. Devices log in with
an HMAC proof of their shared secret, open a WebSocket with the issued
session token and stream signed telemetry, which is converted to volts,
optionally announced to a chat, and forwarded live to a target device.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

# Load environment variables
load_dotenv()

from app.config import Settings, get_settings
from app.database import init_db
from app.dispatcher import RelayDispatcher
from app.errors import AuthenticationError, CredentialStoreError, TokenError
from app.models import FailureResponse
from app.notifications import NotificationGateway, TelegramSink
from app.registry import ConnectionRegistry
from app.routers import auth_router, relay_router, status_router
from app.store import CredentialStore, DatabaseCredentialStore, build_store

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_notifier(
    store: CredentialStore, settings: Settings
) -> Optional[NotificationGateway]:
    """Create the alert gateway from the bot config held in the store."""
    bot = store.get_bot_config(settings.notify_bot_name)
    if bot is None:
        logger.warning(
            f"Notification bot '{settings.notify_bot_name}' not configured, alerts disabled"
        )
        return None

    sink = TelegramSink(bot.bot_token, timeout=settings.notify_timeout)
    logger.info(f"Telegram bot initialized: {settings.notify_bot_name}")
    return NotificationGateway(sink, bot.chat_id, settings.notify_queue_size)


def register_error_handlers(app: FastAPI) -> None:
    """Map relay errors to {ok: false, msg} responses (401, or 503 for the store)."""

    @app.exception_handler(AuthenticationError)
    async def authentication_error_handler(
        request: Request, exc: AuthenticationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=401, content=FailureResponse(msg=exc.message).model_dump()
        )

    @app.exception_handler(TokenError)
    async def token_error_handler(request: Request, exc: TokenError) -> JSONResponse:
        return JSONResponse(
            status_code=401,
            content=FailureResponse(msg=exc.message).model_dump(),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(CredentialStoreError)
    async def credential_store_error_handler(
        request: Request, exc: CredentialStoreError
    ) -> JSONResponse:
        logger.error(f"Credential store error: {exc.message}")
        return JSONResponse(
            status_code=503,
            content=FailureResponse(msg="Credential store unavailable").model_dump(),
        )


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[CredentialStore] = None,
) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Runtime settings (defaults to the environment)
        store: Credential store (defaults to the backend named in settings)
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        # Startup: an unreachable credential store aborts here
        credential_store = store if store is not None else build_store(settings)
        credential_store.ping()
        if isinstance(credential_store, DatabaseCredentialStore):
            init_db(credential_store.engine)

        notifier = build_notifier(credential_store, settings)
        if notifier is not None:
            notifier.start()

        registry: ConnectionRegistry = ConnectionRegistry()
        app.state.settings = settings
        app.state.store = credential_store
        app.state.registry = registry
        app.state.notifier = notifier
        app.state.dispatcher = RelayDispatcher(registry, credential_store, notifier)

        yield

        # Shutdown: pending alerts are best effort
        if notifier is not None:
            await notifier.stop()

    app = FastAPI(
        title="Sensor Relay API",
        version="0.1.0",
        description="""
Real-time relay for embedded sensor boards: HMAC login, session tokens,
signed telemetry over WebSocket and live forwarding between devices.
        """,
        lifespan=lifespan,
    )

    register_error_handlers(app)

    # Include routers
    app.include_router(auth_router)
    app.include_router(status_router)
    app.include_router(relay_router)

    @app.get("/health", tags=["Health"])
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"status": "healthy"}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    debug = os.getenv("DEBUG", "false").lower() == "true"

    uvicorn.run("app.main:app", host=host, port=port, reload=debug)
