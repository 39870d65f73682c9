"""
Credential store collaborators.

A store answers two lookups: the shared secret of a device, and the
notification bot configuration registered under a logical name. The
static store serves a table loaded from the environment (development
and tests); the database store reads the SQLAlchemy tables.
"""

import logging
from typing import Dict, Optional, Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.config import Settings
from app.database import SessionLocal, engine, ping as ping_database
from app.db_models import Device, NotificationBot
from app.errors import CredentialStoreError
from app.models import BotConfig

logger = logging.getLogger(__name__)


class CredentialStore(Protocol):
    def get_secret(self, device_id: str) -> Optional[bytes]: ...

    def get_bot_config(self, bot_name: str) -> Optional[BotConfig]: ...

    def ping(self) -> None: ...


class StaticCredentialStore:
    """In-memory secret table: device_id -> secret."""

    def __init__(
        self,
        secrets: Dict[str, str],
        bots: Optional[Dict[str, BotConfig]] = None,
    ):
        self._secrets = {k: v.encode("utf-8") for k, v in secrets.items()}
        self._bots = dict(bots or {})

    def get_secret(self, device_id: str) -> Optional[bytes]:
        return self._secrets.get(device_id)

    def get_bot_config(self, bot_name: str) -> Optional[BotConfig]:
        return self._bots.get(bot_name)

    def ping(self) -> None:
        return None

    def __len__(self) -> int:
        return len(self._secrets)


class DatabaseCredentialStore:
    """Secret and bot lookups backed by the devices / notification_bots tables."""

    def __init__(self, bind: Optional[Engine] = None):
        self._engine = bind if bind is not None else engine
        self._session_factory = (
            sessionmaker(autocommit=False, autoflush=False, bind=bind)
            if bind is not None
            else SessionLocal
        )

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_secret(self, device_id: str) -> Optional[bytes]:
        try:
            with self._session_factory() as db:
                device = (
                    db.query(Device)
                    .filter(Device.device_id == device_id, Device.is_active.is_(True))
                    .first()
                )
                if not device:
                    return None
                return str(device.device_secret).encode("utf-8")
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Secret lookup failed: {e}", device_id) from e

    def get_bot_config(self, bot_name: str) -> Optional[BotConfig]:
        try:
            with self._session_factory() as db:
                bot = (
                    db.query(NotificationBot)
                    .filter(NotificationBot.bot_name == bot_name)
                    .first()
                )
                if not bot:
                    return None
                return BotConfig(bot_token=str(bot.bot_token), chat_id=str(bot.chat_id))
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Bot config lookup failed: {e}") from e

    def ping(self) -> None:
        try:
            ping_database(self._engine)
        except SQLAlchemyError as e:
            raise CredentialStoreError(f"Credential store unreachable: {e}") from e


def build_store(settings: Settings) -> CredentialStore:
    """Pick the credential store backend named in the settings."""
    if settings.credential_backend == "database":
        logger.info("Using database credential store")
        return DatabaseCredentialStore()

    if settings.credential_backend != "static":
        raise ValueError(f"Unknown CREDENTIAL_BACKEND: {settings.credential_backend}")

    bots: Dict[str, BotConfig] = {}
    if settings.notify_bot_token and settings.notify_chat_id:
        bots[settings.notify_bot_name] = BotConfig(
            bot_token=settings.notify_bot_token,
            chat_id=settings.notify_chat_id,
        )
    logger.info(
        "Using static credential store with %d device(s)", len(settings.device_secrets)
    )
    return StaticCredentialStore(settings.device_secrets, bots)
