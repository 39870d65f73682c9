"""
SQLAlchemy ORM models for the credential store.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String

from app.database import Base


class Device(Base):
    """Provisioned sensor board (ESP32-based) and its shared secret."""

    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(String(50), unique=True, nullable=False, index=True)
    device_secret = Column(String(128), nullable=False)  # HMAC key, never logged
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<Device {self.device_id}>"


class NotificationBot(Base):
    """
    Notification bot configuration, looked up by logical name.

    bot_token authenticates against the chat provider; chat_id is the
    destination alerts are delivered to.
    """

    __tablename__ = "notification_bots"

    id = Column(Integer, primary_key=True, index=True)
    bot_name = Column(String(100), unique=True, nullable=False, index=True)
    bot_token = Column(String(255), nullable=False)
    chat_id = Column(String(100), nullable=False)

    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    def __repr__(self) -> str:
        return f"<NotificationBot {self.bot_name}>"
