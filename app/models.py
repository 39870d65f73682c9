"""
Sensor relay - Pydantic models for the HTTP and WebSocket wire formats.

Field names follow the device firmware (camelCase); Python attributes
are snake_case with aliases.
"""

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field

# Raw sensor and timestamp values keep the JSON type the device sent,
# the signature is computed over their textual form.
JsonScalar = Union[int, float, str]


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# Login
class LoginRequest(WireModel):
    client_id: str = Field(alias="clientId")
    signature: str
    timestamp: JsonScalar


class LoginResponse(WireModel):
    ok: bool = True
    token: str


class FailureResponse(WireModel):
    ok: bool = False
    msg: str


# WebSocket messages
class AuthMessage(WireModel):
    """First frame on a new connection."""

    token: str = Field(min_length=1)


class AuthAck(WireModel):
    ok: bool = True
    msg: str = "Auth success"


class TelemetryMessage(WireModel):
    """A signed sensor reading sent by an authenticated device."""

    sensor: JsonScalar
    timestamp: JsonScalar
    signature: str
    board_id: str = Field(alias="boardId")
    target_id: Optional[str] = Field(default=None, alias="targetId")


class ForwardedReading(WireModel):
    """Payload delivered to the target device."""

    from_: str = Field(alias="from")
    sensor: Union[int, float]
    volt: float
    timestamp: JsonScalar


# Status endpoints
class StatusResponse(WireModel):
    ok: bool = True
    msg: str = "Server is running"
    active_ws_clients: int = Field(alias="activeWSClients")
    timestamp: datetime


class DefaultConfigResponse(WireModel):
    ok: bool = True
    default_volt_threshold: float = Field(alias="defaultVoltThreshold")
    default_board_id: str = Field(alias="defaultBoardId")
    message: str = "This is default API response"


class SensorReadingResponse(WireModel):
    ok: bool = True
    board_id: str = Field(alias="boardId")
    last_volt: float = Field(alias="lastVolt")
    timestamp: datetime


class SessionInfoResponse(WireModel):
    ok: bool = True
    client_id: str = Field(alias="clientId")
    expires_at: datetime = Field(alias="expiresAt")


# Credential store
class BotConfig(BaseModel):
    """Notification bot credentials and destination."""

    bot_token: str
    chat_id: str
