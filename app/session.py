"""
Per-connection relay session.

Each WebSocket is owned by one ConnectionSession, which runs a two-state
machine:

    UNAUTHENTICATED --(valid {"token": ...})--> AUTHENTICATED

While unauthenticated the only acceptable frame is an auth message;
anything else, or a token that fails validation, closes the connection.
Once authenticated every frame is a telemetry candidate handed to the
dispatcher; frames that fail to parse are logged and dropped.

Outbound frames (the auth ack and forwarded readings) go through a
bounded queue drained by a writer task, so a slow peer never blocks the
task that forwards to it.
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.auth import validate_session_token
from app.errors import MalformedMessageError, TokenError
from app.models import AuthAck, AuthMessage, TelemetryMessage
from app.registry import ConnectionRegistry

if TYPE_CHECKING:
    from app.dispatcher import RelayDispatcher

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


def parse_auth_message(raw: str) -> AuthMessage:
    try:
        return AuthMessage.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedMessageError(f"Expected auth message: {e.error_count()} error(s)") from e


def parse_telemetry_message(raw: str) -> TelemetryMessage:
    try:
        return TelemetryMessage.model_validate_json(raw)
    except ValidationError as e:
        raise MalformedMessageError(f"Invalid telemetry: {e.error_count()} error(s)") from e


class ConnectionSession:
    """State and transport of one device connection."""

    def __init__(
        self,
        websocket: WebSocket,
        registry: ConnectionRegistry["ConnectionSession"],
        dispatcher: "RelayDispatcher",
        outbound_queue_size: int = 32,
        send_timeout: float = 5.0,
        idle_timeout: float = 0.0,
    ):
        self.websocket = websocket
        self.registry = registry
        self.dispatcher = dispatcher
        self.send_timeout = send_timeout
        self.idle_timeout = idle_timeout

        self.state = SessionState.UNAUTHENTICATED
        self.device_id: Optional[str] = None
        self.closed = False

        self._outbound: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(
            maxsize=max(1, outbound_queue_size)
        )
        self._writer_task: Optional[asyncio.Task] = None

    @property
    def is_authenticated(self) -> bool:
        return self.state is SessionState.AUTHENTICATED

    async def run(self) -> None:
        """Accept the connection and process frames until it closes."""
        await self.websocket.accept()
        self._writer_task = asyncio.create_task(self._write_loop())
        logger.info("New WS connection, waiting for token")

        try:
            while not self.closed:
                raw = await self._receive_frame()
                if raw is None:
                    break
                await self.handle_frame(raw)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.exception(f"Session error for {self.device_id or 'unauthenticated'}: {e}")
        finally:
            await self._cleanup()

    async def handle_frame(self, raw: str) -> None:
        if self.state is SessionState.UNAUTHENTICATED:
            await self._authenticate(raw)
        else:
            await self._relay(raw)

    def send(self, payload: Dict[str, Any]) -> bool:
        """
        Queue a JSON payload for delivery to this device.

        Returns False if the session is closed or its queue is full; the
        payload is dropped in both cases.
        """
        if self.closed:
            return False
        try:
            self._outbound.put_nowait(payload)
        except asyncio.QueueFull:
            logger.warning(f"Outbound queue full for {self.device_id}: dropping message")
            return False
        return True

    async def close(
        self, code: int = status.WS_1000_NORMAL_CLOSURE, reason: str = ""
    ) -> None:
        if self.closed:
            return
        self.closed = True

        writer = self._writer_task
        if writer is not None and writer is not asyncio.current_task():
            writer.cancel()
            try:
                await writer
            except asyncio.CancelledError:
                pass

        await self._close_transport(code, reason)

    async def _authenticate(self, raw: str) -> None:
        try:
            message = parse_auth_message(raw)
            token_data = validate_session_token(message.token)
        except MalformedMessageError as e:
            logger.info(f"Closing unauthenticated connection: {e.message}")
            await self.close(status.WS_1008_POLICY_VIOLATION, "Authentication required")
            return
        except TokenError as e:
            logger.info(f"JWT verify failed: {e.message}")
            await self.close(status.WS_1008_POLICY_VIOLATION, "Invalid token")
            return

        self.device_id = token_data.device_id
        self.state = SessionState.AUTHENTICATED

        previous = await self.registry.register(self.device_id, self)
        if previous is not None:
            await previous.close(
                status.WS_1008_POLICY_VIOLATION, "Superseded by a newer connection"
            )

        self.send(AuthAck().model_dump())
        logger.info(f"Authorized: {self.device_id}")

    async def _relay(self, raw: str) -> None:
        try:
            message = parse_telemetry_message(raw)
        except MalformedMessageError as e:
            logger.warning(f"Invalid message from {self.device_id}: {e.message}")
            return

        await self.dispatcher.dispatch(self.device_id, message)

    async def _receive_frame(self) -> Optional[str]:
        if self.idle_timeout > 0:
            try:
                message = await asyncio.wait_for(
                    self.websocket.receive(), timeout=self.idle_timeout
                )
            except asyncio.TimeoutError:
                logger.info(f"Idle timeout for {self.device_id or 'unauthenticated'}")
                await self.close(status.WS_1001_GOING_AWAY, "Idle timeout")
                return None
        else:
            message = await self.websocket.receive()

        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))

        if message.get("text") is not None:
            return message["text"]
        data = message.get("bytes") or b""
        return data.decode("utf-8", errors="replace")

    async def _write_loop(self) -> None:
        while True:
            payload = await self._outbound.get()
            try:
                await asyncio.wait_for(
                    self.websocket.send_json(payload), timeout=self.send_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(f"Send to {self.device_id} timed out, closing connection")
                await self._abort(status.WS_1011_INTERNAL_ERROR, "Send timeout")
                return
            except Exception as e:
                logger.info(f"Send to {self.device_id} failed: {e}")
                await self._abort(status.WS_1011_INTERNAL_ERROR, "Send failed")
                return

    async def _close_transport(self, code: int, reason: str) -> None:
        if (
            self.websocket.application_state == WebSocketState.DISCONNECTED
            or self.websocket.client_state == WebSocketState.DISCONNECTED
        ):
            return
        try:
            await asyncio.wait_for(
                self.websocket.close(code=code, reason=reason), timeout=self.send_timeout
            )
        except Exception as e:
            logger.debug(f"Close failed for {self.device_id}: {e}")

    async def _abort(self, code: int, reason: str) -> None:
        """Close from the writer task, which must not cancel itself."""
        self.closed = True
        await self._close_transport(code, reason)
        await self._unregister()

    async def _unregister(self) -> None:
        if self.is_authenticated and self.device_id:
            if await self.registry.unregister(self.device_id, self):
                logger.info(f"Client disconnected: {self.device_id}")

    async def _cleanup(self) -> None:
        await self.close()
        await self._unregister()
