"""
Relay dispatcher - handles each telemetry message of an authenticated
session.

Steps per message:
1. Re-verify the message HMAC with the sender's own secret
2. Convert the raw ADC value to volts
3. Queue an alert on the notification gateway (voltage > 0)
4. Forward the derived reading to the target device, if connected

Nothing here is sent back to the sender, and no failure closes the
sender's connection.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol, Union

from app.errors import (
    AuthenticationError,
    CredentialStoreError,
    MalformedMessageError,
    TargetUnreachableError,
)
from app.models import ForwardedReading, TelemetryMessage
from app.notifications import NotificationGateway, format_alert
from app.readings import DerivedReading, derive_reading
from app.registry import ConnectionRegistry
from app.signing import PayloadKind, verify_signature
from app.store import CredentialStore

logger = logging.getLogger(__name__)


class ForwardTarget(Protocol):
    def send(self, payload: dict) -> bool: ...


@dataclass(frozen=True)
class LatestReading:
    board_id: str
    raw_value: Union[int, float]
    voltage: float
    received_at: datetime


class RelayDispatcher:
    """Verifies, converts, notifies and forwards telemetry."""

    def __init__(
        self,
        registry: ConnectionRegistry,
        store: CredentialStore,
        notifier: Optional[NotificationGateway] = None,
    ):
        self.registry = registry
        self.store = store
        self.notifier = notifier
        self._latest: Dict[str, LatestReading] = {}

    async def dispatch(
        self, sender_id: str, message: TelemetryMessage
    ) -> Optional[DerivedReading]:
        """
        Process one telemetry message from sender_id.

        Returns:
            The derived reading, or None if the message was dropped
        """
        try:
            verify_signature(
                self.store,
                sender_id,
                message.timestamp,
                message.signature,
                PayloadKind.TELEMETRY,
                value=message.sensor,
            )
        except AuthenticationError:
            logger.warning(f"Invalid sensor signature from {sender_id}")
            return None
        except CredentialStoreError as e:
            logger.error(f"Cannot verify telemetry from {sender_id}: {e.message}")
            return None

        try:
            reading = derive_reading(message.sensor)
        except MalformedMessageError as e:
            logger.warning(f"Dropping telemetry from {sender_id}: {e.message}")
            return None

        logger.info(
            f"Board: {message.board_id} | ADC: {reading.raw_value} | "
            f"Volt: {reading.scaled_voltage:.3f}V | Timestamp: {message.timestamp} | "
            f"Target: {message.target_id}"
        )

        # Only a device's own board is recorded; keys stay within known identities
        if message.board_id == sender_id:
            self._latest[sender_id] = LatestReading(
                board_id=sender_id,
                raw_value=reading.raw_value,
                voltage=reading.scaled_voltage,
                received_at=datetime.now(timezone.utc),
            )
        else:
            logger.warning(
                f"Not recording reading from {sender_id} for board {message.board_id}"
            )

        if reading.scaled_voltage > 0 and self.notifier is not None:
            self.notifier.submit(
                format_alert(
                    message.board_id,
                    reading.raw_value,
                    reading.scaled_voltage,
                    message.timestamp,
                )
            )

        if message.target_id:
            try:
                await self.forward(message, reading)
            except TargetUnreachableError as e:
                logger.debug(e.message)

        return reading

    async def forward(self, message: TelemetryMessage, reading: DerivedReading) -> None:
        """
        Deliver a derived reading to message.target_id.

        Raises:
            TargetUnreachableError: the target is not connected or cannot
                take more messages
        """
        target_id = message.target_id
        target: Optional[ForwardTarget] = (
            await self.registry.get(target_id) if target_id else None
        )
        if target is None:
            raise TargetUnreachableError(f"Target {target_id} not connected", target_id)

        payload = ForwardedReading(
            from_=message.board_id,
            sensor=reading.raw_value,
            volt=reading.scaled_voltage,
            timestamp=message.timestamp,
        ).model_dump(by_alias=True)

        if not target.send(payload):
            raise TargetUnreachableError(f"Target {target_id} dropped the reading", target_id)

    def latest_reading(self, board_id: str) -> Optional[LatestReading]:
        return self._latest.get(board_id)
