"""
Notification Gateway - best-effort alert delivery.

This module handles:
- Formatting human-readable sensor alerts
- Queueing alerts on a bounded queue (drop-oldest when full)
- Delivering them from a background worker to a chat sink (Telegram)

Delivery failures are logged and swallowed; they never reach the
telemetry path.
"""

import asyncio
import logging
from typing import Optional, Protocol, Union

import httpx

from app.errors import NotificationDeliveryError

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


def format_alert(
    board_id: str,
    raw_value: Union[int, float],
    voltage: float,
    timestamp: Union[int, float, str],
) -> str:
    """Build the alert text sent for a reading."""
    return (
        f"📟 Sensor Alert\n"
        f"Board: {board_id}\n"
        f"ADC: {raw_value}\n"
        f"Volt: {voltage:.3f}V\n"
        f"Time: {timestamp}"
    )


class NotificationSink(Protocol):
    async def send(self, destination: str, text: str) -> None: ...


class TelegramSink:
    """Sends messages through the Telegram Bot API."""

    def __init__(
        self,
        bot_token: str,
        timeout: float = 10.0,
        api_base: str = TELEGRAM_API_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Telegram sink.

        Args:
            bot_token: Bot API token (never logged).
            timeout: Request timeout in seconds.
            api_base: Base URL of the Bot API.
            transport: Optional httpx transport (tests).
        """
        self.bot_token = bot_token
        self.timeout = timeout
        self.api_base = api_base.rstrip("/")
        self.transport = transport

    async def send(self, destination: str, text: str) -> None:
        """
        Post a message to a chat.

        Raises:
            NotificationDeliveryError: on transport errors or a non-ok reply.
        """
        url = f"{self.api_base}/bot{self.bot_token}/sendMessage"

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(
                    url, json={"chat_id": destination, "text": text}
                )
        except httpx.TimeoutException as e:
            raise NotificationDeliveryError("Timeout connecting to Telegram") from e
        except httpx.RequestError as e:
            # str(e) may embed the URL, which carries the bot token
            raise NotificationDeliveryError(
                f"Connection error: {type(e).__name__}"
            ) from e

        if response.status_code != 200:
            raise NotificationDeliveryError(
                f"Telegram returned status {response.status_code}"
            )


class NotificationGateway:
    """
    Bounded alert queue drained by a single background worker.

    submit() never blocks: when the queue is full the oldest pending
    alert is discarded to make room.
    """

    def __init__(self, sink: NotificationSink, destination: str, max_queue_size: int = 100):
        self.sink = sink
        self.destination = destination
        self._queue: asyncio.Queue[str] = asyncio.Queue(maxsize=max(1, max_queue_size))
        self._worker: Optional[asyncio.Task] = None

        self.sent = 0
        self.failed = 0
        self.dropped = 0

    def submit(self, text: str) -> None:
        """Enqueue an alert without waiting."""
        while True:
            try:
                self._queue.put_nowait(text)
                return
            except asyncio.QueueFull:
                try:
                    self._queue.get_nowait()
                    self._queue.task_done()
                    self.dropped += 1
                    logger.debug("Notification queue full: dropped oldest alert")
                except asyncio.QueueEmpty:
                    pass

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def start(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run(), name="notification-worker")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        self._worker = None

    async def join(self) -> None:
        """Wait until every queued alert has been attempted."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            text = await self._queue.get()
            try:
                await self.sink.send(self.destination, text)
                self.sent += 1
            except NotificationDeliveryError as e:
                self.failed += 1
                logger.warning(f"Notification delivery failed: {e.message}")
            except Exception as e:
                self.failed += 1
                logger.error(f"Unexpected error delivering notification: {e}")
            finally:
                self._queue.task_done()
