"""
Tests for the connection session state machine
"""

import asyncio
import json

from starlette.websockets import WebSocketState

from app.auth import create_session_token
from app.dispatcher import RelayDispatcher
from app.registry import ConnectionRegistry
from app.session import ConnectionSession, SessionState
from tests.helpers import sign


class FakeWebSocket:
    """Minimal stand-in for a Starlette WebSocket."""

    def __init__(self, frames=(), send_delay: float = 0.0, send_error=None):
        self.inbound: asyncio.Queue = asyncio.Queue()
        for frame in frames:
            self.inbound.put_nowait({"type": "websocket.receive", "text": frame})
        self.sent = []
        self.closed_with = None
        self.send_delay = send_delay
        self.send_error = send_error
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTED

    async def accept(self):
        self.application_state = WebSocketState.CONNECTED

    async def receive(self):
        return await self.inbound.get()

    async def send_json(self, payload):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append(payload)

    async def close(self, code=1000, reason=None):
        self.closed_with = code
        self.application_state = WebSocketState.DISCONNECTED

    def disconnect(self):
        self.inbound.put_nowait({"type": "websocket.disconnect", "code": 1000})


def make_session(ws, registry, store, **kwargs):
    return ConnectionSession(ws, registry, RelayDispatcher(registry, store), **kwargs)


def test_session_authenticates_and_unregisters_on_close(store):
    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket([json.dumps({"token": create_session_token("A")})])
        session = make_session(ws, registry, store)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.05)
        registered = await registry.get("A")

        ws.disconnect()
        await asyncio.wait_for(task, timeout=2)
        return session, ws, registered, await registry.get("A")

    session, ws, registered, after = asyncio.run(scenario())

    assert session.state is SessionState.AUTHENTICATED
    assert session.device_id == "A"
    assert registered is session
    assert after is None
    assert ws.sent == [{"ok": True, "msg": "Auth success"}]


def test_session_closes_on_missing_token(store):
    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket([json.dumps({"sensor": 1})])
        session = make_session(ws, registry, store)
        await asyncio.wait_for(session.run(), timeout=2)
        return session, ws, await registry.count()

    session, ws, count = asyncio.run(scenario())

    assert session.state is SessionState.UNAUTHENTICATED
    assert ws.closed_with == 1008
    assert count == 0


def test_send_drops_when_outbound_queue_is_full(store):
    async def scenario():
        registry = ConnectionRegistry()
        session = make_session(FakeWebSocket(), registry, store, outbound_queue_size=2)
        return [session.send({"n": i}) for i in range(3)]

    assert asyncio.run(scenario()) == [True, True, False]


def test_closed_session_accepts_nothing(store):
    async def scenario():
        registry = ConnectionRegistry()
        session = make_session(FakeWebSocket(), registry, store)
        await session.close()
        return session.send({"n": 1})

    assert asyncio.run(scenario()) is False


def test_stalled_peer_is_closed_after_send_timeout(store):
    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket(
            [json.dumps({"token": create_session_token("B")})], send_delay=1.0
        )
        session = make_session(ws, registry, store, send_timeout=0.05)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.3)
        ws.disconnect()
        await asyncio.wait_for(task, timeout=2)
        return session, ws

    session, ws = asyncio.run(scenario())

    assert session.closed
    assert ws.closed_with == 1011
    assert ws.sent == []


def test_idle_connection_is_closed(store):
    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket([json.dumps({"token": create_session_token("A")})])
        session = make_session(ws, registry, store, idle_timeout=0.05)
        await asyncio.wait_for(session.run(), timeout=2)
        return ws, await registry.count()

    ws, count = asyncio.run(scenario())

    assert ws.closed_with == 1001
    assert count == 0


def test_failed_send_closes_and_unregisters(store):
    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket(
            [json.dumps({"token": create_session_token("B")})],
            send_error=RuntimeError("transport gone"),
        )
        session = make_session(ws, registry, store)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.1)
        count_before_disconnect = await registry.count()
        ws.disconnect()
        await asyncio.wait_for(task, timeout=2)
        return session, ws, count_before_disconnect

    session, ws, count = asyncio.run(scenario())

    assert session.closed
    assert ws.closed_with == 1011
    assert count == 0


def test_oversized_sensor_value_keeps_session_open(store):
    big = int("9" * 400)
    frames = [
        json.dumps({"token": create_session_token("A")}),
        json.dumps(
            {
                "sensor": big,
                "timestamp": "T1",
                "signature": sign("A", f"{big}T1"),
                "boardId": "A",
            }
        ),
    ]

    async def scenario():
        registry = ConnectionRegistry()
        ws = FakeWebSocket(frames)
        session = make_session(ws, registry, store)

        task = asyncio.create_task(session.run())
        await asyncio.sleep(0.1)
        still_running = not task.done()
        registered = await registry.get("A")

        ws.disconnect()
        await asyncio.wait_for(task, timeout=2)
        return session, still_running, registered

    session, still_running, registered = asyncio.run(scenario())

    assert still_running
    assert registered is session
