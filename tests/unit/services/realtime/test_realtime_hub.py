import asyncio
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.main import app
from app.services.event_bus.bus import EventBus
from app.services.event_bus.events import Event, EventType
from app.services.realtime.hub import ConnectionManager


class FakeSocket(SimpleNamespace):
    # Hashable by identity, like a real WebSocket, so it can sit in a room set.
    __hash__ = object.__hash__
    __eq__ = object.__eq__


def fake_socket():
    return FakeSocket(send_json=AsyncMock())


@pytest.mark.asyncio
async def test_emit_reaches_only_the_users_room():
    hub = ConnectionManager()
    mine, theirs = fake_socket(), fake_socket()
    await hub.connect(mine, "user-1")
    await hub.connect(theirs, "user-2")

    delivered = await hub.emit_to_user("user-1", "import:progress", {"jobId": "import-1"})

    assert delivered == 1
    mine.send_json.assert_awaited_once_with({"event": "import:progress", "data": {"jobId": "import-1"}})
    theirs.send_json.assert_not_awaited()


@pytest.mark.asyncio
async def test_dead_socket_is_dropped():
    hub = ConnectionManager()
    dead = fake_socket()
    dead.send_json.side_effect = RuntimeError("closed")
    await hub.connect(dead, "user-1")

    assert await hub.emit_to_user("user-1", "import:completed", {}) == 0
    assert hub.connection_count("user-1") == 0


@pytest.mark.asyncio
async def test_bus_events_are_forwarded_to_the_addressed_user():
    bus = EventBus()
    await bus.initialize()
    hub = ConnectionManager()
    await hub.attach(bus)
    socket = fake_socket()
    await hub.connect(socket, "user-1")

    await bus.publish(Event(EventType.IMPORT_STARTED, {"jobId": "import-1"}, user_id="user-1"))
    await bus.publish(Event(EventType.IMPORT_STARTED, {"jobId": "import-2"}))
    await bus.join()
    await bus.shutdown()

    socket.send_json.assert_awaited_once_with({"event": "import:started", "data": {"jobId": "import-1"}})


@pytest.mark.asyncio
async def test_stuck_socket_does_not_stall_other_users():
    async def hang(message):
        await asyncio.Event().wait()

    bus = EventBus()
    await bus.initialize()
    hub = ConnectionManager(send_timeout=0.05)
    await hub.attach(bus)
    stuck = FakeSocket(send_json=hang)
    healthy = fake_socket()
    await hub.connect(stuck, "user-1")
    await hub.connect(healthy, "user-2")

    await bus.publish(Event(EventType.IMPORT_PROGRESS, {"jobId": "import-1"}, user_id="user-1"))
    await bus.publish(Event(EventType.IMPORT_PROGRESS, {"jobId": "import-2"}, user_id="user-2"))
    await asyncio.wait_for(bus.join(), timeout=2)
    await bus.shutdown()

    healthy.send_json.assert_awaited_once_with({"event": "import:progress", "data": {"jobId": "import-2"}})
    assert hub.connection_count("user-1") == 0
    assert hub.connection_count("user-2") == 1


def test_websocket_without_token_is_rejected():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/ws"):
            pass
    assert exc_info.value.code == 1008


def test_websocket_with_invalid_token_is_rejected():
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/ws?token=not-a-jwt"):
            pass
    assert exc_info.value.code == 1008


def wait_for(condition, attempts=200):
    # The server side runs on the client's portal thread.
    for _ in range(attempts):
        if condition():
            return True
        time.sleep(0.01)
    return condition()


def test_websocket_with_valid_token_joins_user_room():
    hub = ConnectionManager()
    app.state.services = SimpleNamespace(hub=hub)
    try:
        token = create_access_token({"sub": "user-1"})
        client = TestClient(app)
        with client.websocket_connect(f"/api/v1/ws?token={token}"):
            assert wait_for(lambda: hub.connection_count("user-1") == 1)
        assert wait_for(lambda: hub.connection_count("user-1") == 0)
    finally:
        del app.state.services
