import asyncio

import pytest
import pytest_asyncio

from app.services.event_bus.bus import EventBus
from app.services.event_bus.events import Event, EventType


@pytest_asyncio.fixture
async def event_bus():
    bus = EventBus(max_queue_size=10)
    await bus.initialize()
    yield bus
    await bus.shutdown()


def _progress(n: int, user_id: str = "user-1") -> Event:
    return Event(EventType.IMPORT_PROGRESS, {"jobId": "job-1", "accepted": n}, user_id=user_id)


@pytest.mark.asyncio
async def test_events_are_delivered_in_publish_order(event_bus):
    seen = []

    async def record(event):
        seen.append(event.data["accepted"])

    await event_bus.subscribe(EventType.IMPORT_PROGRESS, record)
    for n in range(5):
        assert await event_bus.publish(_progress(n))
    await event_bus.join()

    assert seen == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_publish_does_not_wait_for_subscribers(event_bus):
    release = asyncio.Event()
    seen = []

    async def slow(event):
        await release.wait()
        seen.append(event)

    await event_bus.subscribe(EventType.IMPORT_PROGRESS, slow)

    assert await event_bus.publish(_progress(1))
    assert seen == []

    release.set()
    await event_bus.join()
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_full_queue_drops_events():
    bus = EventBus(max_queue_size=2)
    await bus.initialize()
    release = asyncio.Event()

    async def blocked(event):
        await release.wait()

    await bus.subscribe(EventType.IMPORT_PROGRESS, blocked)
    await bus.publish(_progress(0))
    await asyncio.sleep(0)  # dispatcher takes the first event

    results = [await bus.publish(_progress(n)) for n in range(1, 5)]

    assert results == [True, True, False, False]
    assert bus.dropped_events == 2

    release.set()
    await bus.shutdown()


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_stop_delivery(event_bus):
    seen = []

    async def broken(event):
        raise RuntimeError("socket gone")

    async def record(event):
        seen.append(event)

    await event_bus.subscribe(EventType.IMPORT_ERROR, broken, subscriber_id="broken")
    await event_bus.subscribe(EventType.IMPORT_ERROR, record, subscriber_id="record")

    await event_bus.publish(Event(EventType.IMPORT_ERROR, {"jobId": "job-1"}))
    await event_bus.join()

    assert len(seen) == 1
    failures = event_bus.get_failed_deliveries("broken")["broken"]
    assert failures[0]["event_type"] == "import:error"
    assert failures[0]["error"] == "socket gone"


@pytest.mark.asyncio
async def test_unsubscribe(event_bus):
    seen = []

    async def record(event):
        seen.append(event)

    sid = await event_bus.subscribe(EventType.IMPORT_STARTED, record)
    assert event_bus.get_subscriber_count(EventType.IMPORT_STARTED) == 1

    assert await event_bus.unsubscribe(EventType.IMPORT_STARTED, sid) is True
    assert await event_bus.unsubscribe(EventType.IMPORT_STARTED, sid) is False

    await event_bus.publish(Event(EventType.IMPORT_STARTED, {"jobId": "job-1"}))
    await event_bus.join()
    assert seen == []


@pytest.mark.asyncio
async def test_publish_initializes_lazily():
    bus = EventBus()
    assert not bus.is_running
    assert await bus.publish(_progress(1))
    assert bus.is_running
    await bus.shutdown()
    assert not bus.is_running
