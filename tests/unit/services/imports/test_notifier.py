from unittest.mock import AsyncMock

import pytest

from app.services.event_bus.events import EventType
from app.services.imports.notifier import ProgressNotifier


@pytest.mark.asyncio
async def test_events_are_addressed_to_owner():
    bus = AsyncMock()
    notifier = ProgressNotifier(bus, "import-1", "user-1")

    await notifier.started("project-1", "march.csv")
    await notifier.row_error(3, "amount: Amount must be a valid number", '{"amount":"x"}')
    await notifier.completed(accepted=5, rejected=1)

    events = [c.args[0] for c in bus.publish.await_args_list]
    assert [e.event_type for e in events] == [
        EventType.IMPORT_STARTED,
        EventType.IMPORT_ERROR,
        EventType.IMPORT_COMPLETED,
    ]
    assert {e.user_id for e in events} == {"user-1"}
    assert events[0].data == {"jobId": "import-1", "projectId": "project-1", "fileName": "march.csv"}
    assert events[1].data["line"] == 3
    assert events[2].data == {"jobId": "import-1", "accepted": 5, "rejected": 1, "totalLines": 6}


@pytest.mark.asyncio
@pytest.mark.parametrize("bus, user_id", [(None, "user-1"), (AsyncMock(), None)])
async def test_disabled_without_bus_or_owner(bus, user_id):
    notifier = ProgressNotifier(bus, "import-1", user_id)
    assert not notifier.enabled

    await notifier.progress(50, 0, 51)

    if bus is not None:
        bus.publish.assert_not_awaited()


@pytest.mark.asyncio
async def test_publish_errors_are_swallowed():
    bus = AsyncMock()
    bus.publish.side_effect = RuntimeError("queue closed")
    notifier = ProgressNotifier(bus, "import-1", "user-1")

    await notifier.failed("boom")

    bus.publish.assert_awaited_once()
