"""
Best-effort progress notifications for a single import job.
"""
import logging
from typing import Any, Dict, Optional

from app.services.event_bus.bus import EventBus
from app.services.event_bus.events import Event, EventType
from app.services.imports.events import (
    create_completion_event,
    create_failure_event,
    create_progress_event,
    create_row_error_event,
    create_started_event,
)

logger = logging.getLogger("ledgerflow.imports.notifier")


class ProgressNotifier:
    """
    Publishes ``import:*`` events addressed to the job owner.

    Disabled when there is no bus or no owner. Publishing never raises: a
    failure is logged and the import carries on.
    """

    def __init__(self, event_bus: Optional[EventBus], job_id: str, user_id: Optional[str]):
        self.event_bus = event_bus
        self.job_id = job_id
        self.user_id = user_id

    @property
    def enabled(self) -> bool:
        return self.event_bus is not None and self.user_id is not None

    async def _emit(self, event_type: EventType, data: Dict[str, Any]) -> None:
        if not self.enabled:
            return
        try:
            await self.event_bus.publish(Event(event_type, dict(data), user_id=self.user_id))
        except Exception as e:
            logger.warning(f"Could not publish {event_type.value} for job {self.job_id}: {e}")

    async def started(self, project_id: str, file_name: str) -> None:
        await self._emit(
            EventType.IMPORT_STARTED,
            create_started_event(self.job_id, project_id, file_name),
        )

    async def progress(self, accepted: int, errors: int, line: int) -> None:
        await self._emit(
            EventType.IMPORT_PROGRESS,
            create_progress_event(self.job_id, accepted, errors, line),
        )

    async def row_error(self, line: int, message: str, raw: str) -> None:
        await self._emit(
            EventType.IMPORT_ERROR,
            create_row_error_event(self.job_id, line, message, raw),
        )

    async def completed(self, accepted: int, rejected: int) -> None:
        await self._emit(
            EventType.IMPORT_COMPLETED,
            create_completion_event(self.job_id, accepted, rejected),
        )

    async def failed(self, reason: str) -> None:
        await self._emit(
            EventType.IMPORT_FAILED,
            create_failure_event(self.job_id, reason),
        )
