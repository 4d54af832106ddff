"""
Event type definitions for the event bus.
"""
from enum import Enum
from typing import Dict, Any, Optional
from datetime import datetime

from app.utils.datetime import utc_now


class EventType(str, Enum):
    """Event types for the event bus."""

    # System events
    SYSTEM_STARTUP = "system:startup"
    SYSTEM_SHUTDOWN = "system:shutdown"

    # Import events, forwarded to the owning user's real-time room
    IMPORT_STARTED = "import:started"
    IMPORT_PROGRESS = "import:progress"
    IMPORT_ERROR = "import:error"
    IMPORT_COMPLETED = "import:completed"
    IMPORT_FAILED = "import:failed"


IMPORT_EVENT_TYPES = (
    EventType.IMPORT_STARTED,
    EventType.IMPORT_PROGRESS,
    EventType.IMPORT_ERROR,
    EventType.IMPORT_COMPLETED,
    EventType.IMPORT_FAILED,
)


class Event:
    """
    Base event class.

    ``user_id`` addresses the event to one user; broadcast events leave it unset.
    """

    def __init__(
        self,
        event_type: EventType,
        data: Dict[str, Any],
        user_id: Optional[str] = None,
        timestamp: Optional[datetime] = None
    ):
        self.event_type = EventType(event_type)
        self.data = data
        self.user_id = user_id
        self.timestamp = timestamp or utc_now()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert event to dictionary.

        Returns:
            Dict: Event data
        """
        return {
            "event_type": self.event_type.value,
            "data": self.data,
            "user_id": self.user_id,
            "timestamp": self.timestamp.isoformat()
        }

    def __repr__(self) -> str:
        return f"Event({self.event_type.value!r}, user_id={self.user_id!r})"
