"""
Database model for import job tracking.
"""
from enum import Enum
from typing import Dict, FrozenSet

from sqlalchemy import Column, String, DateTime, Integer, ForeignKey, Enum as SQLEnum

from app.models.base import Base


class ImportStatus(str, Enum):
    """Import job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES: FrozenSet[ImportStatus] = frozenset(
    {ImportStatus.COMPLETED, ImportStatus.FAILED}
)

# pending -> processing -> completed, failed reachable from any non-terminal state
ALLOWED_TRANSITIONS: Dict[ImportStatus, FrozenSet[ImportStatus]] = {
    ImportStatus.PENDING: frozenset({ImportStatus.PROCESSING, ImportStatus.FAILED}),
    ImportStatus.PROCESSING: frozenset({ImportStatus.COMPLETED, ImportStatus.FAILED}),
    ImportStatus.COMPLETED: frozenset(),
    ImportStatus.FAILED: frozenset(),
}


def can_transition(current: ImportStatus, new: ImportStatus) -> bool:
    """Check whether an import job may move from ``current`` to ``new``."""
    return new in ALLOWED_TRANSITIONS[ImportStatus(current)]


class ImportJob(Base):
    """Model for tracking transaction file imports through their lifecycle."""

    project_id = Column(String, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String, nullable=False)

    status = Column(
        SQLEnum(
            ImportStatus,
            name="import_status",
            values_callable=lambda enum_cls: [member.value for member in enum_cls],
        ),
        nullable=False,
        default=ImportStatus.PENDING,
        index=True,
    )

    # Data rows seen (accepted + rejected), header excluded
    total_lines = Column(Integer, default=0, nullable=False)

    # Set only once the job reaches a terminal status
    completed_at = Column(DateTime(timezone=True), nullable=True)
