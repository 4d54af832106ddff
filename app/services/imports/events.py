# app/services/imports/events.py
"""
Import progress event payloads pushed to the uploading user.

Payload keys are camelCase because they are sent verbatim over the WebSocket.
Every payload carries ``jobId``.
"""
from typing import TypedDict

__all__ = [
    "ImportStartedV1",
    "ImportProgressV1",
    "ImportRowErrorV1",
    "ImportCompletedV1",
    "ImportFailedV1",
    "create_started_event",
    "create_progress_event",
    "create_row_error_event",
    "create_completion_event",
    "create_failure_event",
]


class ImportStartedV1(TypedDict):
    """Emitted once, before the first row is read."""
    jobId: str
    projectId: str
    fileName: str


class ImportProgressV1(TypedDict):
    """Cumulative counters, emitted every N accepted rows."""
    jobId: str
    accepted: int          # Accepted rows so far
    errors: int            # Rejected rows so far
    line: int              # Current 1-based line number (header is line 1)


class ImportRowErrorV1(TypedDict):
    """Emitted for every rejected row."""
    jobId: str
    line: int
    message: str           # "field: message; field: message"
    raw: str               # JSON text of the row keyed by column name


class ImportCompletedV1(TypedDict):
    """Final counts once all rows have been persisted."""
    jobId: str
    accepted: int
    rejected: int
    totalLines: int


class ImportFailedV1(TypedDict):
    jobId: str
    reason: str


def create_started_event(job_id: str, project_id: str, file_name: str) -> ImportStartedV1:
    return ImportStartedV1(jobId=job_id, projectId=project_id, fileName=file_name)


def create_progress_event(job_id: str, accepted: int, errors: int, line: int) -> ImportProgressV1:
    return ImportProgressV1(jobId=job_id, accepted=accepted, errors=errors, line=line)


def create_row_error_event(job_id: str, line: int, message: str, raw: str) -> ImportRowErrorV1:
    return ImportRowErrorV1(jobId=job_id, line=line, message=message, raw=raw)


def create_completion_event(job_id: str, accepted: int, rejected: int) -> ImportCompletedV1:
    """
    Create the completion payload.

    ``totalLines`` is derived so that it always equals accepted + rejected.
    """
    return ImportCompletedV1(
        jobId=job_id,
        accepted=accepted,
        rejected=rejected,
        totalLines=accepted + rejected,
    )


def create_failure_event(job_id: str, reason: str) -> ImportFailedV1:
    return ImportFailedV1(jobId=job_id, reason=reason)
