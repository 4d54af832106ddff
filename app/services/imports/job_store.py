"""
Import job persistence and lifecycle transitions.
"""
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from sqlalchemy.orm import sessionmaker

from app.core.exceptions import InvalidTransitionError, NotFoundError, StagingError
from app.db.repositories.import_jobs import ImportJobRepository
from app.db.session import get_session
from app.models.import_job import ImportJob, ImportStatus, can_transition
from app.utils.datetime import utc_now

logger = logging.getLogger("ledgerflow.imports.jobs")


class JobStore:
    """
    Creates import jobs, stages their files and moves them through
    ``pending -> processing -> completed``, with ``failed`` reachable from
    either non-terminal state.

    Every operation runs in its own session from ``session_factory``.
    """

    def __init__(self, session_factory: sessionmaker, imports_dir: Union[str, Path]):
        self._session_factory = session_factory
        self.imports_dir = Path(imports_dir)

    def staged_path(self, job_id: str) -> Path:
        """Location of the staged file for ``job_id``."""
        return self.imports_dir / f"{job_id}.csv"

    async def create_job(self, project_id: str, file_name: str) -> ImportJob:
        """Create a job in ``pending`` with zero lines."""
        async with get_session(self._session_factory) as session:
            job = await ImportJobRepository(session).create_import_job(
                project_id=project_id,
                file_name=file_name,
            )
        return job

    def stage_file(self, job_id: str, temp_path: Union[str, Path]) -> Path:
        """
        Atomically move an uploaded temp file to the job's staged path.

        The job is left untouched on failure, so it stays ``pending``.

        Raises:
            StagingError: If the file cannot be moved
        """
        target = self.staged_path(job_id)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            os.replace(temp_path, target)
        except OSError as e:
            logger.error(f"Failed to stage upload for job {job_id}: {e}")
            raise StagingError(
                message="Failed to stage uploaded file",
                details={"job_id": job_id},
            ) from e

        logger.info(f"Staged upload for job {job_id} at {target}")
        return target

    async def get_job(self, job_id: str) -> Optional[ImportJob]:
        async with get_session(self._session_factory) as session:
            return await ImportJobRepository(session).get_by_id(job_id)

    async def transition(self, job_id: str, new_status: ImportStatus, **fields: Any) -> ImportJob:
        """
        Move a job to ``new_status`` and apply extra column values.

        ``completed_at`` is stamped when ``new_status`` is terminal.

        Raises:
            NotFoundError: If the job does not exist
            InvalidTransitionError: If the state machine forbids the move
        """
        new_status = ImportStatus(new_status)

        async with get_session(self._session_factory) as session:
            job = await ImportJobRepository(session).get_for_update(job_id)
            if job is None:
                raise NotFoundError(message="Import job not found", details={"job_id": job_id})

            current = ImportStatus(job.status)
            if not can_transition(current, new_status):
                raise InvalidTransitionError(
                    message=f"Cannot move import job from {current.value} to {new_status.value}",
                    details={"job_id": job_id, "from": current.value, "to": new_status.value},
                )

            for field, value in fields.items():
                setattr(job, field, value)
            job.status = new_status
            if new_status.is_terminal:
                job.completed_at = utc_now()

        logger.info(f"Import job {job_id}: {current.value} -> {new_status.value}")
        return job
