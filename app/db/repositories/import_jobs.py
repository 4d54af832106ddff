"""
ImportJob repository for database operations related to import jobs.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import select, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.import_job import ImportJob, ImportStatus
from app.schemas.import_job import ImportJobCreate, ImportJobUpdate
from app.utils.ids import generate_prefixed_id, IDPrefix

logger = logging.getLogger("ledgerflow.db")


class ImportJobRepository(BaseRepository[ImportJob, ImportJobCreate, ImportJobUpdate]):
    """ImportJob repository for database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session and ImportJob model."""
        super().__init__(session=session, model=ImportJob)

    async def create_import_job(
        self,
        *,
        project_id: str,
        file_name: str,
        id: Optional[str] = None,
    ) -> ImportJob:
        """
        Create a new pending import job.

        The row is flushed, not committed; the surrounding session commits.

        Args:
            project_id: Project the rows will be imported into
            file_name: Original filename of the upload
            id: Optional pre-generated job ID

        Returns:
            ImportJob: Created import job
        """
        job_id = id or generate_prefixed_id(IDPrefix.IMPORT)

        db_obj = ImportJob(
            id=job_id,
            project_id=project_id,
            file_name=file_name,
            status=ImportStatus.PENDING,
            total_lines=0,
        )

        self.session.add(db_obj)
        await self.session.flush()

        logger.info(f"Created import job {job_id} for project {project_id}")
        return db_obj

    async def get_for_update(self, job_id: str) -> Optional[ImportJob]:
        """Load a job, locking its row where the backend supports it."""
        result = await self.session.execute(
            select(ImportJob).where(ImportJob.id == job_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def get_by_project(
        self,
        project_id: str,
        status: Optional[ImportStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> Tuple[List[ImportJob], int]:
        """
        Get import jobs of a project, newest first.

        Returns:
            Tuple[List[ImportJob], int]: (jobs, total_count)
        """
        query = select(ImportJob).where(ImportJob.project_id == project_id)
        count_query = select(func.count(ImportJob.id)).where(ImportJob.project_id == project_id)

        if status:
            query = query.where(ImportJob.status == status)
            count_query = count_query.where(ImportJob.status == status)

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(desc(ImportJob.created_at)).offset(skip).limit(limit)
        result = await self.session.execute(query)

        return list(result.scalars().all()), total
