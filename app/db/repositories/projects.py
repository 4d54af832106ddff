"""
Project repository for database operations related to projects.
"""
from typing import List, Optional, Tuple

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.project import Project
from app.schemas.project import ProjectCreate, ProjectUpdate
from app.utils.ids import generate_prefixed_id, IDPrefix


class ProjectRepository(BaseRepository[Project, ProjectCreate, ProjectUpdate]):
    """Project repository for database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session and Project model."""
        super().__init__(session=session, model=Project)

    async def get_by_name(self, name: str) -> Optional[Project]:
        """Get a project by its unique name."""
        return await self.get_by_attribute("name", name)

    async def create_project(self, *, name: str, user_id: str) -> Project:
        """
        Create a new project owned by ``user_id``.

        Args:
            name: Unique project name
            user_id: Owner user ID

        Returns:
            Project: Created project
        """
        db_obj = Project(
            id=generate_prefixed_id(IDPrefix.PROJECT),
            name=name,
            user_id=user_id,
        )

        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)

        return db_obj

    async def get_projects_for_user(
        self,
        user_id: str,
        *,
        name: Optional[str] = None,
        skip: int = 0,
        limit: int = 20
    ) -> Tuple[List[Project], int]:
        """
        Get projects owned by a user, optionally filtered by name substring.

        Returns:
            Tuple[List[Project], int]: (projects, total_count)
        """
        query = select(Project).where(Project.user_id == user_id)
        count_query = select(func.count(Project.id)).where(Project.user_id == user_id)

        if name:
            pattern = f"%{name}%"
            query = query.where(Project.name.ilike(pattern))
            count_query = count_query.where(Project.name.ilike(pattern))

        total_result = await self.session.execute(count_query)
        total = total_result.scalar() or 0

        query = query.order_by(Project.created_at.desc(), Project.id).offset(skip).limit(limit)
        result = await self.session.execute(query)

        return list(result.scalars().all()), total

    async def get_owner_id(self, project_id: str) -> Optional[str]:
        """Return the owning user ID of a project, or None if it does not exist."""
        result = await self.session.execute(
            select(Project.user_id).where(Project.id == project_id)
        )
        return result.scalar_one_or_none()
