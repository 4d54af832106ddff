"""
User repository for database operations related to users.
"""
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.db.repositories.base import BaseRepository
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.utils.ids import generate_prefixed_id, IDPrefix


class UserRepository(BaseRepository[User, UserCreate, UserUpdate]):
    """User repository for database operations."""

    def __init__(self, session: AsyncSession):
        """Initialize with session and User model."""
        super().__init__(session=session, model=User)

    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Get a user by email.

        Args:
            email: User email

        Returns:
            User: Found user or None
        """
        return await self.get_by_attribute("email", email)

    async def create(
        self,
        *,
        email: str,
        hashed_password: str,
        full_name: Optional[str] = None,
        is_active: bool = True,
        role: str = "user"
    ) -> User:
        """
        Create a new user.

        Args:
            email: User email
            hashed_password: Hashed password
            full_name: User's full name
            is_active: Whether the user is active
            role: User role

        Returns:
            User: Created user
        """
        db_obj = User(
            id=generate_prefixed_id(IDPrefix.USER),
            email=email,
            hashed_password=hashed_password,
            full_name=full_name,
            is_active=is_active,
            role=role
        )

        self.session.add(db_obj)
        await self.session.commit()
        await self.session.refresh(db_obj)

        return db_obj
