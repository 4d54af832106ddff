"""
Database model for projects, the collections that transactions are imported into.
"""
from sqlalchemy import Column, String, ForeignKey

from app.models.base import Base


class Project(Base):
    """A named collection of imported transactions owned by one user."""

    name = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(String, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
