"""
Import all models here to ensure they are registered with SQLAlchemy.
"""
# Import Base
from app.models.base import Base

# Import all models
from app.models.user import User
from app.models.project import Project
from app.models.import_job import ImportJob
from app.models.transaction import Transaction
from app.models.import_row_error import ImportRowError

__all__ = ["Base", "User", "Project", "ImportJob", "Transaction", "ImportRowError"]
