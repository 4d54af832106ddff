"""
Database model for rows rejected during an import.
"""
from sqlalchemy import Column, String, Integer, Text, ForeignKey

from app.models.base import Base


class ImportRowError(Base):
    """A row rejected by an import, kept verbatim with its validation message."""

    line_text = Column(Text, nullable=False)
    line_number = Column(Integer, nullable=False)
    error_message = Column(Text, nullable=False)

    import_job_id = Column(String, ForeignKey("importjob.id", ondelete="CASCADE"), nullable=False, index=True)
