"""
Database model for imported transactions.
"""
from sqlalchemy import Column, String, Numeric, ForeignKey

from app.models.base import Base

# Column bounds for amounts: 18 significant digits, 4 after the point.
AMOUNT_PRECISION = 18
AMOUNT_SCALE = 4


class Transaction(Base):
    """A row accepted by an import. Insert-only."""

    amount = Column(Numeric(AMOUNT_PRECISION, AMOUNT_SCALE), nullable=False)
    currency = Column(String, nullable=False)
    description = Column(String, nullable=False, default="")

    import_job_id = Column(String, ForeignKey("importjob.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(String, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
