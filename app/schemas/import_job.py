"""
Pydantic schemas for import job-related API operations.

Job payloads are exposed with camelCase keys (``jobId``, ``totalLines``,
``completedAt``) to match the real-time event payloads.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from app.models.import_job import ImportStatus
from app.utils.datetime import ensure_utc


class CamelModel(BaseModel):
    """Base schema serialised with camelCase aliases."""

    class Config:
        """Pydantic config."""
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class ImportJobCreate(BaseModel):
    """Schema for creating a new import job."""
    project_id: str
    file_name: str


class ImportJobUpdate(BaseModel):
    """Schema for updating an import job."""
    status: Optional[ImportStatus] = None
    total_lines: Optional[int] = Field(None, ge=0)
    completed_at: Optional[datetime] = None


class ImportJobAccepted(BaseModel):
    """Body returned when an upload has been accepted for processing."""
    jobId: str = Field(..., description="Import job ID")
    status: ImportStatus = Field(..., description="Import job status, always pending")


class ImportJobResponse(CamelModel):
    """Schema for import job response."""
    id: str = Field(..., description="Import job ID")
    project_id: str = Field(..., description="Project the rows are imported into")
    file_name: str = Field(..., description="Original filename")
    status: ImportStatus = Field(..., description="Import job status")
    total_lines: int = Field(..., description="Data rows seen, header excluded")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")
    completed_at: Optional[datetime] = Field(None, description="Set once the job is completed or failed")

    @field_validator("created_at", "updated_at", "completed_at")
    @classmethod
    def normalize_timezone(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)
