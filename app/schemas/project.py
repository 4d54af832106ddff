"""
Pydantic schemas for project-related API operations.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator


class ProjectCreate(BaseModel):
    """Schema for creating a project."""
    name: str = Field(..., description="Unique project name")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name is required")
        return v


class ProjectUpdate(BaseModel):
    """Schema for renaming a project."""
    name: Optional[str] = Field(None, description="New project name")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty")
        return v


class ProjectResponse(BaseModel):
    """Schema for project response."""
    id: str
    name: str
    user_id: str
    created_at: datetime
    updated_at: datetime

    class Config:
        """Pydantic config."""
        from_attributes = True
