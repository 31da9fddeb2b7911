"""Project domain model."""

from pydantic import BaseModel, Field


class Project(BaseModel):
    """Construction project a work log is recorded against."""

    id: str = Field(..., description="Unique project ID from database")
    name: str = Field(..., description="Project name")
    address: str | None = Field(default=None, description="Site address")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
