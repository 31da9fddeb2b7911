"""Work log domain models and enums."""

import datetime as dt
from enum import StrEnum

from pydantic import BaseModel, Field


class WorkLogStatus(StrEnum):
    """Work log lifecycle state."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"


class DocumentType(StrEnum):
    """Kind of paperwork attached to a log."""

    DELIVERY_NOTE = "delivery_note"
    RECEIPT = "receipt"
    INVOICE = "invoice"
    OTHER = "other"


class MaterialUsage(BaseModel):
    """Material consumed on site during the day."""

    name: str = Field(..., min_length=1, description="Material name")
    quantity: float = Field(..., gt=0, description="Amount used, strictly positive")
    unit: str = Field(..., min_length=1, description="Unit of measure (e.g., 'm3', 'bags')")
    notes: str | None = Field(default=None, description="Free-form remarks")


class Photo(BaseModel):
    """Reference to a stored site photo."""

    path: str = Field(..., min_length=1, description="Storage path of the image")
    caption: str | None = Field(default=None, description="Optional caption")


class Document(BaseModel):
    """Reference to a stored document scan."""

    path: str = Field(..., min_length=1, description="Storage path of the file")
    original_filename: str = Field(..., description="Filename as uploaded")
    document_type: DocumentType = Field(default=DocumentType.OTHER, description="Kind of document")
    uploaded_at: str = Field(..., description="Upload timestamp (ISO format)")


class WorkLog(BaseModel):
    """Work log data transfer object."""

    id: str = Field(..., description="Unique log ID from database")
    date: dt.date = Field(..., description="Calendar day the work was done")
    project_id: str = Field(..., description="Project the work belongs to")
    team_leader_id: str = Field(..., description="Owning Team Leader, fixed at creation")
    start_time: dt.time = Field(..., description="Start of the working day")
    end_time: dt.time = Field(..., description="End of the working day")
    weather: str | None = Field(default=None, description="Weather conditions")
    work_description: str = Field(..., description="What was done")
    issues_encountered: str | None = Field(default=None, description="Problems on site")
    next_steps: str | None = Field(default=None, description="Planned follow-up work")
    employee_ids: list[str] = Field(default_factory=list, description="Employees present")
    materials_used: list[MaterialUsage] = Field(default_factory=list, description="Materials consumed")
    photos: list[Photo] = Field(default_factory=list, description="Attached photos")
    documents: list[Document] = Field(default_factory=list, description="Attached documents")
    status: WorkLogStatus = Field(default=WorkLogStatus.DRAFT, description="Lifecycle state")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
