"""Update models for database operations."""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sitelog.domain.create_models import strip_optional_text
from sitelog.domain.work_log import Document, MaterialUsage, Photo


class WorkLogUpdate(BaseModel):
    """Partial update of a draft log's content.

    Only fields explicitly set are applied. Owner, status, id and timestamps are
    not part of the model, so supplying them is rejected.
    """

    model_config = ConfigDict(extra="forbid")

    date: dt.date | None = None
    project_id: str | None = Field(default=None, min_length=1)
    start_time: dt.time | None = None
    end_time: dt.time | None = None
    weather: str | None = None
    work_description: str | None = None
    issues_encountered: str | None = None
    next_steps: str | None = None
    employee_ids: list[str] | None = None
    materials_used: list[MaterialUsage] | None = None
    photos: list[Photo] | None = None
    documents: list[Document] | None = None

    @field_validator("date", "project_id", "start_time", "end_time", "work_description", "employee_ids")
    @classmethod
    def validate_required_not_null(cls, v: object) -> object:
        """Required log fields may be changed but not cleared."""
        if v is None:
            msg = "Field cannot be cleared"
            raise ValueError(msg)
        return v

    @field_validator("project_id", mode="before")
    @classmethod
    def strip_project_id(cls, v: object) -> object:
        """Whitespace-only project references count as empty."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("work_description")
    @classmethod
    def validate_description_not_blank(cls, v: str | None) -> str | None:
        """Validate work description has visible content."""
        if v is None:
            return v
        v = v.strip()
        if not v:
            msg = "Work description cannot be blank"
            raise ValueError(msg)
        return v

    @field_validator("weather", "issues_encountered", "next_steps")
    @classmethod
    def normalize_optional_text(cls, v: str | None) -> str | None:
        """Treat blank optional text as absent."""
        return strip_optional_text(v)

    def changes(self) -> dict[str, object]:
        """Fields the caller actually supplied, serialized for storage."""
        return self.model_dump(mode="json", exclude_unset=True)
