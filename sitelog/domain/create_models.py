"""Pydantic models for creating records in database."""

import datetime as dt
import re
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from sitelog.core.config import constants
from sitelog.core.errors import ValidationError
from sitelog.domain.user import UserRole
from sitelog.domain.work_log import Document, MaterialUsage, Photo


ModelT = TypeVar("ModelT", bound=BaseModel)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def parse_payload(model: type[ModelT], data: ModelT | Mapping[str, Any]) -> ModelT:
    """Validate raw input into ``model``, reporting failures as ValidationError."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(loc) for loc in error['loc']) or 'payload'}: {error['msg']}" for error in e.errors()
        )
        raise ValidationError(details) from e


def strip_optional_text(v: str | None) -> str | None:
    """Strip optional free text, mapping blank input to None."""
    if v is None:
        return None
    v = v.strip()
    return v or None


class WorkLogCreate(BaseModel):
    """Pydantic model for creating a work log record."""

    date: dt.date = Field(..., description="Calendar day the work was done")
    project_id: str = Field(..., min_length=1, description="Project the work belongs to")
    start_time: dt.time = Field(..., description="Start of the working day")
    end_time: dt.time = Field(..., description="End of the working day, after start_time")
    weather: str | None = Field(default=None, description="Weather conditions")
    work_description: str = Field(..., description="What was done, must not be blank")
    issues_encountered: str | None = Field(default=None, description="Problems on site")
    next_steps: str | None = Field(default=None, description="Planned follow-up work")
    employee_ids: list[str] = Field(default_factory=list, description="Employees present")
    materials_used: list[MaterialUsage] = Field(default_factory=list, description="Materials consumed")
    photos: list[Photo] = Field(default_factory=list, description="Attached photos")
    documents: list[Document] = Field(default_factory=list, description="Attached documents")

    @field_validator("project_id", mode="before")
    @classmethod
    def strip_project_id(cls, v: object) -> object:
        """Whitespace-only project references count as empty."""
        return v.strip() if isinstance(v, str) else v

    @field_validator("work_description")
    @classmethod
    def validate_description_not_blank(cls, v: str) -> str:
        """Validate work description has visible content."""
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

    @model_validator(mode="after")
    def validate_time_range(self) -> "WorkLogCreate":
        """Validate the working day ends after it starts."""
        if self.end_time <= self.start_time:
            msg = "end_time must be after start_time"
            raise ValueError(msg)
        return self


class UserCreate(BaseModel):
    """Pydantic model for creating a user record."""

    full_name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Email address, stored lower-cased")
    role: UserRole = Field(..., description="Team Leader or Manager")

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        """Validate full name is present and not too long."""
        v = v.strip()
        if not v:
            msg = "Full name cannot be empty"
            raise ValueError(msg)
        if len(v) > constants.MAX_FULL_NAME_LENGTH:
            msg = f"Full name too long (max {constants.MAX_FULL_NAME_LENGTH} characters)"
            raise ValueError(msg)
        return v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Validate email shape and normalize case."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            msg = "Email address is not valid"
            raise ValueError(msg)
        return v


class ProjectCreate(BaseModel):
    """Pydantic model for creating a project record."""

    name: str = Field(..., description="Project name")
    address: str | None = Field(default=None, description="Site address")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate project name is not blank."""
        v = v.strip()
        if not v:
            msg = "Project name cannot be empty"
            raise ValueError(msg)
        return v

    @field_validator("address")
    @classmethod
    def normalize_address(cls, v: str | None) -> str | None:
        """Treat a blank address as absent."""
        return strip_optional_text(v)
