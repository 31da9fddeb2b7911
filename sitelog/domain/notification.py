"""Notification domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, Field


class NotificationEvent(StrEnum):
    """Lifecycle transition that produced a notification."""

    SUBMITTED = "submitted"
    APPROVED = "approved"


class Notification(BaseModel):
    """Notification data transfer object."""

    id: str = Field(..., description="Unique notification ID from database")
    recipient_id: str = Field(..., description="User ID of the recipient")
    message: str = Field(..., description="Human-readable message")
    log_id: str = Field(..., description="Work log that produced the notification")
    event: NotificationEvent = Field(..., description="Transition kind")
    is_read: bool = Field(default=False, description="Whether the recipient has read it")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")
