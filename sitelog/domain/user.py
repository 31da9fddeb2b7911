"""User domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(StrEnum):
    """Role a user holds on site."""

    TEAM_LEADER = "Team Leader"
    MANAGER = "Manager"


class User(BaseModel):
    """User data transfer object.

    Stored rows are trusted as written; name rules live in ``UserCreate``.
    """

    id: str = Field(..., description="Unique user ID from database")
    full_name: str = Field(..., description="Display name of the user")
    email: str = Field(..., description="Lower-cased, unique email address")
    role: UserRole = Field(..., description="Team Leader or Manager")
    created: str = Field(..., description="Creation timestamp (ISO format)")
    updated: str = Field(..., description="Last update timestamp (ISO format)")


class Actor(BaseModel):
    """Identity of the caller, passed explicitly into every operation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="User ID of the caller")
    role: UserRole = Field(..., description="Role of the caller")
