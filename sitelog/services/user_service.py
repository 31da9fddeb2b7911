"""User service for the Team Leader / Manager directory."""

import logging
from collections.abc import Mapping
from typing import Any

from sitelog.core import db_client
from sitelog.core.errors import ValidationError
from sitelog.core.logging import span
from sitelog.domain.create_models import UserCreate, parse_payload
from sitelog.domain.user import User, UserRole


logger = logging.getLogger(__name__)


async def create_user(*, data: UserCreate | Mapping[str, Any]) -> User:
    """Register a user in the directory.

    Args:
        data: Full name, email and role of the new user

    Returns:
        Created user

    Raises:
        ValidationError: If the payload is invalid or the email is already registered
        db_client.DatabaseError: If database operation fails
    """
    with span("user_service.create_user"):
        payload = parse_payload(UserCreate, data)

        async with db_client.transaction():
            # Guard: Check if email is already registered
            existing_user = await db_client.get_first_record(
                collection="users",
                filter_query=f'email = "{db_client.sanitize_param(payload.email)}"',
            )
            if existing_user:
                msg = f"User with email {payload.email} already exists"
                logger.warning(msg)
                raise ValidationError(msg)

            record = await db_client.create_record(collection="users", data=payload.model_dump(mode="json"))
            user = User(**record)

        logger.info("Registered %s: %s", payload.role, payload.full_name)
        return user


async def get_user(*, user_id: str) -> User:
    """Get a user by ID.

    Raises:
        db_client.RecordNotFoundError: If the user does not exist
    """
    with span("user_service.get_user"):
        record = await db_client.get_record(collection="users", record_id=user_id)
        return User(**record)


async def list_users(*, role: UserRole | None = None) -> list[User]:
    """List users, optionally restricted to one role, ordered by name."""
    with span("user_service.list_users"):
        filter_query = f'role = "{db_client.sanitize_param(role)}"' if role else ""
        records = await db_client.list_all_records(collection="users", filter_query=filter_query, sort="full_name,id")
        return [User(**record) for record in records]


async def list_team_leaders() -> list[User]:
    """List every Team Leader, e.g. for the log owner filter."""
    return await list_users(role=UserRole.TEAM_LEADER)


async def list_managers() -> list[User]:
    """List every Manager."""
    return await list_users(role=UserRole.MANAGER)
