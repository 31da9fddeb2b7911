"""Project service for the sites logs are recorded against."""

import logging
from collections.abc import Mapping
from typing import Any

from sitelog.core import db_client
from sitelog.core.logging import span
from sitelog.domain.create_models import ProjectCreate, parse_payload
from sitelog.domain.project import Project


logger = logging.getLogger(__name__)


async def create_project(*, data: ProjectCreate | Mapping[str, Any]) -> Project:
    """Create a project.

    Raises:
        ValidationError: If the name is blank
    """
    with span("project_service.create_project"):
        payload = parse_payload(ProjectCreate, data)
        record = await db_client.create_record(collection="projects", data=payload.model_dump(mode="json"))
        logger.info("Created project %s: %s", record["id"], payload.name)
        return Project(**record)


async def get_project(*, project_id: str) -> Project:
    """Get a project by ID.

    Raises:
        db_client.RecordNotFoundError: If the project does not exist
    """
    with span("project_service.get_project"):
        record = await db_client.get_record(collection="projects", record_id=project_id)
        return Project(**record)


async def find_project(*, project_id: str) -> Project | None:
    """Get a project by ID, or None when it is unknown."""
    try:
        return await get_project(project_id=project_id)
    except db_client.RecordNotFoundError:
        return None


async def list_projects() -> list[Project]:
    """List every project ordered by name."""
    with span("project_service.list_projects"):
        records = await db_client.list_all_records(collection="projects", sort="name,id")
        return [Project(**record) for record in records]
