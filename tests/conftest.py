"""Pytest configuration and shared fixtures."""

import datetime as dt
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import pytest

from sitelog.core import db_client
from sitelog.core.config import settings
from sitelog.domain.project import Project
from sitelog.domain.user import Actor, UserRole
from sitelog.domain.work_log import WorkLog
from sitelog.services import project_service, user_service, work_log_service


LOG_DATE = dt.date(2024, 1, 10)


@pytest.fixture
async def db(tmp_path, monkeypatch) -> AsyncIterator[str]:
    """Fresh SQLite database file with the schema applied."""
    db_path = str(tmp_path / "sitelog.db")
    monkeypatch.setattr(settings, "sqlite_db_path", db_path)

    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


async def _register(full_name: str, email: str, role: UserRole) -> Actor:
    user = await user_service.create_user(data={"full_name": full_name, "email": email, "role": role})
    return Actor(id=user.id, role=user.role)


@pytest.fixture
async def team_leader(db: str) -> Actor:
    """Team Leader who owns most logs in the tests."""
    return await _register("Anna Berg", "anna@site.test", UserRole.TEAM_LEADER)


@pytest.fixture
async def other_team_leader(db: str) -> Actor:
    """A second Team Leader who owns nothing by default."""
    return await _register("Ben Cole", "ben@site.test", UserRole.TEAM_LEADER)


@pytest.fixture
async def manager(db: str) -> Actor:
    """Manager who reviews logs."""
    return await _register("Maria Diaz", "maria@site.test", UserRole.MANAGER)


@pytest.fixture
async def second_manager(db: str) -> Actor:
    """Another Manager, to check fan-out reaches everyone."""
    return await _register("Mark Evans", "mark@site.test", UserRole.MANAGER)


@pytest.fixture
async def project(db: str) -> Project:
    """Project logs are recorded against."""
    return await project_service.create_project(data={"name": "Harbour Tower", "address": "1 Quay Street"})


@pytest.fixture
def log_payload(project: Project) -> Callable[..., dict[str, Any]]:
    """Build a valid create payload, with optional overrides."""

    def _build(**overrides: Any) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "date": LOG_DATE.isoformat(),
            "project_id": project.id,
            "start_time": "07:30",
            "end_time": "16:00",
            "weather": "Overcast",
            "work_description": "Poured level 3 slab",
            "employee_ids": ["e1", "e2"],
            "materials_used": [{"name": "Concrete", "quantity": 12.5, "unit": "m3"}],
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture
def make_log(team_leader: Actor, log_payload: Callable[..., dict[str, Any]]) -> Callable[..., Awaitable[WorkLog]]:
    """Create a draft log, owned by ``team_leader`` unless another actor is given."""

    async def _make(actor: Actor | None = None, **overrides: Any) -> WorkLog:
        return await work_log_service.create_log(actor=actor or team_leader, data=log_payload(**overrides))

    return _make
