"""HTTP router exposing the work log, notification and directory operations."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse

from sitelog.core.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    SitelogError,
    StorageError,
    ValidationError,
    build_error_response,
)
from sitelog.domain.log_filter import LogFilter, LogView
from sitelog.domain.notification import Notification
from sitelog.domain.project import Project
from sitelog.domain.user import Actor, User, UserRole
from sitelog.domain.work_log import WorkLog
from sitelog.services import notification_service, project_service, user_service, work_log_service


logger = logging.getLogger(__name__)

router = APIRouter(tags=["sitelog"])

STATUS_CODES: dict[type[SitelogError], int] = {
    ValidationError: 422,
    AuthorizationError: 403,
    InvalidStateError: 409,
    NotFoundError: 404,
    StorageError: 503,
}


async def handle_sitelog_error(request: Request, exc: Exception) -> JSONResponse:
    """Render a core error as a structured JSON response."""
    status_code = next(
        (code for error_type, code in STATUS_CODES.items() if isinstance(exc, error_type)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("request_failed", extra={"path": request.url.path, "error": str(exc)})
    else:
        logger.info("request_rejected", extra={"path": request.url.path, "error": str(exc)})

    return JSONResponse(content=build_error_response(exc).model_dump(mode="json"), status_code=status_code)


def register_exception_handlers(app: FastAPI) -> None:
    """Map core errors to HTTP status codes on the application."""
    app.add_exception_handler(SitelogError, handle_sitelog_error)


async def get_actor(
    x_user_id: Annotated[str, Header()],
    x_user_role: Annotated[str, Header()],
) -> Actor:
    """Build the request-scoped actor from identity headers."""
    try:
        role = UserRole(x_user_role)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=f"Unknown role: {x_user_role}") from e
    return Actor(id=x_user_id, role=role)


CurrentActor = Annotated[Actor, Depends(get_actor)]
Payload = Annotated[dict[str, Any], Body()]


@router.post("/logs", status_code=status.HTTP_201_CREATED)
async def create_log(actor: CurrentActor, payload: Payload) -> WorkLog:
    """Create a draft log."""
    return await work_log_service.create_log(actor=actor, data=payload)


@router.get("/logs")
async def list_logs(  # noqa: PLR0913
    actor: CurrentActor,
    start_date: str | None = None,
    end_date: str | None = None,
    project_id: str | None = None,
    log_status: Annotated[str | None, Query(alias="status")] = None,
    team_leader_id: str | None = None,
    search_term: str | None = None,
    view: LogView | None = None,
    days: Annotated[int | None, Query(ge=0)] = None,
) -> list[WorkLog]:
    """List visible logs.

    ``view`` applies that dashboard's default rolling window; ``days`` sets an
    explicit window ending today and takes precedence.
    """
    criteria: dict[str, Any] = {
        "start_date": start_date,
        "end_date": end_date,
        "project_id": project_id,
        "status": log_status,
        "team_leader_id": team_leader_id,
        "search_term": search_term,
    }
    window: LogFilter | None = None
    if days is not None:
        window = LogFilter.for_recent_days(days)
    elif view is not None:
        window = LogFilter.for_view(view)
    if window is not None:
        criteria["start_date"] = window.start_date
        criteria["end_date"] = window.end_date

    return await work_log_service.list_logs(actor=actor, log_filter=criteria)


@router.get("/logs/{log_id}")
async def get_log(actor: CurrentActor, log_id: str) -> WorkLog:
    """Get a single log."""
    return await work_log_service.get_log(actor=actor, log_id=log_id)


@router.patch("/logs/{log_id}")
async def update_log(actor: CurrentActor, log_id: str, payload: Payload) -> WorkLog:
    """Change a draft log's content."""
    return await work_log_service.update_log(actor=actor, log_id=log_id, changes=payload)


@router.post("/logs/{log_id}/submit")
async def submit_log(actor: CurrentActor, log_id: str) -> WorkLog:
    """Submit a draft log for approval."""
    return await work_log_service.submit_log(actor=actor, log_id=log_id)


@router.post("/logs/{log_id}/approve")
async def approve_log(actor: CurrentActor, log_id: str) -> WorkLog:
    """Approve a submitted log."""
    return await work_log_service.approve_log(actor=actor, log_id=log_id)


@router.delete("/logs/{log_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_log(actor: CurrentActor, log_id: str) -> Response:
    """Delete a draft log."""
    await work_log_service.delete_log(actor=actor, log_id=log_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/notifications")
async def list_notifications(actor: CurrentActor, unread_only: bool = False) -> list[Notification]:
    """List the caller's notifications, newest first."""
    return await notification_service.list_notifications(recipient=actor, unread_only=unread_only)


@router.get("/notifications/unread-count")
async def count_unread(actor: CurrentActor) -> dict[str, int]:
    """Count the caller's unread notifications."""
    return {"unread": await notification_service.count_unread(recipient=actor)}


@router.post("/notifications/read-all")
async def mark_all_read(actor: CurrentActor) -> dict[str, int]:
    """Mark every unread notification of the caller as read."""
    return {"updated": await notification_service.mark_all_read(recipient=actor)}


@router.post("/notifications/{notification_id}/read")
async def mark_read(actor: CurrentActor, notification_id: str) -> Notification:
    """Mark one notification as read."""
    return await notification_service.mark_read(recipient=actor, notification_id=notification_id)


@router.post("/users", status_code=status.HTTP_201_CREATED)
async def register_user(payload: Payload) -> User:
    """Register a Team Leader or Manager."""
    return await user_service.create_user(data=payload)


@router.get("/users/team-leaders")
async def list_team_leaders(_actor: CurrentActor) -> list[User]:
    """List Team Leaders for the log owner filter."""
    return await user_service.list_team_leaders()


@router.post("/projects", status_code=status.HTTP_201_CREATED)
async def create_project(_actor: CurrentActor, payload: Payload) -> Project:
    """Create a project."""
    return await project_service.create_project(data=payload)


@router.get("/projects")
async def list_projects(_actor: CurrentActor) -> list[Project]:
    """List projects."""
    return await project_service.list_projects()
