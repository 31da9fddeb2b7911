"""Domain models and DTOs."""

from sitelog.domain.create_models import ProjectCreate, UserCreate, WorkLogCreate, parse_payload
from sitelog.domain.log_filter import LogFilter, LogView
from sitelog.domain.notification import Notification, NotificationEvent
from sitelog.domain.project import Project
from sitelog.domain.update_models import WorkLogUpdate
from sitelog.domain.user import Actor, User, UserRole
from sitelog.domain.work_log import Document, DocumentType, MaterialUsage, Photo, WorkLog, WorkLogStatus


__all__ = [
    "Actor",
    "Document",
    "DocumentType",
    "LogFilter",
    "LogView",
    "MaterialUsage",
    "Notification",
    "NotificationEvent",
    "Photo",
    "Project",
    "ProjectCreate",
    "User",
    "UserCreate",
    "UserRole",
    "WorkLog",
    "WorkLogCreate",
    "WorkLogStatus",
    "WorkLogUpdate",
    "parse_payload",
]
