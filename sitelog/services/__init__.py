"""Service layer for work logs, notifications and the directory."""

from sitelog.services import (
    log_state_machine,
    notification_service,
    project_service,
    user_service,
    work_log_service,
)


__all__ = [
    "log_state_machine",
    "notification_service",
    "project_service",
    "user_service",
    "work_log_service",
]
