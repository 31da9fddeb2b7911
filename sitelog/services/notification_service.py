"""Notification service for work log lifecycle events."""

import logging

from sitelog.core import db_client
from sitelog.core.config import Constants
from sitelog.core.errors import AuthorizationError
from sitelog.core.logging import log_with_user_context, span
from sitelog.domain.notification import Notification, NotificationEvent
from sitelog.domain.user import Actor
from sitelog.domain.work_log import WorkLog
from sitelog.services import project_service, user_service


logger = logging.getLogger(__name__)


async def _build_message(*, log: WorkLog, event: NotificationEvent) -> str:
    project = await project_service.find_project(project_id=log.project_id)
    project_name = project.name if project else f"project {log.project_id}"
    log_date = log.date.isoformat()

    match event:
        case NotificationEvent.SUBMITTED:
            return f"Work log for {project_name} on {log_date} was submitted for approval"
        case NotificationEvent.APPROVED:
            return f"Your work log for {project_name} on {log_date} was approved"


async def _emit(*, log: WorkLog, event: NotificationEvent, recipient_ids: list[str]) -> list[Notification]:
    message = await _build_message(log=log, event=event)

    notifications = []
    async with db_client.transaction():
        for recipient_id in recipient_ids:
            record = await db_client.create_record(
                collection="notifications",
                data={
                    "recipient_id": recipient_id,
                    "message": message,
                    "log_id": log.id,
                    "event": event,
                    "is_read": False,
                },
            )
            notifications.append(Notification(**record))

    logger.info("Emitted %d %s notifications for log %s", len(notifications), event, log.id)
    return notifications


async def notify_log_submitted(*, log: WorkLog) -> list[Notification]:
    """Notify every Manager that a log awaits approval.

    Joins the caller's transaction, so the notifications commit or roll back
    together with the status change.
    """
    with span("notification_service.notify_log_submitted"):
        managers = await user_service.list_managers()
        if not managers:
            logger.warning("No managers to notify for submitted log %s", log.id)
            return []
        return await _emit(
            log=log,
            event=NotificationEvent.SUBMITTED,
            recipient_ids=[manager.id for manager in managers],
        )


async def notify_log_approved(*, log: WorkLog) -> list[Notification]:
    """Notify the owning Team Leader that their log was approved."""
    with span("notification_service.notify_log_approved"):
        return await _emit(log=log, event=NotificationEvent.APPROVED, recipient_ids=[log.team_leader_id])


async def list_notifications(
    *,
    recipient: Actor,
    unread_only: bool = False,
    limit: int = Constants.DEFAULT_NOTIFICATION_LIMIT,
) -> list[Notification]:
    """List the recipient's notifications, newest first."""
    with span("notification_service.list_notifications"):
        filter_query = f'recipient_id = "{db_client.sanitize_param(recipient.id)}"'
        if unread_only:
            filter_query += ' && is_read = "false"'

        records = await db_client.list_records(
            collection="notifications",
            filter_query=filter_query,
            sort="-created,-id",
            per_page=limit,
        )
        return [Notification(**record) for record in records]


async def mark_read(*, recipient: Actor, notification_id: str) -> Notification:
    """Mark one notification as read.

    Already-read notifications are returned unchanged.

    Raises:
        db_client.RecordNotFoundError: If the notification does not exist
        AuthorizationError: If the notification belongs to someone else
    """
    with span("notification_service.mark_read"):
        async with db_client.transaction():
            record = await db_client.get_record(collection="notifications", record_id=notification_id)
            notification = Notification(**record)

            # Guard: Only the recipient may mark it
            if notification.recipient_id != recipient.id:
                msg = f"Notification {notification_id} does not belong to user {recipient.id}"
                raise AuthorizationError(msg)

            if notification.is_read:
                return notification

            record = await db_client.update_record(
                collection="notifications",
                record_id=notification_id,
                data={"is_read": True},
            )

        log_with_user_context(
            logger,
            "info",
            "Notification marked read",
            user_id=recipient.id,
            notification_id=notification_id,
        )
        return Notification(**record)


async def mark_all_read(*, recipient: Actor) -> int:
    """Mark every unread notification of the recipient as read in one batch.

    Returns:
        Number of notifications that changed from unread to read
    """
    with span("notification_service.mark_all_read"):
        count = await db_client.update_records(
            collection="notifications",
            filter_query=f'recipient_id = "{db_client.sanitize_param(recipient.id)}" && is_read = "false"',
            data={"is_read": True},
        )
        log_with_user_context(logger, "info", "Marked notifications read", user_id=recipient.id, count=count)
        return count


async def count_unread(*, recipient: Actor) -> int:
    """Count the recipient's unread notifications."""
    with span("notification_service.count_unread"):
        return await db_client.count_records(
            collection="notifications",
            filter_query=f'recipient_id = "{db_client.sanitize_param(recipient.id)}" && is_read = "false"',
        )
