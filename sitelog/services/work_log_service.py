"""Work log service: lifecycle operations and the log query contract."""

import logging
from collections.abc import Mapping
from typing import Any, assert_never

from sitelog.core import db_client
from sitelog.core.errors import AuthorizationError, InvalidStateError, ValidationError
from sitelog.core.logging import log_with_user_context, span
from sitelog.domain.create_models import WorkLogCreate, parse_payload
from sitelog.domain.log_filter import LogFilter
from sitelog.domain.update_models import WorkLogUpdate
from sitelog.domain.user import Actor, UserRole
from sitelog.domain.work_log import WorkLog, WorkLogStatus
from sitelog.services import log_state_machine, notification_service
from sitelog.services.log_state_machine import LogAction


logger = logging.getLogger(__name__)

COLLECTION = "work_logs"

# Most recent day first, creation order within a day
LIST_SORT = "-date,id"


async def _load(*, log_id: str) -> WorkLog:
    record = await db_client.get_record(collection=COLLECTION, record_id=log_id)
    return WorkLog(**record)


async def _swap_status(*, log: WorkLog, target: WorkLogStatus) -> WorkLog:
    """Move the log to ``target`` only if its status is still what was checked."""
    try:
        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=log.id,
            data={"status": target},
            expected={"status": log.status},
        )
    except db_client.StaleRecordError as e:
        msg = f"Log {log.id} is no longer {log.status}"
        raise InvalidStateError(msg) from e
    return WorkLog(**record)


async def create_log(*, actor: Actor, data: WorkLogCreate | Mapping[str, Any]) -> WorkLog:
    """Create a draft log owned by the acting Team Leader.

    Args:
        actor: The caller; must be a Team Leader
        data: Log content

    Returns:
        Created log in draft status

    Raises:
        AuthorizationError: If the actor is not a Team Leader
        ValidationError: If required content is missing or the times are inverted
    """
    with span("work_log_service.create_log"):
        # Guard: Only Team Leaders author logs
        if not log_state_machine.can_create(actor=actor):
            msg = f"{actor.role} {actor.id} may not create work logs"
            raise AuthorizationError(msg)

        payload = parse_payload(WorkLogCreate, data)
        record = await db_client.create_record(
            collection=COLLECTION,
            data={
                **payload.model_dump(mode="json"),
                "team_leader_id": actor.id,
                "status": WorkLogStatus.DRAFT,
            },
        )

        log_with_user_context(logger, "info", "Work log created", user_id=actor.id, log_id=record["id"])
        return WorkLog(**record)


async def get_log(*, actor: Actor, log_id: str) -> WorkLog:
    """Get a log the actor is allowed to see.

    Raises:
        db_client.RecordNotFoundError: If the log does not exist
        AuthorizationError: If a Team Leader asks for someone else's log
    """
    with span("work_log_service.get_log"):
        log = await _load(log_id=log_id)
        if not log_state_machine.can_view(actor=actor, log=log):
            msg = f"{actor.role} {actor.id} may not view log {log_id}"
            raise AuthorizationError(msg)
        return log


async def update_log(*, actor: Actor, log_id: str, changes: WorkLogUpdate | Mapping[str, Any]) -> WorkLog:
    """Change the content of a draft log.

    Raises:
        InvalidStateError: If the log is not a draft
        AuthorizationError: If the actor does not own the log
        ValidationError: If the changes are invalid or touch owner, status or ids
    """
    with span("work_log_service.update_log"):
        async with db_client.transaction():
            log = await _load(log_id=log_id)
            log_state_machine.check_action(actor=actor, log=log, action=LogAction.UPDATE)

            update = parse_payload(WorkLogUpdate, changes)
            fields = update.changes()
            if not fields:
                return log

            start_time = update.start_time if "start_time" in fields else log.start_time
            end_time = update.end_time if "end_time" in fields else log.end_time
            if end_time <= start_time:
                msg = "end_time must be after start_time"
                raise ValidationError(msg)

            try:
                record = await db_client.update_record(
                    collection=COLLECTION,
                    record_id=log_id,
                    data=fields,
                    expected={"status": WorkLogStatus.DRAFT, "team_leader_id": actor.id},
                )
            except db_client.StaleRecordError as e:
                msg = f"Log {log_id} is no longer an editable draft"
                raise InvalidStateError(msg) from e

        log_with_user_context(
            logger,
            "info",
            "Work log updated",
            user_id=actor.id,
            log_id=log_id,
            fields=sorted(fields),
        )
        return WorkLog(**record)


async def submit_log(*, actor: Actor, log_id: str) -> WorkLog:
    """Submit a draft log for approval and notify every Manager.

    The status change and the notifications commit together.

    Raises:
        InvalidStateError: If the log is not a draft
        AuthorizationError: If the actor does not own the log
    """
    with span("work_log_service.submit_log"):
        async with db_client.transaction():
            log = await _load(log_id=log_id)
            target = log_state_machine.check_action(actor=actor, log=log, action=LogAction.SUBMIT)
            submitted = await _swap_status(log=log, target=target)
            await notification_service.notify_log_submitted(log=submitted)

        log_with_user_context(logger, "info", "Work log submitted", user_id=actor.id, log_id=log_id)
        return submitted


async def approve_log(*, actor: Actor, log_id: str) -> WorkLog:
    """Approve a submitted log and notify its owner.

    Raises:
        InvalidStateError: If the log is not submitted
        AuthorizationError: If the actor is not a Manager
    """
    with span("work_log_service.approve_log"):
        async with db_client.transaction():
            log = await _load(log_id=log_id)
            target = log_state_machine.check_action(actor=actor, log=log, action=LogAction.APPROVE)
            approved = await _swap_status(log=log, target=target)
            await notification_service.notify_log_approved(log=approved)

        log_with_user_context(logger, "info", "Work log approved", user_id=actor.id, log_id=log_id)
        return approved


async def delete_log(*, actor: Actor, log_id: str) -> None:
    """Delete a draft log.

    Raises:
        InvalidStateError: If the log is not a draft
        AuthorizationError: If the actor does not own the log
    """
    with span("work_log_service.delete_log"):
        async with db_client.transaction():
            log = await _load(log_id=log_id)
            log_state_machine.check_action(actor=actor, log=log, action=LogAction.DELETE)
            try:
                await db_client.delete_record(
                    collection=COLLECTION,
                    record_id=log_id,
                    expected={"status": WorkLogStatus.DRAFT, "team_leader_id": actor.id},
                )
            except db_client.StaleRecordError as e:
                msg = f"Log {log_id} is no longer a deletable draft"
                raise InvalidStateError(msg) from e

        log_with_user_context(logger, "info", "Work log deleted", user_id=actor.id, log_id=log_id)


def _visibility_terms(*, actor: Actor) -> list[str]:
    match actor.role:
        case UserRole.TEAM_LEADER:
            return [f'team_leader_id = "{db_client.sanitize_param(actor.id)}"']
        case UserRole.MANAGER:
            return []
        case _:
            assert_never(actor.role)


def build_filter_query(*, actor: Actor, criteria: LogFilter) -> str:
    """Compose the visibility scope and every supplied criterion into one AND filter."""
    terms = _visibility_terms(actor=actor)

    if criteria.team_leader_id:
        terms.append(f'team_leader_id = "{db_client.sanitize_param(criteria.team_leader_id)}"')
    if criteria.start_date:
        terms.append(f'date >= "{criteria.start_date.isoformat()}"')
    if criteria.end_date:
        terms.append(f'date <= "{criteria.end_date.isoformat()}"')
    if criteria.project_id:
        terms.append(f'project_id = "{db_client.sanitize_param(criteria.project_id)}"')
    if criteria.status:
        terms.append(f'status = "{criteria.status}"')
    if criteria.search_term:
        terms.append(f'work_description ~ "{db_client.sanitize_param(criteria.search_term)}"')

    return " && ".join(terms)


async def list_logs(*, actor: Actor, log_filter: LogFilter | Mapping[str, Any] | None = None) -> list[WorkLog]:
    """List the logs visible to the actor that match every supplied criterion.

    Team Leaders only ever see their own logs; Managers see all. Results come
    from one query, newest date first, then creation order.

    Raises:
        ValidationError: If the filter is invalid (e.g. start_date after end_date)
    """
    with span("work_log_service.list_logs"):
        criteria = parse_payload(LogFilter, log_filter if log_filter is not None else {})
        records = await db_client.list_all_records(
            collection=COLLECTION,
            filter_query=build_filter_query(actor=actor, criteria=criteria),
            sort=LIST_SORT,
        )
        return [WorkLog(**record) for record in records]
