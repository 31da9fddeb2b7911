"""Pure state transition rules for work log lifecycle management."""

from enum import StrEnum
from typing import assert_never

from sitelog.core.errors import AuthorizationError, InvalidStateError
from sitelog.domain.user import Actor, UserRole
from sitelog.domain.work_log import WorkLog, WorkLogStatus


class LogAction(StrEnum):
    """Actions that act on an existing log."""

    UPDATE = "update"
    SUBMIT = "submit"
    APPROVE = "approve"
    DELETE = "delete"


# Allowed status transitions; approved is terminal
TRANSITIONS: dict[WorkLogStatus, set[WorkLogStatus]] = {
    WorkLogStatus.DRAFT: {WorkLogStatus.SUBMITTED},
    WorkLogStatus.SUBMITTED: {WorkLogStatus.APPROVED},
    WorkLogStatus.APPROVED: set(),
}

# Status each action requires the log to be in
ALLOWED_FROM: dict[LogAction, WorkLogStatus] = {
    LogAction.UPDATE: WorkLogStatus.DRAFT,
    LogAction.SUBMIT: WorkLogStatus.DRAFT,
    LogAction.APPROVE: WorkLogStatus.SUBMITTED,
    LogAction.DELETE: WorkLogStatus.DRAFT,
}

# Status the log moves to; actions absent here leave status unchanged
NEXT_STATUS: dict[LogAction, WorkLogStatus] = {
    LogAction.SUBMIT: WorkLogStatus.SUBMITTED,
    LogAction.APPROVE: WorkLogStatus.APPROVED,
}


def can_create(*, actor: Actor) -> bool:
    """Only Team Leaders author logs."""
    match actor.role:
        case UserRole.TEAM_LEADER:
            return True
        case UserRole.MANAGER:
            return False
        case _:
            assert_never(actor.role)


def can_view(*, actor: Actor, log: WorkLog) -> bool:
    """Managers see every log, Team Leaders only their own."""
    match actor.role:
        case UserRole.MANAGER:
            return True
        case UserRole.TEAM_LEADER:
            return log.team_leader_id == actor.id
        case _:
            assert_never(actor.role)


def _is_permitted(*, actor: Actor, log: WorkLog, action: LogAction) -> bool:
    match actor.role:
        case UserRole.TEAM_LEADER:
            return action != LogAction.APPROVE and log.team_leader_id == actor.id
        case UserRole.MANAGER:
            return action == LogAction.APPROVE
        case _:
            assert_never(actor.role)


def check_action(*, actor: Actor, log: WorkLog, action: LogAction) -> WorkLogStatus:
    """Validate that ``actor`` may perform ``action`` on ``log`` right now.

    The status check runs first, so an action that is illegal from the log's
    current status fails with InvalidStateError whatever the actor's role.

    Returns:
        The status the log will hold after the action

    Raises:
        InvalidStateError: If the log's status does not allow the action
        AuthorizationError: If the actor's role or ownership does not allow it
    """
    required = ALLOWED_FROM[action]
    if log.status != required:
        msg = f"Cannot {action}: log {log.id} is {log.status}, must be {required}"
        raise InvalidStateError(msg)

    if not _is_permitted(actor=actor, log=log, action=action):
        msg = f"{actor.role} {actor.id} may not {action} log {log.id}"
        raise AuthorizationError(msg)

    target = NEXT_STATUS.get(action, log.status)
    if target != log.status and target not in TRANSITIONS[log.status]:
        msg = f"Cannot {action}: {log.status} -> {target} is not a valid transition"
        raise InvalidStateError(msg)
    return target
