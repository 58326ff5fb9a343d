"""
Audit and Response State Machines

Every legal transition is listed in a table keyed by (state, operation).
Services call ``transition_audit`` / ``transition_response`` before any
write; anything not in the table raises a named error, so no operation
silently does nothing on an illegal state.

Audit:
    DRAFT --start--> IN_PROGRESS --close--> CLOSED --archive--> ARCHIVED
    assign_member is legal in DRAFT, evaluate in IN_PROGRESS and
    create_revision in CLOSED (none of them change the audit's state).

Response:
    NOT_STARTED --start/update--> IN_PROGRESS --complete--> COMPLETED --review--> REVIEWED
    update on a COMPLETED response reopens it; reset returns any started
    response to NOT_STARTED.
"""

from typing import Any, Dict, Tuple

from ...exceptions import (
    AuditNotActiveError,
    InvalidStateTransitionError,
    NotClosedError,
    NotCompletedError,
)
from ...models.enums import AuditOperation, AuditStatus, ResponseOperation, ResponseStatus

AUDIT_TRANSITIONS: Dict[Tuple[AuditStatus, AuditOperation], AuditStatus] = {
    (AuditStatus.DRAFT, AuditOperation.ASSIGN_MEMBER): AuditStatus.DRAFT,
    (AuditStatus.DRAFT, AuditOperation.START): AuditStatus.IN_PROGRESS,
    (AuditStatus.IN_PROGRESS, AuditOperation.EVALUATE): AuditStatus.IN_PROGRESS,
    (AuditStatus.IN_PROGRESS, AuditOperation.CLOSE): AuditStatus.CLOSED,
    (AuditStatus.CLOSED, AuditOperation.ARCHIVE): AuditStatus.ARCHIVED,
    (AuditStatus.CLOSED, AuditOperation.CREATE_REVISION): AuditStatus.CLOSED,
}

RESPONSE_TRANSITIONS: Dict[Tuple[ResponseStatus, ResponseOperation], ResponseStatus] = {
    (ResponseStatus.NOT_STARTED, ResponseOperation.START): ResponseStatus.IN_PROGRESS,
    (ResponseStatus.NOT_STARTED, ResponseOperation.UPDATE): ResponseStatus.IN_PROGRESS,
    (ResponseStatus.NOT_STARTED, ResponseOperation.COMPLETE): ResponseStatus.COMPLETED,
    (ResponseStatus.IN_PROGRESS, ResponseOperation.UPDATE): ResponseStatus.IN_PROGRESS,
    (ResponseStatus.IN_PROGRESS, ResponseOperation.COMPLETE): ResponseStatus.COMPLETED,
    (ResponseStatus.IN_PROGRESS, ResponseOperation.RESET): ResponseStatus.NOT_STARTED,
    (ResponseStatus.COMPLETED, ResponseOperation.UPDATE): ResponseStatus.IN_PROGRESS,
    (ResponseStatus.COMPLETED, ResponseOperation.REVIEW): ResponseStatus.REVIEWED,
    (ResponseStatus.COMPLETED, ResponseOperation.RESET): ResponseStatus.NOT_STARTED,
    (ResponseStatus.REVIEWED, ResponseOperation.RESET): ResponseStatus.NOT_STARTED,
}


def transition_audit(current: AuditStatus, operation: AuditOperation, audit_id: Any = None) -> AuditStatus:
    """
    Return the audit status after ``operation``.

    Raises:
        NotClosedError: create_revision outside CLOSED
        AuditNotActiveError: evaluate outside IN_PROGRESS
        InvalidStateTransitionError: any other illegal (state, operation) pair
    """
    current = AuditStatus(current)
    operation = AuditOperation(operation)

    target = AUDIT_TRANSITIONS.get((current, operation))
    if target is not None:
        return target

    if operation == AuditOperation.CREATE_REVISION:
        raise NotClosedError(audit_id, current)
    if operation == AuditOperation.EVALUATE:
        raise AuditNotActiveError(audit_id, current)
    raise InvalidStateTransitionError(
        current,
        operation.value,
        message=f"Cannot {operation.value.replace('_', ' ')} audit {audit_id} while {current.value}",
        entity_id=audit_id,
    )


def transition_response(
    current: ResponseStatus, operation: ResponseOperation, response_id: Any = None
) -> ResponseStatus:
    """
    Return the response status after ``operation``.

    Raises:
        NotCompletedError: review of a response that is not COMPLETED
        InvalidStateTransitionError: any other illegal (state, operation) pair
    """
    current = ResponseStatus(current)
    operation = ResponseOperation(operation)

    target = RESPONSE_TRANSITIONS.get((current, operation))
    if target is not None:
        return target

    if operation == ResponseOperation.REVIEW:
        raise NotCompletedError(response_id, current)
    raise InvalidStateTransitionError(
        current,
        operation.value,
        message=f"Cannot {operation.value} response {response_id} while {current.value}",
        entity_id=response_id,
    )


def can_transition_audit(current: AuditStatus, operation: AuditOperation) -> bool:
    return (AuditStatus(current), AuditOperation(operation)) in AUDIT_TRANSITIONS


def can_transition_response(current: ResponseStatus, operation: ResponseOperation) -> bool:
    return (ResponseStatus(current), ResponseOperation(operation)) in RESPONSE_TRANSITIONS
