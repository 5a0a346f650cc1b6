# SPDX-License-Identifier: Apache-2.0

"""
Blood request status state machine.

Statuses only move forward: pending -> matched -> fulfilled, and any
non-terminal status may move to cancelled. Fulfilled and cancelled are
terminal.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from ..models.entities import BloodRequest, Hospital
from ..models.enums import RequestStatus, NotificationType
from .errors import InvalidTransitionException, ValidationException

TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.MATCHED, RequestStatus.CANCELLED}),
    RequestStatus.MATCHED: frozenset({RequestStatus.FULFILLED, RequestStatus.CANCELLED}),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}

# Statuses reachable through the public status-update operation.
# MATCHED is only ever set by donor matching.
EXTERNAL_TARGETS = frozenset({RequestStatus.FULFILLED, RequestStatus.CANCELLED})


@dataclass(frozen=True)
class StatusNotice:
    """A notification owed to one party after a transition."""
    user_id: str
    message: str
    type: NotificationType


def parse_status(value: str) -> RequestStatus:
    """Parse a status value, raising ValidationException when unknown."""
    try:
        return RequestStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in RequestStatus)
        raise ValidationException(
            f"Invalid status provided: '{value}'",
            [f"status must be one of: {allowed}"]
        )


def is_terminal(status: str) -> bool:
    return not TRANSITIONS[RequestStatus(status)]


def can_transition(current: str, target: str) -> bool:
    return RequestStatus(target) in TRANSITIONS[RequestStatus(current)]


def validate_transition(current: str, target: str, external: bool = False) -> RequestStatus:
    """
    Validate a status transition.

    Args:
        current: Current status
        target: Requested status
        external: True when requested through the public status endpoint,
            which may not set ``matched``

    Returns:
        The parsed target status

    Raises:
        ValidationException: target is not a known status
        InvalidTransitionException: the move is not allowed
    """
    target_status = parse_status(target)
    current_status = RequestStatus(current)

    if external and target_status not in EXTERNAL_TARGETS:
        raise InvalidTransitionException(
            current_status.value, target_status.value,
            f"Status '{target_status.value}' cannot be set directly; "
            "only 'fulfilled' or 'cancelled' are accepted"
        )

    if not can_transition(current_status, target_status):
        raise InvalidTransitionException(current_status.value, target_status.value)

    return target_status


def transition_notices(blood_request: BloodRequest, hospital: Optional[Hospital],
                       target: RequestStatus) -> List[StatusNotice]:
    """
    Notifications owed after a request enters a terminal status.

    The recipient, the hospital's first admin (when there is one) and every
    matched donor each get a status-specific message.
    """
    if target == RequestStatus.FULFILLED:
        recipient_msg = "Your blood request has been fulfilled!"
        admin_msg = f"Blood request {blood_request.id} has been fulfilled."
        donor_msg = "A blood donation request you were matched with has been fulfilled."
        types = (NotificationType.REQUEST_FULFILLED,
                 NotificationType.REQUEST_FULFILLED_ADMIN,
                 NotificationType.REQUEST_FULFILLED_DONOR)
    elif target == RequestStatus.CANCELLED:
        recipient_msg = "Your blood request has been cancelled."
        admin_msg = f"Blood request {blood_request.id} has been cancelled."
        donor_msg = "A blood donation request you were matched with has been cancelled."
        types = (NotificationType.REQUEST_CANCELLED,
                 NotificationType.REQUEST_CANCELLED_ADMIN,
                 NotificationType.REQUEST_CANCELLED_DONOR)
    else:
        return []

    notices = [StatusNotice(blood_request.recipient_id, recipient_msg, types[0])]
    if hospital is not None and hospital.primary_admin_id:
        notices.append(StatusNotice(hospital.primary_admin_id, admin_msg, types[1]))
    notices.extend(
        StatusNotice(donor_id, donor_msg, types[2])
        for donor_id in blood_request.matched_donor_ids
    )
    return notices
