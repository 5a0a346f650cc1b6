# SPDX-License-Identifier: Apache-2.0

"""
Authorization domain logic for role-based access control.

Roles form a closed enumeration. Each role maps to a fixed set of
capabilities, and resource-scoped checks (hospital admin lists, request
ownership) are layered on top of the capability check.
"""

from typing import Dict, FrozenSet, List, Optional
from dataclasses import dataclass, field

from ..models.entities import UserContext, Hospital, BloodRequest
from ..models.enums import UserRole
from .errors import AuthorizationException

REQUEST_CREATE = "request:create"
REQUEST_READ = "request:read"
REQUEST_MATCH = "request:match"
REQUEST_UPDATE_STATUS = "request:update_status"
INVENTORY_READ = "inventory:read"
INVENTORY_WRITE = "inventory:write"
NOTIFICATION_READ = "notification:read"
HOSPITAL_REGISTER = "hospital:register"

ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[str]] = {
    UserRole.DONOR: frozenset({REQUEST_READ, NOTIFICATION_READ}),
    UserRole.RECIPIENT: frozenset({
        REQUEST_CREATE, REQUEST_READ, REQUEST_MATCH, REQUEST_UPDATE_STATUS, NOTIFICATION_READ
    }),
    UserRole.HOSPITAL_ADMIN: frozenset({
        REQUEST_CREATE, REQUEST_READ, REQUEST_MATCH, REQUEST_UPDATE_STATUS,
        INVENTORY_READ, INVENTORY_WRITE, NOTIFICATION_READ
    }),
    UserRole.SYSTEM_ADMIN: frozenset({
        REQUEST_READ, REQUEST_MATCH, REQUEST_UPDATE_STATUS,
        INVENTORY_READ, INVENTORY_WRITE, NOTIFICATION_READ, HOSPITAL_REGISTER
    }),
}


@dataclass
class AuthorizationResult:
    """Result of an authorization check."""
    allowed: bool
    reason: Optional[str] = None
    missing_capabilities: List[str] = field(default_factory=list)


def capabilities_for(role: str) -> FrozenSet[str]:
    """
    Get the capability set of a role.

    Args:
        role: Role value (string or UserRole)

    Returns:
        Frozen set of capability strings, empty for unknown roles
    """
    try:
        return ROLE_CAPABILITIES[UserRole(role)]
    except ValueError:
        return frozenset()


def check_capability(user_context: UserContext, capability: str) -> AuthorizationResult:
    """
    Check if the user's role grants a capability.

    Args:
        user_context: Authenticated user
        capability: Capability string to check

    Returns:
        AuthorizationResult indicating if the capability is granted
    """
    if capability in capabilities_for(user_context.role):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Role '{user_context.role}' lacks capability: {capability}",
        missing_capabilities=[capability]
    )


def _is_system_admin(user_context: UserContext) -> bool:
    return user_context.role == UserRole.SYSTEM_ADMIN


def _is_admin_of(user_context: UserContext, hospital: Optional[Hospital]) -> bool:
    return (
        hospital is not None
        and user_context.role == UserRole.HOSPITAL_ADMIN
        and hospital.is_admin(user_context.user_id)
    )


def _is_recipient_of(user_context: UserContext, blood_request: BloodRequest) -> bool:
    return (
        user_context.role == UserRole.RECIPIENT
        and user_context.user_id == blood_request.recipient_id
    )


def can_trigger_matching(
    user_context: UserContext,
    hospital: Hospital,
    blood_request: BloodRequest,
    allow_recipient: bool = False
) -> AuthorizationResult:
    """
    Check if a user can run donor matching for a request.

    System admins and admins of the request's hospital always can. The
    request's recipient can only when ``allow_recipient`` is enabled.
    """
    capability = check_capability(user_context, REQUEST_MATCH)
    if not capability.allowed:
        return capability

    if _is_system_admin(user_context) or _is_admin_of(user_context, hospital):
        return AuthorizationResult(allowed=True)

    if allow_recipient and _is_recipient_of(user_context, blood_request):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason="Not authorized to match donors for this request"
    )


def can_update_request_status(
    user_context: UserContext,
    hospital: Optional[Hospital],
    blood_request: BloodRequest
) -> AuthorizationResult:
    """Check if a user can fulfil or cancel a request."""
    capability = check_capability(user_context, REQUEST_UPDATE_STATUS)
    if not capability.allowed:
        return capability

    if (_is_system_admin(user_context)
            or _is_admin_of(user_context, hospital)
            or _is_recipient_of(user_context, blood_request)):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason="Not authorized to update request status"
    )


def can_view_request(
    user_context: UserContext,
    hospital: Optional[Hospital],
    blood_request: BloodRequest
) -> AuthorizationResult:
    """Check if a user can view a request's details."""
    if (_is_system_admin(user_context)
            or _is_admin_of(user_context, hospital)
            or user_context.user_id == blood_request.recipient_id
            or user_context.user_id in blood_request.matched_donor_ids):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason="Not authorized to view this request"
    )


def can_manage_inventory(user_context: UserContext, hospital: Hospital,
                         write: bool = True) -> AuthorizationResult:
    """Check if a user can read or change a hospital's inventory."""
    capability = check_capability(user_context, INVENTORY_WRITE if write else INVENTORY_READ)
    if not capability.allowed:
        return capability

    if _is_system_admin(user_context) or _is_admin_of(user_context, hospital):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason=f"Not authorized to {'update' if write else 'view'} this hospital inventory"
    )


def can_view_hospital(user_context: UserContext, hospital: Hospital) -> AuthorizationResult:
    if _is_system_admin(user_context) or _is_admin_of(user_context, hospital):
        return AuthorizationResult(allowed=True)

    return AuthorizationResult(
        allowed=False,
        reason="Not authorized to view this hospital"
    )


def enforce(result: AuthorizationResult) -> None:
    """Raise AuthorizationException when a check was denied."""
    if not result.allowed:
        raise AuthorizationException(result.reason or "Forbidden")
