# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging

WHY: Enforce role-based access control and create audit trail.
Roles are fixed (admin, vendor, team_leader, worker), so the role ->
permission mapping lives in code (permissions.py) rather than in tables.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Unapproved and inactive users hold no permissions
- Log denials only: Permission grants are not logged
"""

from ..extensions import db
from ..models import User, SecurityEvent
from ..permissions import permissions_for_role
from binaudit.time_utils import utcnow


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail.

    event_type examples:
    - PERMISSION_DENIED
    - ACCESS_DENIED (ownership check failed)
    - LOGIN_FAILED / LOGIN_SUCCESS
    - USER_APPROVED / USER_REJECTED
    """
    event = SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def get_user_permissions(user: User) -> set[str]:
    """
    Get all permission codes for a user.

    Returns an empty set for users that are inactive or still pending
    approval.
    """
    if not user.is_active or not user.is_approved:
        return set()
    return set(permissions_for_role(user.role))


def user_has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(
    user: User,
    permission_code: str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Denials are logged to security_events.
    """
    if user_has_permission(user, permission_code):
        return

    if not user.is_approved:
        reason = "Account pending approval"
    else:
        reason = f"Missing permission: {permission_code}"

    log_security_event(
        user_id=user.id,
        event_type="PERMISSION_DENIED",
        success=False,
        resource=resource,
        action=permission_code,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    raise PermissionDeniedError(reason)
