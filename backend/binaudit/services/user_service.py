"""
User administration: creation per role and the approval workflow.

WHO CREATES WHOM:
- admin creates users of any role, pre-approved
- a team leader self-registers under a vendor and waits for that vendor
- a team leader creates workers, who wait for the OTP handshake
  (see otp_service.approve_worker_with_otp)

Approval is a plain flag flip (update_user_approval). Rejecting a pending
team leader deletes the row; workers are never deleted.

Functions flush but do not commit; routes own the transaction.
"""
from __future__ import annotations

from ..extensions import db
from ..models import User
from ..models.auth import ROLES, ROLE_ADMIN, ROLE_VENDOR, ROLE_TEAM_LEADER, ROLE_WORKER
from ..validation import ConflictError, NotFoundError, ValidationError
from . import session_service
from .access_service import AccessDeniedError, require_manages, scoped_users_query
from .auth_service import hash_password


def _ensure_username_free(username: str) -> None:
    if db.session.query(User.id).filter_by(username=username).first():
        raise ConflictError(f"Username '{username}' already exists")


def _new_user(**fields) -> User:
    user = User(**fields)
    db.session.add(user)
    db.session.flush()
    return user


def create_user(
    actor: User,
    username: str,
    password: str,
    role: str,
    warehouse_name: str | None = None,
    vendor_id: int | None = None,
    team_leader_id: int | None = None,
) -> User:
    """
    Admin creates a user of any role. The user starts approved.

    Team leaders need vendor_id and workers need team_leader_id; their
    warehouse is copied from that parent when not given explicitly.

    Raises:
        AccessDeniedError: actor is not an admin
        ValidationError: bad role or missing parent
        ConflictError: username taken
        PasswordValidationError: weak password
    """
    if actor.role != ROLE_ADMIN:
        raise AccessDeniedError("Only admins can create users directly")

    return provision_user(
        username,
        password,
        role,
        warehouse_name=warehouse_name,
        vendor_id=vendor_id,
        team_leader_id=team_leader_id,
    )


def provision_user(
    username: str,
    password: str,
    role: str,
    warehouse_name: str | None = None,
    vendor_id: int | None = None,
    team_leader_id: int | None = None,
) -> User:
    """Create an approved user without an acting admin (CLI bootstrap)."""
    if role not in ROLES:
        raise ValidationError(f"Invalid role: {role}")

    parent = None
    if role == ROLE_TEAM_LEADER:
        if vendor_id is None:
            raise ValidationError("vendor_id is required for team leaders")
        parent = _require_role(vendor_id, ROLE_VENDOR)
    elif role == ROLE_WORKER:
        if team_leader_id is None:
            raise ValidationError("team_leader_id is required for workers")
        parent = _require_role(team_leader_id, ROLE_TEAM_LEADER)

    _ensure_username_free(username)

    return _new_user(
        username=username,
        password_hash=hash_password(password),
        role=role,
        vendor_id=parent.id if role == ROLE_TEAM_LEADER else None,
        team_leader_id=parent.id if role == ROLE_WORKER else None,
        warehouse_name=warehouse_name or (parent.warehouse_name if parent else None),
        is_approved=True,
    )


def register_team_leader(username: str, password: str, vendor_id: int) -> User:
    """
    Public self-registration of a team leader under a vendor.

    The team leader starts pending; the vendor approves or rejects it.
    """
    vendor = _require_role(vendor_id, ROLE_VENDOR)
    if not vendor.is_approved or not vendor.is_active:
        raise ValidationError("Vendor is not accepting registrations")

    _ensure_username_free(username)

    return _new_user(
        username=username,
        password_hash=hash_password(password),
        role=ROLE_TEAM_LEADER,
        vendor_id=vendor.id,
        warehouse_name=vendor.warehouse_name,
        is_approved=False,
    )


def create_worker(team_leader: User, username: str, password: str) -> User:
    """Team leader creates a pending worker in its own warehouse."""
    if team_leader.role != ROLE_TEAM_LEADER:
        raise AccessDeniedError("Only team leaders can create workers")

    _ensure_username_free(username)

    return _new_user(
        username=username,
        password_hash=hash_password(password),
        role=ROLE_WORKER,
        team_leader_id=team_leader.id,
        warehouse_name=team_leader.warehouse_name,
        is_approved=False,
    )


def update_user_approval(user_id: int, approved: bool) -> User:
    """Set is_approved on a user. Storage-level write; callers check ownership."""
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    user.is_approved = approved
    db.session.flush()
    return user


def set_approval(actor: User, user_id: int, approved: bool) -> User:
    """Admin approval toggle for any user other than itself."""
    if actor.role != ROLE_ADMIN:
        raise AccessDeniedError("Only admins can toggle approval")
    if actor.id == user_id:
        raise ValidationError("Admins cannot change their own approval")
    require_manages(actor, user_id)
    return update_user_approval(user_id, approved)


def approve_team_leader(vendor: User, team_leader_id: int) -> User:
    team_leader = require_manages(vendor, team_leader_id, role=ROLE_TEAM_LEADER)
    return update_user_approval(team_leader.id, True)


def reject_team_leader(vendor: User, team_leader_id: int) -> str:
    """
    Delete a pending team leader. Irreversible.

    Only pending team leaders can be rejected; approved ones are kept
    because workers and counting records may reference them.

    Returns the deleted username.
    """
    team_leader = require_manages(vendor, team_leader_id, role=ROLE_TEAM_LEADER)
    if team_leader.is_approved:
        raise ValidationError("Approved team leaders cannot be rejected")
    if db.session.query(User.id).filter_by(team_leader_id=team_leader.id).first():
        raise ValidationError("Team leader already has workers")

    username = team_leader.username
    session_service.delete_user_sessions(team_leader.id)
    db.session.delete(team_leader)
    db.session.flush()
    return username


def list_users(actor: User, role: str | None = None, approved: bool | None = None) -> list[User]:
    """Users visible to the actor, newest first."""
    query = scoped_users_query(actor)
    if role is not None:
        if role not in ROLES:
            raise ValidationError(f"Invalid role: {role}")
        query = query.filter(User.role == role)
    if approved is not None:
        query = query.filter(User.is_approved.is_(approved))
    return query.order_by(User.created_at.desc(), User.id.desc()).all()


def _require_role(user_id: int, role: str) -> User:
    user = db.session.get(User, user_id)
    if not user or user.role != role:
        raise NotFoundError(f"{role.replace('_', ' ').title()} {user_id} not found")
    return user
