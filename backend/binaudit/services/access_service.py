"""
Ownership Rules: who may act on which user.

WHY: Permission codes say WHAT a role may do; these helpers say ON WHOM.
Every service that takes a target user id from client input calls
require_manages() (or filters with scoped_users_query()) before touching
the row.

RULES:
1. admin manages every user
2. vendor manages team leaders whose vendor_id is the vendor,
   and the workers of those team leaders
3. team_leader manages workers whose team_leader_id is the team leader
4. worker manages nobody (acts only on itself)
"""

from sqlalchemy import false, select

from ..extensions import db
from ..models import User
from ..models.auth import ROLE_ADMIN, ROLE_VENDOR, ROLE_TEAM_LEADER, ROLE_WORKER
from ..validation import NotFoundError


class AccessDeniedError(Exception):
    """Raised when the actor does not own the target user."""
    pass


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError(f"User {user_id} not found")
    return user


def manages(actor: User, target: User) -> bool:
    if actor.role == ROLE_ADMIN:
        return True

    if actor.role == ROLE_VENDOR:
        if target.role == ROLE_TEAM_LEADER:
            return target.vendor_id == actor.id
        if target.role == ROLE_WORKER and target.team_leader is not None:
            return target.team_leader.vendor_id == actor.id
        return False

    if actor.role == ROLE_TEAM_LEADER:
        return target.role == ROLE_WORKER and target.team_leader_id == actor.id

    return False


def require_manages(actor: User, target_id: int, role: str | None = None) -> User:
    """
    Load the target user and check the actor owns it.

    If role is given the target must also have that role; a mismatch is
    reported as not found so callers cannot probe other roles by id.

    Raises:
        NotFoundError: target missing (or wrong role)
        AccessDeniedError: target exists but belongs to someone else
    """
    target = get_user(target_id)
    if role is not None and target.role != role:
        raise NotFoundError(f"User {target_id} not found")
    if not manages(actor, target):
        raise AccessDeniedError(f"User {target_id} is not managed by {actor.username}")
    return target


def _scope_criteria(actor: User) -> list:
    if actor.role == ROLE_ADMIN:
        return []

    if actor.role == ROLE_VENDOR:
        team_leader_ids = select(User.id).where(
            User.role == ROLE_TEAM_LEADER,
            User.vendor_id == actor.id,
        )
        return [
            db.or_(
                db.and_(User.role == ROLE_TEAM_LEADER, User.vendor_id == actor.id),
                db.and_(User.role == ROLE_WORKER, User.team_leader_id.in_(team_leader_ids)),
            )
        ]

    if actor.role == ROLE_TEAM_LEADER:
        return [User.role == ROLE_WORKER, User.team_leader_id == actor.id]

    return [false()]


def scoped_users_query(actor: User):
    """Query of the users the actor may see (itself excluded for non-admins)."""
    return db.session.query(User).filter(*_scope_criteria(actor))


def visible_usernames(actor: User):
    """SELECT of usernames whose counting records and efficiency rows the actor may read."""
    if actor.role == ROLE_WORKER:
        return select(User.username).where(User.id == actor.id)
    stmt = select(User.username)
    criteria = _scope_criteria(actor)
    if criteria:
        stmt = stmt.where(*criteria)
    return stmt
