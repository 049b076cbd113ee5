# Overview: Bearer-token sessions for logged-in users.

"""
Login sessions.

The client holds a random 64-hex-char token; only its SHA-256 digest is
stored. A session dies at whichever comes first:
- SESSION_ABSOLUTE_TIMEOUT after login (expires_at)
- SESSION_IDLE_TIMEOUT without a request (revoked on the next attempt)
- logout, or the owning user being deactivated
"""

import secrets
import hashlib
from datetime import timedelta
from ..extensions import db
from ..models import SessionToken, User
from binaudit.time_utils import utcnow


SESSION_ABSOLUTE_TIMEOUT = timedelta(hours=24)
SESSION_IDLE_TIMEOUT = timedelta(hours=2)


def generate_token() -> str:
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    # High-entropy input, so an unsalted fast digest is enough
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def _live_session(token: str) -> SessionToken | None:
    return db.session.query(SessionToken).filter_by(
        token_hash=hash_token(token),
        is_revoked=False
    ).first()


def _revoke(session: SessionToken, reason: str) -> None:
    session.is_revoked = True
    session.revoked_at = utcnow()
    session.revoked_reason = reason
    db.session.commit()


def create_session(
    user_id: int,
    user_agent: str | None = None,
    ip_address: str | None = None
) -> tuple[SessionToken, str]:
    """
    Open a session for user_id and return (row, token).

    The token is handed to the client once and never persisted.
    """
    if db.session.get(User, user_id) is None:
        raise ValueError("User not found")

    token = generate_token()
    now = utcnow()
    session = SessionToken(
        user_id=user_id,
        token_hash=hash_token(token),
        created_at=now,
        last_used_at=now,
        expires_at=now + SESSION_ABSOLUTE_TIMEOUT,
        user_agent=user_agent,
        ip_address=ip_address,
        is_revoked=False
    )
    db.session.add(session)
    db.session.commit()
    return session, token


def validate_session(token: str) -> User | None:
    """
    Resolve a bearer token to its user, touching last_used_at.

    None for unknown, revoked, expired or idle tokens, and for deactivated
    users. Idle and deactivated cases revoke the row as a side effect.
    """
    session = _live_session(token)
    if session is None:
        return None

    now = utcnow()
    if session.expires_at < now:
        return None
    if now - session.last_used_at > SESSION_IDLE_TIMEOUT:
        _revoke(session, "Idle timeout")
        return None

    user = session.user
    if user is None or not user.is_active:
        _revoke(session, "User account deactivated")
        return None

    session.last_used_at = now
    db.session.commit()
    return user


def revoke_session(token: str, reason: str = "User logout") -> bool:
    """False when the token was unknown or already revoked."""
    session = _live_session(token)
    if session is None:
        return False
    _revoke(session, reason)
    return True


def delete_user_sessions(user_id: int) -> int:
    """
    Delete every session token of a user.

    Used before a rejected team leader's row is deleted. Does not commit;
    the caller's transaction removes the user in the same commit.
    """
    return db.session.query(SessionToken).filter_by(user_id=user_id).delete(
        synchronize_session=False
    )
