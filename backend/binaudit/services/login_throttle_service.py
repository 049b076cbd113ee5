"""
Brute-force protection for /api/auth/login.

Failed logins are kept as LOGIN_FAILED rows in security_events, keyed by
the attempted username in the action column. MAX_FAILED_ATTEMPTS inside
LOCKOUT_WINDOW locks that username until LOCKOUT_DURATION has passed since
the latest failure. Unknown usernames are throttled the same way.
"""

from datetime import timedelta
from ..extensions import db
from ..models import SecurityEvent, User
from binaudit.time_utils import utcnow


MAX_FAILED_ATTEMPTS = 10
LOCKOUT_WINDOW = timedelta(minutes=15)
LOCKOUT_DURATION = timedelta(minutes=15)

LOGIN_RESOURCE = "/api/auth/login"


def _failed_logins(username: str):
    return db.session.query(SecurityEvent).filter(
        SecurityEvent.event_type == "LOGIN_FAILED",
        SecurityEvent.action == username[:64],
    )


def get_recent_failed_attempts(username: str) -> int:
    cutoff = utcnow() - LOCKOUT_WINDOW
    return _failed_logins(username).filter(SecurityEvent.occurred_at >= cutoff).count()


def is_account_locked(username: str) -> tuple[bool, int | None]:
    """(locked, seconds until unlock). The second item is None when not locked."""
    if get_recent_failed_attempts(username) < MAX_FAILED_ATTEMPTS:
        return False, None

    latest = _failed_logins(username).order_by(SecurityEvent.occurred_at.desc()).first()
    unlock_at = latest.occurred_at + LOCKOUT_DURATION
    now = utcnow()
    if now >= unlock_at:
        return False, None
    return True, int((unlock_at - now).total_seconds())


def _record(event_type: str, username: str, user_id: int | None, success: bool,
            ip_address: str | None, user_agent: str | None, reason: str | None = None) -> None:
    db.session.add(SecurityEvent(
        user_id=user_id,
        event_type=event_type,
        resource=LOGIN_RESOURCE,
        action=username[:64],
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow(),
    ))
    db.session.commit()


def record_failed_attempt(
    username: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    reason: str = "Invalid credentials"
) -> int:
    """Log a failed login; the result is the failure count inside the window, this one included."""
    user_id = db.session.query(User.id).filter_by(username=username).scalar()
    _record("LOGIN_FAILED", username, user_id, False, ip_address, user_agent, reason)
    return get_recent_failed_attempts(username)


def record_successful_login(
    user_id: int,
    username: str,
    ip_address: str | None = None,
    user_agent: str | None = None
) -> None:
    _record("LOGIN_SUCCESS", username, user_id, True, ip_address, user_agent)
