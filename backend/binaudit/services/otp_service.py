"""
Worker approval OTP service.

WHY: A team leader approves a new worker only after the worker reads out a
one-time passcode in person. The code is issued by the team leader, shown
to the worker on the worker's own login, and typed back in by the team
leader.

RULES:
- Codes are 6 random digits, "000000"-"999999", kept as text
- Valid for OTP_TTL after issuance
- Single use: consumption is one conditional UPDATE (is_used false -> true)
- Issuing again does not invalidate earlier outstanding codes
- Every failure is reported as the same InvalidOrExpiredOTPError, whether
  the code was wrong, expired, already used, or lost a race
"""
from __future__ import annotations

import secrets
from datetime import timedelta

from ..extensions import db
from ..models import OTPRequest, User
from ..models.auth import ROLE_TEAM_LEADER, ROLE_WORKER
from binaudit.time_utils import utcnow
from .access_service import AccessDeniedError, require_manages
from .concurrency import compare_and_set
from .user_service import update_user_approval


OTP_TTL = timedelta(minutes=10)
OTP_DIGITS = 6


class InvalidOrExpiredOTPError(Exception):
    """Raised for any OTP verification failure. The cause is deliberately not exposed."""

    def __init__(self, message: str = "Invalid or expired OTP"):
        super().__init__(message)


def generate_otp_code() -> str:
    return f"{secrets.randbelow(10 ** OTP_DIGITS):0{OTP_DIGITS}d}"


def issue_otp(worker_id: int, team_leader_id: int) -> OTPRequest:
    """
    Create a new outstanding OTP for (worker, team leader).

    Ownership is checked by issue_for_worker(); this is the raw issuance.
    """
    now = utcnow()
    otp = OTPRequest(
        worker_id=worker_id,
        team_leader_id=team_leader_id,
        otp_code=generate_otp_code(),
        is_used=False,
        expires_at=now + OTP_TTL,
        created_at=now,
    )
    db.session.add(otp)
    db.session.flush()
    return otp


def issue_for_worker(team_leader: User, worker_id: int) -> OTPRequest:
    """Team leader issues an OTP for one of its own workers."""
    if team_leader.role != ROLE_TEAM_LEADER:
        raise AccessDeniedError("Only team leaders can issue OTPs")
    worker = require_manages(team_leader, worker_id, role=ROLE_WORKER)
    return issue_otp(worker.id, team_leader.id)


def fetch_eligible_otp(worker_id: int, otp_code: str) -> OTPRequest | None:
    """Newest unused, unexpired request matching (worker, code)."""
    return db.session.query(OTPRequest).filter(
        OTPRequest.worker_id == worker_id,
        OTPRequest.otp_code == otp_code,
        OTPRequest.is_used.is_(False),
        OTPRequest.expires_at > utcnow(),
    ).order_by(OTPRequest.created_at.desc(), OTPRequest.id.desc()).first()


def mark_otp_used(otp_id: int) -> bool:
    """
    Consume an OTP. Returns False if it was already used.

    Single conditional write: of two concurrent verifications of the same
    row, only one sees rowcount 1.
    """
    changed = compare_and_set(
        OTPRequest,
        [OTPRequest.id == otp_id, OTPRequest.is_used.is_(False)],
        {"is_used": True, "used_at": utcnow()},
    )
    return changed == 1


def verify_otp(worker_id: int, otp_code: str) -> OTPRequest:
    """
    Verify and consume a worker's OTP.

    Returns the consumed OTPRequest. Approving the worker is the caller's
    job (see approve_worker_with_otp).

    Raises:
        InvalidOrExpiredOTPError: no eligible request, or it was consumed concurrently
    """
    if not isinstance(otp_code, str):
        raise InvalidOrExpiredOTPError()

    otp = fetch_eligible_otp(worker_id, otp_code.strip())
    if otp is None or not mark_otp_used(otp.id):
        raise InvalidOrExpiredOTPError()

    db.session.refresh(otp)
    return otp


def approve_worker_with_otp(team_leader: User, worker_id: int, otp_code: str) -> User:
    """
    Team leader enters the code its worker read out; on success the worker
    is approved.

    Raises:
        NotFoundError / AccessDeniedError: worker missing or not the team leader's
        InvalidOrExpiredOTPError: code rejected
    """
    if team_leader.role != ROLE_TEAM_LEADER:
        raise AccessDeniedError("Only team leaders can verify OTPs")
    worker = require_manages(team_leader, worker_id, role=ROLE_WORKER)

    verify_otp(worker.id, otp_code)
    return update_user_approval(worker.id, True)


def list_pending_otps(team_leader_id: int) -> list[OTPRequest]:
    """Outstanding (unused, unexpired) OTPs issued by a team leader."""
    return db.session.query(OTPRequest).filter(
        OTPRequest.team_leader_id == team_leader_id,
        OTPRequest.is_used.is_(False),
        OTPRequest.expires_at > utcnow(),
    ).order_by(OTPRequest.created_at.desc(), OTPRequest.id.desc()).all()


def list_worker_otps(worker_id: int) -> list[OTPRequest]:
    """Outstanding OTPs addressed to a worker, for the worker to read out."""
    return db.session.query(OTPRequest).filter(
        OTPRequest.worker_id == worker_id,
        OTPRequest.is_used.is_(False),
        OTPRequest.expires_at > utcnow(),
    ).order_by(OTPRequest.created_at.desc(), OTPRequest.id.desc()).all()
