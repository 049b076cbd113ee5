"""
Counting session service.

LIFECYCLE:
1. (no session) -- start_session --> active
2. active -- record_count --> active (ledger row appended, totals incremented)
3. active -- end_session --> completed (efficiency row written, terminal)

A worker holds at most one active session. A completed session is never
reopened; the worker starts a new one.

Totals are incremented and sessions closed with conditional UPDATEs
(WHERE status = 'active'), so a count recorded concurrently with an end
either lands before the close or fails.

Functions flush but do not commit; routes own the transaction.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import CountingRecord, CountingSession, User, WorkerEfficiency
from ..models.auth import ROLE_WORKER
from ..models.counting import SESSION_STATUS_ACTIVE, SESSION_STATUS_COMPLETED
from ..validation import ValidationError, parse_optional_quantity, parse_quantity
from binaudit.time_utils import utcnow
from . import bin_service, efficiency_service, ledger_service
from .concurrency import compare_and_set


class CountingSessionError(Exception):
    """Raised when an operation is not allowed in the session's current state."""
    pass


def _require_worker(worker: User) -> None:
    if worker.role != ROLE_WORKER:
        raise CountingSessionError("Only workers run counting sessions")
    if not worker.is_approved:
        raise CountingSessionError("Worker is pending approval")


def get_active_session(worker_id: int) -> CountingSession | None:
    return db.session.query(CountingSession).filter_by(
        worker_id=worker_id,
        status=SESSION_STATUS_ACTIVE,
    ).first()


def insert_session(worker_id: int) -> CountingSession:
    """
    Insert an active session. The partial unique index on
    (worker_id) WHERE status = 'active' rejects a second one.
    """
    session = CountingSession(
        worker_id=worker_id,
        start_time=utcnow(),
        status=SESSION_STATUS_ACTIVE,
        total_bins_counted=0,
        total_qty_counted=0,
    )
    db.session.add(session)
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise CountingSessionError("Worker already has an active counting session")
    return session


def start_session(worker: User) -> CountingSession:
    """
    Start a counting session for an approved worker.

    Raises:
        CountingSessionError: not an approved worker, or a session is already active
    """
    _require_worker(worker)

    if get_active_session(worker.id) is not None:
        raise CountingSessionError("Worker already has an active counting session")

    return insert_session(worker.id)


def record_count(
    worker: User,
    bin_code: str,
    qty,
    qty_as_per_books=None,
    reason_for_difference: str | None = None,
) -> CountingRecord:
    """
    Record one bin count in the worker's active session.

    qty is validated before anything is written.

    Raises:
        ValidationError: qty not a non-negative integer, or bin outside the worker's warehouse
        NotFoundError: unknown bin
        CountingSessionError: no active session
    """
    _require_worker(worker)

    qty = parse_quantity(qty, "qty")
    qty_as_per_books = parse_optional_quantity(qty_as_per_books, "qty_as_per_books")

    session = get_active_session(worker.id)
    if session is None:
        raise CountingSessionError("No active counting session")

    bin_ = bin_service.get_bin_by_code(bin_code)
    if bin_.warehouse_name != worker.warehouse_name:
        raise ValidationError(f"Bin {bin_code} is not in warehouse {worker.warehouse_name}")

    record = ledger_service.append_record(
        session,
        worker,
        bin_,
        qty,
        qty_as_per_books=qty_as_per_books,
        reason_for_difference=reason_for_difference,
    )

    update_session_totals(session, qty)
    return record


def update_session_totals(session: CountingSession, qty: int) -> None:
    """Atomic totals increment; fails if the session closed meanwhile."""
    changed = compare_and_set(
        CountingSession,
        [CountingSession.id == session.id, CountingSession.status == SESSION_STATUS_ACTIVE],
        {
            CountingSession.total_bins_counted: CountingSession.total_bins_counted + 1,
            CountingSession.total_qty_counted: CountingSession.total_qty_counted + qty,
        },
    )
    if changed != 1:
        raise CountingSessionError("Counting session is no longer active")
    db.session.refresh(session)


def close_session(session: CountingSession) -> None:
    """Atomic active -> completed transition."""
    changed = compare_and_set(
        CountingSession,
        [CountingSession.id == session.id, CountingSession.status == SESSION_STATUS_ACTIVE],
        {"status": SESSION_STATUS_COMPLETED, "end_time": utcnow()},
    )
    if changed != 1:
        raise CountingSessionError("No active counting session")
    db.session.refresh(session)


def end_session(worker: User) -> tuple[CountingSession, WorkerEfficiency]:
    """
    Close the worker's active session and score it.

    Sessions with zero bins can be ended; they score 0.

    Raises:
        CountingSessionError: no active session (e.g. ending twice)
    """
    if worker.role != ROLE_WORKER:
        raise CountingSessionError("Only workers run counting sessions")

    session = get_active_session(worker.id)
    if session is None:
        raise CountingSessionError("No active counting session")

    close_session(session)
    efficiency = efficiency_service.record_efficiency(session, worker)
    return session, efficiency


def list_sessions(worker_id: int, limit: int = 50) -> list[CountingSession]:
    return db.session.query(CountingSession).filter_by(
        worker_id=worker_id,
    ).order_by(CountingSession.start_time.desc(), CountingSession.id.desc()).limit(limit).all()
