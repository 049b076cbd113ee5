"""
Worker efficiency scoring.

score = min(100, round(bins_counted / max(1, minutes) * 60))

i.e. bins per hour, capped at 100. Rounding is half-up, done on integers
so that 2.5 always rounds to 3.

RANKING: ranking is not computed against other workers. Every row is
written with RANKING_UNIMPLEMENTED and never revisited.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta

from ..extensions import db
from ..models import CountingSession, User, WorkerEfficiency
from binaudit.time_utils import utctoday


MAX_SCORE = 100
RANKING_UNIMPLEMENTED = 1

_ONE_MINUTE_US = timedelta(minutes=1) // timedelta(microseconds=1)


def round_half_up_ratio(numerator: int, denominator: int) -> int:
    """round(numerator / denominator) with halves rounded up, for non-negative ints."""
    return (2 * numerator + denominator) // (2 * denominator)


def score(bins_counted: int, minutes_elapsed: int) -> int:
    if bins_counted <= 0:
        return 0
    minutes = max(1, minutes_elapsed)
    return min(MAX_SCORE, round_half_up_ratio(bins_counted * 60, minutes))


def elapsed_minutes(start: datetime, end: datetime) -> int:
    """Whole minutes between start and end, half-up; 0 if end precedes start."""
    elapsed_us = (end - start) // timedelta(microseconds=1)
    if elapsed_us <= 0:
        return 0
    return round_half_up_ratio(elapsed_us, _ONE_MINUTE_US)


def record_efficiency(session: CountingSession, worker: User) -> WorkerEfficiency:
    """
    Write the efficiency row of a just-closed session. Called once, by
    counting_service.end_session.
    """
    minutes = elapsed_minutes(session.start_time, session.end_time)

    row = WorkerEfficiency(
        session_id=session.id,
        warehouse_name=worker.warehouse_name or "",
        date=utctoday(),
        username=worker.username,
        bins_counted=session.total_bins_counted,
        qty_counted=session.total_qty_counted,
        time_taken_minutes=minutes,
        efficiency_score=score(session.total_bins_counted, minutes),
        ranking=RANKING_UNIMPLEMENTED,
    )
    db.session.add(row)
    db.session.flush()
    return row


def list_efficiency(
    usernames=None,
    warehouse_name: str | None = None,
    username: str | None = None,
    on_date: date | None = None,
    limit: int = 100,
) -> list[WorkerEfficiency]:
    """
    Efficiency rows, best score first.

    usernames: optional SELECT/collection restricting visible rows
    (see access_service.visible_usernames).
    """
    query = db.session.query(WorkerEfficiency)
    if usernames is not None:
        query = query.filter(WorkerEfficiency.username.in_(usernames))
    if warehouse_name:
        query = query.filter(WorkerEfficiency.warehouse_name == warehouse_name)
    if username:
        query = query.filter(WorkerEfficiency.username == username)
    if on_date:
        query = query.filter(WorkerEfficiency.date == on_date)
    return query.order_by(
        WorkerEfficiency.efficiency_score.desc(),
        WorkerEfficiency.created_at.desc(),
    ).limit(limit).all()


def average_score(rows: list[WorkerEfficiency]) -> int:
    if not rows:
        return 0
    return round_half_up_ratio(sum(r.efficiency_score for r in rows), len(rows))
