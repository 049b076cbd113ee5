# Overview: Counting record ledger; append-only log of bin counts.

"""
Counting Record Ledger

APPEND-ONLY: append_record() is the only writer. Rows are never updated
or deleted.

difference = qty_counted - qty_as_per_books when a book quantity is
supplied; otherwise both stay null.
"""
from __future__ import annotations

from datetime import date

from ..extensions import db
from ..models import BinMaster, CountingRecord, CountingSession, User
from binaudit.time_utils import utctoday


def append_record(
    session: CountingSession,
    worker: User,
    bin_: BinMaster,
    qty: int,
    qty_as_per_books: int | None = None,
    reason_for_difference: str | None = None,
) -> CountingRecord:
    """
    Append one bin-count event to the ledger. Inputs are already validated
    by counting_service.record_count.
    """
    team_leader = worker.team_leader
    difference = qty - qty_as_per_books if qty_as_per_books is not None else None

    record = CountingRecord(
        session_id=session.id,
        warehouse_name=bin_.warehouse_name,
        date=utctoday(),
        team_leader_name=team_leader.username if team_leader else "",
        username=worker.username,
        bin_no=bin_.bin_code,
        qty_counted=qty,
        qty_as_per_books=qty_as_per_books,
        difference=difference,
        reason_for_difference=reason_for_difference,
    )
    db.session.add(record)
    db.session.flush()
    return record


def list_records(
    usernames=None,
    username: str | None = None,
    session_id: int | None = None,
    warehouse_name: str | None = None,
    since: date | None = None,
    limit: int = 200,
) -> list[CountingRecord]:
    """
    Counting records, newest first.

    usernames: optional SELECT/collection restricting visible rows
    (see access_service.visible_usernames).
    """
    query = db.session.query(CountingRecord)
    if usernames is not None:
        query = query.filter(CountingRecord.username.in_(usernames))
    if username:
        query = query.filter(CountingRecord.username == username)
    if session_id is not None:
        query = query.filter(CountingRecord.session_id == session_id)
    if warehouse_name:
        query = query.filter(CountingRecord.warehouse_name == warehouse_name)
    if since:
        query = query.filter(CountingRecord.date >= since)
    return query.order_by(CountingRecord.created_at.desc(), CountingRecord.id.desc()).limit(limit).all()
