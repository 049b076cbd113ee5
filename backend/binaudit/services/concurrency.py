# Overview: Conditional single-statement writes used where two requests may race on one row.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db


def compare_and_set(model, criteria: list, values: dict) -> int:
    """
    UPDATE model SET values WHERE criteria, as one statement.

    The criteria carry the expected current state (e.g. is_used = false,
    status = 'active'), so of two concurrent callers at most one matches.
    Returns the number of rows changed; 0 means the expected state was gone.

    Values may be SQL expressions (Model.col + 1) so increments happen in
    the database rather than read-modify-write in Python.

    NOTE: synchronize_session=False; callers refresh any loaded instance.
    """
    result = db.session.execute(
        update(model)
        .where(*criteria)
        .values(values)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
