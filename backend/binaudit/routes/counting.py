# Overview: Flask API routes for worker counting sessions and the record ledger.

"""
Counting routes.

WORKER FLOW:
1. POST /api/counting/session          -> start
2. POST /api/counting/session/records  -> one per bin counted
3. POST /api/counting/session/end      -> close + efficiency row
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import counting_service, ledger_service
from ..services.access_service import visible_usernames
from ..validation import ValidationError, optional_text, parse_int, parse_limit, require_text
from ..decorators import require_auth, require_permission, require_any_permission
from ..time_utils import parse_iso_date
from .responses import json_body, json_error

counting_bp = Blueprint("counting", __name__, url_prefix="/api/counting")


@counting_bp.get("/session")
@require_auth
@require_permission("COUNT_BINS")
def get_active_session():
    """The worker's active session, or null."""
    try:
        session = counting_service.get_active_session(g.current_user.id)
        return jsonify({"session": session.to_dict() if session else None}), 200
    except Exception as e:
        return json_error(e, "Failed to load counting session")


@counting_bp.post("/session")
@require_auth
@require_permission("COUNT_BINS")
def start_session():
    """
    Start a counting session.

    Returns:
        201: Session started
        409: A session is already active
    """
    try:
        session = counting_service.start_session(g.current_user)
        db.session.commit()
        current_app.logger.info("Counting session %s started by %s", session.id, g.current_user.username)
        return jsonify(session.to_dict()), 201
    except Exception as e:
        return json_error(e, "Failed to start counting session")


@counting_bp.post("/session/records")
@require_auth
@require_permission("COUNT_BINS")
def record_count():
    """
    Record a bin count in the active session.

    Request body:
    {
        "bin_code": str,
        "qty": int,
        "qty_as_per_books": int (optional),
        "reason_for_difference": str (optional)
    }

    Returns:
        201: {"record": ..., "session": ...}
        400: Invalid quantity, or bin outside the worker's warehouse
        404: Unknown bin
        409: No active session
    """
    try:
        data = json_body()
        record = counting_service.record_count(
            g.current_user,
            bin_code=require_text(data, "bin_code", max_length=64),
            qty=data.get("qty"),
            qty_as_per_books=data.get("qty_as_per_books"),
            reason_for_difference=optional_text(data, "reason_for_difference", max_length=1000),
        )
        db.session.commit()
        return jsonify({
            "record": record.to_dict(),
            "session": record.session.to_dict(),
        }), 201
    except Exception as e:
        return json_error(e, "Failed to record count")


@counting_bp.post("/session/end")
@require_auth
@require_permission("COUNT_BINS")
def end_session():
    """
    End the active session and compute efficiency.

    Returns:
        200: {"session": ..., "efficiency": ...}
        409: No active session
    """
    try:
        session, efficiency = counting_service.end_session(g.current_user)
        db.session.commit()
        current_app.logger.info(
            "Counting session %s ended by %s: %s bins, score %s",
            session.id, g.current_user.username, session.total_bins_counted, efficiency.efficiency_score,
        )
        return jsonify({
            "session": session.to_dict(),
            "efficiency": efficiency.to_dict(),
        }), 200
    except Exception as e:
        return json_error(e, "Failed to end counting session")


@counting_bp.get("/sessions")
@require_auth
@require_permission("COUNT_BINS")
def list_sessions():
    """The worker's session history, newest first."""
    try:
        sessions = counting_service.list_sessions(g.current_user.id)
        return jsonify([s.to_dict() for s in sessions]), 200
    except Exception as e:
        return json_error(e, "Failed to list counting sessions")


@counting_bp.get("/records")
@require_auth
@require_any_permission("COUNT_BINS", "VIEW_RECORDS")
def list_records():
    """
    List counting records, newest first.

    Workers see only their own records; others see the users they manage
    (admins see all).

    Query params:
    - since: YYYY-MM-DD (records dated on or after)
    - username: filter
    - warehouse: filter
    - session_id: filter
    - limit: Max results (default 200)
    """
    try:
        try:
            since = parse_iso_date(request.args.get("since"))
        except ValueError:
            raise ValidationError("since must be YYYY-MM-DD")

        session_id = request.args.get("session_id")
        records = ledger_service.list_records(
            usernames=visible_usernames(g.current_user),
            username=request.args.get("username") or None,
            session_id=parse_int(session_id, "session_id") if session_id else None,
            warehouse_name=request.args.get("warehouse") or None,
            since=since,
            limit=parse_limit(request.args.get("limit"), 200),
        )
        return jsonify([r.to_dict() for r in records]), 200
    except Exception as e:
        return json_error(e, "Failed to list counting records")
