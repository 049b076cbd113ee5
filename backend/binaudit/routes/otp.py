# Overview: Flask API routes for the worker approval OTP handshake.

"""
OTP routes.

1. Team leader: POST /api/otp {"worker_id"}            -> issues a code
2. Worker (may still be pending): GET /api/otp/mine    -> reads the code
3. Team leader: POST /api/otp/verify {"worker_id", "otp_code"} -> worker approved

The team leader's own views never include the code.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import ROLE_WORKER
from ..services import otp_service, permission_service
from ..validation import parse_int, require_text
from ..decorators import require_auth, require_permission
from .responses import json_body, json_error

otp_bp = Blueprint("otp", __name__, url_prefix="/api/otp")


@otp_bp.post("")
@require_auth
@require_permission("ISSUE_OTP")
def issue_otp():
    """
    Issue an OTP for one of the team leader's workers.

    Request body:
    {
        "worker_id": int
    }

    Returns:
        201: OTP issued (code not included)
        403: Worker belongs to another team leader
        404: Worker not found
    """
    try:
        data = json_body()
        otp = otp_service.issue_for_worker(g.current_user, parse_int(data.get("worker_id"), "worker_id"))
        db.session.commit()
        current_app.logger.info("OTP %s issued for worker %s by %s", otp.id, otp.worker_id, g.current_user.username)
        return jsonify(otp.to_dict()), 201
    except Exception as e:
        return json_error(e, "Failed to issue OTP")


@otp_bp.get("/pending")
@require_auth
@require_permission("ISSUE_OTP")
def list_pending():
    """Outstanding OTPs issued by the team leader."""
    try:
        otps = otp_service.list_pending_otps(g.current_user.id)
        return jsonify([o.to_dict() for o in otps]), 200
    except Exception as e:
        return json_error(e, "Failed to list pending OTPs")


@otp_bp.get("/mine")
@require_auth
def list_mine():
    """
    The worker's own outstanding codes, to be read out to the team leader.

    Open to pending workers: this is how they get approved.
    """
    user = g.current_user
    if user.role != ROLE_WORKER:
        return jsonify({"error": "Only workers receive OTPs"}), 403
    try:
        otps = otp_service.list_worker_otps(user.id)
        return jsonify([o.to_dict(include_code=True) for o in otps]), 200
    except Exception as e:
        return json_error(e, "Failed to list worker OTPs")


@otp_bp.post("/verify")
@require_auth
@require_permission("ISSUE_OTP")
def verify():
    """
    Verify the code a worker read out and approve the worker.

    Request body:
    {
        "worker_id": int,
        "otp_code": str
    }

    Returns:
        200: Worker approved
        400: Invalid or expired OTP
        403: Worker belongs to another team leader
        404: Worker not found
    """
    try:
        data = json_body()
        worker = otp_service.approve_worker_with_otp(
            g.current_user,
            worker_id=parse_int(data.get("worker_id"), "worker_id"),
            otp_code=require_text(data, "otp_code", max_length=16),
        )
        db.session.commit()
        permission_service.log_security_event(
            user_id=g.current_user.id,
            event_type="USER_APPROVED",
            success=True,
            resource=request.path,
            action=request.method,
            reason=f"Worker {worker.username} approved via OTP",
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        current_app.logger.info("Worker %s approved via OTP by %s", worker.username, g.current_user.username)
        return jsonify({"worker": worker.to_dict(), "message": "Worker approved"}), 200
    except otp_service.InvalidOrExpiredOTPError as e:
        db.session.rollback()
        current_app.logger.info("OTP verification failed for team leader %s", g.current_user.username)
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        return json_error(e, "Failed to verify OTP")
