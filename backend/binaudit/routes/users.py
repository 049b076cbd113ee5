# Overview: Flask API routes for user administration and approvals.

"""
User routes.

- Admin: list everyone, create users of any role, toggle approval
- Vendor: list its team leaders and their workers, approve/reject pending team leaders
- Team leader: list and create its workers (approval goes through /api/otp/verify)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..services import permission_service, user_service
from ..validation import parse_bool, parse_int, optional_text, require_text
from ..decorators import require_auth, require_permission
from .responses import json_body, json_error

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _log_approval(event_type: str, reason: str) -> None:
    permission_service.log_security_event(
        user_id=g.current_user.id,
        event_type=event_type,
        success=True,
        resource=request.path,
        action=request.method,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
    )


@users_bp.get("")
@require_auth
@require_permission("VIEW_USERS")
def list_users():
    """
    List users visible to the caller.

    Query params:
    - role: admin | vendor | team_leader | worker
    - approved: true | false
    """
    try:
        approved = request.args.get("approved")
        users = user_service.list_users(
            g.current_user,
            role=request.args.get("role") or None,
            approved=parse_bool(approved, "approved") if approved is not None else None,
        )
        return jsonify([u.to_dict() for u in users]), 200
    except Exception as e:
        return json_error(e, "Failed to list users")


@users_bp.get("/me")
@require_auth
def get_me():
    return jsonify(g.current_user.to_dict()), 200


@users_bp.post("")
@require_auth
@require_permission("CREATE_USERS")
def create_user():
    """
    Admin creates a pre-approved user.

    Request body:
    {
        "username": str,
        "password": str,
        "role": str,
        "warehouse_name": str (optional; inherited from parent otherwise),
        "vendor_id": int (team leaders),
        "team_leader_id": int (workers)
    }
    """
    try:
        data = json_body()
        vendor_id = data.get("vendor_id")
        team_leader_id = data.get("team_leader_id")
        user = user_service.create_user(
            g.current_user,
            username=require_text(data, "username", max_length=64),
            password=data.get("password") or "",
            role=require_text(data, "role", max_length=16),
            warehouse_name=optional_text(data, "warehouse_name", max_length=128),
            vendor_id=parse_int(vendor_id, "vendor_id") if vendor_id is not None else None,
            team_leader_id=parse_int(team_leader_id, "team_leader_id") if team_leader_id is not None else None,
        )
        db.session.commit()
        current_app.logger.info("User %s (%s) created by %s", user.username, user.role, g.current_user.username)
        return jsonify(user.to_dict()), 201
    except Exception as e:
        return json_error(e, "Failed to create user")


@users_bp.post("/workers")
@require_auth
@require_permission("CREATE_WORKERS")
def create_worker():
    """
    Team leader creates a pending worker.

    Request body:
    {
        "username": str,
        "password": str
    }
    """
    try:
        data = json_body()
        worker = user_service.create_worker(
            g.current_user,
            username=require_text(data, "username", max_length=64),
            password=data.get("password") or "",
        )
        db.session.commit()
        current_app.logger.info("Worker %s created by team leader %s", worker.username, g.current_user.username)
        return jsonify(worker.to_dict()), 201
    except Exception as e:
        return json_error(e, "Failed to create worker")


@users_bp.post("/<int:user_id>/approval")
@require_auth
@require_permission("APPROVE_USERS")
def set_approval(user_id: int):
    """
    Admin approval toggle.

    Request body:
    {
        "is_approved": bool
    }
    """
    try:
        data = json_body()
        approved = parse_bool(data.get("is_approved"), "is_approved")
        user = user_service.set_approval(g.current_user, user_id, approved)
        db.session.commit()
        _log_approval("USER_APPROVED" if approved else "USER_UNAPPROVED", f"User {user.username}")
        return jsonify(user.to_dict()), 200
    except Exception as e:
        return json_error(e, "Failed to update approval")


@users_bp.post("/<int:user_id>/approve")
@require_auth
@require_permission("APPROVE_TEAM_LEADERS")
def approve_team_leader(user_id: int):
    """Vendor approves one of its pending team leaders."""
    try:
        team_leader = user_service.approve_team_leader(g.current_user, user_id)
        db.session.commit()
        _log_approval("USER_APPROVED", f"Team leader {team_leader.username}")
        current_app.logger.info("Team leader %s approved by %s", team_leader.username, g.current_user.username)
        return jsonify(team_leader.to_dict()), 200
    except Exception as e:
        return json_error(e, "Failed to approve team leader")


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("APPROVE_TEAM_LEADERS")
def reject_team_leader(user_id: int):
    """
    Vendor rejects a pending team leader. The account is deleted.
    """
    try:
        username = user_service.reject_team_leader(g.current_user, user_id)
        db.session.commit()
        _log_approval("USER_REJECTED", f"Team leader {username} (id {user_id}) deleted")
        current_app.logger.info("Team leader %s rejected by %s", username, g.current_user.username)
        return jsonify({"message": f"Team leader {username} rejected", "id": user_id}), 200
    except Exception as e:
        return json_error(e, "Failed to reject team leader")
