# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

SECURITY FEATURES:
- bcrypt password verification
- Login throttling to prevent brute-force attacks
- Session management with token-based auth
- Team-leader self-registration lands in the vendor's pending queue
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..extensions import db
from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services import permission_service
from ..services import user_service
from ..validation import parse_int, require_text
from ..decorators import require_auth
from .responses import json_body, json_error


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Team-leader self-registration under a vendor.

    Request body:
    {
        "username": str,
        "password": str,
        "vendor_id": int
    }

    The account starts pending; the vendor approves or rejects it.
    """
    try:
        data = json_body()
        user = user_service.register_team_leader(
            username=require_text(data, "username", max_length=64),
            password=data.get("password") or "",
            vendor_id=parse_int(data.get("vendor_id"), "vendor_id"),
        )
        db.session.commit()
        current_app.logger.info("Team leader %s registered under vendor %s", user.username, user.vendor_id)
        return jsonify({"user": user.to_dict(), "message": "Registration pending vendor approval"}), 201
    except Exception as e:
        return json_error(e, "Failed to register team leader")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Pending users can log in; their permission list is empty until approved.
    """
    try:
        data = request.get_json(silent=True) or {}
        username = data.get("username")
        password = data.get("password")

        if not all([username, password]) or not isinstance(username, str) or not isinstance(password, str):
            return jsonify({"error": "username and password required"}), 400

        user_agent = request.headers.get("User-Agent")
        ip_address = request.remote_addr

        is_locked, seconds_remaining = login_throttle_service.is_account_locked(username)
        if is_locked:
            return jsonify({
                "error": "Account temporarily locked due to too many failed login attempts",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        user = auth_service.authenticate(username, password)

        if not user:
            failed_count = login_throttle_service.record_failed_attempt(
                username=username,
                ip_address=ip_address,
                user_agent=user_agent,
            )
            remaining = login_throttle_service.MAX_FAILED_ATTEMPTS - failed_count

            if remaining <= 0:
                return jsonify({
                    "error": "Account locked due to too many failed login attempts",
                    "locked": True,
                }), 429
            elif remaining <= 3:
                return jsonify({
                    "error": "Invalid credentials",
                    "warning": f"{remaining} attempts remaining before account lockout"
                }), 401
            return jsonify({"error": "Invalid credentials"}), 401

        login_throttle_service.record_successful_login(
            user_id=user.id,
            username=username,
            ip_address=ip_address,
            user_agent=user_agent
        )

        session, token = session_service.create_session(
            user_id=user.id,
            user_agent=user_agent,
            ip_address=ip_address
        )

        return jsonify({
            "user": user.to_dict(),
            "permissions": sorted(permission_service.get_user_permissions(user)),
            "token": token,
            "session": session.to_dict(),
            "message": "Login successful"
        }), 200

    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/logout")
@require_auth
def logout_route():
    """Revoke the caller's session token."""
    try:
        session_service.revoke_session(g.session_token, reason="User logout")
        return jsonify({"message": "Logout successful"}), 200
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to logout user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/validate")
@require_auth
def validate_route():
    """
    Return the current user with permissions.

    The frontend uses the permission list to pick the role dashboard and to
    show the pending-approval screen (empty list).
    """
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": sorted(permission_service.get_user_permissions(user)),
        "message": "Token valid"
    }), 200
