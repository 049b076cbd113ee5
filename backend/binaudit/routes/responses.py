# Overview: Shared mapping from service exceptions to JSON error responses.

from flask import g, jsonify, request, current_app

from ..extensions import db
from ..services import permission_service
from ..services.access_service import AccessDeniedError
from ..services.auth_service import PasswordValidationError
from ..services.counting_service import CountingSessionError
from ..services.otp_service import InvalidOrExpiredOTPError
from ..validation import ConflictError, NotFoundError, ValidationError


def json_error(exc: Exception, failure_message: str = "Request failed"):
    """
    Roll back the request's transaction and map exc to a JSON error.

    Unknown exceptions are logged with traceback and returned as 500
    without details.
    """
    db.session.rollback()

    if isinstance(exc, (ValidationError, PasswordValidationError, InvalidOrExpiredOTPError)):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, AccessDeniedError):
        user = getattr(g, "current_user", None)
        permission_service.log_security_event(
            user_id=user.id if user else None,
            event_type="ACCESS_DENIED",
            success=False,
            resource=request.path,
            action=request.method,
            reason=str(exc),
            ip_address=request.remote_addr,
            user_agent=request.headers.get("User-Agent"),
        )
        return jsonify({"error": "Access denied", "message": str(exc)}), 403
    if isinstance(exc, NotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, (ConflictError, CountingSessionError)):
        return jsonify({"error": str(exc)}), 409

    current_app.logger.exception(failure_message)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("JSON object body required")
    return data
