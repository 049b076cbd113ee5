# Overview: Flask API routes for worker efficiency and role dashboards.

from flask import Blueprint, request, jsonify, g

from ..services import dashboard_service, efficiency_service
from ..services.access_service import visible_usernames
from ..validation import ValidationError, parse_limit
from ..decorators import require_auth, require_permission
from ..time_utils import parse_iso_date
from .responses import json_error

efficiency_bp = Blueprint("efficiency", __name__, url_prefix="/api")


@efficiency_bp.get("/efficiency")
@require_auth
@require_permission("VIEW_EFFICIENCY")
def list_efficiency():
    """
    Efficiency rows visible to the caller, best score first.

    ranking is always 1; it is not computed against other workers.

    Query params:
    - warehouse, username: filters
    - date: YYYY-MM-DD
    - limit: Max results (default 100)
    """
    try:
        try:
            on_date = parse_iso_date(request.args.get("date"))
        except ValueError:
            raise ValidationError("date must be YYYY-MM-DD")

        rows = efficiency_service.list_efficiency(
            usernames=visible_usernames(g.current_user),
            warehouse_name=request.args.get("warehouse") or None,
            username=request.args.get("username") or None,
            on_date=on_date,
            limit=parse_limit(request.args.get("limit"), 100),
        )
        return jsonify({
            "items": [r.to_dict() for r in rows],
            "average_score": efficiency_service.average_score(rows),
        }), 200
    except Exception as e:
        return json_error(e, "Failed to list efficiency")


@efficiency_bp.get("/dashboard")
@require_auth
def dashboard():
    """
    Role-specific statistics for the caller's dashboard.

    Pending users get only their approval state.
    """
    user = g.current_user
    if not user.is_approved:
        return jsonify({"role": user.role, "is_approved": False}), 200
    try:
        return jsonify(dashboard_service.summary_for(user)), 200
    except Exception as e:
        return json_error(e, "Failed to build dashboard")
