# Overview: Flask API routes for the bin master.

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models.auth import ROLE_ADMIN
from ..services import bin_service
from ..validation import require_text
from ..decorators import require_auth, require_permission
from .responses import json_body, json_error

bins_bp = Blueprint("bins", __name__, url_prefix="/api/bins")


@bins_bp.get("")
@require_auth
@require_permission("VIEW_BINS")
def list_bins():
    """
    List bins ordered by code.

    Non-admins only see their own warehouse. Admins may pass ?warehouse=.

    Query params:
    - q: substring of bin code or location
    - warehouse: (admin only) warehouse filter
    """
    try:
        user = g.current_user
        if user.role == ROLE_ADMIN:
            warehouse_name = request.args.get("warehouse") or None
        else:
            warehouse_name = user.warehouse_name or ""
        bins = bin_service.list_bins(warehouse_name=warehouse_name, search=request.args.get("q"))
        return jsonify([b.to_dict() for b in bins]), 200
    except Exception as e:
        return json_error(e, "Failed to list bins")


@bins_bp.post("")
@require_auth
@require_permission("MANAGE_BINS")
def create_bin():
    """
    Register a bin.

    Request body:
    {
        "bin_code": str,
        "warehouse_name": str,
        "location": str
    }
    """
    try:
        data = json_body()
        bin_ = bin_service.create_bin(
            bin_code=require_text(data, "bin_code", max_length=64),
            warehouse_name=require_text(data, "warehouse_name", max_length=128),
            location=require_text(data, "location"),
        )
        db.session.commit()
        current_app.logger.info("Bin %s registered in %s", bin_.bin_code, bin_.warehouse_name)
        return jsonify(bin_.to_dict()), 201
    except Exception as e:
        return json_error(e, "Failed to create bin")
