"""Bin master: warehouse storage locations."""
from __future__ import annotations

from ..extensions import db
from ..models import BinMaster
from ..validation import ConflictError, NotFoundError


def get_bin_by_code(bin_code: str) -> BinMaster:
    bin_ = db.session.query(BinMaster).filter_by(bin_code=bin_code).first()
    if not bin_:
        raise NotFoundError(f"Bin {bin_code} not found")
    return bin_


def list_bins(warehouse_name: str | None = None, search: str | None = None) -> list[BinMaster]:
    """
    Bins ordered by code. search matches bin_code or location,
    case-insensitive substring.
    """
    query = db.session.query(BinMaster)
    if warehouse_name is not None:
        query = query.filter(BinMaster.warehouse_name == warehouse_name)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            db.or_(
                BinMaster.bin_code.ilike(pattern),
                BinMaster.location.ilike(pattern),
            )
        )
    return query.order_by(BinMaster.bin_code).all()


def create_bin(bin_code: str, warehouse_name: str, location: str) -> BinMaster:
    if db.session.query(BinMaster.id).filter_by(bin_code=bin_code).first():
        raise ConflictError(f"Bin {bin_code} already exists")

    bin_ = BinMaster(bin_code=bin_code, warehouse_name=warehouse_name, location=location)
    db.session.add(bin_)
    db.session.flush()
    return bin_
