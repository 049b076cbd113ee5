from __future__ import annotations

from ..extensions import db
from binaudit.time_utils import to_utc_z


class BinMaster(db.Model):
    """
    Physical storage location inside a warehouse.

    Registered during warehouse setup; read-only from the worker flow.
    """
    __tablename__ = "bin_master"
    __table_args__ = (
        db.Index("ix_bin_master_warehouse_code", "warehouse_name", "bin_code"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bin_code = db.Column(db.String(64), nullable=False, unique=True)
    warehouse_name = db.Column(db.String(128), nullable=False, index=True)
    location = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bin_code": self.bin_code,
            "warehouse_name": self.warehouse_name,
            "location": self.location,
            "created_at": to_utc_z(self.created_at),
        }
