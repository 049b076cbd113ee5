from __future__ import annotations

from ..extensions import db
from binaudit.time_utils import to_iso_date, to_utc_z


SESSION_STATUS_ACTIVE = "active"
SESSION_STATUS_COMPLETED = "completed"


class CountingSession(db.Model):
    """
    One counting run by one worker.

    LIFECYCLE:
    1. active: started, bins being recorded, totals incremented per record
    2. completed: end_time set, efficiency row written (terminal)

    At most one active session per worker. The partial unique index below
    enforces it in the database; counting_service checks it first to give
    a readable error.
    """
    __tablename__ = "counting_sessions"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('active', 'completed')",
            name="ck_counting_sessions_status",
        ),
        db.Index(
            "uq_counting_sessions_one_active",
            "worker_id",
            unique=True,
            sqlite_where=db.text("status = 'active'"),
            postgresql_where=db.text("status = 'active'"),
        ),
        db.Index("ix_counting_sessions_worker_status", "worker_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=SESSION_STATUS_ACTIVE)

    # Running totals, incremented by conditional UPDATEs (never read-modify-write)
    total_bins_counted = db.Column(db.Integer, nullable=False, default=0)
    total_qty_counted = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("User", backref=db.backref("counting_sessions", lazy=True))
    records = db.relationship(
        "CountingRecord",
        back_populates="session",
        lazy=True,
        order_by="CountingRecord.id",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "worker_id": self.worker_id,
            "start_time": to_utc_z(self.start_time),
            "end_time": to_utc_z(self.end_time) if self.end_time else None,
            "status": self.status,
            "total_bins_counted": self.total_bins_counted,
            "total_qty_counted": self.total_qty_counted,
            "created_at": to_utc_z(self.created_at),
        }


class CountingRecord(db.Model):
    """
    One bin-count event inside a counting session.

    APPEND-ONLY: rows are never updated. qty_recounted and
    reason_for_difference are reserved for a reconciliation pass.
    """
    __tablename__ = "counting_records"
    __table_args__ = (
        db.Index("ix_counting_records_username_date", "username", "date"),
        db.Index("ix_counting_records_warehouse_date", "warehouse_name", "date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("counting_sessions.id"), nullable=False, index=True)

    warehouse_name = db.Column(db.String(128), nullable=False)
    date = db.Column(db.Date, nullable=False)
    team_leader_name = db.Column(db.String(64), nullable=False)
    username = db.Column(db.String(64), nullable=False)
    bin_no = db.Column(db.String(64), nullable=False)

    qty_counted = db.Column(db.Integer, nullable=False)
    qty_recounted = db.Column(db.Integer, nullable=True)
    qty_as_per_books = db.Column(db.Integer, nullable=True)
    # qty_counted - qty_as_per_books when the book quantity is known
    difference = db.Column(db.Integer, nullable=True)
    reason_for_difference = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    session = db.relationship("CountingSession", back_populates="records")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "warehouse_name": self.warehouse_name,
            "date": to_iso_date(self.date),
            "team_leader_name": self.team_leader_name,
            "username": self.username,
            "bin_no": self.bin_no,
            "qty_counted": self.qty_counted,
            "qty_recounted": self.qty_recounted,
            "qty_as_per_books": self.qty_as_per_books,
            "difference": self.difference,
            "reason_for_difference": self.reason_for_difference,
            "created_at": to_utc_z(self.created_at),
        }


class WorkerEfficiency(db.Model):
    """
    Performance summary written once when a counting session is closed.

    ranking is not computed against other workers; every row carries the
    placeholder value written by efficiency_service.
    """
    __tablename__ = "worker_efficiency"
    __table_args__ = (
        db.UniqueConstraint("session_id", name="uq_worker_efficiency_session"),
        db.Index("ix_worker_efficiency_warehouse_date", "warehouse_name", "date"),
        db.Index("ix_worker_efficiency_score", "efficiency_score"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey("counting_sessions.id"), nullable=False)

    warehouse_name = db.Column(db.String(128), nullable=False)
    date = db.Column(db.Date, nullable=False)
    username = db.Column(db.String(64), nullable=False, index=True)

    bins_counted = db.Column(db.Integer, nullable=False)
    qty_counted = db.Column(db.Integer, nullable=False)
    time_taken_minutes = db.Column(db.Integer, nullable=False)
    efficiency_score = db.Column(db.Integer, nullable=False)
    ranking = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    session = db.relationship("CountingSession", backref=db.backref("efficiency", uselist=False, lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "session_id": self.session_id,
            "warehouse_name": self.warehouse_name,
            "date": to_iso_date(self.date),
            "username": self.username,
            "bins_counted": self.bins_counted,
            "qty_counted": self.qty_counted,
            "time_taken_minutes": self.time_taken_minutes,
            "efficiency_score": self.efficiency_score,
            "ranking": self.ranking,
            "created_at": to_utc_z(self.created_at),
        }
