from __future__ import annotations

from ..extensions import db
from binaudit.time_utils import to_utc_z


class OTPRequest(db.Model):
    """
    One-time passcode a team leader issues to vouch for a worker in person.

    Single-use: is_used flips false -> true exactly once, via a conditional
    UPDATE in otp_service. Rows are never deleted; expiry is evaluated
    when the code is read.
    """
    __tablename__ = "otp_requests"
    __table_args__ = (
        db.Index("ix_otp_requests_worker_code", "worker_id", "otp_code", "is_used"),
        db.Index("ix_otp_requests_team_leader_used", "team_leader_id", "is_used"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    team_leader_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    # Six digits, leading zeros kept
    otp_code = db.Column(db.String(6), nullable=False)

    is_used = db.Column(db.Boolean, nullable=False, default=False)
    used_at = db.Column(db.DateTime(timezone=True), nullable=True)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    worker = db.relationship("User", foreign_keys=[worker_id])
    team_leader = db.relationship("User", foreign_keys=[team_leader_id])

    def to_dict(self, include_code: bool = False) -> dict:
        data = {
            "id": self.id,
            "worker_id": self.worker_id,
            "team_leader_id": self.team_leader_id,
            "is_used": self.is_used,
            "used_at": to_utc_z(self.used_at) if self.used_at else None,
            "expires_at": to_utc_z(self.expires_at),
            "created_at": to_utc_z(self.created_at),
        }
        if include_code:
            data["otp_code"] = self.otp_code
        return data
