from __future__ import annotations

from ..extensions import db
from binaudit.time_utils import to_utc_z


ROLE_ADMIN = "admin"
ROLE_VENDOR = "vendor"
ROLE_TEAM_LEADER = "team_leader"
ROLE_WORKER = "worker"

ROLES = (ROLE_ADMIN, ROLE_VENDOR, ROLE_TEAM_LEADER, ROLE_WORKER)


class User(db.Model):
    """
    User accounts for every role: admin, vendor, team leader and worker.

    HIERARCHY:
    - team_leader.vendor_id -> the vendor that approves it
    - worker.team_leader_id -> the team leader that created it and approves it via OTP

    warehouse_name is copied down the hierarchy at creation time
    (vendor -> team leader -> worker). Nothing keeps it in sync afterwards.

    Workers are never hard-deleted. A pending team leader that is rejected
    by its vendor is deleted outright.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.CheckConstraint(
            "role IN ('admin', 'vendor', 'team_leader', 'worker')",
            name="ck_users_role",
        ),
        db.Index("ix_users_role_approved", "role", "is_approved"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, index=True)

    # Set iff role == team_leader
    vendor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    # Set iff role == worker
    team_leader_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)

    warehouse_name = db.Column(db.String(128), nullable=True, index=True)

    is_approved = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime(timezone=True), nullable=True)

    vendor = db.relationship("User", foreign_keys=[vendor_id], remote_side=[id])
    team_leader = db.relationship("User", foreign_keys=[team_leader_id], remote_side=[id])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "vendor_id": self.vendor_id,
            "team_leader_id": self.team_leader_id,
            "warehouse_name": self.warehouse_name,
            "is_approved": self.is_approved,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at) if self.last_login_at else None,
        }


class SessionToken(db.Model):
    """
    Login session token.

    SECURITY NOTES:
    - Tokens stored hashed in database (SHA-256)
    - 24-hour absolute timeout
    - 2-hour idle timeout
    - Revocable on logout
    """
    __tablename__ = "session_tokens"
    __table_args__ = (
        db.Index("ix_session_tokens_user_active", "user_id", "is_revoked"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Token hash (never store plaintext tokens!)
    token_hash = db.Column(db.String(255), nullable=False, unique=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    last_used_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    is_revoked = db.Column(db.Boolean, nullable=False, default=False, index=True)
    revoked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    revoked_reason = db.Column(db.String(255), nullable=True)

    # Client information (for security monitoring)
    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 max length

    user = db.relationship("User", backref=db.backref("session_tokens", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "last_used_at": to_utc_z(self.last_used_at),
            "expires_at": to_utc_z(self.expires_at),
            "is_revoked": self.is_revoked,
            "revoked_at": to_utc_z(self.revoked_at) if self.revoked_at else None,
        }
