"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Pending (unapproved) users hold no permissions (403)
- Each role is denied the operations of the others (403)
- Ownership: team leaders and vendors act only on their own users
- Login lockout after repeated failures (429)
- Idle and expired session tokens are refused (401)
"""

from datetime import timedelta

import pytest

from binaudit.models import SecurityEvent, SessionToken
from binaudit.services.session_service import hash_token
from binaudit.time_utils import utcnow
from conftest import auth_headers, get_auth_token, login_headers


# =============================================================================
# UNAUTHENTICATED ACCESS — 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users"),
            ("GET", "/api/users/me"),
            ("POST", "/api/users/workers"),
            ("POST", "/api/otp"),
            ("GET", "/api/otp/pending"),
            ("GET", "/api/otp/mine"),
            ("POST", "/api/otp/verify"),
            ("GET", "/api/bins"),
            ("POST", "/api/bins"),
            ("GET", "/api/counting/session"),
            ("POST", "/api/counting/session"),
            ("POST", "/api/counting/session/records"),
            ("POST", "/api/counting/session/end"),
            ("GET", "/api/counting/records"),
            ("GET", "/api/efficiency"),
            ("GET", "/api/dashboard"),
            ("POST", "/api/auth/logout"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/users/me", headers={"Authorization": "Bearer not-a-token"})
        assert resp.status_code == 401


# =============================================================================
# PENDING USERS — 403
# =============================================================================


class TestPendingUser:

    def test_login_succeeds_without_permissions(self, client, pending_worker):
        resp = client.post("/api/auth/login", json={"username": "worker_new", "password": "Password123!"})
        assert resp.status_code == 200
        assert resp.json["permissions"] == []
        assert resp.json["user"]["is_approved"] is False

    def test_cannot_start_session(self, client, pending_worker):
        headers = login_headers(client, "worker_new")
        resp = client.post("/api/counting/session", headers=headers)
        assert resp.status_code == 403

    def test_can_read_own_otps(self, client, pending_worker):
        headers = login_headers(client, "worker_new")
        resp = client.get("/api/otp/mine", headers=headers)
        assert resp.status_code == 200
        assert resp.json == []

    def test_denial_is_logged(self, client, db_session, pending_worker):
        headers = login_headers(client, "worker_new")
        client.get("/api/bins", headers=headers)
        event = db_session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").first()
        assert event is not None
        assert event.reason == "Account pending approval"


# =============================================================================
# ROLE BOUNDARIES — 403
# =============================================================================


class TestWorkerDenied:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("POST", "/api/users/workers"),
            ("POST", "/api/otp"),
            ("POST", "/api/otp/verify"),
            ("POST", "/api/bins"),
            ("GET", "/api/efficiency"),
        ],
    )
    def test_denied(self, client, worker, method, path):
        headers = login_headers(client, "worker1")
        resp = getattr(client, method.lower())(path, json={}, headers=headers)
        assert resp.status_code == 403


class TestTeamLeaderDenied:

    def test_cannot_create_users_directly(self, client, team_leader):
        headers = login_headers(client, "tl1")
        resp = client.post(
            "/api/users",
            json={"username": "x", "password": "Password123!", "role": "vendor"},
            headers=headers,
        )
        assert resp.status_code == 403

    def test_cannot_count(self, client, team_leader):
        headers = login_headers(client, "tl1")
        resp = client.post("/api/counting/session", headers=headers)
        assert resp.status_code == 403

    def test_cannot_issue_for_foreign_worker(self, client, team_leader, other_branch):
        _, _, foreign_worker = other_branch
        headers = login_headers(client, "tl1")
        resp = client.post("/api/otp", json={"worker_id": foreign_worker.id}, headers=headers)
        assert resp.status_code == 403

    def test_unknown_worker(self, client, team_leader):
        headers = login_headers(client, "tl1")
        resp = client.post("/api/otp", json={"worker_id": 999999}, headers=headers)
        assert resp.status_code == 404


class TestVendorDenied:

    def test_cannot_issue_otp(self, client, vendor, pending_worker):
        headers = login_headers(client, "vendor1")
        resp = client.post("/api/otp", json={"worker_id": pending_worker.id}, headers=headers)
        assert resp.status_code == 403

    def test_cannot_approve_foreign_team_leader(self, client, vendor, other_branch):
        _, tl_b, _ = other_branch
        headers = login_headers(client, "vendor1")
        resp = client.post(f"/api/users/{tl_b.id}/approve", headers=headers)
        assert resp.status_code == 403

    def test_cannot_toggle_approval(self, client, vendor, team_leader):
        headers = login_headers(client, "vendor1")
        resp = client.post(f"/api/users/{team_leader.id}/approval", json={"is_approved": False}, headers=headers)
        assert resp.status_code == 403


class TestAdminAccess:

    def test_admin_lists_everyone(self, client, admin, worker, other_branch):
        headers = login_headers(client, "admin")
        resp = client.get("/api/users", headers=headers)
        assert resp.status_code == 200
        assert {u["username"] for u in resp.json} == {
            "admin", "vendor1", "tl1", "worker1", "vendor2", "tl2", "worker3",
        }

    def test_admin_cannot_count(self, client, admin):
        headers = login_headers(client, "admin")
        resp = client.post("/api/counting/session", headers=headers)
        assert resp.status_code == 403


# =============================================================================
# LOGIN LOCKOUT — 429
# =============================================================================


class TestLoginLockout:

    def test_locked_after_ten_failures(self, client, worker):
        for _ in range(9):
            resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Wrong123!"})
            assert resp.status_code == 401

        resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Wrong123!"})
        assert resp.status_code == 429

        resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Password123!"})
        assert resp.status_code == 429
        assert resp.json["locked"] is True
        assert 0 < resp.json["retry_after_seconds"] <= 15 * 60

    def test_warning_near_lockout(self, client, worker):
        for _ in range(7):
            resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Wrong123!"})
        assert "warning" in resp.json

    def test_old_failures_do_not_count(self, client, db_session, worker):
        for _ in range(10):
            client.post("/api/auth/login", json={"username": "worker1", "password": "Wrong123!"})

        db_session.expire_all()
        for event in db_session.query(SecurityEvent).filter_by(event_type="LOGIN_FAILED"):
            event.occurred_at = utcnow() - timedelta(minutes=20)
        db_session.commit()

        resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Password123!"})
        assert resp.status_code == 200


# =============================================================================
# SESSION TIMEOUTS — 401
# =============================================================================


class TestSessionTimeouts:

    def _session_row(self, db_session, token):
        db_session.expire_all()
        return db_session.query(SessionToken).filter_by(token_hash=hash_token(token)).one()

    def test_idle_token_refused(self, client, db_session, worker):
        token = get_auth_token(client, "worker1")
        assert client.get("/api/users/me", headers=auth_headers(token)).status_code == 200

        row = self._session_row(db_session, token)
        row.last_used_at = utcnow() - timedelta(hours=3)
        db_session.commit()

        assert client.get("/api/users/me", headers=auth_headers(token)).status_code == 401

        row = self._session_row(db_session, token)
        assert row.is_revoked is True
        assert row.revoked_reason == "Idle timeout"

    def test_expired_token_refused(self, client, db_session, worker):
        token = get_auth_token(client, "worker1")

        row = self._session_row(db_session, token)
        row.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert client.get("/api/users/me", headers=auth_headers(token)).status_code == 401

    def test_deactivated_user_refused(self, client, db_session, worker):
        token = get_auth_token(client, "worker1")

        worker.is_active = False
        db_session.commit()

        assert client.get("/api/users/me", headers=auth_headers(token)).status_code == 401
