"""
End-to-end API flows through the Flask test client:
worker approval by OTP, a counting session, and the read views.
"""

from datetime import timedelta

from binaudit.models import CountingSession, User, WorkerEfficiency
from binaudit.services import dashboard_service
from binaudit.time_utils import utcnow, utctoday
from conftest import login_headers


def test_health(client, db_session):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"


def test_login_rejects_bad_password(client, worker):
    resp = client.post("/api/auth/login", json={"username": "worker1", "password": "Wrong123!"})
    assert resp.status_code == 401


def test_logout_revokes_token(client, worker):
    headers = login_headers(client, "worker1")
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/users/me", headers=headers).status_code == 401


def test_worker_approval_by_otp(client, db_session, team_leader, pending_worker):
    tl_headers = login_headers(client, "tl1")
    worker_headers = login_headers(client, "worker_new")

    resp = client.post("/api/otp", json={"worker_id": pending_worker.id}, headers=tl_headers)
    assert resp.status_code == 201
    assert "otp_code" not in resp.json

    pending = client.get("/api/otp/pending", headers=tl_headers).json
    assert len(pending) == 1
    assert "otp_code" not in pending[0]

    mine = client.get("/api/otp/mine", headers=worker_headers).json
    code = mine[0]["otp_code"]

    resp = client.post("/api/otp/verify", json={"worker_id": pending_worker.id, "otp_code": code}, headers=tl_headers)
    assert resp.status_code == 200
    assert resp.json["worker"]["is_approved"] is True

    resp = client.post("/api/otp/verify", json={"worker_id": pending_worker.id, "otp_code": code}, headers=tl_headers)
    assert resp.status_code == 400
    assert resp.json["error"] == "Invalid or expired OTP"

    validated = client.post("/api/auth/validate", headers=worker_headers).json
    assert "COUNT_BINS" in validated["permissions"]


def test_team_leader_creates_worker(client, db_session, team_leader):
    headers = login_headers(client, "tl1")
    resp = client.post("/api/users/workers", json={"username": "w_new", "password": "Password123!"}, headers=headers)
    assert resp.status_code == 201
    assert resp.json["is_approved"] is False
    assert resp.json["warehouse_name"] == "Warehouse A"

    resp = client.post("/api/users/workers", json={"username": "w_new", "password": "Password123!"}, headers=headers)
    assert resp.status_code == 409


def test_team_leader_registration_and_rejection(client, db_session, vendor):
    resp = client.post("/api/auth/register", json={
        "username": "tl_new", "password": "Password123!", "vendor_id": vendor.id,
    })
    assert resp.status_code == 201
    tl_id = resp.json["user"]["id"]

    headers = login_headers(client, "vendor1")
    pending = client.get("/api/users?role=team_leader&approved=false", headers=headers).json
    assert [u["username"] for u in pending] == ["tl_new"]

    resp = client.delete(f"/api/users/{tl_id}", headers=headers)
    assert resp.status_code == 200

    db_session.expire_all()
    assert db_session.get(User, tl_id) is None


def test_counting_session_flow(client, db_session, worker, bins):
    headers = login_headers(client, "worker1")

    assert client.get("/api/counting/session", headers=headers).json["session"] is None

    resp = client.post("/api/counting/session", headers=headers)
    assert resp.status_code == 201
    session_id = resp.json["id"]

    assert client.post("/api/counting/session", headers=headers).status_code == 409

    # Back-date the start so the session spans two hours
    session = db_session.get(CountingSession, session_id)
    session.start_time = utcnow() - timedelta(minutes=120)
    db_session.commit()

    resp = client.post("/api/counting/session/records", json={"bin_code": "A001", "qty": 85}, headers=headers)
    assert resp.status_code == 201
    assert resp.json["session"]["total_bins_counted"] == 1

    resp = client.post("/api/counting/session/records", json={"bin_code": "A002", "qty": 40}, headers=headers)
    assert resp.json["session"]["total_qty_counted"] == 125

    resp = client.post("/api/counting/session/records", json={"bin_code": "A003", "qty": -5}, headers=headers)
    assert resp.status_code == 400

    resp = client.post("/api/counting/session/records", json={"bin_code": "C001", "qty": 5}, headers=headers)
    assert resp.status_code == 400

    resp = client.post("/api/counting/session/end", headers=headers)
    assert resp.status_code == 200
    assert resp.json["session"]["status"] == "completed"
    efficiency = resp.json["efficiency"]
    assert efficiency["bins_counted"] == 2
    assert efficiency["qty_counted"] == 125
    assert efficiency["time_taken_minutes"] == 120
    assert efficiency["efficiency_score"] == 1

    assert client.post("/api/counting/session/end", headers=headers).status_code == 409

    records = client.get("/api/counting/records", headers=headers).json
    assert sorted(r["bin_no"] for r in records) == ["A001", "A002"]


def test_records_scoped_to_manager(client, db_session, worker, other_branch, bins):
    _, _, worker_b = other_branch
    headers = login_headers(client, "worker1")
    client.post("/api/counting/session", headers=headers)
    client.post("/api/counting/session/records", json={"bin_code": "A001", "qty": 3}, headers=headers)
    client.post("/api/counting/session/end", headers=headers)

    tl_b_headers = login_headers(client, "tl2")
    assert client.get("/api/counting/records", headers=tl_b_headers).json == []
    assert client.get("/api/efficiency", headers=tl_b_headers).json["items"] == []

    vendor_headers = login_headers(client, "vendor1")
    rows = client.get("/api/efficiency", headers=vendor_headers).json["items"]
    assert [r["username"] for r in rows] == ["worker1"]
    assert rows[0]["ranking"] == 1


def test_bins_limited_to_own_warehouse(client, db_session, worker, bins):
    headers = login_headers(client, "worker1")
    codes = {b["bin_code"] for b in client.get("/api/bins", headers=headers).json}
    assert codes == {"A001", "A002", "B001"}

    codes = {b["bin_code"] for b in client.get("/api/bins?q=A00", headers=headers).json}
    assert codes == {"A001", "A002"}


def test_admin_registers_bin(client, db_session, admin, bins):
    headers = login_headers(client, "admin")
    resp = client.post("/api/bins", json={
        "bin_code": "E001", "warehouse_name": "Main Warehouse", "location": "Aisle E, Level 1",
    }, headers=headers)
    assert resp.status_code == 201

    resp = client.post("/api/bins", json={
        "bin_code": "A001", "warehouse_name": "Warehouse A", "location": "Aisle A, Level 1",
    }, headers=headers)
    assert resp.status_code == 409


def test_dashboards(client, db_session, admin, team_leader, worker, pending_worker, bins):
    worker_headers = login_headers(client, "worker1")
    client.post("/api/counting/session", headers=worker_headers)
    client.post("/api/counting/session/records", json={"bin_code": "A001", "qty": 7}, headers=worker_headers)

    summary = client.get("/api/dashboard", headers=worker_headers).json
    assert summary["role"] == "worker"
    assert summary["today_bins"] == 1
    assert summary["session_qty"] == 7

    tl_summary = client.get("/api/dashboard", headers=login_headers(client, "tl1")).json
    assert tl_summary["total_workers"] == 2
    assert tl_summary["pending_workers"] == 1

    admin_summary = client.get("/api/dashboard", headers=login_headers(client, "admin")).json
    assert admin_summary["total_records"] == 1

    pending_summary = client.get("/api/dashboard", headers=login_headers(client, "worker_new")).json
    assert pending_summary == {"role": "worker", "is_approved": False}


def test_list_limit_must_be_positive(client, db_session, admin, worker):
    admin_headers = login_headers(client, "admin")
    for path in ("/api/efficiency", "/api/counting/records"):
        for limit in ("-1", "0", "abc"):
            resp = client.get(f"{path}?limit={limit}", headers=admin_headers)
            assert resp.status_code == 400, f"{path}?limit={limit} returned {resp.status_code}"
        assert client.get(f"{path}?limit=5000", headers=admin_headers).status_code == 200


def test_limit_caps_rows(client, db_session, worker, bins):
    headers = login_headers(client, "worker1")
    client.post("/api/counting/session", headers=headers)
    for code in ("A001", "A002", "B001"):
        client.post("/api/counting/session/records", json={"bin_code": code, "qty": 1}, headers=headers)

    records = client.get("/api/counting/records?limit=2", headers=headers).json
    assert len(records) == 2


def test_admin_average_efficiency(db_session, admin, worker):
    for score in (85, 78):
        session = CountingSession(
            worker_id=worker.id,
            start_time=utcnow(),
            end_time=utcnow(),
            status="completed",
            total_bins_counted=1,
            total_qty_counted=1,
        )
        db_session.add(session)
        db_session.flush()
        db_session.add(WorkerEfficiency(
            session_id=session.id,
            warehouse_name="Warehouse A",
            date=utctoday(),
            username="worker1",
            bins_counted=1,
            qty_counted=1,
            time_taken_minutes=1,
            efficiency_score=score,
            ranking=1,
        ))
    db_session.commit()

    assert dashboard_service.admin_summary(admin)["avg_efficiency"] == 82


def test_admin_average_efficiency_without_rows(db_session, admin):
    assert dashboard_service.admin_summary(admin)["avg_efficiency"] == 0
