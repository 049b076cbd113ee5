"""
Per-role dashboard statistics.

Each role's summary is built from the same scoped queries the list
endpoints use, so a dashboard never counts rows the caller cannot list.
"""
from __future__ import annotations

from ..extensions import db
from ..models import CountingRecord, User, WorkerEfficiency
from ..models.auth import ROLE_ADMIN, ROLE_VENDOR, ROLE_TEAM_LEADER, ROLE_WORKER
from binaudit.time_utils import utctoday
from . import counting_service, efficiency_service, ledger_service, otp_service
from .access_service import scoped_users_query


def admin_summary(admin: User) -> dict:
    users = scoped_users_query(admin)
    score_total, score_count = db.session.query(
        db.func.coalesce(db.func.sum(WorkerEfficiency.efficiency_score), 0),
        db.func.count(WorkerEfficiency.id),
    ).one()
    return {
        "total_users": users.count(),
        "active_workers": users.filter(User.role == ROLE_WORKER, User.is_approved.is_(True)).count(),
        "total_records": db.session.query(CountingRecord).count(),
        "avg_efficiency": efficiency_service.round_half_up_ratio(int(score_total), score_count) if score_count else 0,
    }


def vendor_summary(vendor: User) -> dict:
    users = scoped_users_query(vendor)
    team_leaders = users.filter(User.role == ROLE_TEAM_LEADER)
    workers = users.filter(User.role == ROLE_WORKER)
    return {
        "total_team_leaders": team_leaders.count(),
        "total_workers": workers.count(),
        "active_workers": workers.filter(User.is_approved.is_(True)).count(),
        "pending_approvals": team_leaders.filter(User.is_approved.is_(False)).count(),
    }


def team_leader_summary(team_leader: User) -> dict:
    workers = scoped_users_query(team_leader)
    return {
        "total_workers": workers.count(),
        "approved_workers": workers.filter(User.is_approved.is_(True)).count(),
        "pending_workers": workers.filter(User.is_approved.is_(False)).count(),
        "pending_otps": len(otp_service.list_pending_otps(team_leader.id)),
    }


def worker_summary(worker: User) -> dict:
    today_records = ledger_service.list_records(username=worker.username, since=utctoday(), limit=10_000)
    session = counting_service.get_active_session(worker.id)
    return {
        "today_bins": len(today_records),
        "today_qty": sum(r.qty_counted for r in today_records),
        "session_bins": session.total_bins_counted if session else 0,
        "session_qty": session.total_qty_counted if session else 0,
        "active_session": session.to_dict() if session else None,
    }


_SUMMARIES = {
    ROLE_ADMIN: admin_summary,
    ROLE_VENDOR: vendor_summary,
    ROLE_TEAM_LEADER: team_leader_summary,
    ROLE_WORKER: worker_summary,
}


def summary_for(user: User) -> dict:
    return {"role": user.role, **_SUMMARIES[user.role](user)}
