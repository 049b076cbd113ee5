"""
User administration tests: creation per role, team leader registration,
approval and rejection, and ownership scoping.
"""

import pytest

from binaudit.models import User
from binaudit.services import permission_service, user_service
from binaudit.services.access_service import AccessDeniedError, manages, scoped_users_query
from binaudit.services.auth_service import PasswordValidationError
from binaudit.validation import ConflictError, NotFoundError, ValidationError


class TestCreateUser:

    def test_admin_creates_worker_inheriting_warehouse(self, db_session, admin, team_leader):
        user = user_service.create_user(admin, "worker9", "Password123!", "worker", team_leader_id=team_leader.id)
        assert user.is_approved is True
        assert user.team_leader_id == team_leader.id
        assert user.warehouse_name == "Warehouse A"

    def test_non_admin_cannot_create(self, db_session, vendor):
        with pytest.raises(AccessDeniedError):
            user_service.create_user(vendor, "x1", "Password123!", "vendor", warehouse_name="W")

    def test_invalid_role(self, db_session, admin):
        with pytest.raises(ValidationError):
            user_service.create_user(admin, "x1", "Password123!", "manager")

    def test_worker_needs_team_leader(self, db_session, admin):
        with pytest.raises(ValidationError):
            user_service.create_user(admin, "x1", "Password123!", "worker")

    def test_team_leader_parent_must_be_vendor(self, db_session, admin, team_leader):
        with pytest.raises(NotFoundError):
            user_service.create_user(admin, "x1", "Password123!", "team_leader", vendor_id=team_leader.id)

    def test_duplicate_username(self, db_session, admin, vendor):
        with pytest.raises(ConflictError):
            user_service.create_user(admin, "vendor1", "Password123!", "vendor", warehouse_name="W")

    def test_weak_password(self, db_session, admin):
        with pytest.raises(PasswordValidationError):
            user_service.create_user(admin, "x1", "short", "vendor", warehouse_name="W")


class TestTeamLeaderRegistration:

    def test_registers_pending_under_vendor(self, db_session, vendor):
        tl = user_service.register_team_leader("tl_new", "Password123!", vendor.id)
        assert tl.role == "team_leader"
        assert tl.is_approved is False
        assert tl.vendor_id == vendor.id
        assert tl.warehouse_name == "Warehouse A"

    def test_unknown_vendor(self, db_session, admin):
        with pytest.raises(NotFoundError):
            user_service.register_team_leader("tl_new", "Password123!", admin.id)

    def test_vendor_approves(self, db_session, vendor):
        tl = user_service.register_team_leader("tl_new", "Password123!", vendor.id)
        approved = user_service.approve_team_leader(vendor, tl.id)
        assert approved.is_approved is True

    def test_other_vendor_cannot_approve(self, db_session, vendor, other_branch):
        vendor_b, _, _ = other_branch
        tl = user_service.register_team_leader("tl_new", "Password123!", vendor.id)
        with pytest.raises(AccessDeniedError):
            user_service.approve_team_leader(vendor_b, tl.id)

    def test_vendor_rejects_pending(self, db_session, vendor):
        tl = user_service.register_team_leader("tl_new", "Password123!", vendor.id)
        tl_id = tl.id
        assert user_service.reject_team_leader(vendor, tl_id) == "tl_new"
        db_session.commit()
        assert db_session.get(User, tl_id) is None

    def test_approved_team_leader_not_rejectable(self, db_session, vendor, team_leader):
        with pytest.raises(ValidationError):
            user_service.reject_team_leader(vendor, team_leader.id)

    def test_team_leader_with_workers_not_rejectable(self, db_session, make_user, vendor):
        tl = user_service.register_team_leader("tl_new", "Password123!", vendor.id)
        make_user("worker_x", "worker", warehouse_name="Warehouse A", team_leader=tl, is_approved=False)

        with pytest.raises(ValidationError, match="already has workers"):
            user_service.reject_team_leader(vendor, tl.id)

        assert db_session.get(User, tl.id) is not None


class TestWorkerCreation:

    def test_team_leader_creates_pending_worker(self, db_session, team_leader):
        worker = user_service.create_worker(team_leader, "worker_x", "Password123!")
        assert worker.is_approved is False
        assert worker.team_leader_id == team_leader.id
        assert worker.warehouse_name == "Warehouse A"
        assert permission_service.get_user_permissions(worker) == set()

    def test_vendor_cannot_create_worker(self, db_session, vendor):
        with pytest.raises(AccessDeniedError):
            user_service.create_worker(vendor, "worker_x", "Password123!")


class TestApprovalToggle:

    def test_admin_toggles(self, db_session, admin, worker):
        user_service.set_approval(admin, worker.id, False)
        assert worker.is_approved is False
        user_service.set_approval(admin, worker.id, True)
        assert worker.is_approved is True

    def test_admin_cannot_toggle_self(self, db_session, admin):
        with pytest.raises(ValidationError):
            user_service.set_approval(admin, admin.id, False)


class TestOwnership:

    def test_manages(self, db_session, admin, vendor, team_leader, worker, other_branch):
        vendor_b, tl_b, worker_b = other_branch
        assert manages(admin, worker_b)
        assert manages(vendor, team_leader)
        assert manages(vendor, worker)
        assert not manages(vendor, worker_b)
        assert manages(team_leader, worker)
        assert not manages(team_leader, worker_b)
        assert not manages(worker, worker)

    def test_scoped_users(self, db_session, admin, vendor, team_leader, worker, other_branch):
        assert {u.username for u in scoped_users_query(vendor)} == {"tl1", "worker1"}
        assert {u.username for u in scoped_users_query(team_leader)} == {"worker1"}
        assert scoped_users_query(worker).count() == 0
        assert scoped_users_query(admin).count() == 7

    def test_list_users_filters(self, db_session, admin, team_leader, worker, pending_worker):
        pending = user_service.list_users(admin, role="worker", approved=False)
        assert [u.username for u in pending] == ["worker_new"]
