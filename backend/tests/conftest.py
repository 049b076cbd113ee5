"""
Pytest fixtures for binaudit backend tests.

Provides test database setup, the admin -> vendor -> team leader -> worker
hierarchy for two warehouses, bins, and test client helpers.
"""

import pytest
from binaudit import create_app
from binaudit.extensions import db
from binaudit.models import BinMaster, User
from binaudit.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_user(db_session, password_hash):
    """Factory for users sharing the test password."""
    def _make(username, role, warehouse_name=None, vendor=None, team_leader=None, is_approved=True):
        user = User(
            username=username,
            password_hash=password_hash,
            role=role,
            warehouse_name=warehouse_name,
            vendor_id=vendor.id if vendor else None,
            team_leader_id=team_leader.id if team_leader else None,
            is_approved=is_approved,
        )
        db_session.add(user)
        db_session.commit()
        return user
    return _make


@pytest.fixture(scope='function')
def admin(make_user):
    return make_user("admin", "admin", warehouse_name="Main Warehouse")


@pytest.fixture(scope='function')
def vendor(make_user):
    """Vendor of Warehouse A."""
    return make_user("vendor1", "vendor", warehouse_name="Warehouse A")


@pytest.fixture(scope='function')
def team_leader(make_user, vendor):
    return make_user("tl1", "team_leader", warehouse_name="Warehouse A", vendor=vendor)


@pytest.fixture(scope='function')
def worker(make_user, team_leader):
    """Approved worker of tl1."""
    return make_user("worker1", "worker", warehouse_name="Warehouse A", team_leader=team_leader)


@pytest.fixture(scope='function')
def pending_worker(make_user, team_leader):
    return make_user("worker_new", "worker", warehouse_name="Warehouse A", team_leader=team_leader, is_approved=False)


@pytest.fixture(scope='function')
def other_branch(make_user):
    """Vendor, team leader and worker of Warehouse B."""
    vendor_b = make_user("vendor2", "vendor", warehouse_name="Warehouse B")
    tl_b = make_user("tl2", "team_leader", warehouse_name="Warehouse B", vendor=vendor_b)
    worker_b = make_user("worker3", "worker", warehouse_name="Warehouse B", team_leader=tl_b)
    return vendor_b, tl_b, worker_b


@pytest.fixture(scope='function')
def bins(db_session):
    rows = [
        BinMaster(bin_code="A001", warehouse_name="Warehouse A", location="Aisle A, Level 1"),
        BinMaster(bin_code="A002", warehouse_name="Warehouse A", location="Aisle A, Level 2"),
        BinMaster(bin_code="B001", warehouse_name="Warehouse A", location="Aisle B, Level 1"),
        BinMaster(bin_code="C001", warehouse_name="Warehouse B", location="Aisle C, Level 1"),
    ]
    db_session.add_all(rows)
    db_session.commit()
    return {b.bin_code: b for b in rows}


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def login_headers(client, username: str) -> dict:
    return auth_headers(get_auth_token(client, username))
