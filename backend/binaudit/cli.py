# Overview: Flask CLI command groups for database bootstrap and user inspection.

# backend/binaudit/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create all tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Demo admin, vendors, team leaders, workers and bins for two warehouses.
#
# User inspection/bootstrap:
# - python -m flask users list [--role worker]
#   List users with role, warehouse and approval state.
# - python -m flask users create --username admin --password "Password123!" --role admin --warehouse "Main Warehouse"
#   Create an approved user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import BinMaster, User
from .models.auth import ROLES
from .services.auth_service import PasswordValidationError
from .services.user_service import provision_user
from .validation import ConflictError, NotFoundError, ValidationError


DEMO_PASSWORD = "Password123!"

# (username, role, warehouse, parent username, approved)
DEMO_USERS = [
    ("admin", "admin", "Main Warehouse", None, True),
    ("vendor1", "vendor", "Warehouse A", None, True),
    ("vendor2", "vendor", "Warehouse B", None, True),
    ("tl1", "team_leader", "Warehouse A", "vendor1", True),
    ("tl2", "team_leader", "Warehouse B", "vendor2", True),
    ("worker1", "worker", "Warehouse A", "tl1", True),
    ("worker2", "worker", "Warehouse A", "tl1", True),
    ("worker3", "worker", "Warehouse B", "tl2", True),
    ("worker4", "worker", "Warehouse B", "tl2", False),
]

DEMO_BINS = [
    ("A001", "Warehouse A", "Aisle A, Level 1"),
    ("A002", "Warehouse A", "Aisle A, Level 2"),
    ("A003", "Warehouse A", "Aisle A, Level 3"),
    ("B001", "Warehouse A", "Aisle B, Level 1"),
    ("B002", "Warehouse A", "Aisle B, Level 2"),
    ("C001", "Warehouse B", "Aisle C, Level 1"),
    ("C002", "Warehouse B", "Aisle C, Level 2"),
    ("D001", "Warehouse B", "Aisle D, Level 1"),
    ("D002", "Warehouse B", "Aisle D, Level 2"),
    ("E001", "Main Warehouse", "Aisle E, Level 1"),
]


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created.")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system seed-demo' for demo data.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed demo users and bins. Existing usernames and bin codes are skipped.

    Every demo user gets the password "Password123!". worker4 stays pending
    so the OTP approval flow can be tried.
    """
    db.create_all()
    click.echo("START Seeding demo data...")

    ids = {u.username: u.id for u in db.session.query(User).all()}
    for username, role, warehouse, parent, approved in DEMO_USERS:
        if username in ids:
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        user = provision_user(
            username,
            DEMO_PASSWORD,
            role,
            warehouse_name=warehouse,
            vendor_id=ids.get(parent) if role == "team_leader" else None,
            team_leader_id=ids.get(parent) if role == "worker" else None,
        )
        user.is_approved = approved
        ids[username] = user.id
        click.echo(f"PASS Created {role}: {username} ({warehouse})")

    existing_bins = {code for (code,) in db.session.query(BinMaster.bin_code).all()}
    created_bins = 0
    for bin_code, warehouse, location in DEMO_BINS:
        if bin_code in existing_bins:
            continue
        db.session.add(BinMaster(bin_code=bin_code, warehouse_name=warehouse, location=location))
        created_bins += 1

    db.session.commit()
    click.echo(f"PASS Created {created_bins} bins")

    click.echo("\n" + "="*60)
    click.echo("DONE Demo data ready")
    click.echo("="*60)
    click.echo(f"\nAll demo users log in with: {DEMO_PASSWORD}")
    click.echo("worker4 is pending: log in as tl2, issue an OTP, and verify it.")
    click.echo("")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@click.option('--role', type=click.Choice(ROLES), help='Filter by role')
@with_appcontext
def list_users_cli(role):
    """List all users with role, warehouse and approval state."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)
    users = query.order_by(User.id).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<12} {'Warehouse':<20} {'Approved':<9} {'Active'}")
    click.echo("="*80)
    for user in users:
        click.echo(
            f"{user.id:<5} {user.username:<20} {user.role:<12} "
            f"{user.warehouse_name or '-':<20} {'yes' if user.is_approved else 'no':<9} "
            f"{'yes' if user.is_active else 'no'}"
        )
    click.echo("="*80 + "\n")


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), prompt=True, help='Role')
@click.option('--warehouse', help='Warehouse name (inherited from the parent when omitted)')
@click.option('--vendor-id', type=int, help='Vendor ID (team leaders)')
@click.option('--team-leader-id', type=int, help='Team leader ID (workers)')
@with_appcontext
def create_user_cli(username, password, role, warehouse, vendor_id, team_leader_id):
    """
    Create an approved user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = provision_user(
            username,
            password,
            role,
            warehouse_name=warehouse,
            vendor_id=vendor_id,
            team_leader_id=team_leader_id,
        )
        db.session.commit()
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{role}'")
        click.echo("SECURITY Password securely hashed with bcrypt")

    except PasswordValidationError as e:
        db.session.rollback()
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except (ValidationError, ConflictError, NotFoundError) as e:
        db.session.rollback()
        click.echo(f"FAIL Failed to create user: {str(e)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
