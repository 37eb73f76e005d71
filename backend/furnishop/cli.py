# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/furnishop/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--branch "Main Branch"]
#   Idempotent bootstrap: creates the first branch and one user per role.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--branch-id 1]
# - python -m flask users create --username sam --email sam@shop.local --full-name "Sam" --role sales --branch-id 1
#
# Branches:
# - python -m flask branches list
# - python -m flask branches create --name "North" --code N01
#
# Hire purchase (run daily from cron):
# - python -m flask hire-purchase mark-overdue [--today 2026-01-31]

import click
from flask import current_app
from flask.cli import with_appcontext

from .extensions import db
from .models import Branch, User
from .permissions import ROLES
from .services.auth_service import create_user, PasswordValidationError, UserError
from .services import branch_service
from .services.hire_purchase_service import mark_overdue_installments
from .time_utils import parse_iso_date
from .validation import ConflictError


DEFAULT_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--branch', 'branch_name', default='Main Branch', help='Name of the first branch')
@click.option('--branch-code', default='MAIN', help='Code of the first branch')
@with_appcontext
def init_system(branch_name, branch_code):
    """
    Initialize the shop: first branch and one default user per role.

    Users: admin, manager, sales, cashier, warehouse (all "<name>@furnishop.local")
    All passwords default to: "Password123!"

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing furnishop...")
    db.create_all()

    branch = db.session.query(Branch).order_by(Branch.id.asc()).first()
    if not branch:
        branch = branch_service.create_branch(branch_name, code=branch_code)
        db.session.commit()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")
    else:
        click.echo(f"PASS Using existing branch: {branch.name} (ID: {branch.id})")

    click.echo("\nUSERS Creating default users...")
    for role in ROLES:
        if db.session.query(User).filter_by(username=role).first():
            click.echo(f"WARN  User '{role}' already exists, skipping...")
            continue
        try:
            create_user(
                username=role,
                email=f"{role}@furnishop.local",
                password=DEFAULT_PASSWORD,
                full_name=role.capitalize(),
                role=role,
                branch_id=None if role == "admin" else branch.id,
                bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
            )
            db.session.commit()
            click.echo(f"PASS Created user: {role} with role '{role}'")
        except (UserError, PasswordValidationError) as e:
            db.session.rollback()
            click.echo(f"FAIL Failed to create user '{role}': {e}")

    click.echo("\nDONE furnishop initialized.")
    click.echo(f"Default password for all users: {DEFAULT_PASSWORD} (CHANGE IN PRODUCTION!)")


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

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--email', prompt=True, help='Email address')
@click.option('--full-name', prompt=True, help='Full name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(list(ROLES)), prompt=True, help='Role')
@click.option('--branch-id', type=int, default=None, help='Branch ID (omit for head office)')
@with_appcontext
def create_user_cli(username, email, full_name, password, role, branch_id):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter, one lowercase letter, one digit
    - At least one special character
    """
    try:
        user = create_user(
            username=username,
            email=email,
            password=password,
            full_name=full_name,
            role=role,
            branch_id=branch_id,
            bcrypt_rounds=current_app.config["BCRYPT_ROUNDS"],
        )
        db.session.commit()
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
    except (UserError, PasswordValidationError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@users_group.command('list')
@click.option('--branch-id', type=int, help='Filter by branch ID')
@with_appcontext
def list_users(branch_id):
    """List all users with their roles."""
    query = db.session.query(User)
    if branch_id:
        query = query.filter_by(branch_id=branch_id)

    users = query.order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<5} {'Branch':<8} {'Username':<20} {'Email':<30} {'Active':<8} {'Role'}")
    click.echo("=" * 90)
    for user in users:
        active_str = "Yes" if user.is_active else "No"
        branch_str = str(user.branch_id) if user.branch_id else "-"
        click.echo(f"{user.id:<5} {branch_str:<8} {user.username:<20} {user.email:<30} {active_str:<8} {user.role}")
    click.echo("")


@click.group('branches')
def branches_group():
    """Branch management commands."""


@branches_group.command('list')
@with_appcontext
def list_branches_cli():
    branches = branch_service.list_branches()
    if not branches:
        click.echo("No branches found.")
        return
    for branch in branches:
        click.echo(f"{branch.id:<5} {branch.code or '-':<10} {branch.name}")


@branches_group.command('create')
@click.option('--name', prompt=True, help='Branch name')
@click.option('--code', default=None, help='Short branch code')
@click.option('--address', default=None)
@click.option('--phone', default=None)
@with_appcontext
def create_branch_cli(name, code, address, phone):
    try:
        branch = branch_service.create_branch(name, code=code, address=address, phone=phone)
        db.session.commit()
        click.echo(f"PASS Created branch: {branch.name} (ID: {branch.id})")
    except (ConflictError, branch_service.BranchError) as e:
        db.session.rollback()
        click.echo(f"FAIL {e}")


@click.group('hire-purchase')
def hire_purchase_group():
    """Hire-purchase maintenance commands."""


@hire_purchase_group.command('mark-overdue')
@click.option('--today', default=None, help='Business date YYYY-MM-DD (default: today)')
@with_appcontext
def mark_overdue_cli(today):
    """Move past-due pending/partial installments of active contracts to overdue."""
    try:
        as_of = parse_iso_date(today)
    except ValueError:
        raise click.BadParameter("today must be YYYY-MM-DD", param_hint="--today")

    changed = mark_overdue_installments(as_of)
    db.session.commit()
    click.echo(f"PASS Marked {changed} installment(s) overdue")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(branches_group)
    app.cli.add_command(hire_purchase_group)
