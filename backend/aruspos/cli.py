# Overview: Flask CLI command groups for bootstrap, tenant inspection and demo data.

# backend/aruspos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init-db
#   Create any missing tables (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Business (tenant) management:
# - python -m flask businesses list
#   List all businesses with branch and user counts.
# - python -m flask businesses create --name "My Cafe" --admin-name "Jane" --email jane@mycafe.com --password "secret1" --branch "Downtown"
#   Provision a business with its admin user and one or more branches.
#
# Demo data:
# - python -m flask branches seed --business-id 1 --branch-id 1
#   Seed demo products (and demo customers when the business has none).
# - python -m flask branches reset --business-id 1 --branch-id 1 --yes
#   Delete the branch's products, transactions and promotions.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Business, Branch, User
from .services import seed_service, tenant_service
from .services.tenant_service import TenantAccessError
from .validation import ValidationError, ConflictError


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that do not exist yet."""
    db.create_all()
    click.echo("PASS Database tables created")


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

    click.echo("PASS Database reset complete")


@click.group('businesses')
def businesses_group():
    """Business (tenant) management commands."""


@businesses_group.command('list')
@with_appcontext
def list_businesses():
    """List all businesses."""
    businesses = db.session.query(Business).order_by(Business.id).all()

    if not businesses:
        click.echo("No businesses found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Name':<30} {'Currency':<10} {'Active':<8} {'Branches':<10} {'Users'}")
    click.echo("="*80)

    for business in businesses:
        branch_count = db.session.query(Branch).filter_by(business_id=business.id).count()
        user_count = db.session.query(User).filter_by(business_id=business.id).count()
        active_str = "Yes" if business.is_active else "No"

        click.echo(
            f"{business.id:<5} {business.name:<30} {business.currency:<10} {active_str:<8} {branch_count:<10} {user_count}"
        )

    click.echo("="*80 + "\n")


@businesses_group.command('create')
@click.option('--name', required=True, help='Business name')
@click.option('--type', 'business_type', default=None, help='Business type (e.g. Cafe)')
@click.option('--admin-name', required=True, help='Admin user full name')
@click.option('--email', required=True, help='Admin user email')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Admin password')
@click.option('--branch', 'branches', multiple=True, required=True, help='Branch name (repeatable)')
@with_appcontext
def create_business_cli(name, business_type, admin_name, email, password, branches):
    """Provision a business with its admin user and branches."""
    payload = {
        "business_name": name,
        "business_type": business_type,
        "admin_name": admin_name,
        "email": email,
        "password": password,
        "branches": [{"name": branch} for branch in branches],
    }
    try:
        business = tenant_service.provision_business(payload)
    except (ValidationError, ConflictError) as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created business: {business.name} (ID: {business.id}) with {len(branches)} branch(es)")


@click.group('branches')
def branches_group():
    """Branch demo data commands."""


def _resolve_branch(business_id: int, branch_id: int) -> Branch:
    try:
        return tenant_service.require_branch_in_business(branch_id, business_id)
    except TenantAccessError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)


@branches_group.command('seed')
@click.option('--business-id', type=int, required=True, help='Business ID')
@click.option('--branch-id', type=int, required=True, help='Branch ID')
@with_appcontext
def seed_branch_cli(business_id, branch_id):
    """Seed a branch with demo products and customers."""
    branch = _resolve_branch(business_id, branch_id)
    if seed_service.seed_branch(business_id, branch.id):
        click.echo(f"PASS Seeded branch '{branch.name}' with demo data")
    else:
        click.echo(f"SKIP Branch '{branch.name}' already has products; nothing seeded")


@branches_group.command('reset')
@click.option('--business-id', type=int, required=True, help='Business ID')
@click.option('--branch-id', type=int, required=True, help='Branch ID')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_branch_cli(business_id, branch_id, yes):
    """Delete a branch's products, transactions and promotions (customers are kept)."""
    branch = _resolve_branch(business_id, branch_id)
    if not yes:
        click.confirm(f"WARN This will DELETE all data of branch '{branch.name}'. Are you sure?", abort=True)

    counts = seed_service.reset_branch(business_id, branch.id)
    click.echo(
        f"PASS Reset branch '{branch.name}': {counts['products']} products, "
        f"{counts['transactions']} transactions, {counts['promotions']} promotions deleted"
    )


def register_commands(app):
    app.cli.add_command(system_group)
    app.cli.add_command(businesses_group)
    app.cli.add_command(branches_group)
