# Overview: Flask CLI command groups for bootstrap, inspection and ledger audit.

# backend/stocktrack/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables for a quick local setup (use `flask db upgrade` otherwise).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed
#   Create demo users, warehouses, a category, items and opening stock.
#
# Users:
# - python -m flask users list
# - python -m flask users create --name "Asha" --email asha@stocktrack.local --role MANAGER --warehouse-id 1
# - python -m flask users update --user-id 2 --role MANAGER
# - python -m flask users activate --user-id 2
# - python -m flask users deactivate --user-id 2
#   Deactivated users get 401 from every API route.
# - python -m flask users assign-warehouse --user-id 4 --warehouse-id 1
# - python -m flask users unassign-warehouse --user-id 4
#
# Ledger audit:
# - python -m flask ledger balance --warehouse-id 1 --item-id 1
# - python -m flask ledger reconcile
#   Replay the movement log against stored balances; exits 1 on any discrepancy.

import click
from flask.cli import with_appcontext

from .errors import StockError
from .extensions import db
from .models import User
from .permissions import Actor, Role
from .services import catalog_service, inventory_service, ledger_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


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


@system_group.command('seed')
@with_appcontext
def seed():
    """
    Create demo data: an admin, two warehouses with managers, one staff
    member, a category, two items and opening stock in the first warehouse.

    Skipped when any user already exists.
    """
    if db.session.query(User).first() is not None:
        click.echo("SKIP Users already exist; seed not applied")
        return

    click.echo("START Seeding demo data...")
    admin = catalog_service.create_user(name="Admin", email="admin@stocktrack.local", role=Role.ADMIN.value)
    north_manager = catalog_service.create_user(
        name="North Manager", email="north.manager@stocktrack.local", role=Role.MANAGER.value
    )
    south_manager = catalog_service.create_user(
        name="South Manager", email="south.manager@stocktrack.local", role=Role.MANAGER.value
    )
    admin_actor = Actor.from_user(admin)

    north = catalog_service.create_warehouse(
        admin_actor, name="North Depot", location="North", manager_id=north_manager.id
    )
    south = catalog_service.create_warehouse(
        admin_actor, name="South Depot", location="South", manager_id=south_manager.id
    )
    staff = catalog_service.create_user(
        name="North Staff", email="north.staff@stocktrack.local", role=Role.STAFF.value, warehouse_id=north.id
    )
    click.echo(f"PASS Warehouses: {north.name} (ID: {north.id}), {south.name} (ID: {south.id})")

    category = catalog_service.create_category(admin_actor, name="General", description="Demo category")
    widget = catalog_service.create_item(
        admin_actor, sku="WID-001", name="Widget", category_id=category.id, unit="pcs",
        min_stock=10, purchase_price_cents=5000, selling_price_cents=7500,
    )
    gadget = catalog_service.create_item(
        admin_actor, sku="GAD-001", name="Gadget", category_id=category.id, unit="pcs",
        min_stock=5, purchase_price_cents=12000, selling_price_cents=15000,
    )
    inventory_service.assign_stock(admin_actor, warehouse_id=north.id, item_id=widget.id, quantity=100)
    inventory_service.assign_stock(admin_actor, warehouse_id=north.id, item_id=gadget.id, quantity=20)
    click.echo("PASS Items and opening stock created")

    click.echo("\nUSERS (send the id in the actor header)")
    for user in (admin, north_manager, south_manager, staff):
        click.echo(f"  {user.id:<4} {user.role:<8} {user.email}")


@click.group('users')
def users_group():
    """User provisioning and management commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role, warehouse and active status."""
    users = catalog_service.list_users()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 80)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<32} {'Role':<8} {'WH':<5} {'Active'}")
    click.echo("=" * 80)
    for user in users:
        warehouse = user.warehouse_id if user.warehouse_id is not None else "-"
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.name:<20} {user.email:<32} {user.role:<8} {warehouse!s:<5} {active_str}")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Unique email')
@click.option('--role', prompt=True, type=click.Choice([r.value for r in Role], case_sensitive=False))
@click.option('--warehouse-id', type=int, default=None, help='Assigned warehouse')
@with_appcontext
def create_user_command(name, email, role, warehouse_id):
    """Create a user."""
    try:
        user = catalog_service.create_user(name=name, email=email, role=role, warehouse_id=warehouse_id)
    except StockError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)
    click.echo(f"PASS Created user {user.email} (ID: {user.id}, role: {user.role})")


@users_group.command('update')
@click.option('--user-id', type=int, required=True)
@click.option('--name', default=None, help='New display name')
@click.option('--email', default=None, help='New unique email')
@click.option('--role', default=None, type=click.Choice([r.value for r in Role], case_sensitive=False))
@with_appcontext
def update_user_command(user_id, name, email, role):
    """Change a user's name, email or role."""
    changes = {key: value for key, value in (("name", name), ("email", email), ("role", role)) if value is not None}
    if not changes:
        click.echo("FAIL Nothing to update")
        raise click.exceptions.Exit(1)
    try:
        user = catalog_service.update_user(user_id, changes)
    except StockError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)
    click.echo(f"PASS Updated user {user.email} (ID: {user.id}, role: {user.role})")


def _set_status(user_id, is_active):
    try:
        user = catalog_service.set_user_status(user_id, is_active)
    except StockError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)
    click.echo(f"PASS User {user.email} {'activated' if user.is_active else 'deactivated'}")


@users_group.command('activate')
@click.option('--user-id', type=int, required=True)
@with_appcontext
def activate_user(user_id):
    """Allow a user to act through the API again."""
    _set_status(user_id, True)


@users_group.command('deactivate')
@click.option('--user-id', type=int, required=True)
@with_appcontext
def deactivate_user(user_id):
    """Refuse all further API calls from a user."""
    _set_status(user_id, False)


@users_group.command('assign-warehouse')
@click.option('--user-id', type=int, required=True)
@click.option('--warehouse-id', type=int, required=True)
@with_appcontext
def assign_warehouse(user_id, warehouse_id):
    """Move a user to a warehouse."""
    try:
        user = catalog_service.assign_user_warehouse(user_id, warehouse_id)
    except StockError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)
    click.echo(f"PASS User {user.email} assigned to warehouse {user.warehouse_id}")


@users_group.command('unassign-warehouse')
@click.option('--user-id', type=int, required=True)
@with_appcontext
def unassign_warehouse(user_id):
    """Remove a user from their warehouse."""
    try:
        user = catalog_service.assign_user_warehouse(user_id, None)
    except StockError as e:
        click.echo(f"FAIL {e.message}")
        raise click.exceptions.Exit(1)
    click.echo(f"PASS User {user.email} removed from their warehouse")


@click.group('ledger')
def ledger_group():
    """Quantity ledger inspection and audit commands."""


@ledger_group.command('balance')
@click.option('--warehouse-id', type=int, required=True)
@click.option('--item-id', type=int, required=True)
@with_appcontext
def show_balance(warehouse_id, item_id):
    """Print a balance and its most recent movements."""
    quantity = ledger_service.get_balance(warehouse_id, item_id)
    click.echo(f"Balance warehouse={warehouse_id} item={item_id}: {quantity}")

    entries = ledger_service.list_movements(warehouse_id=warehouse_id, item_id=item_id, limit=10)
    for entry in entries:
        click.echo(
            f"  #{entry.id:<6} {entry.action:<13} {entry.previous_qty:>6} -> {entry.new_qty:<6} "
            f"user={entry.user_id} {entry.remarks or ''}"
        )


@ledger_group.command('reconcile')
@with_appcontext
def reconcile():
    """Check every balance against its movement log chain."""
    discrepancies = ledger_service.reconcile_balances()
    if not discrepancies:
        click.echo("PASS All balances reconcile with the movement log")
        return

    for d in discrepancies:
        click.echo(
            f"FAIL {d['kind']} warehouse={d['warehouse_id']} item={d['item_id']} "
            f"expected={d['expected']} actual={d['actual']} entry={d['entry_id']}"
        )
    click.echo(f"FAIL {len(discrepancies)} discrepancies found")
    raise click.exceptions.Exit(1)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(ledger_group)
