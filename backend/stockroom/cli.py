# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/stockroom/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init-db
#   Create all tables that don't exist yet (use migrations for schema changes).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with their store memberships.
# - python -m flask users create --name "Asha" --email asha@example.com --password "secret1" --store-name "Main Store"
#   Create a founder account with its own store (prompts if options are omitted).
#
# Store inspection:
# - python -m flask stores list
#   List all stores with owner and member counts.
# - python -m flask stores members 1
#   List the members of a store with their roles.
# - python -m flask stores events 1 --limit 20
#   List denied access attempts recorded against a store.

import click
from flask.cli import with_appcontext

from .errors import StockroomError
from .extensions import db
from .models import Store, User, UserStoreRole, Product
from .services import auth_service, security_service, team_service
from .time_utils import to_utc_z


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init-db')
@with_appcontext
def init_db():
    """Create all tables that don't exist yet."""
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

    click.echo("PASS Database reset complete.")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their store memberships."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<5} {'Name':<20} {'Email':<35} {'Type':<8} {'Stores'}")
    click.echo("="*100)

    for user in users:
        memberships = db.session.query(UserStoreRole).filter_by(user_id=user.id).all()
        stores_str = ", ".join(f"{m.store_id}:{m.role}" for m in memberships) or "none"
        click.echo(f"{user.id:<5} {user.name[:20]:<20} {user.email[:35]:<35} {user.account_type:<8} {stores_str}")

    click.echo("="*100 + "\n")


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password (min 6 chars)')
@click.option('--store-name', default=None, help="Store name (defaults to \"<name>'s Store\")")
@click.option('--admin-pin', default=None, help='Join PIN for co-admin/staff signup')
@with_appcontext
def create_user_cli(name, email, password, store_name, admin_pin):
    """Create a founder account together with its first store."""
    try:
        result = auth_service.signup(
            name=name,
            email=email,
            password=password,
            store_name=store_name,
            admin_pin=admin_pin,
        )
    except StockroomError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)

    user = result["user"]
    store = result["store"]
    click.echo(f"PASS Created user {user['email']} (ID: {user['id']}) owning store {store['name']} (ID: {store['id']})")


@click.group('stores')
def stores_group():
    """Store inspection commands."""


@stores_group.command('list')
@with_appcontext
def list_stores():
    """List all stores with owner and member counts."""
    stores = db.session.query(Store).order_by(Store.id.asc()).all()

    if not stores:
        click.echo("No stores found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Name':<30} {'Type':<22} {'Owner':<7} {'Members':<8} {'Products'}")
    click.echo("="*90)

    for store in stores:
        members = db.session.query(UserStoreRole).filter_by(store_id=store.id).count()
        products = db.session.query(Product).filter_by(store_id=store.id).count()
        click.echo(f"{store.id:<5} {store.name[:30]:<30} {store.type[:22]:<22} {store.owner_id:<7} {members:<8} {products}")

    click.echo("="*90 + "\n")


@stores_group.command('members')
@click.argument('store_id', type=int)
@with_appcontext
def list_store_members(store_id):
    """List the members of a store with their roles."""
    try:
        members = team_service.list_members(store_id)
    except StockroomError as exc:
        click.echo(f"FAIL {exc.message}")
        raise SystemExit(1)

    if not members:
        click.echo("No members found.")
        return

    for member in members:
        owner = " (owner)" if member["is_owner"] else ""
        click.echo(f"{member['id']:<5} {member['email']:<35} {member['role']}{owner}")


@stores_group.command('events')
@click.argument('store_id', type=int)
@click.option('--limit', default=50, show_default=True, help='Most recent events to show')
@with_appcontext
def list_store_events(store_id, limit):
    """List denied access attempts recorded against a store."""
    events = security_service.list_security_events(store_id=store_id, limit=limit)

    if not events:
        click.echo("No security events found.")
        return

    for event in events:
        click.echo(
            f"{to_utc_z(event.occurred_at)} {event.event_type:<20} user={event.user_id} "
            f"{event.action or '-'} {event.resource or '-'} {event.reason or ''}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stores_group)
