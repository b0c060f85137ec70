# Overview: Flask CLI command groups for bootstrap and store maintenance.

# backend/posledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py.
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates permissions, roles (admin, manager, cashier) and default users.
# - python -m flask system cleanup-sessions
#   Delete expired and revoked session tokens.
#
# Users:
# - python -m flask users create --username kasir1 --name "Kasir Satu" --password "Password123!" --role cashier
#   Create a user (prompts if options are omitted).
#
# Catalog and stock:
# - python -m flask products create --sku KOPI-01 --name "Kopi Susu" --price 18000 --stock 50
#   Create a product with its stock row.
# - python -m flask inventory adjust --sku KOPI-01 --quantity 40 --note "Stock count"
#   Set on-hand quantity; the change is written to the product activity log.

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product, Stock
from .services.auth_service import create_user, PasswordValidationError, UserError
from .services.errors import TransactionError
from .services import permission_service, inventory_service, session_service


@click.group('system')
def system_group():
    """System bootstrap and maintenance commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Create permissions, default roles and default users.

    Users: admin, manager, cashier. All passwords default to "Password123!".

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing POS ledger...")

    perm_count = permission_service.initialize_permissions()
    role_count = permission_service.create_default_roles()
    click.echo(f"PASS Created {perm_count} permissions, {role_count} roles")

    default_password = "Password123!"
    default_users = [
        ("admin", "Administrator", "admin"),
        ("manager", "Store Manager", "manager"),
        ("cashier", "Cashier", "cashier"),
    ]

    for username, name, role_name in default_users:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"WARN  User '{username}' already exists, skipping...")
            continue
        try:
            create_user(username=username, name=name, password=default_password, role_name=role_name)
            click.echo(f"PASS Created user: {username} with role '{role_name}'")
        except (PasswordValidationError, UserError) as e:
            click.echo(f"FAIL Failed to create user '{username}': {e}")

    click.echo("\nDONE Default credentials (CHANGE IN PRODUCTION!): admin / manager / cashier -> Password123!")


@system_group.command('cleanup-sessions')
@with_appcontext
def cleanup_sessions():
    """Delete expired and revoked session tokens."""
    deleted = session_service.cleanup_expired_sessions()
    click.echo(f"PASS Deleted {deleted} sessions")


@click.group('users')
def users_group():
    """User commands."""


@users_group.command('create')
@click.option('--username', prompt=True, help='Username')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', default=None, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(['admin', 'manager', 'cashier']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(username, name, email, password, role):
    """
    Create a new user.

    Password must be 8+ characters with upper, lower, digit and special character.
    """
    try:
        user = create_user(username=username, name=name, email=email, password=password, role_name=role)
        click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{role}'")
    except (PasswordValidationError, UserError) as e:
        raise click.ClickException(str(e))


@click.group('products')
def products_group():
    """Catalog commands."""


@products_group.command('create')
@click.option('--sku', required=True, help='Unique SKU')
@click.option('--name', required=True, help='Product name')
@click.option('--price', type=click.IntRange(min=0), required=True, help='Unit price in whole currency units')
@click.option('--stock', 'quantity', type=click.IntRange(min=0), default=0, show_default=True, help='Initial stock')
@with_appcontext
def create_product_cli(sku, name, price, quantity):
    """Create a product and its stock row."""
    if db.session.query(Product).filter_by(sku=sku).first():
        raise click.ClickException(f"SKU '{sku}' already exists")

    product = Product(sku=sku, name=name, price=price, is_active=True)
    db.session.add(product)
    db.session.flush()
    db.session.add(Stock(product_id=product.id, quantity=quantity))
    db.session.commit()
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, SKU: {sku}) stock={quantity}")


@click.group('inventory')
def inventory_group():
    """Stock commands."""


@inventory_group.command('adjust')
@click.option('--sku', required=True, help='Product SKU')
@click.option('--quantity', type=click.IntRange(min=0), required=True, help='New on-hand quantity')
@click.option('--note', default='Manual stock adjustment', help='Reason recorded in the activity log')
@with_appcontext
def adjust_inventory_cli(sku, quantity, note):
    """Set on-hand quantity for a product."""
    product = db.session.query(Product).filter_by(sku=sku).first()
    if not product:
        raise click.ClickException(f"SKU '{sku}' not found")

    try:
        change = inventory_service.adjust_stock(product.id, quantity, user_name="cli", note=note)
    except TransactionError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS {product.name}: {change.previous_quantity} -> {change.new_quantity}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(inventory_group)
