# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/loko/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init [--admin-email admin@loko.local --admin-password "Password123!"]
#   Idempotent bootstrap: creates all tables and the admin user.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list [--role courier]
# - python -m flask users create --name "Awa" --email awa@loko.local --password "Password123!" --role seller \
#       [--city Abidjan --neighborhood Cocody --landmark "Near the market" --latitude 5.35 --longitude -3.98]
#
# Products:
# - python -m flask products list [--seller-id <uuid>]
# - python -m flask products create --name "Rice 5kg" --price-cents 450000 --stock 20 [--seller-id <uuid>]
#
# Deliveries:
# - python -m flask deliveries list [--status IN_TRANSIT] [--limit 50]

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .permissions import VALID_ROLES, ROLE_ADMIN
from .services import delivery_service, products_service
from .services.auth_service import create_user, PasswordValidationError
from .services.delivery_service import DeliveryFilter
from .services.lifecycle_service import VALID_STATUSES
from .validation import ValidationError


DEFAULT_ADMIN_EMAIL = "admin@loko.local"
DEFAULT_ADMIN_PASSWORD = "Password123!"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--admin-email', default=DEFAULT_ADMIN_EMAIL, show_default=True, help='Admin email')
@click.option('--admin-password', default=DEFAULT_ADMIN_PASSWORD, help='Admin password')
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize the delivery backend: schema and admin account.

    Safe to re-run; an existing admin is left untouched.

    SECURITY: Change the default password immediately in production!
    """
    click.echo("START Initializing Loko...")

    db.create_all()
    click.echo("PASS Tables created")

    existing = db.session.query(User).filter_by(email=admin_email.lower()).first()
    if existing:
        click.echo(f"WARN  User '{admin_email}' already exists, skipping...")
    else:
        try:
            create_user("Administrator", admin_email, admin_password, ROLE_ADMIN)
            click.echo(f"PASS Created admin user: {admin_email}")
        except (PasswordValidationError, ValidationError) as e:
            click.echo(f"FAIL Failed to create admin '{admin_email}': {str(e)}")
            return

    click.echo("\n" + "="*60)
    click.echo("DONE Loko Initialized Successfully!")
    click.echo("="*60)
    if admin_password == DEFAULT_ADMIN_PASSWORD:
        click.echo("\nSECURITY WARNING: default admin password in use, change it in production!")
    click.echo("")


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
    """User inspection and creation."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), prompt=True, help='Role')
@click.option('--phone', help='Phone number')
@click.option('--city', help='City')
@click.option('--neighborhood', help='Neighborhood')
@click.option('--landmark', help='Landmark (shown on pickup points)')
@click.option('--latitude', type=float, help='Pickup latitude (sellers)')
@click.option('--longitude', type=float, help='Pickup longitude (sellers)')
@with_appcontext
def create_user_cli(name, email, password, role, phone, city, neighborhood, landmark, latitude, longitude):
    """Create a user of any role (the only way to create admins)."""
    try:
        user = create_user(
            name,
            email,
            password,
            role,
            phone=phone,
            city=city,
            neighborhood=neighborhood,
            landmark=landmark,
            latitude=latitude,
            longitude=longitude,
        )
        click.echo(f"PASS Created user: {user.email} with role '{user.role}'")
        click.echo(f"     User ID: {user.id}")
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
    except ValidationError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")


@users_group.command('list')
@click.option('--role', type=click.Choice(sorted(VALID_ROLES)), help='Filter by role')
@with_appcontext
def list_users(role):
    """List all users."""
    query = db.session.query(User)
    if role:
        query = query.filter_by(role=role)

    users = query.order_by(User.created_at).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*110)
    click.echo(f"{'ID':<37} {'Role':<8} {'Name':<20} {'Email':<30} {'Active':<8} {'Pickup'}")
    click.echo("="*110)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        pickup_str = f"{user.latitude:.5f},{user.longitude:.5f}" if user.has_location else "-"
        click.echo(f"{user.id:<37} {user.role:<8} {user.name[:20]:<20} {user.email[:30]:<30} {active_str:<8} {pickup_str}")

    click.echo("="*110 + "\n")


@click.group('products')
def products_group():
    """Product catalogue inspection and creation."""


@products_group.command('create')
@click.option('--name', required=True, help='Product name')
@click.option('--price-cents', type=int, default=0, show_default=True, help='Price in cents')
@click.option('--stock', type=int, default=0, show_default=True, help='Initial stock')
@click.option('--seller-id', required=True, help='Owning seller user ID')
@click.option('--description', help='Description')
@with_appcontext
def create_product_cli(name, price_cents, stock, seller_id, description):
    if db.session.get(User, seller_id) is None:
        click.echo(f"FAIL Seller '{seller_id}' not found")
        return
    try:
        product = products_service.add_product(seller_id, {
            "name": name,
            "price_cents": price_cents,
            "stock": stock,
            "description": description,
        })
    except ValueError as e:
        click.echo(f"FAIL Failed to create product: {str(e)}")
        return
    click.echo(f"PASS Created product: {product.name} (ID: {product.id}, stock {product.stock})")


@products_group.command('list')
@click.option('--seller-id', help='Filter by seller user ID')
@with_appcontext
def list_products(seller_id):
    query = db.session.query(Product)
    if seller_id:
        query = query.filter_by(seller_id=seller_id)
    products = query.order_by(Product.name).all()

    if not products:
        click.echo("No products found.")
        return

    for p in products:
        flag = "" if p.is_active else " (inactive)"
        click.echo(f"{p.id}  {p.name[:30]:<30} stock={p.stock:<6} price_cents={p.price_cents}{flag}")


@click.group('deliveries')
def deliveries_group():
    """Delivery inspection."""


@deliveries_group.command('list')
@click.option('--status', type=click.Choice(sorted(VALID_STATUSES)), help='Filter by status')
@click.option('--limit', type=int, default=50, show_default=True)
@with_appcontext
def list_deliveries_cli(status, limit):
    rows = delivery_service.list_deliveries(DeliveryFilter(status=status, limit=limit))

    if not rows:
        click.echo("No deliveries found.")
        return

    click.echo("\n" + "="*100)
    click.echo(f"{'ID':<37} {'Status':<13} {'Created':<21} {'Courier':<20} {'Destination'}")
    click.echo("="*100)
    for d in rows:
        courier = d["courier"]["name"] if d["courier"] else "-"
        destination = (d["destination"] or {}).get("description") or "-"
        click.echo(f"{d['id']:<37} {d['status']:<13} {d['created_at']:<21} {courier[:20]:<20} {destination[:40]}")
    click.echo("="*100 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(products_group)
    app.cli.add_command(deliveries_group)
