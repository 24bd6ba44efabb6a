# Overview: Flask CLI command groups for bootstrap and inspection.

# backend/counterpos/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed --email admin@counterpos.local
#   Idempotently add the demo grocery catalogue to an account.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and subscription status.
# - python -m flask users create --email admin@counterpos.local --name Admin --password "Password123!" --role ADMIN
#   Create a user (prompts if options are omitted).

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import User, Product
from .models.auth import ROLES, SUBSCRIPTION_STATUSES, SUBSCRIPTION_TRIAL
from .services.auth_service import create_user, PasswordValidationError
from .time_utils import to_utc_z


# name, barcode, price_cents, stock
DEMO_PRODUCTS = [
    ("Organic Apples", "100001", 299, 150),
    ("Whole Wheat Bread", "100002", 349, 75),
    ("Free-Range Eggs (Dozen)", "100003", 499, 50),
    ("Almond Milk (1L)", "100004", 399, 60),
    ("Avocado", "100005", 199, 80),
    ("Quinoa (500g)", "100006", 699, 40),
    ("Greek Yogurt (500g)", "100007", 449, 55),
    ("Spinach (Bag)", "100008", 279, 90),
    ("Chicken Breast (1lb)", "100009", 799, 30),
    ("Dark Chocolate Bar (70%)", "100010", 329, 100),
]


def seed_demo_products(user_id: int) -> int:
    """Insert demo products missing for the account (matched by barcode). Returns count added."""
    existing = {
        barcode
        for (barcode,) in db.session.query(Product.barcode).filter(Product.user_id == user_id)
    }
    added = 0
    for name, barcode, price_cents, stock in DEMO_PRODUCTS:
        if barcode in existing:
            continue
        db.session.add(Product(
            user_id=user_id,
            name=name,
            barcode=barcode,
            price_cents=price_cents,
            stock=stock,
        ))
        added += 1
    db.session.commit()
    return added


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


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

    click.echo("PASS Database reset complete. Run 'python -m flask users create' next.")


@system_group.command('seed')
@click.option('--email', required=True, help='Account that will own the demo products')
@with_appcontext
def seed(email):
    """Add the demo grocery catalogue (barcodes 100001-100010) to an account."""
    user = db.session.query(User).filter(User.email == email.strip().lower()).first()
    if not user:
        click.echo(f"FAIL User '{email}' not found")
        raise SystemExit(1)

    added = seed_demo_products(user.id)
    click.echo(f"PASS Seeded {added} product(s) for {user.email}")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with role and subscription status."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*90)
    click.echo(f"{'ID':<5} {'Email':<32} {'Role':<14} {'Subscription':<13} {'Trial ends':<22} {'Active'}")
    click.echo("="*90)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        trial = to_utc_z(user.trial_ends_at) or "-"
        click.echo(
            f"{user.id:<5} {user.email:<32} {user.role:<14} {user.subscription_status:<13} {trial:<22} {active_str}"
        )

    click.echo("="*90 + "\n")


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address (login)')
@click.option('--name', default=None, help='Display name')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(ROLES), default='ADMIN', show_default=True, help='Role')
@click.option('--subscription', type=click.Choice(SUBSCRIPTION_STATUSES), default=SUBSCRIPTION_TRIAL,
              show_default=True, help='Subscription status')
@click.option('--trial-days', type=int, default=None, help='Trial length (defaults to TRIAL_DAYS)')
@with_appcontext
def create_user_cli(email, name, password, role, subscription, trial_days):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(
            email=email,
            password=password,
            name=name,
            role=role,
            subscription_status=subscription,
            trial_days=trial_days,
        )
    except PasswordValidationError as e:
        click.echo(f"FAIL Password error: {e}")
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)

    click.echo(f"PASS Created user: {user.email} (ID: {user.id}, Role: {user.role})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
