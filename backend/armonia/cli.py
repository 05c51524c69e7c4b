# Overview: Flask CLI command groups for bootstrap, inspection, and stock reconciliation.

# backend/armonia/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP (e.g. export FLASK_APP="armonia:create_app").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users create --name "Ana" --email ana@armonia.local --role cashier
#   Register a staff member (credentials are handled by the auth service).
# - python -m flask users list
#
# Stock:
# - python -m flask stock reconcile
#   Report size-tracked products with no sizes or with stock != sum(sizes).
# - python -m flask stock reconcile --fix
#   Also recompute stock for drifted products that still have sizes.
#
# Registers:
# - python -m flask registers open
#   List currently open cash registers.
# - python -m flask registers history --limit 20
#   List recently closed registers with their differences.

import uuid

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import CashRegister, User, REGISTER_OPEN
from .services import inventory_service, register_service


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Confirm dropping all data')
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        return
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--email', prompt=True, help='Email address')
@click.option('--role', type=click.Choice(['admin', 'cashier']), default='cashier', help='Role')
@with_appcontext
def create_user_cli(name, email, role):
    """Register a staff member so registers can be attributed to them."""
    existing = db.session.query(User).filter_by(email=email).first()
    if existing:
        click.echo(f"FAIL User with email '{email}' already exists (ID: {existing.id})")
        return

    user = User(id=str(uuid.uuid4()), name=name, email=email, role=role)
    db.session.add(user)
    db.session.commit()
    click.echo(f"PASS Created user: {name} ({email}) with role '{role}'")
    click.echo(f"     User ID: {user.id}")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users."""
    users = db.session.query(User).order_by(User.name).all()
    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "=" * 90)
    click.echo(f"{'ID':<38} {'Name':<24} {'Email':<20} {'Role'}")
    click.echo("=" * 90)
    for u in users:
        click.echo(f"{u.id:<38} {u.name:<24} {u.email:<20} {u.role}")
    click.echo("=" * 90 + "\n")


# =============================================================================
# STOCK COMMANDS
# =============================================================================

@click.group('stock')
def stock_group():
    """Stock consistency commands."""


@stock_group.command('reconcile')
@click.option('--fix', is_flag=True, help='Recompute stock for drifted products')
@with_appcontext
def reconcile_stock_cli(fix):
    """
    Check that every size-tracked product's stock equals the sum of its sizes.

    Products with no size rows at all are reported but never modified: their
    size list must be submitted again through a product update.
    """
    report = inventory_service.reconcile_stock(fix=fix)

    for entry in report["missing_sizes"]:
        click.echo(
            f"WARN  {entry['sku']} ({entry['product_id']}) is tracked by size but has no sizes "
            f"(stock={entry['stock']})"
        )

    for entry in report["drift"]:
        status = "FIXED" if entry["product_id"] in report["fixed"] else "DRIFT"
        click.echo(
            f"{status} {entry['sku']} ({entry['product_id']}): "
            f"stock={entry['stock']} sizes_total={entry['sizes_total']}"
        )

    if not report["missing_sizes"] and not report["drift"]:
        click.echo("PASS Stock is consistent")


# =============================================================================
# REGISTER COMMANDS
# =============================================================================

@click.group('registers')
def registers_group():
    """Cash register inspection commands."""


@registers_group.command('open')
@with_appcontext
def list_open_registers():
    """List currently open cash registers."""
    registers = (
        db.session.query(CashRegister)
        .filter_by(status=REGISTER_OPEN)
        .order_by(CashRegister.opened_at.desc())
        .all()
    )
    if not registers:
        click.echo("No open registers.")
        return

    for r in registers:
        expected = register_service.compute_expected_balance(r.id)
        click.echo(f"{r.id}  user={r.user_id}  opened_at={r.opened_at}  opening={r.opening_balance}  ledger={expected}")


@registers_group.command('history')
@click.option('--limit', type=int, default=20, help='Max rows to show')
@with_appcontext
def register_history(limit):
    """List recently closed registers."""
    history = register_service.get_history()[:limit]
    if not history:
        click.echo("No closed registers.")
        return

    for entry in history:
        flag = "OK  " if register_service.is_exact_balance(entry["difference"] or 0) else "DIFF"
        click.echo(
            f"{flag} {entry['closed_at']}  opened_by={entry['opened_by_name'] or '-'}  "
            f"closed_by={entry['closed_by_name'] or '-'}  difference={entry['difference']:.2f}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(stock_group)
    app.cli.add_command(registers_group)
