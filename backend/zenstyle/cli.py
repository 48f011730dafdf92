# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/zenstyle/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Idempotent bootstrap: creates tables and saves default working hours.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Settings inspection:
# - python -m flask settings show-hours
#   Print the working hours used for availability checks.
#
# Ledger checks:
# - python -m flask ledger verify
#   Compare stored client credit and supplier balances with their ledgers.
#   Exits with status 1 when any balance has drifted.

import click
from flask.cli import with_appcontext
from sqlalchemy import func

from .extensions import db
from .models import Client, ClientPayment, PurchaseOrder, Supplier, SupplierPayment
from .services import settings_service
from .services.client_service import ledger_balance_expr


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@with_appcontext
def init_system():
    """
    Initialize the salon database.

    Safe to run multiple times: existing tables and saved settings are kept.
    """
    click.echo("START Initializing ZenStyle database...")

    db.create_all()
    click.echo("PASS Tables created")

    if settings_service.seed_default_working_hours():
        click.echo("PASS Saved default working hours")
    else:
        click.echo("PASS Using existing working hours")

    click.echo("DONE ZenStyle initialized")


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


@click.group('settings')
def settings_group():
    """Salon settings inspection."""


@settings_group.command('show-hours')
@with_appcontext
def show_hours():
    """Print working hours, one weekday per line."""
    hours = settings_service.get_working_hours()

    click.echo("\n" + "=" * 40)
    click.echo(f"{'Day':<12} {'Open':<8} {'Close':<8} {'Status'}")
    click.echo("=" * 40)
    for day, info in hours.items():
        status = "open" if info.get("isOpen") else "closed"
        click.echo(f"{day:<12} {info.get('open', '-'):<8} {info.get('close', '-'):<8} {status}")
    click.echo("=" * 40 + "\n")


@click.group('ledger')
def ledger_group():
    """Balance consistency checks."""


def _client_drift() -> list[tuple[Client, int]]:
    ledger = dict(
        db.session.query(ClientPayment.client_id, func.coalesce(func.sum(ledger_balance_expr()), 0))
        .group_by(ClientPayment.client_id)
        .all()
    )
    drift = []
    for client in db.session.query(Client).order_by(Client.id.asc()).all():
        expected = int(ledger.get(client.id, 0))
        if client.credit_balance_cents != expected:
            drift.append((client, expected))
    return drift


def _supplier_drift() -> list[tuple[Supplier, int]]:
    ordered = dict(
        db.session.query(PurchaseOrder.supplier_id, func.coalesce(func.sum(PurchaseOrder.total_cents), 0))
        .group_by(PurchaseOrder.supplier_id)
        .all()
    )
    paid = dict(
        db.session.query(SupplierPayment.supplier_id, func.coalesce(func.sum(SupplierPayment.amount_cents), 0))
        .group_by(SupplierPayment.supplier_id)
        .all()
    )
    drift = []
    for supplier in db.session.query(Supplier).order_by(Supplier.id.asc()).all():
        expected = int(ordered.get(supplier.id, 0)) - int(paid.get(supplier.id, 0))
        if supplier.balance_cents != expected:
            drift.append((supplier, expected))
    return drift


@ledger_group.command('verify')
@with_appcontext
def verify_ledgers():
    """Recompute balances from payment history and report any mismatch."""
    client_drift = _client_drift()
    supplier_drift = _supplier_drift()

    for client, expected in client_drift:
        click.echo(
            f"FAIL Client {client.id} ({client.full_name}): stored {client.credit_balance_cents}, ledger {expected}"
        )
    for supplier, expected in supplier_drift:
        click.echo(
            f"FAIL Supplier {supplier.id} ({supplier.name}): stored {supplier.balance_cents}, ledger {expected}"
        )

    if client_drift or supplier_drift:
        raise SystemExit(1)

    click.echo("PASS All client and supplier balances match their ledgers")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(settings_group)
    app.cli.add_command(ledger_group)
