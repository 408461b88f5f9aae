# Overview: Flask CLI command groups for setup, inspection, and lot maintenance.

# backend/cardledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System:
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Ledger inspection:
# - python -m flask ledger balance --owner-id 1
#   Print the owner's cash balance (sum of every cash entry).
# - python -m flask ledger verify --owner-id 1
#   List drift between card/lot status, cash entries and transactions. Exits 1 on drift.
#
# Lots:
# - python -m flask lots close --owner-id 1 --lot-id 3 [--reason "all cards moved"]
#   Close a lot; refused while any of its show cards is available.

import click
from flask.cli import with_appcontext

from .context import LedgerContext
from .extensions import db
from .services import cash_service, consistency_service, status_service
from .validation import LedgerError, format_cents


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

    click.echo("PASS Database reset complete.")


@click.group('ledger')
def ledger_group():
    """Cash and consistency inspection."""


@ledger_group.command('balance')
@click.option('--owner-id', type=int, required=True, help='Owner whose books to read')
@with_appcontext
def ledger_balance(owner_id):
    cents = cash_service.get_cash_balance_cents(owner_id)
    click.echo(f"Cash balance for owner {owner_id}: {format_cents(cents)}")


@ledger_group.command('verify')
@click.option('--owner-id', type=int, required=True, help='Owner whose books to verify')
@with_appcontext
def ledger_verify(owner_id):
    """Read-only drift check. Exits with status 1 when anything is out of step."""
    drifts = consistency_service.find_drift(owner_id)
    if not drifts:
        click.echo(f"PASS No drift for owner {owner_id}")
        return

    for d in drifts:
        click.echo(f"FAIL [{d.drift_kind}] {d.entity_type} {d.entity_id}: {d.description}")
    click.echo(f"{len(drifts)} finding(s)")
    raise SystemExit(1)


@click.group('lots')
def lots_group():
    """Lot maintenance."""


@lots_group.command('close')
@click.option('--owner-id', type=int, required=True)
@click.option('--lot-id', type=int, required=True)
@click.option('--reason', default=None, help='Optional closure reason')
@with_appcontext
def close_lot_command(owner_id, lot_id, reason):
    try:
        lot = status_service.close_lot(LedgerContext(owner_id=owner_id), lot_id, closure_reason=reason)
    except LedgerError as e:
        raise click.ClickException(str(e))
    click.echo(f"PASS Lot {lot.id} closed ({lot.source})")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(ledger_group)
    app.cli.add_command(lots_group)
