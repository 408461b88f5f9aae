"""initial ledger schema

Revision ID: c1a0d9e7b001
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the card ledger schema from scratch:
- lots: purchase batches (cost only; revenue is computed from transactions)
- show_cards: individually tracked cards with derived status
- shows / expenses: sales events and their costs
- transactions: sales and dispositions (soft delete + correction metadata)
- cash_transactions: append-only signed cash ledger
- correction_events: append-only correction / reassignment / deletion history
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c1a0d9e7b001'
down_revision = None
branch_labels = None
depends_on = None


def _correction_columns():
    return [
        sa.Column('correction_note', sa.String(length=500), nullable=True),
        sa.Column('corrected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('correction_count', sa.Integer(), nullable=False, server_default='0'),
    ]


def _soft_delete_columns():
    return [
        sa.Column('deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deletion_reason', sa.String(length=500), nullable=True),
    ]


def upgrade():
    # ============================================================================
    # lots
    # ============================================================================
    op.create_table(
        'lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('source', sa.String(length=255), nullable=False),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('total_cost_cents', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('closure_date', sa.Date(), nullable=True),
        sa.Column('closure_reason', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_lots_user_id', 'lots', ['user_id'])
    op.create_index('ix_lots_status', 'lots', ['status'])
    op.create_index('ix_lots_user_status', 'lots', ['user_id', 'status'])

    # ============================================================================
    # show_cards
    # ============================================================================
    op.create_table(
        'show_cards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=False),
        sa.Column('destination_lot_id', sa.Integer(), nullable=True),
        sa.Column('player_name', sa.String(length=255), nullable=False),
        sa.Column('year', sa.String(length=16), nullable=True),
        sa.Column('card_details', sa.JSON(), nullable=True),
        sa.Column('asking_price_cents', sa.Integer(), nullable=True),
        sa.Column('cost_basis_cents', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='available'),
        sa.Column('disposition_type', sa.String(length=16), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.ForeignKeyConstraint(['lot_id'], ['lots.id']),
        sa.ForeignKeyConstraint(['destination_lot_id'], ['lots.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_show_cards_user_id', 'show_cards', ['user_id'])
    op.create_index('ix_show_cards_lot_id', 'show_cards', ['lot_id'])
    op.create_index('ix_show_cards_destination_lot_id', 'show_cards', ['destination_lot_id'])
    op.create_index('ix_show_cards_status', 'show_cards', ['status'])
    op.create_index('ix_show_cards_lot_status', 'show_cards', ['lot_id', 'status'])

    # ============================================================================
    # shows
    # ============================================================================
    op.create_table(
        'shows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('show_date', sa.Date(), nullable=False),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('booth_number', sa.String(length=32), nullable=True),
        sa.Column('table_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='planned'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_shows_user_id', 'shows', ['user_id'])
    op.create_index('ix_shows_status', 'shows', ['status'])
    op.create_index('ix_shows_user_date', 'shows', ['user_id', 'show_date'])

    # ============================================================================
    # expenses
    # ============================================================================
    op.create_table(
        'expenses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=32), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('show_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        *_correction_columns(),
        *_soft_delete_columns(),
        sa.ForeignKeyConstraint(['show_id'], ['shows.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_expenses_user_id', 'expenses', ['user_id'])
    op.create_index('ix_expenses_show_id', 'expenses', ['show_id'])
    op.create_index('ix_expenses_deleted', 'expenses', ['deleted'])
    op.create_index('ix_expenses_user_date', 'expenses', ['user_id', 'expense_date'])

    # ============================================================================
    # transactions: sales and dispositions
    # ============================================================================
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=32), nullable=False),
        sa.Column('disposition_type', sa.String(length=16), nullable=True),
        sa.Column('revenue_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity', sa.Integer(), nullable=True),
        sa.Column('transaction_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('show_card_id', sa.Integer(), nullable=True),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('show_id', sa.Integer(), nullable=True),
        sa.Column('destination_lot_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        *_correction_columns(),
        *_soft_delete_columns(),
        sa.ForeignKeyConstraint(['show_card_id'], ['show_cards.id']),
        sa.ForeignKeyConstraint(['lot_id'], ['lots.id']),
        sa.ForeignKeyConstraint(['show_id'], ['shows.id']),
        sa.ForeignKeyConstraint(['destination_lot_id'], ['lots.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_transactions_user_id', 'transactions', ['user_id'])
    op.create_index('ix_transactions_transaction_type', 'transactions', ['transaction_type'])
    op.create_index('ix_transactions_show_card_id', 'transactions', ['show_card_id'])
    op.create_index('ix_transactions_lot_id', 'transactions', ['lot_id'])
    op.create_index('ix_transactions_show_id', 'transactions', ['show_id'])
    op.create_index('ix_transactions_deleted', 'transactions', ['deleted'])
    op.create_index('ix_transactions_user_date', 'transactions', ['user_id', 'transaction_date'])
    op.create_index('ix_transactions_lot_deleted', 'transactions', ['lot_id', 'deleted'])
    op.create_index('ix_transactions_show_deleted', 'transactions', ['show_id', 'deleted'])

    # ============================================================================
    # cash_transactions: append-only, signed
    # ============================================================================
    op.create_table(
        'cash_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('transaction_type', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('related_transaction_id', sa.Integer(), nullable=True),
        sa.Column('related_lot_id', sa.Integer(), nullable=True),
        sa.Column('related_expense_id', sa.Integer(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        *_correction_columns(),
        sa.ForeignKeyConstraint(['related_transaction_id'], ['transactions.id']),
        sa.ForeignKeyConstraint(['related_lot_id'], ['lots.id']),
        sa.ForeignKeyConstraint(['related_expense_id'], ['expenses.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_cash_transactions_user_id', 'cash_transactions', ['user_id'])
    op.create_index('ix_cash_transactions_transaction_type', 'cash_transactions', ['transaction_type'])
    op.create_index('ix_cash_transactions_related_transaction_id', 'cash_transactions', ['related_transaction_id'])
    op.create_index('ix_cash_transactions_related_lot_id', 'cash_transactions', ['related_lot_id'])
    op.create_index('ix_cash_transactions_related_expense_id', 'cash_transactions', ['related_expense_id'])
    op.create_index('ix_cash_transactions_occurred_at', 'cash_transactions', ['occurred_at'])
    op.create_index('ix_cash_tx_user_occurred', 'cash_transactions', ['user_id', 'occurred_at'])

    # ============================================================================
    # correction_events: append-only audit history
    # ============================================================================
    op.create_table(
        'correction_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('note', sa.String(length=500), nullable=False),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.Column('correction_number', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_correction_events_user_id', 'correction_events', ['user_id'])
    op.create_index('ix_correction_events_action', 'correction_events', ['action'])
    op.create_index('ix_correction_events_occurred_at', 'correction_events', ['occurred_at'])
    op.create_index('ix_correction_events_entity', 'correction_events', ['entity_type', 'entity_id'])


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('correction_events')
    op.drop_table('cash_transactions')
    op.drop_table('transactions')
    op.drop_table('expenses')
    op.drop_table('shows')
    op.drop_table('show_cards')
    op.drop_table('lots')
