"""
Correction Tracker

WHY: Recorded facts get fixed after the fact (wrong date, typo in notes,
wrong expense amount). A correction must never be silent: it needs a reason,
it bumps a counter on the row, and the old/new values go to the append-only
correction log.

WHITELISTS:
- transaction:       transaction_date, notes
- cash_transaction:  notes
- expense:           expense_date, notes, category, amount

Anything that moves money or attribution is not a field edit. Transaction
revenue is never rewritten (delete and re-record instead), and lot/show
attribution changes only through reassignment_service. The one money field
that is correctable is an expense amount, and changing it appends an
adjustment cash entry of -(new - old) in the same unit of work.
"""

from __future__ import annotations

from typing import Any, Callable

from flask import current_app

from ..context import LedgerContext
from ..models import CashTransaction, Expense, Transaction
from ..models.shows import EXPENSE_CATEGORIES
from ..models.transactions import CASH_TYPE_ADJUSTMENT
from ..time_utils import to_iso_date, utcnow
from ..validation import (
    ConsistencyViolation,
    ValidationError,
    format_cents,
    parse_amount_cents,
    parse_business_date,
    require_choice,
    validate_notes,
    validate_reason,
)
from .cash_service import append_cash_entry
from .concurrency import UnitOfWork
from .ledger_service import append_correction_event, get_owned


ENTITY_TRANSACTION = "transaction"
ENTITY_CASH_TRANSACTION = "cash_transaction"
ENTITY_EXPENSE = "expense"

ACTION_CORRECTED = "corrected"


def _date_field(field: str) -> Callable[[Any], Any]:
    return lambda value: parse_business_date(value, field)


def _notes_field(value: Any) -> Any:
    return validate_notes(value)


def _category_field(value: Any) -> Any:
    return require_choice(value, EXPENSE_CATEGORIES, "category")


def _amount_field(value: Any) -> Any:
    return parse_amount_cents(value, "amount")


# entity_type -> (model, {public field: (column, parser, serializer)})
CORRECTABLE: dict[str, tuple[type, dict[str, tuple[str, Callable, Callable]]]] = {
    ENTITY_TRANSACTION: (
        Transaction,
        {
            "transaction_date": ("transaction_date", _date_field("transaction_date"), to_iso_date),
            "notes": ("notes", _notes_field, lambda v: v),
        },
    ),
    ENTITY_CASH_TRANSACTION: (
        CashTransaction,
        {
            "notes": ("notes", _notes_field, lambda v: v),
        },
    ),
    ENTITY_EXPENSE: (
        Expense,
        {
            "expense_date": ("expense_date", _date_field("expense_date"), to_iso_date),
            "notes": ("notes", _notes_field, lambda v: v),
            "category": ("category", _category_field, lambda v: v),
            "amount": ("amount_cents", _amount_field, format_cents),
        },
    ),
}


def _parse_changes(entity_type: str, field_changes: dict) -> dict[str, Any]:
    """Validate every requested field up front; returns {column: parsed value}."""
    if entity_type not in CORRECTABLE:
        raise ValidationError(f"entity_type must be one of: {', '.join(CORRECTABLE)}")
    if not isinstance(field_changes, dict) or not field_changes:
        raise ValidationError("At least one field must be corrected")

    _, fields = CORRECTABLE[entity_type]
    unknown = sorted(set(field_changes) - set(fields))
    if unknown:
        raise ValidationError(
            f"Fields not correctable on {entity_type}: {', '.join(unknown)}",
            details={"allowed": sorted(fields)},
        )

    parsed: dict[str, Any] = {}
    for name, value in field_changes.items():
        column, parser, _ = fields[name]
        parsed[column] = parser(value)
    return parsed


def apply_correction(
    ctx: LedgerContext,
    entity_type: str,
    entity_id: int,
    field_changes: dict,
    correction_note: str,
):
    """
    Correct whitelisted fields on a transaction, cash entry or expense.

    Writes the new values, overwrites correction_note and corrected_at,
    increments correction_count and appends one correction event, all in one
    unit of work.

    Raises:
        ValidationError: bad note, unknown field or bad value
        NotFoundError: entity missing or owned by someone else
        ConsistencyViolation: entity is deleted
    """
    ctx.require_writable()
    note = validate_reason(correction_note, "correction_note")
    parsed = _parse_changes(entity_type, field_changes)
    model, fields = CORRECTABLE[entity_type]
    serializers = {column: serialize for column, _, serialize in fields.values()}

    with UnitOfWork(f"correct_{entity_type}") as uow:
        row = get_owned(model, ctx.owner_id, entity_id, for_update=True)
        if getattr(row, "deleted", False):
            raise ConsistencyViolation(f"{model.__name__} {entity_id} is deleted and cannot be corrected")

        old_amount_cents = getattr(row, "amount_cents", None)
        changes: dict[str, dict[str, Any]] = {}
        for column, new_value in parsed.items():
            old_value = getattr(row, column)
            if old_value == new_value:
                continue
            serialize = serializers[column]
            changes[column] = {"old": serialize(old_value), "new": serialize(new_value)}
            setattr(row, column, new_value)

        if "amount_cents" in changes:
            delta = parsed["amount_cents"] - old_amount_cents
            uow.step("fields")
            append_cash_entry(
                owner_id=ctx.owner_id,
                transaction_type=CASH_TYPE_ADJUSTMENT,
                amount_cents=-delta,
                notes=f"Expense {row.id} amount corrected",
                related_expense_id=row.id,
            )
            uow.step("adjustment_cash_entry")

        row.correction_note = note
        row.corrected_at = utcnow()
        row.correction_count = (row.correction_count or 0) + 1
        uow.step("correction_metadata")

        append_correction_event(
            owner_id=ctx.owner_id,
            actor_id=ctx.actor_id,
            entity_type=entity_type,
            entity_id=row.id,
            action=ACTION_CORRECTED,
            note=note,
            changes=changes,
            correction_number=row.correction_count,
        )
        uow.step("correction_event")

    current_app.logger.info(
        "%s %s corrected by %s (count=%s, fields=%s)",
        entity_type, entity_id, ctx.actor_id, row.correction_count, sorted(changes),
    )
    return row


_UNSET = object()


def correct_transaction(
    ctx: LedgerContext,
    transaction_id: int,
    *,
    correction_note: str,
    transaction_date: Any = _UNSET,
    notes: Any = _UNSET,
) -> Transaction:
    """Correct a transaction's date and/or notes. Omitted fields stay as they are."""
    changes = {}
    if transaction_date is not _UNSET:
        changes["transaction_date"] = transaction_date
    if notes is not _UNSET:
        changes["notes"] = notes
    return apply_correction(ctx, ENTITY_TRANSACTION, transaction_id, changes, correction_note)
