from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from cardledger.time_utils import parse_iso_date, today


# Maximum amount: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

# Correction notes, deletion reasons and free-text notes
NOTE_MIN_LENGTH = 10
NOTE_MAX_LENGTH = 500

CENTS = Decimal("0.01")


class LedgerError(Exception):
    """Base class for every error a ledger operation surfaces to its caller."""

    code = "LEDGER_ERROR"
    http_status = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        payload = {"error": str(self), "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(LedgerError, ValueError):
    """400-level input problem. Always raised before any write."""

    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(LedgerError, LookupError):
    """Referenced entity does not exist or belongs to another owner."""

    code = "NOT_FOUND"
    http_status = 404


class ConsistencyViolation(LedgerError):
    """409-level: the operation would break a ledger invariant."""

    code = "CONSISTENCY_VIOLATION"
    http_status = 409


class ReadOnlyContextError(LedgerError):
    """Write attempted while viewing another owner's books (mentor view)."""

    code = "READ_ONLY_CONTEXT"
    http_status = 403


class PartialFailureError(LedgerError):
    """
    A multi-step ledger operation failed after some of its steps were applied.

    The unit of work has already been rolled back when this is raised, so
    ``completed_steps`` lists what had been flushed before the failure, not
    what is persisted.
    """

    code = "PARTIAL_FAILURE"
    http_status = 500

    def __init__(self, operation: str, completed_steps: Iterable[str], cause: Exception | None = None):
        self.operation = operation
        self.completed_steps = list(completed_steps)
        self.cause = cause
        super().__init__(
            f"{operation} failed after steps {self.completed_steps or '[]'}; changes rolled back",
            details={"operation": operation, "completed_steps": self.completed_steps},
        )


# =============================================================================
# TEXT
# =============================================================================

def validate_reason(value: Any, field: str = "correction_note") -> str:
    """
    Validate a correction note or deletion reason.

    Length is measured after trimming and must be within
    [NOTE_MIN_LENGTH, NOTE_MAX_LENGTH]. Returns the trimmed text.
    """
    if value is None or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if len(text) < NOTE_MIN_LENGTH:
        raise ValidationError(f"{field} must be at least {NOTE_MIN_LENGTH} characters")
    if len(text) > NOTE_MAX_LENGTH:
        raise ValidationError(f"{field} must be at most {NOTE_MAX_LENGTH} characters")
    return text


def validate_notes(value: Any, field: str = "notes") -> Optional[str]:
    """Optional free text: blank becomes None, longer than NOTE_MAX_LENGTH is rejected."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    text = value.strip()
    if not text:
        return None
    if len(text) > NOTE_MAX_LENGTH:
        raise ValidationError(f"{field} must be at most {NOTE_MAX_LENGTH} characters")
    return text


def require_text(value: Any, field: str, max_length: int = 255) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_choice(value: Any, choices: Iterable[str], field: str) -> str:
    allowed = tuple(choices)
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value


# =============================================================================
# MONEY
# =============================================================================

def parse_amount_cents(value: Any, field: str = "amount", *, allow_zero: bool = False) -> int:
    """
    Parse a monetary amount (positive decimal, at most two decimal places) into cents.

    Accepts Decimal, int, or numeric strings ("60", "60.5", "60.50").
    Floats are converted through their string form so 0.1 stays 0.1.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid amount for {field}: {value!r}")

    if not amount.is_finite():
        raise ValidationError(f"Invalid amount for {field}: {value!r}")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than 0")
    if amount > Decimal(MAX_AMOUNT_CENTS) / 100:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    try:
        exact = amount == amount.quantize(CENTS)
    except InvalidOperation:
        raise ValidationError(f"Invalid amount for {field}: {value!r}")
    if not exact:
        raise ValidationError(f"{field} must have at most two decimal places")

    return int(amount * 100)


def parse_optional_amount_cents(value: Any, field: str) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return parse_amount_cents(value, field, allow_zero=True)


def cents_to_decimal(cents: Optional[int]) -> Optional[Decimal]:
    if cents is None:
        return None
    return (Decimal(cents) / 100).quantize(CENTS)


def format_cents(cents: Optional[int]) -> Optional[str]:
    """Serialize cents as a fixed two-decimal string for JSON payloads."""
    amount = cents_to_decimal(cents)
    return None if amount is None else str(amount)


# =============================================================================
# DATES & NUMBERS
# =============================================================================

def parse_business_date(value: Any, field: str = "date", *, allow_future: bool = False) -> date:
    """
    Parse an ISO calendar date for a historical fact.

    Dates in the future are rejected unless ``allow_future`` (planned shows).
    """
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, str):
        try:
            parsed = parse_iso_date(value)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO-8601 date")
        if parsed is None:
            raise ValidationError(f"{field} is required")
    elif value is None:
        raise ValidationError(f"{field} is required")
    else:
        raise ValidationError(f"{field} must be an ISO-8601 date")

    if not allow_future and parsed > today():
        raise ValidationError(f"{field} cannot be in the future")
    return parsed


def parse_positive_int(value: Any, field: str, *, required: bool = False) -> Optional[int]:
    if value is None or (isinstance(value, str) and not value.strip()):
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped.lstrip("-").isdecimal():
            raise ValidationError(f"{field} must be an integer")
        try:
            value = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer")
    if value <= 0:
        raise ValidationError(f"{field} must be > 0")
    return value


def parse_entity_id(value: Any, field: str) -> int:
    """Entity ids come from JSON bodies; accept ints and digit strings only."""
    return parse_positive_int(value, field, required=True)  # type: ignore[return-value]
