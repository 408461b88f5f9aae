import unittest
from datetime import date, timedelta

from cardledger.context import LedgerContext
from cardledger.time_utils import today
from cardledger.validation import (
    MAX_AMOUNT_CENTS,
    ConsistencyViolation,
    PartialFailureError,
    ReadOnlyContextError,
    ValidationError,
    format_cents,
    parse_amount_cents,
    parse_business_date,
    parse_positive_int,
    require_choice,
    validate_notes,
    validate_reason,
)


class ReasonValidationTests(unittest.TestCase):
    def test_nine_characters_rejected(self):
        with self.assertRaises(ValidationError):
            validate_reason("a" * 9)

    def test_ten_characters_accepted(self):
        self.assertEqual(validate_reason("a" * 10), "a" * 10)

    def test_five_hundred_characters_accepted(self):
        self.assertEqual(len(validate_reason("b" * 500)), 500)

    def test_five_hundred_one_characters_rejected(self):
        with self.assertRaises(ValidationError):
            validate_reason("b" * 501)

    def test_length_measured_after_trimming(self):
        with self.assertRaises(ValidationError):
            validate_reason("   " + "c" * 9 + "   ")
        self.assertEqual(validate_reason("  duplicate entry  "), "duplicate entry")

    def test_missing_reason_names_field(self):
        with self.assertRaises(ValidationError) as cm:
            validate_reason(None, "deletion_reason")
        self.assertIn("deletion_reason", str(cm.exception))


class NotesValidationTests(unittest.TestCase):
    def test_blank_notes_become_none(self):
        self.assertIsNone(validate_notes("   "))
        self.assertIsNone(validate_notes(None))

    def test_long_notes_rejected(self):
        with self.assertRaises(ValidationError):
            validate_notes("x" * 501)


class AmountParsingTests(unittest.TestCase):
    def test_decimal_strings(self):
        self.assertEqual(parse_amount_cents("60"), 6000)
        self.assertEqual(parse_amount_cents("60.5"), 6050)
        self.assertEqual(parse_amount_cents("60.50"), 6050)

    def test_float_goes_through_string_form(self):
        self.assertEqual(parse_amount_cents(0.1), 10)

    def test_more_than_two_decimals_rejected(self):
        with self.assertRaises(ValidationError):
            parse_amount_cents("1.001")

    def test_zero_and_negative_rejected(self):
        for value in ("0", "-5", 0):
            with self.assertRaises(ValidationError):
                parse_amount_cents(value)

    def test_zero_allowed_when_requested(self):
        self.assertEqual(parse_amount_cents("0", allow_zero=True), 0)

    def test_garbage_rejected(self):
        for value in ("abc", "", None, True, "NaN"):
            with self.assertRaises(ValidationError):
                parse_amount_cents(value)

    def test_maximum_amount(self):
        self.assertEqual(parse_amount_cents("9999999.99"), MAX_AMOUNT_CENTS)
        with self.assertRaises(ValidationError):
            parse_amount_cents("10000000.00")
        with self.assertRaises(ValidationError):
            parse_amount_cents("1e30")

    def test_huge_magnitudes_rejected(self):
        for value in ("-1e30", "1e30", "-1e999999", "1e999999", "1e-999999"):
            with self.assertRaises(ValidationError):
                parse_amount_cents(value)
        with self.assertRaises(ValidationError):
            parse_amount_cents("-1e30", allow_zero=True)

    def test_format_cents(self):
        self.assertEqual(format_cents(-4000), "-40.00")
        self.assertEqual(format_cents(6050), "60.50")
        self.assertIsNone(format_cents(None))


class DateAndIntParsingTests(unittest.TestCase):
    def test_iso_date(self):
        self.assertEqual(parse_business_date("2024-03-02"), date(2024, 3, 2))

    def test_future_date_rejected_for_historical_facts(self):
        tomorrow = today() + timedelta(days=1)
        with self.assertRaises(ValidationError):
            parse_business_date(tomorrow.isoformat())
        self.assertEqual(parse_business_date(tomorrow, allow_future=True), tomorrow)

    def test_bad_date_rejected(self):
        for value in ("03/02/2024", "2024-13-01", None, 12):
            with self.assertRaises(ValidationError):
                parse_business_date(value)

    def test_positive_int(self):
        self.assertEqual(parse_positive_int("3", "quantity"), 3)
        self.assertIsNone(parse_positive_int(None, "quantity"))
        for value in ("x", 0, -1, 1.5, True):
            with self.assertRaises(ValidationError):
                parse_positive_int(value, "quantity")
        with self.assertRaises(ValidationError):
            parse_positive_int(None, "quantity", required=True)

    def test_non_ascii_digits_rejected(self):
        for value in ("²", "-²", "--5", "1_000"):
            with self.assertRaises(ValidationError):
                parse_positive_int(value, "quantity")

    def test_require_choice(self):
        self.assertEqual(require_choice("lost", ("lost", "combined"), "disposition_type"), "lost")
        with self.assertRaises(ValidationError):
            require_choice("stolen", ("lost", "combined"), "disposition_type")


class ErrorTaxonomyTests(unittest.TestCase):
    def test_status_codes(self):
        self.assertEqual(ValidationError("x").http_status, 400)
        self.assertEqual(ConsistencyViolation("x").http_status, 409)
        self.assertEqual(ReadOnlyContextError("x").http_status, 403)

    def test_partial_failure_carries_steps(self):
        err = PartialFailureError("delete_transaction", ["soft_delete", "revert_card"])
        self.assertEqual(err.completed_steps, ["soft_delete", "revert_card"])
        payload = err.to_dict()
        self.assertEqual(payload["code"], "PARTIAL_FAILURE")
        self.assertEqual(payload["details"]["operation"], "delete_transaction")

    def test_mentor_context_is_read_only(self):
        LedgerContext(owner_id=1).require_writable()
        LedgerContext(owner_id=1, viewer_id=1).require_writable()
        with self.assertRaises(ReadOnlyContextError):
            LedgerContext(owner_id=1, viewer_id=2).require_writable()
