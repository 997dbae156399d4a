"""Tests for bill field validation."""

from decimal import Decimal

import pytest

from app.errors import FieldError, ValidationFailed
from app.validators.bill import BillCreate, BillUpdate, BillValidator, ValidationMode

VALID = {"name": "Electricity", "amount": 120.5, "due_date": "2025-03-01", "category": "Utilities"}


def _fields(errors: list[FieldError]) -> set[str]:
    return {e.field for e in errors}


class TestCreateMode:
    """All fields except status are required."""

    def test_valid_payload(self):
        validator = BillValidator()
        assert validator.validate(VALID, ValidationMode.CREATE) == []
        payload = validator.parse(VALID, ValidationMode.CREATE)
        assert isinstance(payload, BillCreate)
        assert payload.status == "pending"

    def test_integer_amount_accepted(self):
        assert BillValidator().validate({**VALID, "amount": 80}, ValidationMode.CREATE) == []

    def test_missing_fields_all_reported(self):
        errors = BillValidator().validate({}, ValidationMode.CREATE)
        assert _fields(errors) == {"name", "amount", "due_date", "category"}
        assert FieldError("name", "The 'name' field is required.") in errors

    def test_every_invalid_field_reported_at_once(self):
        errors = BillValidator().validate(
            {"name": "ab", "amount": 0, "due_date": "03/01/2025", "category": "", "status": "late"},
            ValidationMode.CREATE,
        )
        assert set(errors) == {
            FieldError("name", "Bill name must be at least 3 characters"),
            FieldError("amount", "Amount must be a positive number"),
            FieldError("due_date", "Due date must be in YYYY-MM-DD format"),
            FieldError("category", "Category is required"),
            FieldError("status", "Status must be one of: pending, paid, overdue, cancelled"),
        }

    @pytest.mark.parametrize("amount", [0, -1, -0.01])
    def test_non_positive_amount(self, amount):
        errors = BillValidator().validate({**VALID, "amount": amount}, ValidationMode.CREATE)
        assert errors == [FieldError("amount", "Amount must be a positive number")]

    @pytest.mark.parametrize("amount", ["12.50", True, None])
    def test_amount_must_be_a_number(self, amount):
        errors = BillValidator().validate({**VALID, "amount": amount}, ValidationMode.CREATE)
        assert errors == [FieldError("amount", "The 'amount' field must be a number.")]

    @pytest.mark.parametrize("amount", [0.000001, 0.0000049])
    def test_amount_rounding_to_zero_rejected(self, amount):
        errors = BillValidator().validate({**VALID, "amount": amount}, ValidationMode.CREATE)
        assert errors == [FieldError("amount", "Amount must be a positive number")]

    def test_amount_rounded_to_five_places(self):
        payload = BillValidator().parse({**VALID, "amount": 0.000005}, ValidationMode.CREATE)
        assert payload.amount == Decimal("0.00001")
        payload = BillValidator().parse({**VALID, "amount": 10.123456}, ValidationMode.CREATE)
        assert payload.amount == Decimal("10.12346")

    @pytest.mark.parametrize("amount", [1e14, 123456789012345, 1e300])
    def test_amount_too_large(self, amount):
        errors = BillValidator().validate({**VALID, "amount": amount}, ValidationMode.CREATE)
        assert errors == [FieldError("amount", "Amount must be less than 100,000,000,000,000")]

    def test_largest_amount_that_fits(self):
        payload = BillValidator().parse({**VALID, "amount": 99999999999999}, ValidationMode.CREATE)
        assert payload.amount == Decimal("99999999999999.00000")

    def test_length_limits(self):
        errors = BillValidator().validate(
            {**VALID, "name": "x" * 256, "category": "y" * 101}, ValidationMode.CREATE
        )
        assert set(errors) == {
            FieldError("name", "Bill name must not exceed 255 characters"),
            FieldError("category", "Category must not exceed 100 characters"),
        }

    def test_boundary_lengths_accepted(self):
        fields = {**VALID, "name": "abc", "category": "c"}
        assert BillValidator().validate(fields, ValidationMode.CREATE) == []
        fields = {**VALID, "name": "x" * 255, "category": "y" * 100}
        assert BillValidator().validate(fields, ValidationMode.CREATE) == []

    def test_due_date_is_pattern_only(self):
        """Shape is checked, calendar validity is not."""
        assert BillValidator().validate({**VALID, "due_date": "2025-13-45"}, ValidationMode.CREATE) == []
        for bad in ("2025-3-1", "2025-03-01T00:00:00", "20250301", "２０２５-03-01"):
            errors = BillValidator().validate({**VALID, "due_date": bad}, ValidationMode.CREATE)
            assert _fields(errors) == {"due_date"}, bad

    def test_non_string_name(self):
        errors = BillValidator().validate({**VALID, "name": 12345}, ValidationMode.CREATE)
        assert errors == [FieldError("name", "The 'name' field must be a string.")]

    def test_unknown_fields_ignored(self):
        assert BillValidator().validate({**VALID, "user_id": 99}, ValidationMode.CREATE) == []

    def test_non_object_body(self):
        errors = BillValidator().validate(["not", "an", "object"], ValidationMode.CREATE)
        assert errors == [FieldError("body", "The request body must be a JSON object.")]

    def test_parse_raises_with_all_errors(self):
        with pytest.raises(ValidationFailed) as exc_info:
            BillValidator().parse({"name": "ab", "amount": -5}, ValidationMode.CREATE)
        assert _fields(exc_info.value.errors) == {"name", "amount", "due_date", "category"}


class TestUpdateMode:
    """Every field is optional, but present fields must be valid."""

    def test_empty_update_is_valid(self):
        payload = BillValidator().parse({}, ValidationMode.UPDATE)
        assert isinstance(payload, BillUpdate)
        assert payload.changes() == {}

    def test_changes_include_only_sent_fields(self):
        payload = BillValidator().parse({"status": "paid", "amount": 10}, ValidationMode.UPDATE)
        assert payload.changes() == {"status": "paid", "amount": 10}

    def test_present_fields_are_checked(self):
        errors = BillValidator().validate({"name": "ab", "amount": -3}, ValidationMode.UPDATE)
        assert _fields(errors) == {"name", "amount"}

    def test_amount_limits_apply_to_updates(self):
        validator = BillValidator()
        assert validator.validate({"amount": 0.000001}, ValidationMode.UPDATE) == [
            FieldError("amount", "Amount must be a positive number")
        ]
        assert validator.validate({"amount": 1e15}, ValidationMode.UPDATE) == [
            FieldError("amount", "Amount must be less than 100,000,000,000,000")
        ]

    def test_explicit_null_is_rejected(self):
        errors = BillValidator().validate({"name": None}, ValidationMode.UPDATE)
        assert errors == [FieldError("name", "The 'name' field must be a string.")]
