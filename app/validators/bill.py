"""Field validation for bill create and update payloads."""

import enum
from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, Field, ValidationError
from pydantic_core import PydanticCustomError

from app.errors import FieldError, ValidationFailed
from app.models.bill import BILL_STATUSES

DUE_DATE_PATTERN = r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$"

# Numeric(19, 5): five fractional digits, fourteen integer digits
AMOUNT_SCALE = Decimal("0.00001")
AMOUNT_LIMIT = Decimal(10) ** 14


def to_stored_amount(value: float) -> Decimal:
    """Round an amount to the stored scale. The rounded value must stay positive and fit the column."""
    amount = Decimal(str(value))
    if amount >= AMOUNT_LIMIT:
        raise PydanticCustomError("amount_too_large", "Amount is too large")
    amount = amount.quantize(AMOUNT_SCALE, rounding=ROUND_HALF_UP)
    if amount >= AMOUNT_LIMIT:
        raise PydanticCustomError("amount_too_large", "Amount is too large")
    if amount <= 0:
        raise PydanticCustomError("greater_than", "Amount rounds to zero", {"gt": 0})
    return amount


NameField = Annotated[str, Field(strict=True, min_length=3, max_length=255)]
AmountField = Annotated[
    float, Field(strict=True, gt=0, allow_inf_nan=False), AfterValidator(to_stored_amount)
]
DueDateField = Annotated[str, Field(strict=True, pattern=DUE_DATE_PATTERN)]
CategoryField = Annotated[str, Field(strict=True, min_length=1, max_length=100)]
StatusField = Literal["pending", "paid", "overdue", "cancelled"]


class ValidationMode(str, enum.Enum):
    CREATE = "create"
    UPDATE = "update"


class BillCreate(BaseModel):
    name: NameField
    amount: AmountField
    due_date: DueDateField
    category: CategoryField
    status: StatusField = "pending"


class BillUpdate(BaseModel):
    """Every field is optional, but a field that is sent (even as null) must be valid."""

    name: NameField = None  # type: ignore[assignment]
    amount: AmountField = None  # type: ignore[assignment]
    due_date: DueDateField = None  # type: ignore[assignment]
    category: CategoryField = None  # type: ignore[assignment]
    status: StatusField = None  # type: ignore[assignment]

    def changes(self) -> dict[str, Any]:
        """Only the fields present in the request."""
        return self.model_dump(include=self.model_fields_set)


_FIELD_MESSAGES: dict[tuple[str, str], str] = {
    ("name", "string_too_short"): "Bill name must be at least 3 characters",
    ("name", "string_too_long"): "Bill name must not exceed 255 characters",
    ("amount", "greater_than"): "Amount must be a positive number",
    ("amount", "finite_number"): "Amount must be a positive number",
    ("amount", "amount_too_large"): "Amount must be less than 100,000,000,000,000",
    ("due_date", "string_pattern_mismatch"): "Due date must be in YYYY-MM-DD format",
    ("category", "string_too_short"): "Category is required",
    ("category", "string_too_long"): "Category must not exceed 100 characters",
    ("status", "literal_error"): f"Status must be one of: {', '.join(BILL_STATUSES)}",
}

_TYPE_MESSAGES: dict[str, str] = {
    "missing": "The '{field}' field is required.",
    "string_type": "The '{field}' field must be a string.",
    "float_type": "The '{field}' field must be a number.",
    "model_type": "The request body must be a JSON object.",
}


def _message_for(field: str, error_type: str, default: str) -> str:
    if (field, error_type) in _FIELD_MESSAGES:
        return _FIELD_MESSAGES[(field, error_type)]
    if error_type in _TYPE_MESSAGES:
        return _TYPE_MESSAGES[error_type].format(field=field)
    return default


def to_field_errors(exc: ValidationError) -> list[FieldError]:
    """Flatten a pydantic ValidationError into (field, message) pairs."""
    errors = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "body"
        errors.append(FieldError(field=field, message=_message_for(field, err["type"], err["msg"])))
    return errors


class BillValidator:
    """Checks bill payloads, reporting every invalid field at once."""

    models: dict[ValidationMode, type[BaseModel]] = {
        ValidationMode.CREATE: BillCreate,
        ValidationMode.UPDATE: BillUpdate,
    }

    def parse(self, fields: Any, mode: ValidationMode) -> BaseModel:
        """Return the validated payload or raise ValidationFailed."""
        try:
            return self.models[mode].model_validate(fields)
        except ValidationError as exc:
            raise ValidationFailed(to_field_errors(exc)) from None

    def validate(self, fields: Any, mode: ValidationMode) -> list[FieldError]:
        """Return the list of field errors; empty when the payload is valid."""
        try:
            self.parse(fields, mode)
        except ValidationFailed as exc:
            return exc.errors
        return []


bill_validator = BillValidator()
