"""Bill service: owner-scoped create, list, update and delete."""

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from app.database import storage_guard
from app.errors import FieldError, NotFound, ValidationFailed
from app.models.bill import Bill
from app.validators.bill import BillCreate, BillUpdate, BillValidator, ValidationMode, bill_validator

logger = logging.getLogger("bill_tracker")

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


@dataclass
class BillFilters:
    """Optional list filters. ``due_before`` is inclusive."""

    due_before: date | None = None
    category: str | None = None
    status: str | None = None


@dataclass
class BillPage:
    bills: list[Bill]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def _to_columns(values: dict[str, Any]) -> dict[str, Any]:
    """Convert validated payload values into column values."""
    columns = dict(values)
    if "due_date" in columns:
        try:
            columns["due_date"] = date.fromisoformat(columns["due_date"])
        except ValueError:
            raise ValidationFailed([FieldError("due_date", "Due date must be a valid calendar date")]) from None
    return columns


class BillService:
    """Handles bill CRUD. Every lookup is filtered by the owning user's id."""

    def __init__(self, validator: BillValidator | None = None) -> None:
        self.validator = validator or bill_validator

    def create_bill(self, db: Session, user_id: int, fields: Any) -> Bill:
        """Validate and persist a new bill owned by ``user_id``."""
        payload: BillCreate = self.validator.parse(fields, ValidationMode.CREATE)  # type: ignore[assignment]
        bill = Bill(user_id=user_id, **_to_columns(payload.model_dump()))
        with storage_guard(db):
            db.add(bill)
            db.commit()
            db.refresh(bill)
        logger.info("Bill created: id=%s name=%s user_id=%s", bill.id, bill.name, user_id)
        return bill

    def list_bills(
        self,
        db: Session,
        user_id: int,
        filters: BillFilters | None = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> BillPage:
        """Return one page of the user's bills, earliest due date first."""
        filters = filters or BillFilters()
        query = db.query(Bill).filter(Bill.user_id == user_id)
        if filters.due_before is not None:
            query = query.filter(Bill.due_date <= filters.due_before)
        if filters.category:
            query = query.filter(Bill.category == filters.category)
        if filters.status:
            query = query.filter(Bill.status == filters.status)

        with storage_guard(db):
            total = query.count()
            bills = query.order_by(Bill.due_date.asc(), Bill.id.asc()).offset((page - 1) * limit).limit(limit).all()
        return BillPage(bills=bills, total=total, page=page, limit=limit)

    def get_bill(self, db: Session, bill_id: int, user_id: int) -> Bill:
        """Get a single bill by ID, scoped to user. Someone else's bill is simply not found."""
        with storage_guard(db):
            bill = db.query(Bill).filter(Bill.id == bill_id, Bill.user_id == user_id).first()
        if not bill:
            raise NotFound("Bill not found")
        return bill

    def update_bill(self, db: Session, bill_id: int, user_id: int, fields: Any) -> Bill:
        """Apply a partial update; fields absent from the request keep their values."""
        payload: BillUpdate = self.validator.parse(fields, ValidationMode.UPDATE)  # type: ignore[assignment]
        bill = self.get_bill(db, bill_id, user_id)
        changes = _to_columns(payload.changes())
        with storage_guard(db):
            for key, value in changes.items():
                setattr(bill, key, value)
            db.commit()
            db.refresh(bill)
        logger.info("Bill updated: id=%s user_id=%s fields=%s", bill.id, user_id, sorted(changes))
        return bill

    def delete_bill(self, db: Session, bill_id: int, user_id: int) -> None:
        """Permanently delete a bill."""
        bill = self.get_bill(db, bill_id, user_id)
        with storage_guard(db):
            db.delete(bill)
            db.commit()
        logger.info("Bill deleted: id=%s user_id=%s", bill_id, user_id)


_bill_service: BillService | None = None


def get_bill_service() -> BillService:
    """Get singleton bill service instance."""
    global _bill_service
    if _bill_service is None:
        _bill_service = BillService()
    return _bill_service
