"""Bill model."""

import enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, Numeric, String

from app.database import Base, utcnow


class BillStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


BILL_STATUSES = tuple(s.value for s in BillStatus)


class Bill(Base):
    """Financial obligation owned by a single user."""

    __tablename__ = "bills"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_bills_amount_positive"),
        CheckConstraint(
            "status IN ('pending', 'paid', 'overdue', 'cancelled')",
            name="ck_bills_status",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    amount = Column(Numeric(19, 5), nullable=False)
    due_date = Column(Date, nullable=False, index=True)
    category = Column(String(100), nullable=False)
    status = Column(String(16), nullable=False, default=BillStatus.PENDING.value)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
