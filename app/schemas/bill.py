"""Pydantic schemas for bill endpoints."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel


class BillResponse(BaseModel):
    id: int
    user_id: int
    name: str
    amount: Decimal
    due_date: date
    category: str
    status: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class Pagination(BaseModel):
    total: int
    page: int
    limit: int
    totalPages: int


class BillListData(BaseModel):
    bills: list[BillResponse]
    pagination: Pagination


class BillEnvelope(BaseModel):
    success: bool = True
    message: str
    data: BillResponse


class BillListEnvelope(BaseModel):
    success: bool = True
    message: str = "Bills retrieved successfully"
    data: BillListData
