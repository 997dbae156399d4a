"""Bill API endpoints."""

import logging
from datetime import date
from typing import Any

from fastapi import APIRouter, BackgroundTasks, Body, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import CurrentUser, get_current_user
from app.schemas.bill import BillEnvelope, BillListData, BillListEnvelope, BillResponse, Pagination
from app.schemas.common import MessageResponse
from app.services.bill import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, BillFilters, get_bill_service
from app.services.credentials import get_credential_store
from app.services.notification import BillNotice, BillNotifier, dispatch_bill_created, get_notifier

logger = logging.getLogger("bill_tracker")

router = APIRouter(prefix="/api/v1/bills", tags=["Bills"])


@router.post("/", response_model=BillEnvelope, status_code=201)
def create_bill(
    background_tasks: BackgroundTasks,
    payload: dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    notifier: BillNotifier = Depends(get_notifier),
) -> BillEnvelope:
    """Create a bill and email its owner after the response is sent."""
    bill = get_bill_service().create_bill(db, user.user_id, payload)

    owner = get_credential_store().get(db, user.user_id)
    if owner:
        background_tasks.add_task(dispatch_bill_created, notifier, BillNotice.from_models(bill, owner))
    else:
        logger.warning("Skipping bill notification: user_id=%s no longer exists", user.user_id)

    return BillEnvelope(message="Bill created successfully", data=BillResponse.model_validate(bill))


@router.get("/", response_model=BillListEnvelope)
def list_bills(
    due_before: date | None = Query(None, alias="dueBefore"),
    category: str | None = None,
    status: str | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BillListEnvelope:
    """List the current user's bills with optional filters, earliest due date first."""
    filters = BillFilters(due_before=due_before, category=category, status=status)
    result = get_bill_service().list_bills(db, user.user_id, filters, page=page, limit=limit)
    return BillListEnvelope(
        data=BillListData(
            bills=[BillResponse.model_validate(b) for b in result.bills],
            pagination=Pagination(
                total=result.total,
                page=result.page,
                limit=result.limit,
                totalPages=result.total_pages,
            ),
        )
    )


@router.get("/{bill_id}", response_model=BillEnvelope)
def get_bill(
    bill_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BillEnvelope:
    """Get a single bill by ID."""
    bill = get_bill_service().get_bill(db, bill_id, user.user_id)
    return BillEnvelope(message="Bill retrieved successfully", data=BillResponse.model_validate(bill))


@router.patch("/{bill_id}", response_model=BillEnvelope)
def update_bill(
    bill_id: int,
    payload: dict[str, Any] = Body(...),
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BillEnvelope:
    """Update only the fields present in the request body."""
    bill = get_bill_service().update_bill(db, bill_id, user.user_id, payload)
    return BillEnvelope(message="Bill updated successfully", data=BillResponse.model_validate(bill))


@router.delete("/{bill_id}", response_model=MessageResponse)
def delete_bill(
    bill_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    """Delete a bill."""
    get_bill_service().delete_bill(db, bill_id, user.user_id)
    return MessageResponse(message="Bill deleted successfully")
