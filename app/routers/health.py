"""Health check endpoints."""

import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.database import check_connection, get_db

router = APIRouter(prefix="/health", tags=["Health"])

_started_at = time.monotonic()


@router.get("")
def health_check() -> dict:
    """Liveness check."""
    return {
        "success": True,
        "message": "Server is running",
        "uptime": round(time.monotonic() - _started_at, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
def database_check(db: Session = Depends(get_db)) -> JSONResponse:
    """Confirm the database answers a trivial query."""
    if not check_connection(db):
        return JSONResponse(status_code=503, content={"success": False, "message": "Database connection failed"})
    return JSONResponse(content={"success": True, "message": "Database connection successful"})
