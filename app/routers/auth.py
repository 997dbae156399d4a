"""Authentication API endpoints."""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.errors import MissingToken
from app.rate_limit import limiter
from app.schemas.auth import LoginData, LoginRequest, LoginResponse, TokenIdentity, UserResponse, VerifyResponse
from app.services.auth import get_auth_service
from app.services.jwt import get_jwt_service

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse)
@limiter.limit("10/minute")
def login(request: Request, body: LoginRequest, db: Session = Depends(get_db)) -> LoginResponse:
    """Authenticate and receive a JWT token."""
    auth_service = get_auth_service()
    result = auth_service.authenticate(db, body.email, body.password)
    return LoginResponse(
        data=LoginData(token=result.token, user=UserResponse.model_validate(result.user_summary())),
    )


@router.get("/verify", response_model=VerifyResponse)
def verify_token(token: str | None = None) -> VerifyResponse:
    """Verify a JWT token and return the identity it carries."""
    if not token:
        raise MissingToken()
    payload = get_jwt_service().decode_token(token)
    return VerifyResponse(data=TokenIdentity(valid=True, user_id=int(payload["sub"]), email=payload["email"]))
