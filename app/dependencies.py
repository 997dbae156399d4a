"""Authentication dependencies for FastAPI routes."""

from dataclasses import dataclass

from fastapi import Request

from app.errors import MissingToken
from app.services.jwt import get_jwt_service


@dataclass
class CurrentUser:
    """Authenticated user context, taken from the token alone."""

    user_id: int
    email: str


def get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header[7:].strip() or None
    return None


def get_current_user(request: Request) -> CurrentUser:
    """Extract and validate user from the Bearer token.

    Raises MissingToken, InvalidToken or ExpiredToken; no database lookup.
    """
    token = get_bearer_token(request)
    if not token:
        raise MissingToken()

    payload = get_jwt_service().decode_token(token)
    return CurrentUser(user_id=int(payload["sub"]), email=payload["email"])
