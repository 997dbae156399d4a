"""JWT Token Service."""

from datetime import datetime, timedelta, timezone
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from app.config import get_settings
from app.errors import ExpiredToken, InvalidToken


class JWTService:
    """Handles JWT token creation and validation."""

    def __init__(self, expire_minutes: int | None = None) -> None:
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.expire_minutes = settings.JWT_EXPIRE_MINUTES if expire_minutes is None else expire_minutes

    def create_token(self, user_id: int, email: str) -> str:
        """Create a JWT token for the given user."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "email": email,
            "iat": now,
            "exp": now + timedelta(minutes=self.expire_minutes),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT token.

        Raises ExpiredToken once ``exp`` has passed and InvalidToken for any
        other signature, format or claim problem.
        """
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise ExpiredToken() from None
        except JWTError:
            raise InvalidToken() from None

        sub = payload.get("sub")
        if not isinstance(sub, str) or not sub.isdigit() or not payload.get("email"):
            raise InvalidToken()
        return payload


_jwt_service: JWTService | None = None


def get_jwt_service() -> JWTService:
    """Get singleton JWT service instance."""
    global _jwt_service
    if _jwt_service is None:
        _jwt_service = JWTService()
    return _jwt_service
