"""Authentication service."""

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from app.database import utcnow
from app.errors import AccountDisabled, AccountLocked, InvalidCredentials, MissingCredentials
from app.models.user import User
from app.services.credentials import CredentialStore, get_credential_store
from app.services.jwt import JWTService, get_jwt_service

logger = logging.getLogger("bill_tracker")

LOCKED_OUT_MESSAGE = "Too many failed login attempts. Account locked for {minutes} minutes."


@dataclass
class LoginResult:
    """Result of a successful login."""

    token: str
    user: User

    def user_summary(self) -> dict:
        return {"id": self.user.id, "email": self.user.email, "name": self.user.name}


class AuthService:
    """Verifies credentials, enforces the lockout policy and issues tokens."""

    def __init__(self, credentials: CredentialStore | None = None, jwt_service: JWTService | None = None) -> None:
        self.credentials = credentials or get_credential_store()
        self.jwt_service = jwt_service or get_jwt_service()

    def authenticate(self, db: Session, email: str | None, password: str | None, now: datetime | None = None) -> LoginResult:
        """Authenticate a user by email and password.

        Unknown email and wrong password both raise InvalidCredentials with the
        same message. The attempt that reaches the lockout threshold raises
        AccountLocked instead, and the lock lifts by itself once
        ``locked_until`` is in the past.
        """
        if not email or not password:
            raise MissingCredentials()

        now = now or utcnow()
        user = self.credentials.get_by_email(db, email)
        if not user:
            raise InvalidCredentials()

        if not user.is_active:
            raise AccountDisabled()

        if user.is_locked(now):
            raise AccountLocked()

        if not user.check_password(password):
            attempt = self.credentials.record_failed_attempt(db, user, now)
            if attempt.locked:
                logger.warning("Account locked after failed logins: user_id=%s until=%s", user.id, attempt.locked_until)
                minutes = int(self.credentials.lockout_duration.total_seconds() // 60)
                raise AccountLocked(LOCKED_OUT_MESSAGE.format(minutes=minutes))
            logger.warning("Failed login: user_id=%s attempts=%s", user.id, attempt.login_attempts)
            raise InvalidCredentials()

        self.credentials.record_successful_login(db, user, now)
        token = self.jwt_service.create_token(user_id=user.id, email=user.email)
        logger.info("Login successful: user_id=%s", user.id)
        return LoginResult(token=token, user=user)


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
