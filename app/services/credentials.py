"""Credential store: user lookup and login bookkeeping."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import case, update
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import storage_guard
from app.models.user import User


@dataclass
class FailedAttempt:
    """Outcome of recording a wrong password."""

    locked: bool
    login_attempts: int
    locked_until: datetime | None


class CredentialStore:
    """Reads and writes user credentials and lockout counters."""

    def __init__(self, lockout_threshold: int | None = None, lockout_minutes: int | None = None) -> None:
        settings = get_settings()
        self.lockout_threshold = settings.LOCKOUT_THRESHOLD if lockout_threshold is None else lockout_threshold
        self.lockout_duration = timedelta(
            minutes=settings.LOCKOUT_MINUTES if lockout_minutes is None else lockout_minutes
        )

    def create_user(
        self,
        db: Session,
        email: str,
        password: str,
        name: str | None = None,
        is_active: bool = True,
    ) -> User:
        """Persist a new user. The password is hashed by the model on insert."""
        user = User(email=email.strip(), password_hash=password, name=name, is_active=is_active)
        with storage_guard(db):
            db.add(user)
            db.commit()
            db.refresh(user)
        return user

    def get_by_email(self, db: Session, email: str) -> User | None:
        """Exact, case-sensitive email lookup."""
        with storage_guard(db):
            return db.query(User).filter(User.email == email).first()

    def get(self, db: Session, user_id: int) -> User | None:
        with storage_guard(db):
            return db.get(User, user_id)

    def record_failed_attempt(self, db: Session, user: User, now: datetime) -> FailedAttempt:
        """Increment the attempt counter, locking the account when it reaches the threshold.

        Done as one conditional UPDATE against the row's current value so that
        concurrent failures for the same account neither lose increments nor
        lock twice. ``locked_until`` is assigned first because some backends
        evaluate SET clauses left to right.
        """
        lock_until = now + self.lockout_duration
        reaches_threshold = User.login_attempts + 1 >= self.lockout_threshold
        stmt = (
            update(User)
            .where(User.id == user.id)
            .ordered_values(
                (User.locked_until, case((reaches_threshold, lock_until), else_=User.locked_until)),
                (User.login_attempts, case((reaches_threshold, 0), else_=User.login_attempts + 1)),
            )
            .execution_options(synchronize_session=False)
        )
        with storage_guard(db):
            db.execute(stmt)
            db.commit()
            db.refresh(user)

        return FailedAttempt(
            locked=user.locked_until is not None and user.locked_until >= lock_until,
            login_attempts=user.login_attempts,
            locked_until=user.locked_until,
        )

    def record_successful_login(self, db: Session, user: User, now: datetime) -> None:
        """Reset the attempt counter and stamp the login time."""
        with storage_guard(db):
            user.login_attempts = 0
            user.last_login = now
            db.commit()
            db.refresh(user)


_credential_store: CredentialStore | None = None


def get_credential_store() -> CredentialStore:
    """Get singleton credential store instance."""
    global _credential_store
    if _credential_store is None:
        _credential_store = CredentialStore()
    return _credential_store
