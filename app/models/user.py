"""User model."""

from datetime import datetime
from typing import Any

import bcrypt
from sqlalchemy import Boolean, Column, DateTime, Integer, String, event
from sqlalchemy.orm import attributes

from app.database import Base, utcnow


def hash_password(password: str) -> str:
    """Hash a cleartext password with bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class User(Base):
    """Application user.

    ``password_hash`` is written with the cleartext password; the mapper events
    below replace it with a bcrypt hash before the row reaches the database.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    name = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    email_verified = Column(Boolean, nullable=False, default=False)
    last_login = Column(DateTime, nullable=True)
    login_attempts = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime, nullable=True)
    password_changed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def check_password(self, candidate: str) -> bool:
        """Compare a cleartext candidate against the stored hash."""
        try:
            return bcrypt.checkpw(candidate.encode("utf-8"), self.password_hash.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash
            return False

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now

    def to_dict(self) -> dict[str, Any]:
        """Serialize every column except the password hash."""
        return {c.name: getattr(self, c.name) for c in self.__table__.columns if c.name != "password_hash"}


@event.listens_for(User, "before_insert")
def _hash_password_on_insert(mapper, connection, target: User) -> None:
    if target.password_hash is not None:
        target.password_hash = hash_password(target.password_hash)


@event.listens_for(User, "before_update")
def _hash_password_on_update(mapper, connection, target: User) -> None:
    if attributes.get_history(target, "password_hash").has_changes():
        target.password_hash = hash_password(target.password_hash)
        target.password_changed_at = utcnow()
