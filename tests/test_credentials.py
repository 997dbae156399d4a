"""Tests for the credential store and the password hashing invariant."""

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from app.models.user import User
from app.schemas.auth import UserResponse
from app.services.credentials import CredentialStore

NOW = datetime(2026, 1, 15, 12, 0, 0)


class TestPasswordHashing:
    """Cleartext passwords never reach the database."""

    def test_hashed_on_insert(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "a@example.com", "password123", "A")
        assert user.password_hash != "password123"
        assert user.password_hash.startswith("$2")
        assert user.check_password("password123")
        assert not user.check_password("password124")

    def test_hashed_when_added_directly(self, db_session: Session):
        """Hashing does not depend on going through the store."""
        db_session.add(User(email="direct@example.com", password_hash="plaintext"))
        db_session.commit()
        user = db_session.query(User).filter(User.email == "direct@example.com").one()
        assert user.password_hash != "plaintext"
        assert user.check_password("plaintext")

    def test_empty_password_is_hashed(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "e@example.com", "")
        assert user.password_hash != ""
        assert user.password_hash.startswith("$2")
        assert not user.check_password("password123")

    def test_rehashed_on_change(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "a@example.com", "password123")
        assert user.password_changed_at is None

        user.password_hash = "newpassword456"
        db_session.commit()
        db_session.refresh(user)
        assert user.check_password("newpassword456")
        assert not user.check_password("password123")
        assert user.password_changed_at is not None

    def test_not_rehashed_on_unrelated_update(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "a@example.com", "password123")
        original_hash = user.password_hash
        user.name = "Renamed"
        db_session.commit()
        db_session.refresh(user)
        assert user.password_hash == original_hash
        assert user.password_changed_at is None

    def test_check_password_with_corrupt_hash(self):
        assert User(password_hash="not-a-hash").check_password("anything") is False


class TestSerialization:
    """Output representations omit the hash."""

    def test_to_dict_omits_hash(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "a@example.com", "password123", "A")
        data = user.to_dict()
        assert "password_hash" not in data
        assert data["email"] == "a@example.com"
        assert data["login_attempts"] == 0

    def test_user_response_omits_hash(self, db_session: Session):
        user = CredentialStore().create_user(db_session, "a@example.com", "password123", "A")
        assert UserResponse.model_validate(user).model_dump() == {"id": user.id, "email": "a@example.com", "name": "A"}


class TestLoginBookkeeping:
    """Attempt counting and lock timestamps."""

    def test_increments_below_threshold(self, db_session: Session):
        store = CredentialStore(lockout_threshold=4, lockout_minutes=15)
        user = store.create_user(db_session, "a@example.com", "password123")
        for expected in (1, 2, 3):
            attempt = store.record_failed_attempt(db_session, user, NOW)
            assert attempt.locked is False
            assert attempt.login_attempts == expected
        assert user.locked_until is None

    def test_threshold_locks_and_resets(self, db_session: Session):
        store = CredentialStore(lockout_threshold=4, lockout_minutes=15)
        user = store.create_user(db_session, "a@example.com", "password123")
        for _ in range(3):
            store.record_failed_attempt(db_session, user, NOW)

        attempt = store.record_failed_attempt(db_session, user, NOW)
        assert attempt.locked is True
        assert attempt.login_attempts == 0
        assert attempt.locked_until == NOW + timedelta(minutes=15)
        assert user.is_locked(NOW + timedelta(minutes=14))
        assert not user.is_locked(NOW + timedelta(minutes=15))

    def test_configurable_policy(self, db_session: Session):
        store = CredentialStore(lockout_threshold=2, lockout_minutes=5)
        user = store.create_user(db_session, "a@example.com", "password123")
        assert store.record_failed_attempt(db_session, user, NOW).locked is False
        attempt = store.record_failed_attempt(db_session, user, NOW)
        assert attempt.locked is True
        assert attempt.locked_until == NOW + timedelta(minutes=5)

    def test_explicit_zero_is_not_replaced_by_settings(self):
        store = CredentialStore(lockout_threshold=0, lockout_minutes=0)
        assert store.lockout_threshold == 0
        assert store.lockout_duration == timedelta(0)

    def test_defaults_come_from_settings(self):
        store = CredentialStore()
        assert store.lockout_threshold == 4
        assert store.lockout_duration == timedelta(minutes=15)

    def test_successful_login_resets(self, db_session: Session):
        store = CredentialStore()
        user = store.create_user(db_session, "a@example.com", "password123")
        store.record_failed_attempt(db_session, user, NOW)
        store.record_successful_login(db_session, user, NOW)
        assert user.login_attempts == 0
        assert user.last_login == NOW

    def test_lookup_is_case_sensitive(self, db_session: Session):
        store = CredentialStore()
        store.create_user(db_session, "Mixed@Example.com", "password123")
        assert store.get_by_email(db_session, "Mixed@Example.com") is not None
        assert store.get_by_email(db_session, "mixed@example.com") is None
