"""AuthService against a real (in-memory) database."""

from __future__ import annotations

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError, SQLAlchemyError

import api.services.auth as auth_module
from models import storage
from models.refresh_token import RefreshToken
from models.user import User
from utils.errors import Conflict, NotFound, Unauthorized
from utils.security import verify_password


def _ledger_rows(jti: str) -> list[RefreshToken]:
    return storage.get_session().query(RefreshToken).filter(RefreshToken.jti == jti).all()


def test_register_then_login_returns_same_user(auth_service) -> None:
    registered = auth_service.register("alice@example.com", "secret123", "Alice")
    logged_in = auth_service.login("alice@example.com", "secret123")

    assert registered.user.id == logged_in.user.id
    assert logged_in.to_dict()["user"] == {"id": registered.user.id, "email": "alice@example.com", "name": "Alice"}
    assert logged_in.expires_in == 900
    assert registered.refresh_token != logged_in.refresh_token


def test_register_stores_hash_not_password(auth_service) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")
    user = storage.get(User, session.user.id)

    assert user.password_hash != "secret123"
    assert user.password_hash.startswith("$argon2")
    assert "password_hash" not in session.to_dict()["user"]


def test_register_duplicate_email_conflicts(auth_service) -> None:
    auth_service.register("alice@example.com", "secret123", "Alice")

    with pytest.raises(Conflict) as exc:
        auth_service.register("alice@example.com", "other-password", "Alice Again")

    assert exc.value.details == {"email": ["Email already registered"]}
    assert storage.count(User) == 1


def test_register_race_on_unique_email_conflicts(auth_service, monkeypatch) -> None:
    auth_service.register("alice@example.com", "secret123", "Alice")
    # Both requests passed the lookup before either committed
    monkeypatch.setattr(auth_service, "_find_user_by_email", lambda email: None)

    with pytest.raises(Conflict) as exc:
        auth_service.register("alice@example.com", "other-password", "Alice Again")

    assert exc.value.details == {"email": ["Email already registered"]}
    assert storage.count(User) == 1


def test_email_uniqueness_is_case_sensitive(auth_service) -> None:
    first = auth_service.register("alice@example.com", "secret123", "Alice")
    second = auth_service.register("Alice@example.com", "secret123", "Alice")

    assert first.user.id != second.user.id


def test_login_failures_are_indistinguishable(auth_service) -> None:
    auth_service.register("alice@example.com", "secret123", "Alice")

    with pytest.raises(Unauthorized) as wrong_password:
        auth_service.login("alice@example.com", "wrong-password")
    with pytest.raises(Unauthorized) as unknown_email:
        auth_service.login("nobody@example.com", "secret123")

    assert wrong_password.value.message == unknown_email.value.message == "Invalid email or password"


def test_login_with_unknown_email_still_verifies_a_hash(auth_service, monkeypatch) -> None:
    checked = []

    def spy(password, password_hash, hasher=None):
        checked.append(password_hash)
        return verify_password(password, password_hash, hasher)

    monkeypatch.setattr(auth_module, "verify_password", spy)

    with pytest.raises(Unauthorized):
        auth_service.login("nobody@example.com", "not-a-real-password")

    assert checked == [auth_service._dummy_hash]


def test_each_login_adds_a_ledger_row(auth_service) -> None:
    auth_service.register("alice@example.com", "secret123", "Alice")
    auth_service.login("alice@example.com", "secret123")
    auth_service.login("alice@example.com", "secret123")

    assert storage.count(RefreshToken) == 3


def test_refresh_issues_access_token_without_rotating(auth_service, clock) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")
    jti = auth_service.codec.verify_refresh_token(session.refresh_token).jti

    clock.advance(minutes=20)
    first = auth_service.refresh(session.refresh_token)
    second = auth_service.refresh(session.refresh_token)

    assert set(first) == {"accessToken", "expiresIn"}
    assert auth_service.codec.verify_access_token(first["accessToken"]).user_id == session.user.id
    assert second["accessToken"]
    assert len(_ledger_rows(jti)) == 1


@pytest.mark.parametrize("token", [None, ""])
def test_refresh_without_token_is_unauthorized(auth_service, token) -> None:
    with pytest.raises(Unauthorized) as exc:
        auth_service.refresh(token)
    assert exc.value.message == "Refresh token required"


def test_refresh_with_garbage_is_unauthorized(auth_service) -> None:
    with pytest.raises(Unauthorized):
        auth_service.refresh("not-a-token")


def test_refresh_after_ledger_row_deleted_is_unauthorized(auth_service) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")
    jti = auth_service.codec.verify_refresh_token(session.refresh_token).jti

    for row in _ledger_rows(jti):
        storage.delete(row)
    storage.save()

    # Signature still verifies, only the ledger says no
    auth_service.codec.verify_refresh_token(session.refresh_token)
    with pytest.raises(Unauthorized):
        auth_service.refresh(session.refresh_token)


def test_refresh_with_jti_owned_by_another_user_is_unauthorized(auth_service) -> None:
    alice = auth_service.register("alice@example.com", "secret123", "Alice")
    bob = auth_service.register("bob@example.com", "secret123", "Bob")

    # A token claiming Alice, whose jti is recorded against Bob
    token, jti = auth_service.codec.sign_refresh_token(alice.user.id)
    storage.new(RefreshToken(jti=jti, user_id=bob.user.id, expires_at=auth_service.codec.refresh_token_expiry()))
    storage.save()

    with pytest.raises(Unauthorized):
        auth_service.refresh(token)


def test_refresh_with_expired_ledger_row_is_unauthorized(auth_service, clock) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")
    jti = auth_service.codec.verify_refresh_token(session.refresh_token).jti
    row = _ledger_rows(jti)[0]

    row.expires_at = clock() + timedelta(minutes=1)
    storage.save()
    clock.advance(minutes=1)
    assert auth_service.refresh(session.refresh_token)["accessToken"]

    clock.advance(seconds=1)
    with pytest.raises(Unauthorized):
        auth_service.refresh(session.refresh_token)


def test_refresh_for_deleted_user_is_unauthorized(auth_service) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")

    storage.delete(storage.get(User, session.user.id))
    storage.save()

    with pytest.raises(Unauthorized):
        auth_service.refresh(session.refresh_token)


def test_logout_revokes_refresh_token(auth_service) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")
    other = auth_service.login("alice@example.com", "secret123")

    auth_service.logout(session.refresh_token)

    with pytest.raises(Unauthorized):
        auth_service.refresh(session.refresh_token)
    # Other sessions of the same user are untouched
    assert auth_service.refresh(other.refresh_token)["accessToken"]


@pytest.mark.parametrize("token", [None, "", "garbage", 123])
def test_logout_never_raises(auth_service, token) -> None:
    auth_service.logout(token)


def test_logout_is_idempotent(auth_service) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")

    auth_service.logout(session.refresh_token)
    auth_service.logout(session.refresh_token)

    assert storage.count(RefreshToken) == 0


def test_get_profile_for_missing_user_is_not_found(auth_service) -> None:
    with pytest.raises(NotFound):
        auth_service.get_profile("00000000-0000-0000-0000-000000000000")


def test_refresh_store_failure_is_unauthorized(auth_service, monkeypatch) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")

    def broken_session():
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    monkeypatch.setattr(storage, "get_session", broken_session)

    with pytest.raises(Unauthorized) as exc:
        auth_service.refresh(session.refresh_token)
    assert exc.value.message == "Invalid or expired refresh token"


def test_logout_swallows_store_failure(auth_service, monkeypatch) -> None:
    session = auth_service.register("alice@example.com", "secret123", "Alice")

    def broken_save():
        raise SQLAlchemyError("commit failed")

    monkeypatch.setattr(storage, "save", broken_save)

    auth_service.logout(session.refresh_token)

    monkeypatch.undo()
    # The delete was rolled back, so the session is still live
    assert storage.count(RefreshToken) == 1
    assert auth_service.refresh(session.refresh_token)["accessToken"]


def test_user_password_is_write_only(auth_service) -> None:
    user = User(email="carol@example.com", name="Carol", password="secret123")

    assert verify_password("secret123", user.password_hash)
    with pytest.raises(AttributeError):
        user.password
