import asyncio
import time

import pytest

from flashstudy import config
from flashstudy.auth import AuthService
from flashstudy.local_storage import LocalStorage
from flashstudy.models import LoginCredentials, ProfileUpdate, RegisterCredentials, Session
from flashstudy.password import hash_password
from flashstudy.user_storage import UserStore


@pytest.fixture
def auth(storage):
    return AuthService(UserStore(storage), storage, latency=0)


def run(coro):
    return asyncio.run(coro)


def register(auth, name="Alice", email="alice@example.com", password="secret1"):
    return run(auth.register(RegisterCredentials(name=name, email=email, password=password)))


def login(auth, email="alice@example.com", password="secret1"):
    return run(auth.login(LoginCredentials(email=email, password=password)))


def test_register_then_login(auth):
    registered = register(auth)
    assert registered.success
    assert registered.user.email == "alice@example.com"
    assert registered.user.name == "Alice"
    assert "password" not in registered.user.model_dump()

    result = login(auth)
    assert result.success
    assert result.user.id == registered.user.id

    wrong = login(auth, password="wrong")
    assert not wrong.success
    assert wrong.code == "InvalidCredentials"
    assert wrong.error == "Invalid email or password"


def test_unknown_email_gets_same_error_as_bad_password(auth):
    register(auth)
    unknown = login(auth, email="nobody@example.com")
    wrong = login(auth, password="wrong")
    assert unknown.error == wrong.error
    assert unknown.code == wrong.code == "InvalidCredentials"


def test_login_is_case_insensitive_on_email(auth):
    register(auth)
    assert login(auth, email="ALICE@Example.com").success


def test_register_duplicate_email_differing_in_case(auth):
    assert register(auth).success
    second = register(auth, name="Other Alice", email="Alice@Example.COM")
    assert not second.success
    assert second.code == "DuplicateEmail"
    assert second.error == "Email already in use"
    assert len(auth.users.list_users()) == 1


def test_duplicate_email_reported_before_weak_password(auth):
    register(auth)
    result = register(auth, password="123")
    assert result.code == "DuplicateEmail"


def test_register_weak_password(auth):
    result = register(auth, password="12345")
    assert not result.success
    assert result.code == "WeakPassword"
    assert auth.users.list_users() == []


def test_stored_password_is_digest(auth):
    register(auth)
    stored = auth.users.list_users()[0]
    assert stored.password == hash_password("secret1")
    assert stored.password != "secret1"


def test_login_updates_last_login(auth):
    registered = register(auth)
    time.sleep(0.01)
    result = login(auth)
    assert result.user.last_login > registered.user.last_login
    assert auth.users.list_users()[0].last_login == result.user.last_login


def test_demo_user_created_on_first_login(auth):
    result = login(auth, email=config.DEMO_USER_EMAIL, password=config.DEMO_USER_PASSWORD)
    assert result.success
    assert result.user.id == config.DEMO_USER_ID
    assert result.user.created_at.year == 2024

    login(auth, email=config.DEMO_USER_EMAIL, password=config.DEMO_USER_PASSWORD)
    demo_users = [u for u in auth.users.list_users() if u.email == config.DEMO_USER_EMAIL]
    assert len(demo_users) == 1


def test_demo_login_after_registering_demo_email_in_other_case(auth):
    registered = register(auth, name="Impostor", email="Demo@Example.com", password="secret1")
    assert registered.success

    result = login(auth, email=config.DEMO_USER_EMAIL, password=config.DEMO_USER_PASSWORD)
    assert not result.success
    assert result.code == "InvalidCredentials"

    matching = [u for u in auth.users.list_users() if u.email.lower() == config.DEMO_USER_EMAIL]
    assert len(matching) == 1
    assert matching[0].id == registered.user.id

    result = login(auth, email=config.DEMO_USER_EMAIL, password="secret1")
    assert result.success
    assert result.user.id == registered.user.id


def test_find_by_email_ignores_case(auth):
    user = register(auth).user
    assert auth.users.find_by_email("ALICE@example.COM").id == user.id
    assert auth.users.find_by_email("bob@example.com") is None
    assert auth.users.find_by_email("alice@example.com", users=[]) is None


def test_update_profile_changes_only_given_fields(auth):
    user = register(auth).user
    result = run(auth.update_profile(user.id, ProfileUpdate(name="Alice Smith")))
    assert result.success
    assert result.user.name == "Alice Smith"
    assert result.user.email == "alice@example.com"
    assert login(auth).success


def test_update_profile_unknown_user(auth):
    result = run(auth.update_profile("missing", ProfileUpdate(name="X")))
    assert not result.success
    assert result.code == "UserNotFound"


def test_update_profile_email_taken_by_other_user(auth):
    register(auth, name="Bob", email="bob@example.com")
    alice = register(auth).user
    result = run(auth.update_profile(alice.id, ProfileUpdate(email="BOB@example.com")))
    assert result.code == "DuplicateEmail"
    assert auth.users.get_user_by_id(alice.id).email == "alice@example.com"


def test_update_profile_own_email_with_new_case(auth):
    alice = register(auth).user
    result = run(auth.update_profile(alice.id, ProfileUpdate(email="Alice@example.com")))
    assert result.success
    assert result.user.email == "Alice@example.com"


def test_session_roundtrip(auth):
    user = register(auth).user
    auth.save_session(user)
    restored = auth.get_session()
    assert restored.id == user.id
    assert "password" not in restored.model_dump()

    session = Session.model_validate_json(auth.storage.get_item(config.SESSION_KEY))
    week_ms = 7 * 24 * 60 * 60 * 1000
    assert abs(session.expires_at - (time.time() * 1000 + week_ms)) < 5000


def test_expired_session_is_deleted(auth, storage):
    user = register(auth).user
    expired = Session(user_id=user.id, expires_at=int(time.time() * 1000) - 1)
    storage.set_item(config.SESSION_KEY, expired.to_json())

    assert auth.get_session() is None
    assert storage.get_item(config.SESSION_KEY) is None
    assert auth.get_session() is None


def test_session_expires_at_exact_deadline(auth, storage, monkeypatch):
    user = register(auth).user
    auth.save_session(user)
    session = Session.model_validate_json(storage.get_item(config.SESSION_KEY))

    monkeypatch.setattr("flashstudy.auth._now_ms", lambda: session.expires_at - 1)
    assert auth.get_session().id == user.id

    monkeypatch.setattr("flashstudy.auth._now_ms", lambda: session.expires_at)
    assert auth.get_session() is None
    assert storage.get_item(config.SESSION_KEY) is None


def test_session_for_deleted_user_is_dropped(auth, storage):
    user = register(auth).user
    auth.save_session(user)
    auth.users.save_users([])

    assert auth.get_session() is None
    assert storage.get_item(config.SESSION_KEY) is None


def test_corrupt_session_is_dropped(auth, storage):
    storage.set_item(config.SESSION_KEY, "{broken")
    assert auth.get_session() is None
    assert storage.get_item(config.SESSION_KEY) is None


def test_clear_session_is_idempotent(auth):
    auth.save_session(register(auth).user)
    auth.clear_session()
    auth.clear_session()
    assert auth.get_session() is None


def test_corrupt_user_blob_reads_as_empty(auth, storage):
    storage.set_item(config.USERS_KEY, "[{\"id\": 1}]")
    assert auth.users.list_users() == []
    assert not login(auth).success


def test_simulated_latency_can_be_cancelled():
    storage = LocalStorage()
    auth = AuthService(UserStore(storage), storage, latency=10)

    async def scenario():
        task = asyncio.create_task(
            auth.register(RegisterCredentials(name="Alice", email="alice@example.com", password="secret1"))
        )
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    run(scenario())
    assert auth.users.list_users() == []
