import asyncio
import logging
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError

from . import config
from .errors import AuthError, DuplicateEmail, InvalidCredentials, StorageUnavailable, UserNotFound, WeakPassword
from .local_storage import LocalStorage
from .models import (
    AuthResult,
    LoginCredentials,
    ProfileUpdate,
    RegisterCredentials,
    Session,
    StoredUser,
    User,
    utcnow,
)
from .password import compare_passwords, hash_password
from .user_storage import UserStore

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _failure(error: AuthError) -> AuthResult:
    return AuthResult(success=False, error=error.message, code=error.code)


class AuthService:
    """
    Account and session management on top of the local UserStore.

    Account operations are coroutines: they await a simulated network
    latency (``latency`` seconds) before touching storage, so callers can
    cancel them like a real request. Validation failures never raise; they
    come back as ``AuthResult(success=False, error=..., code=...)``.

    Usage:
        auth = AuthService(UserStore(storage), storage)
        result = await auth.login(LoginCredentials(email="demo@example.com", password="demo123"))
        if result.success:
            auth.save_session(result.user)
    """

    def __init__(self, users: UserStore, storage: LocalStorage, latency: float = config.AUTH_LATENCY):
        self.users = users
        self.storage = storage
        self.latency = latency

    async def _simulate_latency(self):
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    # --- Accounts ---

    async def register(self, credentials: RegisterCredentials) -> AuthResult:
        await self._simulate_latency()
        try:
            user = self._register(credentials)
        except AuthError as e:
            logger.info(f"Registration rejected for {credentials.email}: {e.code}")
            return _failure(e)
        logger.info(f"Registered user {user.id}")
        return AuthResult(success=True, user=user)

    def _register(self, credentials: RegisterCredentials) -> User:
        users = self.users.list_users()
        if self.users.find_by_email(credentials.email, users) is not None:
            raise DuplicateEmail()
        if len(credentials.password) < config.MIN_PASSWORD_LENGTH:
            raise WeakPassword()

        now = utcnow()
        stored = StoredUser(
            id=str(uuid.uuid4()),
            name=credentials.name,
            email=credentials.email,
            created_at=now,
            last_login=now,
            password=hash_password(credentials.password),
        )
        users.append(stored)
        self.users.save_users(users)
        return stored.sanitize()

    def create_demo_user(self):
        """Seeds the demo account the first time anyone tries to log in."""
        users = self.users.list_users()
        if self.users.find_by_email(config.DEMO_USER_EMAIL, users) is not None:
            return

        users.append(StoredUser(
            id=config.DEMO_USER_ID,
            name=config.DEMO_USER_NAME,
            email=config.DEMO_USER_EMAIL,
            password=hash_password(config.DEMO_USER_PASSWORD),
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
            last_login=utcnow(),
        ))
        self.users.save_users(users)
        logger.info("Created demo user")

    async def login(self, credentials: LoginCredentials) -> AuthResult:
        await self._simulate_latency()
        self.create_demo_user()

        users = self.users.list_users()
        user = self.users.find_by_email(credentials.email, users)

        # Same error for unknown email and wrong password
        if user is None or not compare_passwords(credentials.password, user.password):
            logger.info(f"Failed login for {credentials.email}")
            return _failure(InvalidCredentials())

        user.last_login = utcnow()
        self.users.save_users(users)
        return AuthResult(success=True, user=user.sanitize())

    async def update_profile(self, user_id: str, updates: ProfileUpdate) -> AuthResult:
        await self._simulate_latency()
        users = self.users.list_users()
        user = next((u for u in users if u.id == user_id), None)
        if user is None:
            return _failure(UserNotFound())

        if updates.email:
            email = updates.email.lower()
            if any(u.id != user_id and u.email.lower() == email for u in users):
                return _failure(DuplicateEmail())

        if updates.name:
            user.name = updates.name
        if updates.email:
            user.email = updates.email

        self.users.save_users(users)
        return AuthResult(success=True, user=user.sanitize())

    # --- Session ---

    def save_session(self, user: User):
        expires_at = _now_ms() + int(config.SESSION_DURATION.total_seconds() * 1000)
        session = Session(user_id=user.id, expires_at=expires_at)
        try:
            self.storage.set_item(config.SESSION_KEY, session.to_json())
        except StorageUnavailable as e:
            logger.error(f"Failed to save session: {e}")

    def get_session(self) -> Optional[User]:
        """Returns the logged-in user, or None after discarding a stale session."""
        try:
            stored = self.storage.get_item(config.SESSION_KEY)
            if not stored:
                return None
            session = Session.model_validate_json(stored)
        except (StorageUnavailable, ValidationError) as e:
            logger.error(f"Failed to get session: {e}")
            self.clear_session()
            return None

        if _now_ms() >= session.expires_at:
            logger.info(f"Session for {session.user_id} expired")
            self.clear_session()
            return None

        user = self.users.get_user_by_id(session.user_id)
        if user is None:
            logger.info(f"Session references missing user {session.user_id}")
            self.clear_session()
        return user

    def clear_session(self):
        try:
            self.storage.remove_item(config.SESSION_KEY)
        except StorageUnavailable as e:
            logger.error(f"Failed to clear session: {e}")
