import logging
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from . import config
from .errors import StorageUnavailable
from .local_storage import LocalStorage
from .models import StoredUser, User

logger = logging.getLogger(__name__)

_users_adapter = TypeAdapter(List[StoredUser])


class UserStore:
    """
    Persists every user record under the ``flashcard-users`` key.

    Storage and parse failures never propagate: reads degrade to an empty
    list / None and writes are dropped, both with an error logged.
    """

    def __init__(self, storage: LocalStorage):
        self.storage = storage

    def list_users(self) -> List[StoredUser]:
        try:
            stored = self.storage.get_item(config.USERS_KEY)
            if not stored:
                return []
            return _users_adapter.validate_json(stored)
        except (StorageUnavailable, ValidationError) as e:
            logger.error(f"Failed to load users: {e}")
            return []

    def save_users(self, users: List[StoredUser]):
        try:
            payload = _users_adapter.dump_json(users, by_alias=True).decode("utf-8")
            self.storage.set_item(config.USERS_KEY, payload)
        except StorageUnavailable as e:
            logger.error(f"Failed to save users: {e}")

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        for user in self.list_users():
            if user.id == user_id:
                return user.sanitize()
        return None

    def find_by_email(self, email: str, users: Optional[List[StoredUser]] = None) -> Optional[StoredUser]:
        """Case-insensitive lookup, in ``users`` when given, otherwise in storage."""
        email = email.lower()
        for user in (self.list_users() if users is None else users):
            if user.email.lower() == email:
                return user
        return None
