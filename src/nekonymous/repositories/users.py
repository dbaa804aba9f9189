"""CRUD-style helpers for relay accounts."""
from __future__ import annotations

import uuid

from nekonymous.repositories.kv_store import KeyValueStore, KVModel
from nekonymous.schemas.user import UserProfile

__all__ = ["UserRepository"]


class UserRepository:
    """Users keyed by Telegram id plus the public UUID -> id mapping."""

    def __init__(self, store: KeyValueStore) -> None:
        self.users: KVModel[UserProfile] = KVModel("user", store, UserProfile)
        self.uuid_index: KVModel[int] = KVModel("userByUUID", store, int)

    def get(self, user_id: int) -> UserProfile | None:
        """Return a user by Telegram id."""
        return self.users.get(user_id)

    def get_by_uuid(self, user_uuid: str) -> UserProfile | None:
        """Resolve a public link identifier to its user."""
        user_id = self.uuid_index.get(user_uuid)
        if user_id is None:
            return None
        return self.get(user_id)

    def get_or_create(self, user_id: int, display_name: str = "") -> tuple[UserProfile, bool]:
        """Return the user, creating it with a fresh UUID on first contact."""
        existing = self.get(user_id)
        if existing is not None:
            return existing, False
        user = UserProfile(user_id=user_id, uuid=str(uuid.uuid4()), display_name=display_name)
        self.uuid_index.save(user.uuid, user_id)
        self.save(user)
        return user, True

    def save(self, user: UserProfile) -> None:
        """Persist the whole user record."""
        self.users.save(user.user_id, user)

    def delete(self, user: UserProfile) -> None:
        """Remove the user record and its public link mapping."""
        self.uuid_index.delete(user.uuid)
        self.users.delete(user.user_id)

    def count(self) -> int:
        """Return how many accounts exist."""
        return self.users.count()
