import json
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from sniket.client.storage import KeyValueStore, StorageError
from sniket.models.fcm_user_subscription import UserType
from sniket.schemas.fcm.register_schema import UserSubscriptionSchema

ACTIVE_USERS_KEY = "sniket_fcm_active_users"
DEVICE_ID_KEY = "sniket_fcm_device_id"
TOKEN_KEY = "sniket_fcm_token"

Entries = Dict[str, List[Dict[str, Any]]]


class RegistryWriteError(Exception):
    """The registry could not be persisted."""


class TokenRegistry:
    """
    Which (user, role) pairs are signed in on which push token, kept in local storage.

    Stored as one JSON object under ACTIVE_USERS_KEY:
    {token: [subscription, ...]}, subscriptions in camelCase wire form.
    A (token, userId, userType) triple appears at most once.
    """

    def __init__(self, store: KeyValueStore):
        self.store = store

    # -------------------------------------------------
    # Storage
    # -------------------------------------------------
    def _load(self) -> Entries:
        try:
            raw = self.store.get(ACTIVE_USERS_KEY)
        except StorageError as e:
            logger.warning(f"[FCM Registry] Read failed, treating registry as empty: {e}")
            return {}
        if not raw:
            return {}
        try:
            entries = json.loads(raw)
        except ValueError:
            logger.warning("[FCM Registry] Stored registry is not valid JSON, ignoring it")
            return {}
        if not isinstance(entries, dict):
            return {}
        return entries

    def _save(self, entries: Entries) -> None:
        # drop tokens without subscriptions
        entries = {token: subs for token, subs in entries.items() if subs}
        try:
            self.store.set(ACTIVE_USERS_KEY, json.dumps(entries))
        except StorageError as e:
            raise RegistryWriteError(str(e)) from e

    @staticmethod
    def _matches(entry: Dict[str, Any], user_id: str, user_type: Optional[UserType]) -> bool:
        if entry.get("userId") != user_id:
            return False
        return user_type is None or entry.get("userType") == user_type.value

    @staticmethod
    def _role(user_type: Union[UserType, str, None]) -> Optional[UserType]:
        return UserType(user_type) if user_type is not None else None

    # -------------------------------------------------
    # Writes
    # -------------------------------------------------
    def upsert(self, token: str, subscription: UserSubscriptionSchema) -> UserSubscriptionSchema:
        """Insert or overwrite the (token, user, role) entry. Raises RegistryWriteError."""
        if subscription.last_active is None:
            subscription = subscription.model_copy(update={"last_active": datetime.utcnow()})

        entries = self._load()
        subs = [
            s for s in entries.get(token, [])
            if not self._matches(s, subscription.user_id, subscription.user_type)
        ]
        subs.append(subscription.model_dump(mode="json", by_alias=True))
        entries[token] = subs
        self._save(entries)
        return subscription

    def remove(self, token: str, user_id: str, user_type: Union[UserType, str]) -> bool:
        user_type = self._role(user_type)
        entries = self._load()
        subs = entries.get(token, [])
        kept = [s for s in subs if not self._matches(s, user_id, user_type)]
        if len(kept) == len(subs):
            return False
        entries[token] = kept
        self._save(entries)
        return True

    def remove_user(self, user_id: str, user_type: Union[UserType, str]) -> int:
        """Remove the pair under every token. Returns count of entries removed."""
        user_type = self._role(user_type)
        entries = self._load()
        removed = 0
        for token, subs in entries.items():
            kept = [s for s in subs if not self._matches(s, user_id, user_type)]
            removed += len(subs) - len(kept)
            entries[token] = kept
        if removed:
            self._save(entries)
        return removed

    def touch(self, token: str, user_id: str, user_type: Union[UserType, str]) -> bool:
        user_type = self._role(user_type)
        entries = self._load()
        touched = False
        for entry in entries.get(token, []):
            if self._matches(entry, user_id, user_type):
                entry["lastActive"] = datetime.utcnow().isoformat()
                touched = True
        if touched:
            self._save(entries)
        return touched

    def replace_token(self, old_token: str, new_token: str) -> int:
        """Move entries of a rotated token over to its replacement. Returns entries moved."""
        if old_token == new_token:
            return 0
        entries = self._load()
        moved = entries.pop(old_token, [])
        if not moved:
            return 0
        merged = entries.get(new_token, [])
        for entry in moved:
            user_type = self._role(entry.get("userType"))
            merged = [s for s in merged if not self._matches(s, entry.get("userId"), user_type)]
            merged.append(entry)
        entries[new_token] = merged
        self._save(entries)
        logger.info(f"[FCM Registry] Moved {len(moved)} subscription(s) to rotated token")
        return len(moved)

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------
    def get(self, token: str, user_id: str, user_type: Union[UserType, str]) -> Optional[UserSubscriptionSchema]:
        user_type = self._role(user_type)
        for entry in self._load().get(token, []):
            if self._matches(entry, user_id, user_type):
                return UserSubscriptionSchema.model_validate(entry)
        return None

    def list_active_users(self, token: Optional[str] = None) -> List[UserSubscriptionSchema]:
        entries = self._load()
        if token is not None:
            raw = entries.get(token, [])
        else:
            raw = [s for subs in entries.values() for s in subs]
        return [UserSubscriptionSchema.model_validate(s) for s in raw]

    def is_active(self, user_id: str, user_type: Union[UserType, str, None] = None) -> bool:
        user_type = self._role(user_type)
        return any(
            self._matches(s, user_id, user_type)
            for subs in self._load().values()
            for s in subs
        )

    def has_role(self, user_type: Union[UserType, str]) -> bool:
        role = self._role(user_type).value
        return any(s.get("userType") == role for subs in self._load().values() for s in subs)

    def is_empty(self) -> bool:
        return not any(self._load().values())

    def tokens(self) -> List[str]:
        return [token for token, subs in self._load().items() if subs]

    def snapshot(self) -> List[Dict[str, Any]]:
        """Flat, JSON-safe copy for the background context."""
        return [
            {"token": token, **entry}
            for token, subs in self._load().items()
            for entry in subs
        ]
