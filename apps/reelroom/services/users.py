"""User directory backed by the Mongo `users` collection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import NotFoundError, PersistenceError
from reelroom.core.settings import settings
from reelroom.core.utils import utcnow
from reelroom.schemas.object_id import maybe_object_id, serialize_doc
from reelroom.schemas.users import UserModerationUpdate, UserRecord

logger = logging.getLogger(__name__)

_PUBLIC_FIELDS = {
    "name": 1,
    "email": 1,
    "is_admin": 1,
    "is_blocked": 1,
    "is_muted": 1,
    "created_at": 1,
}


@dataclass
class UserDirectory:
    database: Database
    collection_name: str = field(default_factory=lambda: settings.users_collection)

    def __post_init__(self) -> None:
        self._users: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        try:
            self._users.create_index([("email", ASCENDING)], name="email", sparse=True)
        except Exception:
            # Index creation is best-effort
            pass

    def create_user(self, record: UserRecord) -> str:
        doc = record.model_dump()
        if doc.get("email"):
            doc["email"] = doc["email"].strip().lower()
        doc["created_at"] = doc.get("created_at") or utcnow()
        try:
            res = self._users.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError("Failed to create user") from exc
        return str(res.inserted_id)

    def get_user(self, user_id: str) -> Dict[str, Any]:
        oid = maybe_object_id(user_id)
        if oid is None:
            raise NotFoundError("User not found")
        try:
            doc = self._users.find_one({"_id": oid}, projection={"password": 0})
        except PyMongoError as exc:
            raise PersistenceError("User lookup failed") from exc
        if not doc:
            raise NotFoundError("User not found")
        return serialize_doc(doc)

    def find_by_email(self, email: str) -> Dict[str, Any] | None:
        doc = self._users.find_one({"email": email.strip().lower()}, projection={"password": 0})
        return serialize_doc(doc) if doc else None

    def get_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """Map user ids to display names; unknown ids are omitted."""
        oids = [oid for oid in (maybe_object_id(u) for u in set(user_ids)) if oid is not None]
        if not oids:
            return {}
        cursor = self._users.find({"_id": {"$in": oids}}, projection={"name": 1})
        return {str(doc["_id"]): doc.get("name") or "" for doc in cursor}

    def list_all_user_ids(self) -> List[str]:
        try:
            return [str(doc["_id"]) for doc in self._users.find({}, projection={"_id": 1})]
        except PyMongoError as exc:
            raise PersistenceError("Failed to list users") from exc

    def list_users(self) -> List[Dict[str, Any]]:
        cursor = self._users.find({}, projection=_PUBLIC_FIELDS).sort("created_at", -1)
        return [serialize_doc(doc) for doc in cursor]

    def promote_to_admin(self, user_id: str) -> None:
        oid = maybe_object_id(user_id)
        if oid is None:
            raise NotFoundError("User not found")
        res = self._users.update_one({"_id": oid}, {"$set": {"is_admin": True}})
        if not res.matched_count:
            raise NotFoundError("User not found")

    def set_moderation(self, user_id: str, patch: UserModerationUpdate) -> Dict[str, Any]:
        update = patch.model_dump(exclude_none=True)
        oid = maybe_object_id(user_id)
        if oid is None:
            raise NotFoundError("User not found")
        if update:
            res = self._users.update_one({"_id": oid}, {"$set": update})
            if not res.matched_count:
                raise NotFoundError("User not found")
            logger.info("Moderation flags for user %s set to %s", user_id, update)
        return self.get_user(user_id)


__all__ = ["UserDirectory"]
