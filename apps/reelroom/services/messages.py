"""Chat message persistence."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import NotFoundError, PersistenceError
from reelroom.core.settings import settings
from reelroom.core.utils import utcnow
from reelroom.schemas.chat import ChatMessageCreate, ChatMessageOut, SenderInfo
from reelroom.schemas.object_id import maybe_object_id, serialize_doc

logger = logging.getLogger(__name__)


def to_message_out(doc: Dict[str, Any], sender_name: Optional[str] = None) -> ChatMessageOut:
    data = serialize_doc(doc)
    sender = SenderInfo(id=data["sender_id"], name=sender_name) if sender_name is not None else None
    return ChatMessageOut(
        id=data["id"],
        project_id=data["project_id"],
        sender_id=data["sender_id"],
        sender=sender,
        message=data.get("message") or "",
        message_type=data.get("message_type") or "text",
        file_url=data.get("file_url"),
        file_name=data.get("file_name"),
        pinned=bool(data.get("pinned")),
        reported=bool(data.get("reported")),
        created_at=data.get("created_at"),
    )


@dataclass
class MessageStore:
    database: Database
    collection_name: str = field(default_factory=lambda: settings.chat_messages_collection)

    def __post_init__(self) -> None:
        self._messages: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        try:
            self._messages.create_index(
                [("project_id", ASCENDING), ("created_at", DESCENDING)],
                name="project_created",
            )
            self._messages.create_index(
                [("project_id", ASCENDING), ("pinned", ASCENDING)], name="project_pinned"
            )
        except Exception:
            pass

    def insert(self, payload: ChatMessageCreate) -> Dict[str, Any]:
        doc: Dict[str, Any] = {
            "project_id": payload.project_id,
            "sender_id": payload.sender_id,
            "message": payload.message,
            "message_type": payload.message_type.value,
            "file_url": payload.file_url,
            "file_name": payload.file_name,
            "pinned": False,
            "reported": False,
            "created_at": utcnow(),
        }
        try:
            res = self._messages.insert_one(doc)
        except PyMongoError as exc:
            logger.warning("Message insert failed for room %s: %s", payload.project_id, exc)
            raise PersistenceError("Failed to save message") from exc
        doc["_id"] = res.inserted_id
        return doc

    def find_by_id(self, message_id: str) -> Dict[str, Any]:
        oid = maybe_object_id(message_id)
        if oid is None:
            raise NotFoundError("Message not found")
        try:
            doc = self._messages.find_one({"_id": oid})
        except PyMongoError as exc:
            raise PersistenceError("Message lookup failed") from exc
        if not doc:
            raise NotFoundError("Message not found")
        return doc

    def update(self, message_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        oid = maybe_object_id(message_id)
        if oid is None:
            raise NotFoundError("Message not found")
        try:
            res = self._messages.update_one({"_id": oid}, {"$set": dict(fields)})
        except PyMongoError as exc:
            raise PersistenceError("Message update failed") from exc
        if not res.matched_count:
            raise NotFoundError("Message not found")
        return self.find_by_id(message_id)

    def set_pinned(self, message_id: str, pinned: bool) -> Dict[str, Any]:
        return self.update(message_id, {"pinned": bool(pinned)})

    def mark_reported(self, message_id: str) -> Dict[str, Any]:
        return self.update(message_id, {"reported": True})

    def delete_all_for_room(self, project_id: str) -> int:
        try:
            res = self._messages.delete_many({"project_id": project_id})
        except PyMongoError as exc:
            raise PersistenceError("Failed to delete room messages") from exc
        return int(res.deleted_count)

    def distinct_rooms(self) -> List[str]:
        return [str(room) for room in self._messages.distinct("project_id") if room]

    def count_for_room(self, project_id: str) -> int:
        return int(self._messages.count_documents({"project_id": project_id}))

    def list_for_room(
        self, project_id: str, *, limit: int, pinned: Optional[bool] = None
    ) -> List[Dict[str, Any]]:
        """Return the newest `limit` messages of a room in chronological order."""

        flt: Dict[str, Any] = {"project_id": project_id}
        if pinned is not None:
            flt["pinned"] = pinned
        cursor = self._messages.find(flt).sort("created_at", DESCENDING).limit(limit)
        docs = list(cursor)
        docs.reverse()
        return docs

    def list_reported(self, project_id: str) -> List[Dict[str, Any]]:
        cursor = self._messages.find({"project_id": project_id, "reported": True}).sort(
            "created_at", DESCENDING
        )
        return list(cursor)

    def room_stats(self, project_id: str) -> Dict[str, Any]:
        """Message count, last message, distinct senders and reported count for a room."""

        flt = {"project_id": project_id}
        last = self._messages.find_one(flt, sort=[("created_at", DESCENDING)])
        return {
            "message_count": int(self._messages.count_documents(flt)),
            "last_message": last.get("message") if last else None,
            "last_message_time": last.get("created_at") if last else None,
            "participant_count": len(self._messages.distinct("sender_id", flt)),
            "reported_count": int(
                self._messages.count_documents({"project_id": project_id, "reported": True})
            ),
        }


__all__ = ["MessageStore", "to_message_out"]
