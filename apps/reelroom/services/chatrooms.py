"""Administrative chatroom lifecycle: open, close, timers and movie rooms.

End times are advisory metadata; nothing here closes a room when its end time
passes. Closing a room deletes its history but does not touch presence, so
sessions still joined keep chatting.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo import DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import ConflictError, NotFoundError, PersistenceError
from reelroom.core.settings import settings
from reelroom.core.utils import ensure_utc, utcnow
from reelroom.schemas.object_id import serialize_doc
from reelroom.schemas.projects import (
    ActiveChatroom,
    ChatroomKind,
    ChatroomOpened,
    ChatroomSummary,
    MovieChatroomRecord,
)
from reelroom.services.messages import MessageStore, to_message_out
from reelroom.services.projects import ProjectStore
from reelroom.services.users import UserDirectory

logger = logging.getLogger(__name__)

_EPOCH = datetime.min


@dataclass
class ChatroomManager:
    database: Database
    projects: ProjectStore
    users: UserDirectory
    messages: MessageStore
    movie_collection_name: str = field(
        default_factory=lambda: settings.movie_chatrooms_collection
    )

    def __post_init__(self) -> None:
        self._movies: Collection = self.database.get_collection(self.movie_collection_name)

    def ensure_indexes(self) -> None:
        try:
            self._movies.create_index(
                [("movie_name", 1), ("is_active", 1)], name="movie_name_active"
            )
            self._movies.create_index([("created_at", DESCENDING)], name="created_at")
        except Exception:
            pass

    # --------------- Project rooms ---------------
    def open(
        self,
        project_id: str,
        *,
        name: Optional[str] = None,
        end_time: Optional[datetime] = None,
    ) -> ChatroomOpened:
        """Open (or re-open) chat for a project; every known user becomes a participant."""

        self.projects.get_project(project_id)
        participants = self.users.list_all_user_ids()
        fields: Dict[str, Any] = {
            "chat_participants": participants,
            "chat_active": True,
            "chat_opened_at": utcnow(),
        }
        if name:
            fields["chat_name"] = name
        if end_time is not None:
            fields["chat_end_time"] = ensure_utc(end_time)
        project = self.projects.update_metadata(project_id, fields)
        logger.info(
            "Chatroom opened for project %s with %d participants", project_id, len(participants)
        )
        return ChatroomOpened(
            project_id=project["id"],
            name=project.get("chat_name"),
            end_time=project.get("chat_end_time"),
            participants_count=len(participants),
        )

    def close(self, project_id: str) -> int:
        """Delete the room's history and mark it inactive; returns deleted count.

        Rooms are keyed by any string, so a room with no backing project is
        still cleared.
        """

        deleted = self.messages.delete_all_for_room(project_id)
        try:
            self.projects.update_metadata(project_id, {"chat_active": False})
        except NotFoundError:
            logger.debug("Chatroom %s has no backing project", project_id)
        logger.info("Chatroom closed for project %s (%d messages deleted)", project_id, deleted)
        return deleted

    def set_end_time(self, project_id: str, end_time: datetime) -> Dict[str, Any]:
        return self.projects.update_metadata(project_id, {"chat_end_time": ensure_utc(end_time)})

    def list_active(self) -> List[ActiveChatroom]:
        rooms = [
            ActiveChatroom(
                kind=ChatroomKind.project,
                id=doc["id"],
                name=doc.get("chat_name") or doc.get("title"),
                end_time=doc.get("chat_end_time"),
                opened_at=doc.get("chat_opened_at"),
            )
            for doc in self.projects.list_active_chatrooms()
        ]
        rooms.extend(
            ActiveChatroom(
                kind=ChatroomKind.movie,
                id=movie.id,
                name=movie.movie_name,
                end_time=movie.end_time,
                opened_at=movie.created_at,
            )
            for movie in self.list_movie_chatrooms()
        )
        rooms.sort(key=lambda room: _sort_key(room.opened_at), reverse=True)
        return rooms

    def summarize(self) -> List[ChatroomSummary]:
        """Per-room activity for every project with an open chat or stored messages."""

        project_ids = set(self.messages.distinct_rooms())
        project_ids.update(doc["id"] for doc in self.projects.list_active_chatrooms())
        projects = self.projects.get_many(project_ids)
        summaries: List[ChatroomSummary] = []
        for project_id in project_ids:
            project = projects.get(project_id, {})
            stats = self.messages.room_stats(project_id)
            summaries.append(
                ChatroomSummary(
                    project_id=project_id,
                    title=project.get("title"),
                    chat_name=project.get("chat_name"),
                    chat_end_time=project.get("chat_end_time"),
                    **stats,
                )
            )
        summaries.sort(key=lambda s: _sort_key(s.last_message_time), reverse=True)
        return summaries

    def reported_messages(self, project_id: str) -> List[Dict[str, Any]]:
        docs = self.messages.list_reported(project_id)
        names = self.users.get_names(doc.get("sender_id") for doc in docs)
        return [
            to_message_out(doc, names.get(doc.get("sender_id"))).model_dump(mode="json")
            for doc in docs
        ]

    # --------------- Movie rooms ---------------
    def create_movie_chatroom(
        self, movie_name: str, *, end_time: Optional[datetime] = None
    ) -> MovieChatroomRecord:
        name = movie_name.strip()
        if self._movies.find_one({"movie_name": name, "is_active": True}):
            raise ConflictError("Chatroom for this movie already exists")
        doc = {
            "movie_name": name,
            "end_time": ensure_utc(end_time) if end_time is not None else None,
            "is_active": True,
            "created_at": utcnow(),
        }
        try:
            res = self._movies.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError("Failed to create movie chatroom") from exc
        doc["_id"] = res.inserted_id
        logger.info("Movie chatroom %r created", name)
        return MovieChatroomRecord.model_validate(serialize_doc(doc))

    def list_movie_chatrooms(self) -> List[MovieChatroomRecord]:
        cursor = self._movies.find({"is_active": True}).sort("created_at", DESCENDING)
        return [MovieChatroomRecord.model_validate(serialize_doc(doc)) for doc in cursor]


def _sort_key(value: Optional[datetime]) -> datetime:
    return ensure_utc(value or _EPOCH)


__all__ = ["ChatroomManager"]
