"""Project (script) store; each project doubles as a chat room."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List

from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import NotFoundError, PersistenceError
from reelroom.core.settings import settings
from reelroom.core.utils import utcnow
from reelroom.schemas.object_id import maybe_object_id, serialize_doc
from reelroom.schemas.projects import ProjectCreate, ProjectRecord, ProjectStatus

logger = logging.getLogger(__name__)


@dataclass
class ProjectStore:
    database: Database
    collection_name: str = field(default_factory=lambda: settings.projects_collection)

    def __post_init__(self) -> None:
        self._projects: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        try:
            self._projects.create_index([("uploaded_by", 1)], name="uploaded_by")
            self._projects.create_index(
                [("chat_active", 1), ("chat_opened_at", -1)], name="chat_active_opened"
            )
        except Exception:
            pass

    # --------------- CRUD ---------------
    def create(self, payload: ProjectCreate, *, owner_id: str, author: str | None) -> Dict[str, Any]:
        now = utcnow()
        record = ProjectRecord(
            title=payload.title,
            description=payload.description,
            content=payload.content,
            genre=payload.genre,
            category=payload.category,
            visibility=payload.visibility,
            status=ProjectStatus.pending,
            author=author,
            uploaded_by=owner_id,
            created_at=now,
            updated_at=now,
        )
        doc = record.model_dump(mode="python")
        for key in ("genre", "category", "visibility", "status"):
            if doc.get(key) is not None:
                doc[key] = getattr(record, key).value
        try:
            res = self._projects.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError("Failed to create project") from exc
        doc["_id"] = res.inserted_id
        return serialize_doc(doc)

    def get_project(self, project_id: str) -> Dict[str, Any]:
        oid = maybe_object_id(project_id)
        if oid is None:
            raise NotFoundError("Project not found")
        try:
            doc = self._projects.find_one({"_id": oid})
        except PyMongoError as exc:
            raise PersistenceError("Project lookup failed") from exc
        if not doc:
            raise NotFoundError("Project not found")
        return serialize_doc(doc)

    def get_many(self, project_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        oids = [oid for oid in (maybe_object_id(p) for p in set(project_ids)) if oid is not None]
        if not oids:
            return {}
        return {str(doc["_id"]): serialize_doc(doc) for doc in self._projects.find({"_id": {"$in": oids}})}

    def set_status(self, project_id: str, status: ProjectStatus) -> Dict[str, Any]:
        doc = self.update_metadata(project_id, {"status": ProjectStatus(status).value})
        logger.info("Project %s marked %s", project_id, doc.get("status"))
        return doc

    def set_pinned(self, project_id: str, pinned: bool) -> Dict[str, Any]:
        return self.update_metadata(project_id, {"pinned": bool(pinned)})

    def update_metadata(self, project_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        oid = maybe_object_id(project_id)
        if oid is None:
            raise NotFoundError("Project not found")
        update = dict(fields)
        update["updated_at"] = utcnow()
        try:
            doc = self._projects.find_one_and_update(
                {"_id": oid}, {"$set": update}, return_document=ReturnDocument.AFTER
            )
        except PyMongoError as exc:
            raise PersistenceError("Project update failed") from exc
        if not doc:
            raise NotFoundError("Project not found")
        return serialize_doc(doc)

    def add_collaborator(self, project_id: str, user_id: str) -> None:
        oid = maybe_object_id(project_id)
        if oid is None:
            raise NotFoundError("Project not found")
        res = self._projects.update_one(
            {"_id": oid},
            {"$addToSet": {"collaborators": user_id}, "$set": {"updated_at": utcnow()}},
        )
        if not res.matched_count:
            raise NotFoundError("Project not found")

    # --------------- Queries ---------------
    def list_all(self) -> List[Dict[str, Any]]:
        """Every project for moderation, pinned first then newest."""
        try:
            cursor = self._projects.find({}, projection={"content": 0}).sort(
                [("pinned", -1), ("created_at", -1)]
            )
            return [serialize_doc(doc) for doc in cursor]
        except PyMongoError as exc:
            raise PersistenceError("Failed to list projects") from exc

    def list_active_chatrooms(self) -> List[Dict[str, Any]]:
        cursor = self._projects.find(
            {"chat_active": True},
            projection={"title": 1, "chat_name": 1, "chat_end_time": 1, "chat_opened_at": 1},
        ).sort("chat_opened_at", -1)
        return [serialize_doc(doc) for doc in cursor]

    def list_joinable(self, user_id: str, *, exclude_ids: Iterable[str] = ()) -> List[Dict[str, Any]]:
        """Projects the user neither owns, collaborates on, nor already asked to join."""
        excluded = [oid for oid in (maybe_object_id(p) for p in exclude_ids) if oid is not None]
        flt: Dict[str, Any] = {
            "uploaded_by": {"$ne": user_id},
            "collaborators": {"$ne": user_id},
        }
        if excluded:
            flt["_id"] = {"$nin": excluded}
        cursor = self._projects.find(
            flt,
            projection={"title": 1, "description": 1, "genre": 1, "category": 1, "author": 1},
        )
        return [serialize_doc(doc) for doc in cursor]


__all__ = ["ProjectStore"]
