"""Requests to join a project as a collaborator."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from pymongo import DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PersistenceError,
)
from reelroom.core.settings import settings
from reelroom.core.utils import utcnow
from reelroom.schemas.join_requests import (
    JoinRequestCreate,
    JoinRequestRecord,
    JoinRequestStatus,
)
from reelroom.schemas.object_id import maybe_object_id, serialize_doc
from reelroom.services.projects import ProjectStore
from reelroom.services.users import UserDirectory

logger = logging.getLogger(__name__)

_OPEN_STATUSES = [JoinRequestStatus.pending.value, JoinRequestStatus.accepted.value]


@dataclass
class JoinRequestService:
    database: Database
    projects: ProjectStore
    users: UserDirectory
    collection_name: str = field(default_factory=lambda: settings.join_requests_collection)

    def __post_init__(self) -> None:
        self._requests: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        try:
            self._requests.create_index(
                [("sender_id", 1), ("project_id", 1)], name="sender_project"
            )
            self._requests.create_index(
                [("receiver_id", 1), ("created_at", DESCENDING)], name="receiver_created"
            )
        except Exception:
            pass

    def send(self, sender_id: str, payload: JoinRequestCreate) -> Dict[str, Any]:
        project = self.projects.get_project(payload.project_id)
        owner_id = project.get("uploaded_by")
        if owner_id == sender_id:
            raise ConflictError("You already own this project")
        if sender_id in (project.get("collaborators") or []):
            raise ConflictError("You are already a collaborator on this project")
        existing = self._requests.find_one(
            {
                "sender_id": sender_id,
                "project_id": payload.project_id,
                "status": {"$in": _OPEN_STATUSES},
            }
        )
        if existing:
            raise ConflictError("You have already sent a request for this project")

        now = utcnow()
        record = JoinRequestRecord(
            sender_id=sender_id,
            receiver_id=owner_id or "",
            project_id=payload.project_id,
            role=payload.role,
            message=payload.message,
            created_at=now,
            updated_at=now,
        )
        doc = record.model_dump()
        doc["role"] = record.role.value
        doc["status"] = record.status.value
        try:
            res = self._requests.insert_one(doc)
        except PyMongoError as exc:
            raise PersistenceError("Failed to save join request") from exc
        doc["_id"] = res.inserted_id
        logger.info("Join request from %s for project %s", sender_id, payload.project_id)
        return serialize_doc(doc)

    def list_sent(self, user_id: str) -> List[Dict[str, Any]]:
        docs = [
            serialize_doc(doc)
            for doc in self._requests.find({"sender_id": user_id}).sort("created_at", DESCENDING)
        ]
        return self._with_context(docs, counterpart="receiver_id")

    def list_received(self, user_id: str) -> List[Dict[str, Any]]:
        docs = [
            serialize_doc(doc)
            for doc in self._requests.find({"receiver_id": user_id}).sort(
                "created_at", DESCENDING
            )
        ]
        return self._with_context(docs, counterpart="sender_id")

    def accept(self, request_id: str, user_id: str) -> Dict[str, Any]:
        request = self._decide(request_id, user_id, JoinRequestStatus.accepted)
        self.projects.add_collaborator(request["project_id"], request["sender_id"])
        logger.info(
            "Join request %s accepted; %s added to project %s",
            request_id,
            request["sender_id"],
            request["project_id"],
        )
        return request

    def reject(self, request_id: str, user_id: str) -> Dict[str, Any]:
        return self._decide(request_id, user_id, JoinRequestStatus.rejected)

    def available_projects(self, user_id: str) -> List[Dict[str, Any]]:
        """Projects the user could still ask to join."""

        requested = self._requests.distinct(
            "project_id", {"sender_id": user_id, "status": {"$in": _OPEN_STATUSES}}
        )
        return self.projects.list_joinable(user_id, exclude_ids=requested)

    def _decide(
        self, request_id: str, user_id: str, status: JoinRequestStatus
    ) -> Dict[str, Any]:
        oid = maybe_object_id(request_id)
        if oid is None:
            raise NotFoundError("Request not found")
        request = self._requests.find_one({"_id": oid})
        if not request:
            raise NotFoundError("Request not found")
        if request.get("receiver_id") != user_id:
            raise ForbiddenError("Only the project owner can respond to this request")
        if request.get("status") != JoinRequestStatus.pending.value:
            raise ConflictError("Request has already been handled")
        updated = self._requests.find_one_and_update(
            {"_id": oid, "status": JoinRequestStatus.pending.value},
            {"$set": {"status": status.value, "updated_at": utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if not updated:
            raise ConflictError("Request has already been handled")
        return serialize_doc(updated)

    def _with_context(self, docs: List[Dict[str, Any]], *, counterpart: str) -> List[Dict[str, Any]]:
        projects = self.projects.get_many(doc["project_id"] for doc in docs)
        names = self.users.get_names(doc.get(counterpart) for doc in docs)
        for doc in docs:
            project = projects.get(doc["project_id"]) or {}
            doc["project_title"] = project.get("title")
            doc[counterpart.replace("_id", "_name")] = names.get(doc.get(counterpart))
        return docs


__all__ = ["JoinRequestService"]
