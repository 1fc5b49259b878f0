from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CollaboratorRole(str, Enum):
    writer = "Writer"
    director = "Director"
    producer = "Producer"
    cinematographer = "Cinematographer"
    editor = "Editor"
    sound_designer = "Sound Designer"
    actor = "Actor"
    other = "Other"


class JoinRequestStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"


class JoinRequestCreate(BaseModel):
    project_id: str
    role: CollaboratorRole
    message: str = Field(max_length=500)

    @field_validator("message")
    @classmethod
    def _non_empty_message(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("must be non-empty")
        return v.strip()


class JoinRequestRecord(BaseModel):
    """Canonical Mongo record for `join_requests`."""

    model_config = ConfigDict(extra="allow")

    sender_id: str
    receiver_id: str
    project_id: str
    role: CollaboratorRole
    message: str
    status: JoinRequestStatus = JoinRequestStatus.pending
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


__all__ = [
    "CollaboratorRole",
    "JoinRequestCreate",
    "JoinRequestRecord",
    "JoinRequestStatus",
]
