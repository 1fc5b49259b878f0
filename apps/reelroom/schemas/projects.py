from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Genre(str, Enum):
    drama = "Drama"
    horror = "Horror"
    comedy = "Comedy"
    romance = "Romance"
    thriller = "Thriller"
    documentary = "Documentary"


class Category(str, Enum):
    short_film = "Short film"
    web_series = "Web series"
    feature_film = "Feature film"
    ad_reel = "Ad / Reel"
    student_film = "Student film"


class Visibility(str, Enum):
    public = "Public"
    private = "Private"
    team = "Team"


class ProjectStatus(str, Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"


class ProjectCreate(BaseModel):
    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    genre: Optional[Genre] = None
    category: Optional[Category] = None
    visibility: Visibility = Visibility.public

    @field_validator("title")
    @classmethod
    def _non_empty_title(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("must be non-empty")
        return v.strip()


class ProjectRecord(BaseModel):
    """Canonical Mongo record for projects (scripts); a project is a chat room."""

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    title: str
    description: Optional[str] = None
    content: Optional[str] = None
    genre: Optional[Genre] = None
    category: Optional[Category] = None
    visibility: Visibility = Visibility.public
    status: ProjectStatus = ProjectStatus.pending
    author: Optional[str] = None
    uploaded_by: Optional[str] = None
    collaborators: List[str] = Field(default_factory=list)
    pinned: bool = False

    chat_name: Optional[str] = None
    chat_end_time: Optional[datetime] = None
    chat_participants: List[str] = Field(default_factory=list)
    chat_active: bool = False
    chat_opened_at: Optional[datetime] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None



class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class ProjectPinUpdate(BaseModel):
    pinned: bool

# -----------------
# Chatroom lifecycle
# -----------------
class ChatroomOpen(BaseModel):
    project_id: str
    name: Optional[str] = None
    end_time: Optional[datetime] = None

    @field_validator("project_id")
    @classmethod
    def _non_empty_id(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("Project ID is required")
        return v.strip()


class ChatroomTimer(BaseModel):
    end_time: datetime


class ChatroomOpened(BaseModel):
    project_id: str
    name: Optional[str] = None
    end_time: Optional[datetime] = None
    participants_count: int


class ChatroomKind(str, Enum):
    project = "project"
    movie = "movie"


class ActiveChatroom(BaseModel):
    kind: ChatroomKind
    id: str
    name: Optional[str] = None
    end_time: Optional[datetime] = None
    opened_at: Optional[datetime] = None


class ChatroomSummary(BaseModel):
    project_id: str
    title: Optional[str] = None
    chat_name: Optional[str] = None
    chat_end_time: Optional[datetime] = None
    message_count: int = 0
    last_message: Optional[str] = None
    last_message_time: Optional[datetime] = None
    participant_count: int = 0
    reported_count: int = 0


class MovieChatroomCreate(BaseModel):
    movie_name: str
    end_time: Optional[datetime] = None

    @field_validator("movie_name")
    @classmethod
    def _non_empty_name(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("Movie name is required")
        return v.strip()


class MovieChatroomRecord(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    movie_name: str
    end_time: Optional[datetime] = None
    is_active: bool = True
    created_at: Optional[datetime] = None


def project_visible_to(project: dict[str, Any], user_id: str) -> bool:
    """Private projects are visible to their owner and collaborators only."""

    if project.get("visibility") != Visibility.private.value:
        return True
    return user_id == project.get("uploaded_by") or user_id in (
        project.get("collaborators") or []
    )


__all__ = [
    "ActiveChatroom",
    "Category",
    "ChatroomKind",
    "ChatroomOpen",
    "ChatroomOpened",
    "ChatroomSummary",
    "ChatroomTimer",
    "Genre",
    "MovieChatroomCreate",
    "MovieChatroomRecord",
    "ProjectCreate",
    "ProjectRecord",
    "ProjectStatus",
    "Visibility",
    "project_visible_to",
]
