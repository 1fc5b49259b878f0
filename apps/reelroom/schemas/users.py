from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator


class Identity(BaseModel):
    """Authenticated caller resolved from an identity token."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    name: str
    is_admin: bool = False

    def public(self) -> dict[str, Any]:
        return {"id": self.user_id, "name": self.name}


class UserRecord(BaseModel):
    """Canonical Mongo record for `users`."""

    model_config = ConfigDict(extra="allow", arbitrary_types_allowed=True)

    name: str
    email: Optional[str] = None
    is_admin: bool = False
    is_blocked: bool = False
    is_muted: bool = False
    bio: Optional[str] = None
    role_in_film: Optional[str] = None
    skills: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("name")
    @classmethod
    def _non_empty_name(cls, v: str) -> str:
        if not (v or "").strip():
            raise ValueError("must be non-empty")
        return v.strip()


class UserModerationUpdate(BaseModel):
    is_blocked: Optional[bool] = None
    is_muted: Optional[bool] = None


class UserSummary(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    is_admin: bool = False
    is_blocked: bool = False
    is_muted: bool = False
    created_at: Optional[datetime] = None


__all__ = ["Identity", "UserModerationUpdate", "UserRecord", "UserSummary"]
