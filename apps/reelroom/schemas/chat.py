"""Chat message records and the WebSocket event vocabulary.

Inbound frames use camelCase keys (`projectId`, `messageType`, ...); the
payload models accept either camelCase or snake_case. Outbound frames are
`{"event": <ServerEvent>, "data": {...}}` with snake_case payloads.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class MessageType(str, Enum):
    text = "text"
    file = "file"


class SenderInfo(BaseModel):
    id: str
    name: str


class ChatMessageCreate(BaseModel):
    project_id: str
    sender_id: str
    message: str = ""
    message_type: MessageType = MessageType.text
    file_url: Optional[str] = None
    file_name: Optional[str] = None

    @model_validator(mode="after")
    def _body_matches_kind(self) -> "ChatMessageCreate":
        if self.message_type is MessageType.file:
            if not (self.file_url or "").strip():
                raise ValueError("file messages require a file_url")
        elif not self.message.strip():
            raise ValueError("text messages require a non-empty message")
        return self


class ChatMessageOut(BaseModel):
    id: str
    project_id: str
    sender_id: str
    sender: Optional[SenderInfo] = None
    message: str = ""
    message_type: MessageType = MessageType.text
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    pinned: bool = False
    reported: bool = False
    created_at: Optional[datetime] = None


# -----------------
# WebSocket events
# -----------------
class ClientEvent(str, Enum):
    join_project = "joinProject"
    send_message = "sendMessage"
    typing = "typing"
    stop_typing = "stopTyping"
    toggle_pin = "togglePin"


class ServerEvent(str, Enum):
    connected = "connected"
    joined = "joined"
    join_rejected = "joinRejected"
    error = "error"
    online_users = "onlineUsers"
    user_joined = "userJoined"
    user_left = "userLeft"
    message = "message"
    typing = "typing"
    stop_typing = "stopTyping"
    message_pinned = "messagePinned"


class EventFrame(BaseModel):
    event: str
    data: Dict[str, Any] = Field(default_factory=dict)


class _CamelPayload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class JoinProjectPayload(_CamelPayload):
    project_id: str = Field(min_length=1)
    auth_token: Optional[str] = None


class SendMessagePayload(_CamelPayload):
    project_id: str = Field(min_length=1)
    message: str = ""
    message_type: MessageType = MessageType.text
    file_url: Optional[str] = None
    file_name: Optional[str] = None


class RoomPayload(_CamelPayload):
    project_id: Optional[str] = None


class TogglePinPayload(_CamelPayload):
    message_id: str = Field(min_length=1)
    pinned: bool


def server_frame(event: ServerEvent, data: Any) -> dict[str, Any]:
    return {"event": event.value, "data": data}


__all__ = [
    "ChatMessageCreate",
    "ChatMessageOut",
    "ClientEvent",
    "EventFrame",
    "JoinProjectPayload",
    "MessageType",
    "RoomPayload",
    "SendMessagePayload",
    "SenderInfo",
    "ServerEvent",
    "TogglePinPayload",
    "server_frame",
]
