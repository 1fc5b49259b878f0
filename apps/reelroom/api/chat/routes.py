from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, WebSocket

from reelroom.api.dependencies import get_current_identity
from reelroom.core.dependencies import (
    get_chat_relay,
    get_chatroom_manager,
    get_message_store,
    get_project_store,
    get_user_directory,
)
from reelroom.core.exceptions import ForbiddenError
from reelroom.core.settings import settings
from reelroom.core.utils import clamp_int
from reelroom.schemas.chat import ChatMessageOut
from reelroom.schemas.projects import ActiveChatroom, project_visible_to
from reelroom.schemas.users import Identity
from reelroom.services.chatrooms import ChatroomManager
from reelroom.services.messages import MessageStore, to_message_out
from reelroom.services.projects import ProjectStore
from reelroom.services.relay import ChatRelay
from reelroom.services.users import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])


def _require_visible(projects: ProjectStore, project_id: str, current: Identity) -> None:
    project = projects.get_project(project_id)
    if not current.is_admin and not project_visible_to(project, current.user_id):
        raise ForbiddenError("This project is private")


@router.get("/api/chat/rooms/active", response_model=List[ActiveChatroom])
def list_active_rooms(
    _current: Identity = Depends(get_current_identity),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> List[ActiveChatroom]:
    return manager.list_active()


@router.get("/api/chat/{project_id}/messages", response_model=List[ChatMessageOut])
def list_messages(
    project_id: str,
    limit: Optional[int] = Query(default=None, ge=1),
    pinned: Optional[bool] = Query(default=None),
    current: Identity = Depends(get_current_identity),
    projects: ProjectStore = Depends(get_project_store),
    messages: MessageStore = Depends(get_message_store),
    users: UserDirectory = Depends(get_user_directory),
) -> List[ChatMessageOut]:
    _require_visible(projects, project_id, current)
    n = clamp_int(
        limit or settings.chat_history_default_limit, lo=1, hi=settings.chat_history_max_limit
    )
    docs = messages.list_for_room(project_id, limit=n, pinned=pinned)
    names = users.get_names(doc.get("sender_id") for doc in docs)
    return [to_message_out(doc, names.get(doc.get("sender_id"))) for doc in docs]


@router.get("/api/chat/{project_id}/online")
def online_count(
    project_id: str,
    _current: Identity = Depends(get_current_identity),
    relay: ChatRelay = Depends(get_chat_relay),
) -> dict:
    return {"project_id": project_id, "count": relay.online_count(project_id)}


@router.post("/api/chat/messages/{message_id}/report", response_model=ChatMessageOut)
def report_message(
    message_id: str,
    current: Identity = Depends(get_current_identity),
    projects: ProjectStore = Depends(get_project_store),
    messages: MessageStore = Depends(get_message_store),
) -> ChatMessageOut:
    doc = messages.find_by_id(message_id)
    _require_visible(projects, doc["project_id"], current)
    updated = messages.mark_reported(message_id)
    logger.info("Message %s reported by %s", message_id, current.user_id)
    return to_message_out(updated)


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    relay: ChatRelay = Depends(get_chat_relay),
) -> None:
    await websocket.accept()
    session = await relay.connect(websocket, token=token)
    await relay.serve(session)


__all__ = ["router"]
