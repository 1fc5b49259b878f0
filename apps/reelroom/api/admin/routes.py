from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from reelroom.api.dependencies import require_admin
from reelroom.core.dependencies import (
    get_chatroom_manager,
    get_project_store,
    get_user_directory,
)
from reelroom.schemas.projects import (
    ChatroomOpen,
    ChatroomOpened,
    ChatroomSummary,
    ChatroomTimer,
    MovieChatroomCreate,
    MovieChatroomRecord,
    ProjectPinUpdate,
    ProjectStatusUpdate,
)
from reelroom.schemas.users import Identity, UserModerationUpdate, UserSummary
from reelroom.services.chatrooms import ChatroomManager
from reelroom.services.projects import ProjectStore
from reelroom.services.users import UserDirectory

router = APIRouter(prefix="/api/admin", tags=["admin"])


# --------------- Chatrooms ---------------
@router.post("/chatrooms", response_model=ChatroomOpened, status_code=201)
def open_chatroom(
    payload: ChatroomOpen,
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> ChatroomOpened:
    return manager.open(payload.project_id, name=payload.name, end_time=payload.end_time)


@router.get("/chatrooms", response_model=List[ChatroomSummary])
def list_chatrooms(
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> List[ChatroomSummary]:
    return manager.summarize()


@router.post("/chatrooms/{project_id}/timer")
def set_chatroom_timer(
    project_id: str,
    payload: ChatroomTimer,
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> Dict[str, Any]:
    project = manager.set_end_time(project_id, payload.end_time)
    return {"project_id": project["id"], "end_time": project.get("chat_end_time")}


@router.delete("/chatrooms/{project_id}")
def close_chatroom(
    project_id: str,
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> Dict[str, Any]:
    deleted = manager.close(project_id)
    return {"project_id": project_id, "deleted": deleted}


@router.get("/chatrooms/{project_id}/reported")
def list_reported_messages(
    project_id: str,
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> List[Dict[str, Any]]:
    return manager.reported_messages(project_id)


# --------------- Movie chatrooms ---------------
@router.post("/movie-chatrooms", response_model=MovieChatroomRecord, status_code=201)
def create_movie_chatroom(
    payload: MovieChatroomCreate,
    _admin: Identity = Depends(require_admin),
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> MovieChatroomRecord:
    return manager.create_movie_chatroom(payload.movie_name, end_time=payload.end_time)


@router.get("/movie-chatrooms", response_model=List[MovieChatroomRecord])
def list_movie_chatrooms(
    manager: ChatroomManager = Depends(get_chatroom_manager),
) -> List[MovieChatroomRecord]:
    return manager.list_movie_chatrooms()


# --------------- Users ---------------
@router.get("/users", response_model=List[UserSummary])
def list_users(
    _admin: Identity = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
) -> List[Dict[str, Any]]:
    return users.list_users()


@router.put("/users/{user_id}", response_model=UserSummary)
def moderate_user(
    user_id: str,
    payload: UserModerationUpdate,
    _admin: Identity = Depends(require_admin),
    users: UserDirectory = Depends(get_user_directory),
) -> Dict[str, Any]:
    return users.set_moderation(user_id, payload)


# --------------- Projects ---------------
@router.get("/projects")
def list_projects(
    _admin: Identity = Depends(require_admin),
    projects: ProjectStore = Depends(get_project_store),
) -> List[Dict[str, Any]]:
    return projects.list_all()


@router.put("/projects/{project_id}")
def set_project_status(
    project_id: str,
    payload: ProjectStatusUpdate,
    _admin: Identity = Depends(require_admin),
    projects: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    return projects.set_status(project_id, payload.status)


@router.put("/projects/{project_id}/pin")
def pin_project(
    project_id: str,
    payload: ProjectPinUpdate,
    _admin: Identity = Depends(require_admin),
    projects: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    return projects.set_pinned(project_id, payload.pinned)
