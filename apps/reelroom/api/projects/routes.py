from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from reelroom.api.dependencies import get_current_identity
from reelroom.core.dependencies import get_project_store
from reelroom.core.exceptions import ForbiddenError
from reelroom.schemas.projects import ProjectCreate, project_visible_to
from reelroom.schemas.users import Identity
from reelroom.services.projects import ProjectStore

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("", status_code=201)
def create_project(
    payload: ProjectCreate,
    current: Identity = Depends(get_current_identity),
    projects: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    return projects.create(payload, owner_id=current.user_id, author=current.name)


@router.get("/{project_id}")
def get_project(
    project_id: str,
    current: Identity = Depends(get_current_identity),
    projects: ProjectStore = Depends(get_project_store),
) -> Dict[str, Any]:
    project = projects.get_project(project_id)
    if not current.is_admin and not project_visible_to(project, current.user_id):
        raise ForbiddenError("This project is private")
    return project
