from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, Depends

from reelroom.api.dependencies import get_current_identity
from reelroom.core.dependencies import get_join_request_service
from reelroom.schemas.join_requests import JoinRequestCreate
from reelroom.schemas.users import Identity
from reelroom.services.join_requests import JoinRequestService

router = APIRouter(prefix="/api/requests", tags=["requests"])


@router.post("/send", status_code=201)
def send_request(
    payload: JoinRequestCreate,
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> Dict[str, Any]:
    return svc.send(current.user_id, payload)


@router.get("/sent")
def sent_requests(
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> List[Dict[str, Any]]:
    return svc.list_sent(current.user_id)


@router.get("/received")
def received_requests(
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> List[Dict[str, Any]]:
    return svc.list_received(current.user_id)


@router.post("/{request_id}/accept")
def accept_request(
    request_id: str,
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> Dict[str, Any]:
    return svc.accept(request_id, current.user_id)


@router.post("/{request_id}/reject")
def reject_request(
    request_id: str,
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> Dict[str, Any]:
    return svc.reject(request_id, current.user_id)


@router.get("/projects")
def available_projects(
    current: Identity = Depends(get_current_identity),
    svc: JoinRequestService = Depends(get_join_request_service),
) -> List[Dict[str, Any]]:
    return svc.available_projects(current.user_id)
