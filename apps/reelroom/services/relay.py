"""Real-time chat relay.

One `RelaySession` per WebSocket connection. The route handler runs a single
dispatch loop per connection (`ChatRelay.serve`), so a session's frames are
handled strictly in arrival order; store and identity calls are pushed to the
threadpool so a slow write never stalls other sessions.

Room fan-out goes through the `PresenceRegistry`, which only knows session
ids; the relay keeps the id -> session map for delivery.
"""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

import pydantic
from fastapi import WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool

from reelroom.core.exceptions import (
    AuthError,
    ForbiddenError,
    ReelroomException,
    ValidationError,
)
from reelroom.schemas.chat import (
    ChatMessageCreate,
    ClientEvent,
    EventFrame,
    JoinProjectPayload,
    RoomPayload,
    SendMessagePayload,
    ServerEvent,
    TogglePinPayload,
    server_frame,
)
from reelroom.schemas.users import Identity
from reelroom.services.identity import IdentityProvider
from reelroom.services.messages import MessageStore, to_message_out
from reelroom.services.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class Transport(Protocol):
    async def send_json(self, data: Any) -> None: ...

    async def receive_text(self) -> str: ...


class SessionState(str, Enum):
    unauthenticated = "unauthenticated"
    joined = "joined"
    disconnected = "disconnected"


@dataclass
class RelaySession:
    websocket: Transport
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    handshake_token: Optional[str] = None
    identity: Optional[Identity] = None
    room: Optional[str] = None
    state: SessionState = SessionState.unauthenticated

    @property
    def joined(self) -> bool:
        return self.state is SessionState.joined and self.room is not None


def _parse(model: type[pydantic.BaseModel], data: Dict[str, Any]) -> Any:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        raise ValidationError(
            "Invalid event payload",
            details=json.loads(exc.json(include_url=False)),
        ) from exc


class ChatRelay:
    """Connection handling, room membership and fan-out for chat rooms."""

    def __init__(
        self,
        *,
        presence: PresenceRegistry,
        identity: IdentityProvider,
        messages: MessageStore,
    ) -> None:
        self.presence = presence
        self.identity = identity
        self.messages = messages
        self._sessions: dict[str, RelaySession] = {}
        self._handlers: dict[ClientEvent, Callable[[RelaySession, Dict[str, Any]], Awaitable[None]]] = {
            ClientEvent.join_project: self._on_join,
            ClientEvent.send_message: self._on_send,
            ClientEvent.typing: self._on_typing,
            ClientEvent.stop_typing: self._on_stop_typing,
            ClientEvent.toggle_pin: self._on_toggle_pin,
        }

    # --------------- Connection lifecycle ---------------
    async def connect(self, websocket: Transport, *, token: Optional[str] = None) -> RelaySession:
        """Register an accepted connection and greet it with its session id."""

        session = RelaySession(websocket=websocket, handshake_token=token)
        self._sessions[session.session_id] = session
        logger.info("Chat session %s connected", session.session_id)
        await self._send(session, ServerEvent.connected, {"session_id": session.session_id})
        return session

    async def serve(self, session: RelaySession) -> None:
        """Dispatch loop: read frames until the transport closes, then clean up."""

        try:
            while True:
                raw = await session.websocket.receive_text()
                await self.dispatch_raw(session, raw)
        except WebSocketDisconnect:
            pass
        finally:
            await self.disconnect(session)

    async def disconnect(self, session: RelaySession) -> None:
        """Leave the joined room and announce the departure; runs once per session."""

        if session.state is SessionState.disconnected:
            return
        was_joined = session.joined
        room = session.room
        session.state = SessionState.disconnected
        self._sessions.pop(session.session_id, None)
        logger.info("Chat session %s disconnected", session.session_id)
        if was_joined and room is not None:
            await self._leave_room(session, room)

    def get_session(self, session_id: str) -> Optional[RelaySession]:
        return self._sessions.get(session_id)

    def online_count(self, project_id: str) -> int:
        return self.presence.size_of(project_id)

    # --------------- Dispatch ---------------
    async def dispatch_raw(self, session: RelaySession, raw: str) -> None:
        """Decode one inbound frame and run its handler.

        Failures are reported to the originating session only: auth failures
        on join become `joinRejected`, everything else becomes `error`.
        """

        event_name = None
        decoded: Any = None
        try:
            try:
                decoded = json.loads(raw)
            except (TypeError, ValueError) as exc:
                raise ValidationError("Frame is not valid JSON") from exc
            if not isinstance(decoded, dict):
                raise ValidationError("Frame must be a JSON object")
            event_name = decoded.get("event")
            frame = _parse(EventFrame, decoded)
            try:
                event = ClientEvent(frame.event)
            except ValueError as exc:
                raise ValidationError(f"Unknown event: {frame.event}") from exc
            await self._handlers[event](session, frame.data)
        except AuthError as exc:
            if event_name == ClientEvent.join_project.value:
                logger.info("Join rejected for session %s: %s", session.session_id, exc.code)
                await self._send(
                    session,
                    ServerEvent.join_rejected,
                    {
                        "project_id": _project_id_of(decoded),
                        "code": exc.code,
                        "message": exc.message,
                    },
                )
            else:
                await self._report(session, event_name, exc)
        except ReelroomException as exc:
            logger.info(
                "Chat event %s failed for session %s: %s",
                event_name,
                session.session_id,
                exc.message,
            )
            await self._report(session, event_name, exc)
        except WebSocketDisconnect:
            raise
        except Exception:
            logger.exception("Unhandled error in chat event %s", event_name)
            await self._send(
                session,
                ServerEvent.error,
                {"event": event_name, "code": "internal_error", "message": "Internal server error"},
            )

    # --------------- Operations ---------------
    async def join(self, session: RelaySession, project_id: str, token: Optional[str] = None) -> None:
        identity = await run_in_threadpool(self.identity.verify, token or session.handshake_token)

        if session.joined and session.room == project_id:
            session.identity = identity
            await self._send(
                session,
                ServerEvent.joined,
                {"project_id": project_id, "online": self.presence.size_of(project_id)},
            )
            return

        if session.joined and session.room is not None:
            await self._leave_room(session, session.room)

        session.identity = identity
        session.room = project_id
        session.state = SessionState.joined
        count = self.presence.join(project_id, session.session_id)
        logger.info(
            "User %s joined room %s (session %s, online=%d)",
            identity.user_id,
            project_id,
            session.session_id,
            count,
        )
        await self._send(session, ServerEvent.joined, {"project_id": project_id, "online": count})
        await self.broadcast(project_id, ServerEvent.online_users, {"project_id": project_id, "count": count})
        await self.broadcast(project_id, ServerEvent.user_joined, identity.public())

    async def send(self, session: RelaySession, payload: SendMessagePayload) -> Dict[str, Any]:
        identity = self._require_joined(session, payload.project_id)
        # Moderation flags can change while a session stays joined.
        user = await run_in_threadpool(self.identity.users.get_user, identity.user_id)
        if user.get("is_blocked"):
            raise ForbiddenError("User is blocked", code="user_blocked")
        if user.get("is_muted"):
            raise ForbiddenError("You are muted in chat", code="muted")
        try:
            record = ChatMessageCreate(
                project_id=payload.project_id,
                sender_id=identity.user_id,
                message=payload.message,
                message_type=payload.message_type,
                file_url=payload.file_url,
                file_name=payload.file_name,
            )
        except pydantic.ValidationError as exc:
            raise ValidationError(
                "Invalid message", details=json.loads(exc.json(include_url=False))
            ) from exc

        doc = await run_in_threadpool(self.messages.insert, record)
        out = to_message_out(doc, identity.name).model_dump(mode="json")
        await self.broadcast(payload.project_id, ServerEvent.message, out)
        return out

    async def typing(self, session: RelaySession, *, stopped: bool = False) -> None:
        identity = self._require_joined(session)
        event = ServerEvent.stop_typing if stopped else ServerEvent.typing
        await self.broadcast(session.room, event, identity.public(), exclude=session.session_id)

    async def toggle_pin(self, session: RelaySession, message_id: str, pinned: bool) -> Dict[str, Any]:
        identity = self._require_joined(session)
        doc = await run_in_threadpool(self.messages.find_by_id, message_id)
        if doc.get("project_id") != session.room:
            raise ForbiddenError("Message belongs to another room")
        updated = await run_in_threadpool(self.messages.set_pinned, message_id, pinned)
        sender_id = updated.get("sender_id")
        if sender_id == identity.user_id:
            sender_name: Optional[str] = identity.name
        else:
            names = await run_in_threadpool(self.identity.users.get_names, [sender_id])
            sender_name = names.get(sender_id)
        out = to_message_out(updated, sender_name).model_dump(mode="json")
        await self.broadcast(session.room, ServerEvent.message_pinned, out)
        return out

    async def broadcast(
        self,
        room: str,
        event: ServerEvent,
        data: Any,
        *,
        exclude: Optional[str] = None,
    ) -> int:
        """Deliver an event to every session present in `room`; returns deliveries.

        A failed delivery is logged and skipped; the failing session's own loop
        performs its cleanup when its transport closes.
        """

        delivered = 0
        frame = server_frame(event, data)
        for session_id in self.presence.members(room):
            if session_id == exclude:
                continue
            target = self._sessions.get(session_id)
            if target is None:
                continue
            try:
                await target.websocket.send_json(frame)
                delivered += 1
            except Exception as exc:
                logger.warning(
                    "Broadcast of %s to session %s failed: %s", event.value, session_id, exc
                )
        return delivered

    # --------------- Event handlers ---------------
    async def _on_join(self, session: RelaySession, data: Dict[str, Any]) -> None:
        payload = _parse(JoinProjectPayload, data)
        await self.join(session, payload.project_id, payload.auth_token)

    async def _on_send(self, session: RelaySession, data: Dict[str, Any]) -> None:
        await self.send(session, _parse(SendMessagePayload, data))

    async def _on_typing(self, session: RelaySession, data: Dict[str, Any]) -> None:
        payload = _parse(RoomPayload, data)
        self._require_joined(session, payload.project_id)
        await self.typing(session)

    async def _on_stop_typing(self, session: RelaySession, data: Dict[str, Any]) -> None:
        payload = _parse(RoomPayload, data)
        self._require_joined(session, payload.project_id)
        await self.typing(session, stopped=True)

    async def _on_toggle_pin(self, session: RelaySession, data: Dict[str, Any]) -> None:
        payload = _parse(TogglePinPayload, data)
        await self.toggle_pin(session, payload.message_id, payload.pinned)

    # --------------- Helpers ---------------
    def _require_joined(self, session: RelaySession, project_id: Optional[str] = None) -> Identity:
        if not session.joined or session.identity is None:
            raise ForbiddenError("Join a project room first", code="not_joined")
        if project_id is not None and project_id != session.room:
            raise ForbiddenError("Session is not joined to this room", code="wrong_room")
        return session.identity

    async def _leave_room(self, session: RelaySession, room: str) -> None:
        count = self.presence.leave(room, session.session_id)
        identity = session.identity
        logger.info("Session %s left room %s (online=%d)", session.session_id, room, count)
        await self.broadcast(room, ServerEvent.online_users, {"project_id": room, "count": count})
        if identity is not None:
            await self.broadcast(room, ServerEvent.user_left, identity.public())

    async def _send(self, session: RelaySession, event: ServerEvent, data: Any) -> None:
        try:
            await session.websocket.send_json(server_frame(event, data))
        except Exception as exc:
            logger.warning("Send of %s to session %s failed: %s", event.value, session.session_id, exc)

    async def _report(
        self, session: RelaySession, event_name: Optional[str], exc: ReelroomException
    ) -> None:
        await self._send(
            session,
            ServerEvent.error,
            {"event": event_name, "code": exc.code, "message": exc.message},
        )


def _project_id_of(frame: Any) -> Optional[str]:
    data = frame.get("data") if isinstance(frame, dict) else None
    if not isinstance(data, dict):
        return None
    return data.get("projectId") or data.get("project_id")


__all__ = ["ChatRelay", "RelaySession", "SessionState", "Transport"]
