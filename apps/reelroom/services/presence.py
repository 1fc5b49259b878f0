"""In-memory presence registry: room id -> connected session ids.

Single-process only; the registry lives as long as the process and is never
persisted.
"""

from __future__ import annotations

import threading
from collections import defaultdict


class PresenceRegistry:
    """Tracks which sessions are present in which room.

    A session id is tracked in at most one room; joining a second room moves
    it. Empty rooms are dropped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rooms: dict[str, set[str]] = defaultdict(set)
        self._session_room: dict[str, str] = {}

    def join(self, room: str, session_id: str) -> int:
        with self._lock:
            previous = self._session_room.get(session_id)
            if previous is not None and previous != room:
                self._discard(previous, session_id)
            self._rooms[room].add(session_id)
            self._session_room[session_id] = room
            return len(self._rooms[room])

    def leave(self, room: str, session_id: str) -> int:
        with self._lock:
            if self._session_room.get(session_id) == room:
                self._session_room.pop(session_id, None)
            self._discard(room, session_id)
            members = self._rooms.get(room)
            return len(members) if members else 0

    def size_of(self, room: str) -> int:
        with self._lock:
            members = self._rooms.get(room)
            return len(members) if members else 0

    def members(self, room: str) -> set[str]:
        with self._lock:
            return set(self._rooms.get(room, ()))

    def room_of(self, session_id: str) -> str | None:
        with self._lock:
            return self._session_room.get(session_id)

    def rooms(self) -> dict[str, int]:
        with self._lock:
            return {room: len(members) for room, members in self._rooms.items()}

    def _discard(self, room: str, session_id: str) -> None:
        members = self._rooms.get(room)
        if not members:
            self._rooms.pop(room, None)
            return
        members.discard(session_id)
        if not members:
            self._rooms.pop(room, None)


__all__ = ["PresenceRegistry"]
