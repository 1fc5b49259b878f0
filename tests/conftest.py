from __future__ import annotations

import asyncio
import copy
import os
import socket
from dataclasses import dataclass
from typing import Any, Callable

import pytest
from bson import ObjectId

# Ensure the app runs in a unit-test-safe configuration during pytest collection.
# Keeps a developer's local .env (Mongo URI, secrets) out of unit tests.
os.environ.setdefault("APP_ENV", "test")

TEST_SECRET = "reelroom-test-secret-key-0123456789abcdef"


class NetworkBlockedError(RuntimeError):
    pass


def _blocked(*_args: Any, **_kwargs: Any) -> Any:
    raise NetworkBlockedError(
        "Network access is disabled during tests. "
        "Mark the test with @pytest.mark.integration/@pytest.mark.network or set ALLOW_NETWORK=1."
    )


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest) -> None:
    """Prevent accidental outbound network calls in unit tests."""

    if os.getenv("ALLOW_NETWORK") == "1":
        return

    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("network"):
        return

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket, "getaddrinfo", _blocked)


# -----------------
# In-memory Mongo
# -----------------
class _InsertResult:
    def __init__(self, inserted_id: Any) -> None:
        self.inserted_id = inserted_id


class _UpdateResult:
    def __init__(self, matched_count: int) -> None:
        self.matched_count = matched_count
        self.modified_count = matched_count


class _DeleteResult:
    def __init__(self, deleted_count: int) -> None:
        self.deleted_count = deleted_count


def _matches_condition(value: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and cond and all(str(k).startswith("$") for k in cond):
        for op, arg in cond.items():
            values = value if isinstance(value, list) else [value]
            if op == "$in" and not any(v in arg for v in values):
                return False
            if op == "$nin" and any(v in arg for v in values):
                return False
            if op == "$ne" and arg in values:
                return False
            if op == "$gte" and not (value is not None and value >= arg):
                return False
            if op == "$lt" and not (value is not None and value < arg):
                return False
        return True
    if isinstance(value, list) and not isinstance(cond, list):
        return cond in value
    return value == cond


def _matches(doc: dict[str, Any], filt: dict[str, Any] | None) -> bool:
    for key, cond in (filt or {}).items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in cond):
                return False
            continue
        if not _matches_condition(doc.get(key), cond):
            return False
    return True


def _sort_rows(rows: list[dict[str, Any]], key: str, direction: int) -> None:
    rows.sort(key=lambda r: (r.get(key) is not None, r.get(key)), reverse=direction < 0)


class FakeCursor:
    def __init__(self, rows: list[dict[str, Any]]) -> None:
        self._rows = rows

    def sort(self, key_or_list, direction: int = 1):  # type: ignore[no-untyped-def]
        pairs = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction)]
        for key, dirn in reversed(pairs):
            _sort_rows(self._rows, key, dirn)
        return self

    def limit(self, n: int):  # type: ignore[no-untyped-def]
        if n:
            self._rows = self._rows[:n]
        return self

    def __iter__(self):
        return iter(self._rows)


class FakeCollection:
    def __init__(self) -> None:
        self.docs: list[dict[str, Any]] = []
        self.indexes: list[tuple[Any, dict[str, Any]]] = []

    def create_index(self, keys, **kwargs):  # type: ignore[no-untyped-def]
        self.indexes.append((keys, kwargs))
        return kwargs.get("name", "idx")

    def insert_one(self, doc: dict[str, Any]) -> _InsertResult:
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self.docs.append(stored)
        return _InsertResult(stored["_id"])

    def find(self, filt=None, projection=None):  # type: ignore[no-untyped-def]
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, filt)])

    def find_one(self, filt=None, projection=None, sort=None):  # type: ignore[no-untyped-def]
        cursor = self.find(filt)
        if sort:
            cursor.sort(sort)
        for doc in cursor:
            return doc
        return None

    def _apply(self, doc: dict[str, Any], update: dict[str, Any]) -> None:
        for key, value in (update.get("$set") or {}).items():
            doc[key] = copy.deepcopy(value)
        for key, value in (update.get("$addToSet") or {}).items():
            current = doc.setdefault(key, [])
            if value not in current:
                current.append(value)

    def update_one(self, filt, update):  # type: ignore[no-untyped-def]
        for doc in self.docs:
            if _matches(doc, filt):
                self._apply(doc, update)
                return _UpdateResult(1)
        return _UpdateResult(0)

    def find_one_and_update(self, filt, update, return_document=None):  # type: ignore[no-untyped-def]
        for doc in self.docs:
            if _matches(doc, filt):
                self._apply(doc, update)
                return copy.deepcopy(doc)
        return None

    def delete_many(self, filt):  # type: ignore[no-untyped-def]
        before = len(self.docs)
        self.docs = [d for d in self.docs if not _matches(d, filt)]
        return _DeleteResult(before - len(self.docs))

    def count_documents(self, filt) -> int:  # type: ignore[no-untyped-def]
        return sum(1 for d in self.docs if _matches(d, filt))

    def estimated_document_count(self) -> int:
        return len(self.docs)

    def distinct(self, key, filt=None):  # type: ignore[no-untyped-def]
        seen: list[Any] = []
        for doc in self.docs:
            if _matches(doc, filt) and key in doc and doc[key] not in seen:
                seen.append(doc[key])
        return seen


class FakeDatabase:
    def __init__(self) -> None:
        self.collections: dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    def __getitem__(self, name: str) -> FakeCollection:
        return self.get_collection(name)


# -----------------
# Transport double
# -----------------
class FakeSocket:
    """Records outbound frames; replays scripted inbound frames then disconnects."""

    def __init__(self, inbound: list[str] | None = None, *, fail_sends: bool = False) -> None:
        self.sent: list[dict[str, Any]] = []
        self.inbound = list(inbound or [])
        self.fail_sends = fail_sends

    async def send_json(self, data: Any) -> None:
        if self.fail_sends:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    async def receive_text(self) -> str:
        from fastapi import WebSocketDisconnect

        await asyncio.sleep(0)
        if not self.inbound:
            raise WebSocketDisconnect(code=1000)
        return self.inbound.pop(0)

    def events(self, name: str | None = None) -> list[dict[str, Any]]:
        return [f for f in self.sent if name is None or f["event"] == name]


# -----------------
# Wired services
# -----------------
@dataclass
class Stores:
    database: FakeDatabase
    users: Any
    projects: Any
    messages: Any
    identity: Any
    presence: Any
    relay: Any
    chatrooms: Any
    join_requests: Any

    def add_user(self, name: str, **fields: Any) -> tuple[str, str]:
        from reelroom.schemas.users import UserRecord

        user_id = self.users.create_user(UserRecord(name=name, **fields))
        return user_id, self.identity.issue_token(user_id)

    def add_project(self, owner_id: str, title: str = "Night Shift", **fields: Any) -> str:
        from reelroom.schemas.projects import ProjectCreate

        doc = self.projects.create(ProjectCreate(title=title, **fields), owner_id=owner_id, author=None)
        return doc["id"]


@pytest.fixture
def stores() -> Stores:
    from reelroom.services.chatrooms import ChatroomManager
    from reelroom.services.identity import IdentityProvider
    from reelroom.services.join_requests import JoinRequestService
    from reelroom.services.messages import MessageStore
    from reelroom.services.presence import PresenceRegistry
    from reelroom.services.projects import ProjectStore
    from reelroom.services.relay import ChatRelay
    from reelroom.services.users import UserDirectory

    db = FakeDatabase()
    users = UserDirectory(database=db)  # type: ignore[arg-type]
    projects = ProjectStore(database=db)  # type: ignore[arg-type]
    messages = MessageStore(database=db)  # type: ignore[arg-type]
    identity = IdentityProvider(users=users, secret_key=TEST_SECRET)
    presence = PresenceRegistry()
    relay = ChatRelay(presence=presence, identity=identity, messages=messages)
    chatrooms = ChatroomManager(database=db, projects=projects, users=users, messages=messages)  # type: ignore[arg-type]
    join_requests = JoinRequestService(database=db, projects=projects, users=users)  # type: ignore[arg-type]
    return Stores(
        database=db,
        users=users,
        projects=projects,
        messages=messages,
        identity=identity,
        presence=presence,
        relay=relay,
        chatrooms=chatrooms,
        join_requests=join_requests,
    )


@pytest.fixture
def socket_factory() -> Callable[..., FakeSocket]:
    return FakeSocket
