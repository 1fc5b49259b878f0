"""Central dependency providers.

Clients and services are process-scoped (`lru_cache(maxsize=1)`) so the Mongo
client, the presence registry and the relay are shared by every request and
WebSocket connection. Tests override them through
`app.dependency_overrides` or clear the caches.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pymongo.database import Database

if TYPE_CHECKING:
    from reelroom.connectors.mongo_connector import MongoConnector
    from reelroom.services.chatrooms import ChatroomManager
    from reelroom.services.identity import IdentityProvider
    from reelroom.services.join_requests import JoinRequestService
    from reelroom.services.messages import MessageStore
    from reelroom.services.presence import PresenceRegistry
    from reelroom.services.projects import ProjectStore
    from reelroom.services.relay import ChatRelay
    from reelroom.services.users import UserDirectory


@lru_cache(maxsize=1)
def get_mongo_connector() -> MongoConnector:
    from reelroom.connectors.mongo_connector import MongoConnector

    return MongoConnector()


@lru_cache(maxsize=1)
def get_mongo_database() -> Database:
    return get_mongo_connector().database


@lru_cache(maxsize=1)
def get_user_directory() -> UserDirectory:
    from reelroom.services.users import UserDirectory

    return UserDirectory(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_project_store() -> ProjectStore:
    from reelroom.services.projects import ProjectStore

    return ProjectStore(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_message_store() -> MessageStore:
    from reelroom.services.messages import MessageStore

    return MessageStore(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_identity_provider() -> IdentityProvider:
    from reelroom.services.identity import IdentityProvider

    return IdentityProvider.from_settings(get_user_directory())


@lru_cache(maxsize=1)
def get_presence_registry() -> PresenceRegistry:
    from reelroom.services.presence import PresenceRegistry

    return PresenceRegistry()


@lru_cache(maxsize=1)
def get_chat_relay() -> ChatRelay:
    from reelroom.services.relay import ChatRelay

    return ChatRelay(
        presence=get_presence_registry(),
        identity=get_identity_provider(),
        messages=get_message_store(),
    )


@lru_cache(maxsize=1)
def get_chatroom_manager() -> ChatroomManager:
    from reelroom.services.chatrooms import ChatroomManager

    return ChatroomManager(
        database=get_mongo_database(),
        projects=get_project_store(),
        users=get_user_directory(),
        messages=get_message_store(),
    )


@lru_cache(maxsize=1)
def get_join_request_service() -> JoinRequestService:
    from reelroom.services.join_requests import JoinRequestService

    return JoinRequestService(
        database=get_mongo_database(),
        projects=get_project_store(),
        users=get_user_directory(),
    )


__all__ = [
    "get_chat_relay",
    "get_chatroom_manager",
    "get_identity_provider",
    "get_join_request_service",
    "get_message_store",
    "get_mongo_connector",
    "get_mongo_database",
    "get_presence_registry",
    "get_project_store",
    "get_user_directory",
]
