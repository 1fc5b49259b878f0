"""Thin pymongo wrapper shared by the Mongo-backed services."""

from __future__ import annotations

import logging
from typing import Any, ContextManager

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from reelroom.core.exceptions import PersistenceError
from reelroom.core.settings import settings

logger = logging.getLogger(__name__)


class MongoConnector(ContextManager["MongoConnector"]):
    """Owns a `MongoClient` and hands out the configured database.

    The client connects lazily, so constructing a connector never blocks on the
    network; the first operation (or `ping`) does.
    """

    def __init__(
        self,
        uri: str | None = None,
        *,
        database: str | None = None,
        app_name: str | None = None,
        client: MongoClient | None = None,
    ) -> None:
        self._uri = uri or settings.mongo_uri
        self._database_name = (database or settings.mongo_database).strip()
        self._client: MongoClient = client or MongoClient(
            self._uri,
            appname=app_name or settings.mongo_app_name,
            uuidRepresentation="standard",
            tz_aware=True,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
        )

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def database(self) -> Database:
        return self._client[self._database_name]

    def get_collection(self, name: str) -> Collection:
        return self.database.get_collection(name.strip())

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:
            raise PersistenceError("MongoDB not reachable") from exc
        return True

    def close(self) -> None:
        self._client.close()
        logger.debug("Closed Mongo client for database '%s'", self._database_name)

    def __enter__(self) -> "MongoConnector":
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()
