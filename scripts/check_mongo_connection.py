"""Quick connectivity check for the configured MongoDB."""

from __future__ import annotations

import argparse
import logging

from scripts._bootstrap import bootstrap

logger = logging.getLogger("scripts.check_mongo_connection")


def main() -> int:
    bootstrap()

    from reelroom.connectors.mongo_connector import MongoConnector
    from reelroom.core.exceptions import PersistenceError
    from reelroom.core.settings import settings

    parser = argparse.ArgumentParser(description="Check MongoDB connectivity")
    parser.add_argument(
        "--counts",
        action="store_true",
        help="Print document counts for the chat-related collections",
    )
    args = parser.parse_args()

    uri = settings.mongo_uri
    database = settings.mongo_database
    if not uri or not database:
        logger.error("MONGO_URI and/or MONGO_DATABASE are not configured.")
        return 2

    with MongoConnector() as connector:
        try:
            connector.ping()
        except PersistenceError as exc:  # pragma: no cover - network interaction
            logger.error("Mongo ping failed: %s", exc)
            return 1

        logger.info("OK: Connected to MongoDB (database='%s')", database)

        if args.counts:
            for name in (
                settings.users_collection,
                settings.projects_collection,
                settings.chat_messages_collection,
                settings.movie_chatrooms_collection,
                settings.join_requests_collection,
            ):
                count = connector.get_collection(name).estimated_document_count()
                logger.info("%s: %d documents", name, count)

    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    raise SystemExit(main())
