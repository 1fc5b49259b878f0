"""Ensure an admin user exists and print an identity token for it."""

from __future__ import annotations

import argparse
import logging

from scripts._bootstrap import bootstrap

logger = logging.getLogger("scripts.create_admin")


def main() -> int:
    bootstrap()

    from reelroom.core.dependencies import get_identity_provider, get_user_directory
    from reelroom.schemas.users import UserRecord

    parser = argparse.ArgumentParser(description="Create (or promote) an admin user")
    parser.add_argument("--email", required=True)
    parser.add_argument("--name", default="Admin")
    args = parser.parse_args()

    users = get_user_directory()
    email = args.email.strip().lower()
    existing = users.find_by_email(email)
    if existing:
        user_id = existing["id"]
        if not existing.get("is_admin"):
            users.promote_to_admin(user_id)
            logger.info("Promoted %s to admin", email)
        else:
            logger.info("Admin %s already exists", email)
    else:
        user_id = users.create_user(UserRecord(name=args.name, email=email, is_admin=True))
        logger.info("Created admin %s (%s)", email, user_id)

    print(get_identity_provider().issue_token(user_id))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    raise SystemExit(main())
