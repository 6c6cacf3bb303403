"""
Create or reset an admin account

    python -m clinigoal.create_admin --email admin@clinigoal.com --password secret123
"""

import argparse
import asyncio
import logging
from datetime import datetime

from motor.motor_asyncio import AsyncIOMotorDatabase

from clinigoal import config
from clinigoal.auth.security import ROLE_ADMIN, hash_password
from clinigoal.auth.service import create_account, normalize_email

logger = logging.getLogger(__name__)


async def upsert_admin(db: AsyncIOMotorDatabase, email: str, password: str) -> str:
    """Returns "created" or "updated"; the password is always stored hashed"""
    email = normalize_email(email)
    result = await db.admins.update_one(
        {"email": email},
        {"$set": {"password_hash": hash_password(password), "updated_at": datetime.utcnow()}}
    )
    if result.matched_count:
        return "updated"

    await create_account(db, ROLE_ADMIN, email, password)
    return "created"


def main(argv=None):
    parser = argparse.ArgumentParser(description="Create or reset a Clinigoal admin")
    parser.add_argument("--email", required=True)
    parser.add_argument("--password", required=True)
    args = parser.parse_args(argv)

    if len(args.password) < 6:
        parser.error("password must be at least 6 characters")

    config.setup_logging()

    # Imported here so `--help` works without a database connection
    from clinigoal.database import db

    outcome = asyncio.run(upsert_admin(db, args.email, args.password))
    logger.info("✅ Admin %s %s", args.email, outcome)


if __name__ == "__main__":
    main()
