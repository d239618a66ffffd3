"""
CLI helper to create the entity tables on a target database.

Existing tables are left untouched. Credentials default to the MYSQL_*
settings; missing ones are prompted for.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import SQLAlchemyError

from backend.config import get_settings
from backend.db import create_schema, create_sql_engine
from backend.dependencies import build_database_url

logger = logging.getLogger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(description="Create the entity schema")
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="SQLAlchemy URL; overrides the MYSQL_* settings",
    )
    parser.add_argument("-u", "--user", type=str, default=None, help="MySQL user")
    parser.add_argument(
        "-p",
        "--password",
        type=str,
        default=None,
        help="MySQL password (prompted when omitted)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    settings = get_settings()
    url = args.database_url or settings.database_url
    if not url:
        user = args.user or settings.mysql_user or input("user: ")
        password = args.password or settings.mysql_password or getpass.getpass(
            "password: "
        )
        url = build_database_url(
            settings.model_copy(
                update={
                    "mysql_user": user,
                    "mysql_password": password,
                }
            )
        )

    try:
        create_schema(create_sql_engine(url))
    except SQLAlchemyError:
        logger.exception("Failed to create schema")
        return 1
    logger.info("Successfully created schema")
    return 0


if __name__ == "__main__":
    sys.exit(main())
