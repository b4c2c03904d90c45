#!/usr/bin/env python3
"""
Create the study tables on the database in DATABASE_URL (from env or .env).
For an existing database prefer migrations: alembic upgrade head
Run from backend dir: python scripts/init_db.py
"""
import asyncio
import logging
import os
import sys

# Load .env from backend dir
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))

from studybrain.config import settings  # noqa: E402
from studybrain.db.session import init_db  # noqa: E402

logger = logging.getLogger("init_db")


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    host = settings.database_url.split("@")[1] if "@" in settings.database_url else "configured"
    logger.info("Creating tables on %s", host)
    asyncio.run(init_db())
    logger.info("Done.")


if __name__ == "__main__":
    main()
