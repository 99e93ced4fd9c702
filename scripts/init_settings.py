#!/usr/bin/env python3
"""
Create the settings row with default generation bounds if it does not exist.

Generation refuses to run until settings exist; run this once after creating
the database (GET /settings does the same on first access).

Usage:
    python scripts/init_settings.py
"""

import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from phototitler.dao import SettingsDAO  # noqa: E402
from phototitler.database import Base, SessionLocal, engine  # noqa: E402

logger = logging.getLogger(__name__)


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        settings = SettingsDAO(db).get_or_create()
        logger.info(
            "Settings initialized: title %d-%d chars, description %d-%d chars",
            settings.title_min_chars,
            settings.title_max_chars,
            settings.desc_min_chars,
            settings.desc_max_chars,
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
