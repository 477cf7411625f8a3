# brickbook/config.py

import logging
import os

DB_URL = os.getenv("BRICKBOOK_DB_URL", "sqlite:///brickbook.db")
DB_ECHO = os.getenv("BRICKBOOK_DB_ECHO", "0").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def get_db_url() -> str:
    # Re-read so tests (and scripts) can point at another database at runtime
    return os.getenv("BRICKBOOK_DB_URL", DB_URL)


def configure_logging() -> None:
    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format=LOG_FORMAT,
    )
