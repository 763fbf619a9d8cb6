"""Logging setup shared by the API process and maintenance scripts."""

from __future__ import annotations

import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def setup_logging(level: str | None = None) -> None:
    if logging.getLogger().handlers:
        return

    level_name = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(level=level_name, format=LOG_FORMAT)
    # SQL echo stays opt-in through the sqlalchemy logger itself.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
