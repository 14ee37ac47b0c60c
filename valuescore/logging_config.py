"""
Logging for the Value Extraction API and CLI

Both entrypoints call setup_logging() once at startup. LOG_LEVEL picks the
level for valuescore's own loggers; the HTTP client and SQLAlchemy loggers
never go below WARNING, so DEBUG runs show the pipeline steps rather than
connection pool chatter and raw SQL.
"""

import logging
import os

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Loggers of the inference HTTP client and the extraction store's engine
QUIET_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine")


def setup_logging():
    """Configure the root logger from LOG_LEVEL (default: INFO)."""
    level_name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=DATE_FORMAT, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
