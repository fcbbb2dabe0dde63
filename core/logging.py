"""
Logging configuration for the migration scripts
"""

import logging
import sys
from typing import Optional

from core.config import settings

# Driver and ORM loggers that are noisy below WARNING
QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "aiosqlite",
    "asyncpg",
)


def setup_logging(level: Optional[str] = None):
    """
    Configure root logging once per script invocation.

    Records go to stderr; stdout carries only the JSON outcome or report a
    script prints, so it can be piped.
    """
    level_name = (level or settings.LOG_LEVEL).upper()
    log_level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configured at {level_name} level ({settings.ENVIRONMENT})")
