import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import create_engine_from_settings
from core.logging import setup_logging
from models import Base  # importing the package registers every table

logger = logging.getLogger(__name__)


async def init_database():
    logger.info("Connecting to database...")
    engine = create_engine_from_settings()

    try:
        async with engine.begin() as conn:
            logger.info("Creating tables...")
            await conn.run_sync(Base.metadata.create_all)
            logger.info(f"Tables created successfully: {len(Base.metadata.tables)} tables.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    asyncio.run(init_database())
