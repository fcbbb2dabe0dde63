"""
Script to migrate the document-store snapshot into the relational target

Exit codes:
    0 - batch completed (or skipped: payload already migrated)
    1 - configuration error, transaction error or any unhandled error
"""

import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine_from_settings, create_session_maker
from core.exceptions import MigrationException
from core.logging import setup_logging
from migration.runner import BatchController
from migration.source import load_snapshot
from migration.transformers.normalizer import PayloadNormalizer

logger = logging.getLogger(__name__)


async def run_migration() -> int:
    """Run one migration batch; returns the process exit code"""
    engine = None

    try:
        snapshot = load_snapshot()
        normalizer = PayloadNormalizer(default_source_label=settings.SOURCE_LABEL)

        if settings.MIGRATION_DRY_RUN:
            payload = normalizer.normalize(snapshot)
            print(json.dumps({"dryRun": True, "counts": payload.counts()}, indent=2))
            return 0

        engine = create_engine_from_settings()
        controller = BatchController(create_session_maker(engine), normalizer=normalizer)

        outcome = await controller.run(snapshot)
        print(json.dumps(outcome.model_dump(mode="json", by_alias=True), indent=2))
        return 0

    except MigrationException as e:
        logger.error(f"Migration failed: {e}")
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception(f"Unexpected migration error: {str(e)}")
        return 1

    finally:
        if engine is not None:
            await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_migration()))
