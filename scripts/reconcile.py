"""
Script to reconcile the migrated target against the source snapshot

Exit codes:
    0 - every count and control sum matches
    1 - error (configuration, database, unreadable snapshot)
    2 - non-zero differences found
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
from migration.source import load_snapshot
from migration.transformers.normalizer import PayloadNormalizer
from migration.verifier import ReconciliationVerifier, report_to_dict

logger = logging.getLogger(__name__)

EXIT_MISMATCH = 2


async def reconcile() -> int:
    engine = None

    try:
        payload = PayloadNormalizer().normalize(load_snapshot())

        engine = create_engine_from_settings()
        session_maker = create_session_maker(engine)

        async with session_maker() as session:
            report = await ReconciliationVerifier(session).verify(
                payload, report_path=settings.RECONCILIATION_REPORT_PATH
            )

        print(json.dumps(report_to_dict(report), indent=2))
        return 0 if report.zero_diff else EXIT_MISMATCH

    except MigrationException as e:
        logger.error(f"Reconciliation failed: {e}")
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception(f"Unexpected reconciliation error: {str(e)}")
        return 1

    finally:
        if engine is not None:
            await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(reconcile()))
