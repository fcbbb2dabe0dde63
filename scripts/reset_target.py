"""
Script to empty the migration target before a clean re-run

Exit codes:
    0 - every table emptied
    1 - error; nothing was deleted
"""

import asyncio
import json
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.database import create_engine_from_settings, create_session_maker
from core.exceptions import MigrationException
from core.logging import setup_logging
from migration.reset import ResetTool

logger = logging.getLogger(__name__)


async def reset_target() -> int:
    engine = None

    try:
        engine = create_engine_from_settings()
        session_maker = create_session_maker(engine)

        async with session_maker() as session:
            tables = await ResetTool(session).reset()

        print(json.dumps({"ok": True, "tables": tables, "message": "Reset complete. Ready to migrate again."}, indent=2))
        return 0

    except MigrationException as e:
        logger.error(f"Reset failed: {e}")
        print(json.dumps(e.to_dict(), indent=2, default=str), file=sys.stderr)
        return 1

    except Exception as e:
        logger.exception(f"Unexpected reset error: {str(e)}")
        return 1

    finally:
        if engine is not None:
            await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(reset_target()))
