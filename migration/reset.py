"""
Reset tool: empty every target table so the migration can run from scratch
"""

from typing import List
from sqlalchemy import delete, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

import models  # noqa: F401  (registers every table on Base.metadata)
from core.database import dialect_name
from core.exceptions import TransactionError
from models.base import Base

logger = logging.getLogger(__name__)


class ResetTool:
    """
    Truncate business and tracking tables, children first, all or nothing.

    PostgreSQL uses ``TRUNCATE ... RESTART IDENTITY CASCADE`` so surrogate
    ids start over; other dialects fall back to ``DELETE``.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    @staticmethod
    def table_order() -> List[str]:
        """Table names in deletion order (reverse dependency order)"""
        return [table.name for table in reversed(Base.metadata.sorted_tables)]

    async def reset(self) -> List[str]:
        """
        Empty every table in one transaction.

        Returns:
            Names of the tables emptied, in order

        Raises:
            TransactionError: Any table failed; nothing was deleted
        """
        postgres = dialect_name(self.db) == "postgresql"
        emptied = []
        current = None

        try:
            for table in reversed(Base.metadata.sorted_tables):
                current = table.name
                if postgres:
                    await self.db.execute(text(f'TRUNCATE TABLE "{table.name}" RESTART IDENTITY CASCADE'))
                else:
                    await self.db.execute(delete(table))
                emptied.append(table.name)

            await self.db.commit()

        except SQLAlchemyError as e:
            await self.db.rollback()
            raise TransactionError(
                "Reset failed, no table was modified",
                context={"operation": "RESET", "table_name": current},
                original_exception=e
            ) from e

        logger.info(f"Reset complete: {len(emptied)} tables emptied")
        return emptied
