"""
Row ledger: per-row change detection across runs
"""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from core.database import dialect_insert
from models.base import EntityType, utcnow
from models.migration import MigrationRow
import logging

logger = logging.getLogger(__name__)


class RowLedger:
    """
    Tracks the last applied checksum of every (entity, row key).

    Responsibilities:
    - Decide whether a row changed since it was last applied
    - Record the new checksum in the same transaction as the data write

    The ledger never commits; the Batch Controller owns the transaction.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def checksum_for(self, entity: EntityType, row_key: str) -> Optional[str]:
        """Last applied checksum for a row, or None if never applied"""
        result = await self.db.execute(
            select(MigrationRow.checksum).where(
                and_(
                    MigrationRow.entity == _entity_value(entity),
                    MigrationRow.row_key == row_key
                )
            )
        )
        return result.scalar_one_or_none()

    async def should_apply(
        self,
        entity: EntityType,
        row_key: str,
        checksum: str,
        batch_id: int
    ) -> bool:
        """
        Return False when the stored checksum equals ``checksum`` (no write).

        Otherwise upsert the ledger entry for this batch and return True. Must
        be called before the data write it guards.
        """
        stored = await self.checksum_for(entity, row_key)
        if stored == checksum:
            return False

        insert = dialect_insert(self.db)
        stmt = insert(MigrationRow).values(
            entity=_entity_value(entity),
            row_key=row_key,
            checksum=checksum,
            batch_id=batch_id,
            updated_at=utcnow()
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["entity", "row_key"],
            set_={
                "checksum": stmt.excluded.checksum,
                "batch_id": stmt.excluded.batch_id,
                "updated_at": stmt.excluded.updated_at,
            }
        )
        await self.db.execute(stmt)

        if stored is None:
            logger.debug(f"Ledger: new row {_entity_value(entity)}/{row_key}")
        else:
            logger.debug(f"Ledger: changed row {_entity_value(entity)}/{row_key}")
        return True


def _entity_value(entity) -> str:
    return entity.value if isinstance(entity, EntityType) else str(entity)
