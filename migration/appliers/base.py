"""
Abstract base class for entity appliers
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple, Type
from sqlalchemy import select, and_
from core.database import dialect_insert
from core.exceptions import ReferentialGapError, ValidationError
from migration.context import MigrationContext
from migration.hashing import record_hash, row_key
from models.base import Base, EntityType, utcnow
from schemas.reports import Applied, Dropped, EntityOutcome, RowOutcome, Skipped
from schemas.snapshot import RecordBase
import logging

logger = logging.getLogger(__name__)

UNCHANGED = "unchanged"


def reference_key(value: Optional[str]) -> Optional[str]:
    """Emails are stored lower-cased; normalize references to them the same way"""
    if value and "@" in value:
        return value.lower()
    return value


class EntityApplier(ABC):
    """
    Applies one entity's records from the payload to its target table.

    Responsibilities:
    - Derive row key and content checksum per record
    - Build target column values (defaults, coercion, parent resolution)
    - Consult the row ledger before writing
    - Natural-key upsert returning the surrogate id
    - Publish surrogate ids for dependents through the ID map

    Subclasses declare the entity, row-key prefix, target model and the
    natural-key columns, and implement ``build_values``.
    """

    entity: EntityType
    prefix: str
    model: Type[Base]
    conflict_columns: Tuple[str, ...] = ("source_key",)

    # Appliers whose ids are referenced by later stages
    is_parent: bool = False

    def __init__(self, context: MigrationContext):
        self.context = context
        self.db = context.session

    @abstractmethod
    def build_values(self, record: RecordBase, key: str) -> Dict[str, Any]:
        """
        Map a record to target column values.

        Raises:
            ValidationError: Record is malformed and must be skipped
            ReferentialGapError: A required parent did not resolve
        """
        pass

    def aliases(self, record: RecordBase, values: Dict[str, Any]) -> Tuple[Optional[str], ...]:
        """Extra keys this row may be referenced by"""
        return ()

    async def apply(self) -> EntityOutcome:
        """Apply every record of this entity; returns the aggregated outcome"""
        records = self.context.payload.records(self.entity)
        outcomes: List[RowOutcome] = []

        for record in records:
            outcomes.append(await self.apply_record(record))

        summary = EntityOutcome.from_outcomes(outcomes)
        logger.info(
            f"{self.entity.value}: {summary.applied} applied, "
            f"{summary.skipped} skipped, {summary.dropped} dropped"
        )
        return summary

    async def apply_record(self, record: RecordBase) -> RowOutcome:
        key = row_key(self.prefix, record)
        checksum = record_hash(record)

        try:
            values = self.build_values(record, key)
        except ValidationError as e:
            logger.debug(f"Skipping {self.entity.value}/{key}: {e.reason}")
            return Skipped(row_key=key, reason=e.reason)
        except ReferentialGapError as e:
            if self.context.unresolved_parent_policy == "fail":
                raise
            logger.warning(f"Dropping {self.entity.value}/{key}: {e.reason}")
            return Dropped(row_key=key, reason=e.reason)

        if not await self.context.ledger.should_apply(self.entity, key, checksum, self.context.batch_id):
            if self.is_parent:
                existing_id = await self.find_existing(values)
                if existing_id is not None:
                    self.register(record, key, existing_id, values)
            return Skipped(row_key=key, reason=UNCHANGED)

        target_id = await self.upsert(values)
        self.register(record, key, target_id, values)
        return Applied(row_key=key, target_id=target_id)

    # ------------------------------------------------------------------
    # Target writes
    # ------------------------------------------------------------------

    async def upsert(self, values: Dict[str, Any]) -> int:
        """INSERT ... ON CONFLICT (natural key) DO UPDATE ... RETURNING id"""
        values = {**values, "updated_at": utcnow()}

        insert = dialect_insert(self.db)
        stmt = insert(self.model).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(self.conflict_columns),
            set_={
                column: stmt.excluded[column]
                for column in values
                if column not in self.conflict_columns
            }
        ).returning(self.model.id)

        result = await self.db.execute(stmt)
        return result.scalar_one()

    async def find_existing(self, values: Dict[str, Any]) -> Optional[int]:
        """Surrogate id of the row holding this natural key, if present"""
        table = self.model.__table__
        result = await self.db.execute(
            select(table.c.id).where(
                and_(*(table.c[column] == values[column] for column in self.conflict_columns))
            )
        )
        return result.scalar_one_or_none()

    def register(self, record: RecordBase, key: str, target_id: int, values: Dict[str, Any]) -> None:
        self.context.id_map.register(self.entity, key, target_id, *self.aliases(record, values))

    # ------------------------------------------------------------------
    # Parent resolution
    # ------------------------------------------------------------------

    def resolve_parent(
        self,
        parent: EntityType,
        parent_key: Optional[str],
        required: bool = False
    ) -> Optional[int]:
        """
        Look up a parent's surrogate id in the ID map.

        Optional parents resolve to None when absent; required parents raise
        ReferentialGapError so the row is dropped, never inserted dangling.
        """
        target_id = self.context.id_map.resolve(parent, parent_key)
        if target_id is None and required:
            reason = f"unresolved {parent.value}" if parent_key else f"missing {parent.value} reference"
            raise ReferentialGapError(
                reason,
                context={
                    "entity": self.entity.value,
                    "parent_entity": parent.value,
                    "parent_key": parent_key,
                }
            )
        return target_id

    def invalid(self, reason: str, field_name: Optional[str] = None) -> ValidationError:
        return ValidationError(
            reason,
            context={"entity": self.entity.value, "field_name": field_name}
        )
