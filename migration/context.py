"""
Per-run state passed explicitly to every applier
"""

from dataclasses import dataclass, field
from typing import Dict, Literal, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from models.base import EntityType
from migration.ledger import RowLedger
from schemas.snapshot import Payload


class IdMap:
    """
    Batch-scoped map of (entity, source key) -> target surrogate id.

    A parent may be registered under several keys (its source id plus
    aliases such as a user email or an account code) so dependents can
    reference it by either. Never persisted.
    """

    def __init__(self):
        self._ids: Dict[Tuple[EntityType, str], int] = {}

    def register(self, entity: EntityType, key: Optional[str], target_id: int, *aliases: Optional[str]) -> None:
        for candidate in (key, *aliases):
            if candidate:
                self._ids[(entity, candidate)] = target_id

    def resolve(self, entity: EntityType, key: Optional[str]) -> Optional[int]:
        if not key:
            return None
        return self._ids.get((entity, key))

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class MigrationContext:
    """Everything an applier needs for one batch"""

    session: AsyncSession
    payload: Payload
    batch_id: int
    ledger: RowLedger
    id_map: IdMap = field(default_factory=IdMap)
    unresolved_parent_policy: Literal["drop", "fail"] = "drop"

    @classmethod
    def create(
        cls,
        session: AsyncSession,
        payload: Payload,
        batch_id: int,
        unresolved_parent_policy: Literal["drop", "fail"] = "drop"
    ) -> "MigrationContext":
        return cls(
            session=session,
            payload=payload,
            batch_id=batch_id,
            ledger=RowLedger(session),
            unresolved_parent_policy=unresolved_parent_policy,
        )
