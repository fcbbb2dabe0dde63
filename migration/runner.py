# ============================================================================
# File: migration/runner.py
# Description: Batch controller for the snapshot -> relational migration
# ============================================================================
"""
Batch Controller - Owns the batch lifecycle and the apply transaction.

This module provides:
- Whole-batch idempotency keyed by the payload checksum
- One transaction spanning every entity applier, in dependency order
- Rollback on any error, with the batch marked failed out of band
- A singleton-run guard on PostgreSQL (transaction-scoped advisory lock)
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional
from sqlalchemy import select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import logging

from core.config import settings
from core.database import dialect_name
from core.exceptions import ConcurrentRunError, TransactionError
from migration.appliers import APPLIER_STAGES
from migration.context import MigrationContext
from migration.hashing import payload_checksum
from migration.transformers.normalizer import PayloadNormalizer
from models.base import BatchStatus, utcnow
from models.migration import MigrationBatch
from schemas.reports import BatchOutcome, EntityOutcome
from schemas.snapshot import Payload

logger = logging.getLogger(__name__)

# Fixed advisory lock key shared by every migration invocation
RUN_LOCK_KEY = 7_340_021


@dataclass
class BatchStart:
    """Result of ``BatchController.begin``"""
    checksum: str
    batch_id: Optional[int] = None
    skipped: bool = False
    previous_batch_id: Optional[int] = None


class BatchController:
    """
    Migration batch orchestrator

    Responsibilities:
    - Short-circuit payloads that already completed
    - Create or reuse the batch row (running -> completed | failed)
    - Run every applier inside one transaction
    - Roll back, mark failed and re-raise on error
    - Record the per-entity summary on success
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        normalizer: Optional[PayloadNormalizer] = None,
        unresolved_parent_policy: Optional[Literal["drop", "fail"]] = None
    ):
        self.session_maker = session_maker
        self.normalizer = normalizer or PayloadNormalizer(default_source_label=settings.SOURCE_LABEL)
        self.unresolved_parent_policy = unresolved_parent_policy or settings.UNRESOLVED_PARENT_POLICY

    async def run(self, snapshot: Optional[Dict[str, Any]]) -> BatchOutcome:
        """
        Normalize a snapshot and migrate it.

        Returns:
            BatchOutcome; ``skipped`` is True when an identical payload had
            already completed.

        Raises:
            TransactionError: Store-level failure during the apply phase
            ReferentialGapError: Unresolved parent under the "fail" policy
        """
        payload = self.normalizer.normalize(snapshot)
        start = await self.begin(payload, self.normalizer.source_label(snapshot))

        if start.skipped:
            logger.info(f"Payload {start.checksum[:12]} already migrated by batch {start.previous_batch_id}")
            return BatchOutcome(
                checksum=start.checksum,
                status=BatchStatus.COMPLETED,
                skipped=True,
                previous_batch_id=start.previous_batch_id,
            )

        outcomes = await self.apply(start, payload)
        return BatchOutcome(
            batch_id=start.batch_id,
            checksum=start.checksum,
            status=BatchStatus.COMPLETED,
            summary={entity: outcome.applied for entity, outcome in outcomes.items()},
            outcomes=outcomes,
        )

    # --------------------------------------------------
    # BEGIN
    # --------------------------------------------------

    async def begin(self, payload: Payload, source_label: Optional[str] = None) -> BatchStart:
        """
        Open a batch for ``payload``.

        A completed batch with the same checksum short-circuits. A failed or
        abandoned running batch with the same checksum is reused with its
        attempt counter incremented.
        """
        checksum = payload_checksum(payload)

        async with self.session_maker() as session:
            start = await self._claim_existing(session, checksum, source_label)
            if start is not None:
                return start

            batch = MigrationBatch(
                checksum=checksum,
                source_label=source_label,
                status=BatchStatus.RUNNING,
                attempts=1,
                started_at=utcnow()
            )
            session.add(batch)

            try:
                await session.commit()
            except IntegrityError:
                # Lost the insert race to a concurrent begin: use its row
                await session.rollback()
                logger.warning(f"Batch {checksum[:12]} created concurrently, reusing it")
                start = await self._claim_existing(session, checksum, source_label)
                if start is None:
                    raise
                return start

            logger.info(f"Started batch {batch.id} for payload {checksum[:12]}")
            return BatchStart(checksum=checksum, batch_id=batch.id)

    async def _claim_existing(
        self,
        session: AsyncSession,
        checksum: str,
        source_label: Optional[str]
    ) -> Optional[BatchStart]:
        result = await session.execute(
            select(MigrationBatch).where(MigrationBatch.checksum == checksum)
        )
        existing = result.scalar_one_or_none()
        if existing is None:
            return None

        if existing.status == BatchStatus.COMPLETED:
            return BatchStart(checksum=checksum, skipped=True, previous_batch_id=existing.id)

        existing.status = BatchStatus.RUNNING
        existing.attempts += 1
        existing.started_at = utcnow()
        existing.finished_at = None
        existing.error_message = None
        if source_label:
            existing.source_label = source_label
        await session.commit()

        logger.info(f"Retrying batch {existing.id} (attempt {existing.attempts})")
        return BatchStart(checksum=checksum, batch_id=existing.id)

    # --------------------------------------------------
    # APPLY
    # --------------------------------------------------

    async def apply(self, start: BatchStart, payload: Payload) -> Dict[str, EntityOutcome]:
        """
        Apply every entity in dependency order inside one transaction.

        On error the transaction is rolled back, the batch is marked failed
        and the error re-raised (store errors as TransactionError).
        """
        outcomes: Dict[str, EntityOutcome] = {}

        async with self.session_maker() as session:
            try:
                await self._acquire_run_guard(session, start.batch_id)

                context = MigrationContext.create(
                    session,
                    payload,
                    start.batch_id,
                    unresolved_parent_policy=self.unresolved_parent_policy
                )
                for stage_number, stage in enumerate(APPLIER_STAGES, start=1):
                    logger.info(f"Batch {start.batch_id}: applying stage {stage_number}")
                    for applier_class in stage:
                        applier = applier_class(context)
                        outcomes[applier.entity.value] = await applier.apply()

                await session.commit()

            except Exception as e:
                logger.error(f"Batch {start.batch_id} failed: {e}")
                await session.rollback()
                await self._mark_failed(start.batch_id, e)

                if isinstance(e, SQLAlchemyError):
                    raise TransactionError(
                        "Apply phase failed",
                        context={"operation": "APPLY", "batch_id": start.batch_id},
                        original_exception=e
                    ) from e
                raise

        await self._mark_completed(start, outcomes)
        return outcomes

    async def _acquire_run_guard(self, session: AsyncSession, batch_id: int) -> None:
        """Take the transaction-scoped singleton lock (PostgreSQL only)"""
        if dialect_name(session) != "postgresql":
            return

        result = await session.execute(
            text("SELECT pg_try_advisory_xact_lock(:key)"), {"key": RUN_LOCK_KEY}
        )
        if not result.scalar():
            raise ConcurrentRunError(
                "Another migration run is in progress",
                context={"operation": "APPLY", "batch_id": batch_id}
            )

    # --------------------------------------------------
    # FINALIZE
    # --------------------------------------------------

    async def _mark_completed(self, start: BatchStart, outcomes: Dict[str, EntityOutcome]) -> None:
        summary = {entity: outcome.applied for entity, outcome in outcomes.items()}

        async with self.session_maker() as session:
            await session.execute(
                update(MigrationBatch)
                .where(MigrationBatch.id == start.batch_id)
                .values(
                    status=BatchStatus.COMPLETED,
                    checksum=start.checksum,
                    summary=summary,
                    finished_at=utcnow(),
                    error_message=None
                )
            )
            await session.commit()

        logger.info(f"Batch {start.batch_id} completed: {sum(summary.values())} rows applied")

    async def _mark_failed(self, batch_id: int, error: Exception) -> None:
        """Best effort: a failure here is logged, never raised"""
        try:
            async with self.session_maker() as session:
                # A concurrent run may already have completed this batch
                await session.execute(
                    update(MigrationBatch)
                    .where(
                        MigrationBatch.id == batch_id,
                        MigrationBatch.status != BatchStatus.COMPLETED
                    )
                    .values(
                        status=BatchStatus.FAILED,
                        finished_at=utcnow(),
                        error_message=str(error)
                    )
                )
                await session.commit()
        except Exception as mark_error:
            logger.error(f"Could not mark batch {batch_id} as failed: {mark_error}")
