from sqlalchemy import Column, BigInteger, String, Enum, DateTime, Integer, Text, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from models.base import Base, BigIntPK, BatchStatus, JSONDocument, utcnow


class MigrationBatch(Base):
    """
    One execution of the migration engine, identified by payload checksum.

    Purpose:
    - Whole-batch idempotency (a completed checksum short-circuits a rerun)
    - Audit trail of attempts, outcome and per-entity summary

    Lifecycle:
    - running -> completed | failed
    - A failed batch is reused (attempts + 1) when the same payload is resubmitted
    """
    __tablename__ = "migration_batches"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    checksum = Column(String(64), nullable=False, unique=True)
    source_label = Column(String(200), nullable=True)

    status = Column(Enum(BatchStatus), default=BatchStatus.RUNNING, nullable=False, index=True)
    attempts = Column(Integer, nullable=False, default=1)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow)
    started_at = Column(DateTime, nullable=False, default=utcnow)
    finished_at = Column(DateTime, nullable=True)

    summary = Column(JSONDocument, nullable=True)
    error_message = Column(Text, nullable=True)

    rows = relationship("MigrationRow", back_populates="batch")


class MigrationRow(Base):
    """
    Row ledger: last applied content checksum per (entity, row key).

    Written in the apply transaction, strictly before the data write it
    guards, so ledger and data never diverge.
    """
    __tablename__ = "migration_rows"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    entity = Column(String(50), nullable=False)
    row_key = Column(String(255), nullable=False)
    checksum = Column(String(64), nullable=False)
    batch_id = Column(BigInteger, ForeignKey("migration_batches.id"), nullable=False, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow)

    batch = relationship("MigrationBatch", back_populates="rows")

    __table_args__ = (
        UniqueConstraint("entity", "row_key", name="uq_migration_rows_entity_key"),
        Index("idx_migration_rows_checksum", "checksum"),
    )
