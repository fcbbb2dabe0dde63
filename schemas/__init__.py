"""
Pydantic schemas for data validation and serialization.

Schemas:
    coercion: Field coercion helpers (money, quantities, keys, dates, periods)
    snapshot: Typed source records (tagged union on ``entity``) and the Payload
    reports: Row outcomes, batch outcome and reconciliation report

Usage:
    from schemas.snapshot import Payload, MovementRecord
    from schemas.reports import BatchOutcome, ReconciliationReport

Example:
    record = MovementRecord.model_validate({"id": 7, "total": "1190"})
    assert record.id == "7"
    assert record.total == Decimal("1190.00")
"""

__all__ = [
    "Payload",
    "SnapshotRecord",
    "BatchOutcome",
    "EntityOutcome",
    "ReconciliationReport",
]
