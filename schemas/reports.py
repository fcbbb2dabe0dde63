"""
Pydantic schemas for run outputs: per-row outcomes, batch outcome and the
reconciliation report. Serialized with ``by_alias=True`` they produce the
camelCase shapes the run scripts print.
"""

from datetime import datetime
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from models.base import BatchStatus


# ============================================================================
# Row Outcomes
# ============================================================================

class Applied(BaseModel):
    """Row written to the target (inserted or updated)"""
    kind: Literal["applied"] = "applied"
    row_key: str
    target_id: Optional[int] = None


class Skipped(BaseModel):
    """Row left alone: unchanged since last apply, or invalid"""
    kind: Literal["skipped"] = "skipped"
    row_key: Optional[str] = None
    reason: str


class Dropped(BaseModel):
    """Row discarded because a required parent did not resolve"""
    kind: Literal["dropped"] = "dropped"
    row_key: Optional[str] = None
    reason: str


RowOutcome = Union[Applied, Skipped, Dropped]


class EntityOutcome(BaseModel):
    """Aggregated row outcomes for one entity"""
    applied: int = 0
    skipped: int = 0
    dropped: int = 0
    reasons: Dict[str, int] = Field(default_factory=dict)

    def record(self, outcome: RowOutcome) -> None:
        if isinstance(outcome, Applied):
            self.applied += 1
            return

        if isinstance(outcome, Skipped):
            self.skipped += 1
        else:
            self.dropped += 1
        self.reasons[outcome.reason] = self.reasons.get(outcome.reason, 0) + 1

    @classmethod
    def from_outcomes(cls, outcomes: List[RowOutcome]) -> "EntityOutcome":
        aggregate = cls()
        for outcome in outcomes:
            aggregate.record(outcome)
        return aggregate


# ============================================================================
# Batch Outcome
# ============================================================================

class BatchOutcome(BaseModel):
    """Result of one engine invocation"""

    model_config = ConfigDict(populate_by_name=True, use_enum_values=True)

    batch_id: Optional[int] = Field(None, alias="batchId")
    checksum: str
    status: BatchStatus
    skipped: bool = False
    previous_batch_id: Optional[int] = Field(None, alias="previousBatchId")
    summary: Dict[str, int] = Field(default_factory=dict)
    outcomes: Dict[str, EntityOutcome] = Field(default_factory=dict)


# ============================================================================
# Reconciliation Report
# ============================================================================

class ControlSums(BaseModel):
    """Monetary control aggregates, compared to the cent"""

    model_config = ConfigDict(populate_by_name=True)

    movimientos_total: float = Field(0.0, alias="movimientosTotal")
    flujo_caja_monto: float = Field(0.0, alias="flujoCajaMonto")


class IntegrityVerdict(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    zero_diff: bool = Field(..., alias="zeroDiff")
    message: str


class ReconciliationReport(BaseModel):
    """
    Source vs target comparison.

    ``source``, ``target`` and ``diff`` hold one integer per entity plus a
    ``controls`` object; see ``migration.verifier`` for how they are built.
    """

    model_config = ConfigDict(populate_by_name=True)

    generated_at: datetime = Field(..., alias="generatedAt")
    source: Dict[str, Union[int, ControlSums]]
    target: Dict[str, Union[int, ControlSums]]
    diff: Dict[str, Union[int, ControlSums]]
    integrity: IntegrityVerdict

    @property
    def zero_diff(self) -> bool:
        return self.integrity.zero_diff
