"""
Entity appliers, grouped into dependency stages.

Every applier in a stage only references entities applied in an earlier
stage (or earlier in the same stage, for kardex after lots).
"""

from typing import List, Tuple, Type

from migration.appliers.base import EntityApplier
from migration.appliers.identity import UserApplier, SessionApplier
from migration.appliers.catalog import AccountApplier, CounterpartyApplier, ProductApplier
from migration.appliers.operations import MovementApplier, CashFlowApplier
from migration.appliers.accounting import PeriodApplier, JournalEntryApplier, JournalLineApplier
from migration.appliers.inventory import InventoryLotApplier, KardexApplier
from migration.appliers.compliance import (
    FiscalDocumentApplier,
    ReconciliationDocumentApplier,
    TaxConfigApplier,
)

APPLIER_STAGES: Tuple[Tuple[Type[EntityApplier], ...], ...] = (
    # Stage 1: independent entities
    (UserApplier, AccountApplier, CounterpartyApplier, ProductApplier),
    # Stage 2: first-order dependents
    (SessionApplier, MovementApplier, CashFlowApplier, PeriodApplier, JournalEntryApplier),
    # Stage 3: second-order dependents and standalone documents
    (
        JournalLineApplier,
        InventoryLotApplier,
        KardexApplier,
        FiscalDocumentApplier,
        ReconciliationDocumentApplier,
        TaxConfigApplier,
    ),
)


def ordered_appliers() -> List[Type[EntityApplier]]:
    """All applier classes, flattened in execution order"""
    return [applier for stage in APPLIER_STAGES for applier in stage]


__all__ = [
    "APPLIER_STAGES",
    "EntityApplier",
    "ordered_appliers",
]
