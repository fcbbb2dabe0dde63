"""
Reconciliation verifier: independent source vs target comparison.

Read-only. Counts every entity on both sides and recomputes two monetary
control sums; any non-zero difference is reported, never raised.
"""

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Type
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from models.base import Base, EntityType, utcnow
from models.identity import User, Session
from models.catalog import Account, Counterparty, Product
from models.operations import Movement, CashFlowEntry
from models.accounting import AccountingPeriod, JournalEntry, JournalLine
from models.inventory import InventoryLot, KardexMovement
from models.compliance import FiscalDocument, ReconciliationDocument, TaxConfig
from schemas.coercion import MONEY_STEP
from schemas.reports import ControlSums, IntegrityVerdict, ReconciliationReport
from schemas.snapshot import Payload

logger = logging.getLogger(__name__)

ZERO_DIFF_MESSAGE = "All counts and control sums match."
NON_ZERO_DIFF_MESSAGE = "Non-zero differences found."

TARGET_MODELS: Dict[EntityType, Type[Base]] = {
    EntityType.USUARIOS: User,
    EntityType.SESIONES: Session,
    EntityType.CUENTAS: Account,
    EntityType.TERCEROS: Counterparty,
    EntityType.PRODUCTOS: Product,
    EntityType.MOVIMIENTOS: Movement,
    EntityType.FLUJO_CAJA: CashFlowEntry,
    EntityType.PERIODOS: AccountingPeriod,
    EntityType.ASIENTOS: JournalEntry,
    EntityType.ASIENTO_LINEAS: JournalLine,
    EntityType.INVENTORY_LOTS: InventoryLot,
    EntityType.KARDEX_MOVEMENTS: KardexMovement,
    EntityType.DOCUMENTOS_FISCALES: FiscalDocument,
    EntityType.CONCILIACIONES: ReconciliationDocument,
    EntityType.TAX_CONFIG: TaxConfig,
}


def _money(value: Any) -> Decimal:
    return Decimal(str(value or 0)).quantize(MONEY_STEP)


class ReconciliationVerifier:
    """
    Compare a normalized payload against the migrated target.

    ``diff[k] = target[k] - source[k]``; monetary diffs are rounded to cents
    before comparison. The report is always built and, when a path is
    given, written as a JSON artifact.
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    async def verify(self, payload: Payload, report_path: Optional[str] = None) -> ReconciliationReport:
        source = self.source_side(payload)
        target = await self.target_side()
        report = self.compare(source, target)

        if report.zero_diff:
            logger.info(ZERO_DIFF_MESSAGE)
        else:
            logger.warning(f"{NON_ZERO_DIFF_MESSAGE} diff={self._non_zero(report)}")

        if report_path:
            self.write_report(report, report_path)
        return report

    # ------------------------------------------------------------------
    # Sides
    # ------------------------------------------------------------------

    @staticmethod
    def source_side(payload: Payload) -> Dict[str, Any]:
        side: Dict[str, Any] = dict(payload.counts())
        side["controls"] = {
            "movimientosTotal": sum((record.total for record in payload.movimientos), Decimal("0.00")),
            "flujoCajaMonto": sum((record.monto for record in payload.flujo_caja), Decimal("0.00")),
        }
        return side

    async def target_side(self) -> Dict[str, Any]:
        side: Dict[str, Any] = {}
        for entity, model in TARGET_MODELS.items():
            result = await self.db.execute(select(func.count()).select_from(model))
            side[entity.value] = int(result.scalar_one())

        movements_total = await self.db.execute(select(func.coalesce(func.sum(Movement.total), 0)))
        cash_flow_total = await self.db.execute(select(func.coalesce(func.sum(CashFlowEntry.monto), 0)))
        side["controls"] = {
            "movimientosTotal": _money(movements_total.scalar_one()),
            "flujoCajaMonto": _money(cash_flow_total.scalar_one()),
        }
        return side

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    @staticmethod
    def compare(source: Dict[str, Any], target: Dict[str, Any]) -> ReconciliationReport:
        diff: Dict[str, Any] = {}
        for key, value in source.items():
            if key == "controls":
                continue
            diff[key] = int(target.get(key, 0)) - int(value)

        control_diff = {
            name: float((_money(target["controls"][name]) - _money(amount)).quantize(MONEY_STEP))
            for name, amount in source["controls"].items()
        }
        diff["controls"] = control_diff

        zero_diff = all(value == 0 for key, value in diff.items() if key != "controls") and all(
            value == 0 for value in control_diff.values()
        )

        return ReconciliationReport(
            generated_at=utcnow(),
            source=ReconciliationVerifier._with_controls(source),
            target=ReconciliationVerifier._with_controls(target),
            diff=ReconciliationVerifier._with_controls(diff),
            integrity=IntegrityVerdict(
                zero_diff=zero_diff,
                message=ZERO_DIFF_MESSAGE if zero_diff else NON_ZERO_DIFF_MESSAGE
            ),
        )

    @staticmethod
    def _with_controls(side: Dict[str, Any]) -> Dict[str, Any]:
        controls = side["controls"]
        return {
            **{key: value for key, value in side.items() if key != "controls"},
            "controls": ControlSums(
                movimientos_total=float(controls["movimientosTotal"]),
                flujo_caja_monto=float(controls["flujoCajaMonto"]),
            ),
        }

    @staticmethod
    def _non_zero(report: ReconciliationReport) -> Dict[str, Any]:
        found = {key: value for key, value in report.diff.items() if isinstance(value, int) and value != 0}
        controls = report.diff["controls"]
        for name, value in controls.model_dump(by_alias=True).items():
            if value != 0:
                found[name] = value
        return found

    @staticmethod
    def write_report(report: ReconciliationReport, report_path: str) -> Path:
        path = Path(report_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(report_to_dict(report), indent=2, ensure_ascii=False))
        logger.info(f"Reconciliation report written to {path}")
        return path


def report_to_dict(report: ReconciliationReport) -> Dict[str, Any]:
    """JSON-ready camelCase form of a report"""
    return report.model_dump(mode="json", by_alias=True)
