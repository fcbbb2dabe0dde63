"""
Appliers for commercial movements and cash-flow entries.

Both link to their parents optionally: an unresolved product, counterparty
or account leaves the foreign key null and the row is still applied.
"""

from typing import Any, Dict
from migration.appliers.base import EntityApplier
from models.base import EntityType
from models.operations import Movement, CashFlowEntry
from schemas.coercion import parse_date, period_key
from schemas.snapshot import MovementRecord, CashFlowRecord


class MovementApplier(EntityApplier):
    entity = EntityType.MOVIMIENTOS
    prefix = "MOV"
    model = Movement

    def build_values(self, record: MovementRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "fecha": parse_date(record.fecha),
            "periodo": period_key(record.fecha),
            "tipo": record.tipo,
            "descripcion": record.descripcion,
            "neto": record.neto,
            "iva": record.iva,
            "total": record.total,
            "n_doc": record.n_doc,
            "estado": record.estado,
            "producto_id": self.resolve_parent(EntityType.PRODUCTOS, record.product_id),
            "tercero_id": self.resolve_parent(EntityType.TERCEROS, record.counterparty_id),
        }


class CashFlowApplier(EntityApplier):
    entity = EntityType.FLUJO_CAJA
    prefix = "FLJ"
    model = CashFlowEntry

    def build_values(self, record: CashFlowRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "fecha": parse_date(record.fecha),
            "periodo": period_key(record.fecha),
            "tipo_movimiento": record.tipo_movimiento,
            "monto": record.monto,
            "descripcion": record.descripcion,
            "cuenta_id": self.resolve_parent(EntityType.CUENTAS, record.account_id),
        }
