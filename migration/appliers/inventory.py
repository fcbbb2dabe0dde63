"""
Appliers for inventory lots and kardex movements
"""

from decimal import Decimal
from typing import Any, Dict
from migration.appliers.base import EntityApplier
from models.base import EntityType
from models.inventory import InventoryLot, KardexMovement
from schemas.coercion import MONEY_STEP, parse_date
from schemas.snapshot import InventoryLotRecord, KardexRecord

ZERO = Decimal(0)


class InventoryLotApplier(EntityApplier):
    """FIFO lots. The product is required and the quantity must be positive."""

    entity = EntityType.INVENTORY_LOTS
    prefix = "LOT"
    model = InventoryLot
    is_parent = True

    def build_values(self, record: InventoryLotRecord, key: str) -> Dict[str, Any]:
        if record.qty <= ZERO:
            raise self.invalid("non-positive quantity", "qty")

        remaining = record.remaining_qty if record.remaining_qty is not None else record.qty
        return {
            "source_key": key,
            "producto_id": self.resolve_parent(EntityType.PRODUCTOS, record.product_id, required=True),
            "fecha_ingreso": parse_date(record.fecha_ingreso),
            "cantidad": record.qty,
            "cantidad_restante": remaining,
            "costo_unitario": record.unit_cost,
            "origen": record.origen,
        }


class KardexApplier(EntityApplier):
    """Kardex movements. Runs after lots so the optional lot link can resolve."""

    entity = EntityType.KARDEX_MOVEMENTS
    prefix = "KDX"
    model = KardexMovement

    def build_values(self, record: KardexRecord, key: str) -> Dict[str, Any]:
        if record.qty <= ZERO:
            raise self.invalid("non-positive quantity", "qty")

        total_cost = record.total_cost
        if total_cost is None:
            total_cost = (record.qty * record.unit_cost).quantize(MONEY_STEP)

        return {
            "source_key": key,
            "producto_id": self.resolve_parent(EntityType.PRODUCTOS, record.product_id, required=True),
            "lote_id": self.resolve_parent(EntityType.INVENTORY_LOTS, record.lot_id),
            "fecha": parse_date(record.fecha),
            "tipo": record.tipo,
            "cantidad": record.qty,
            "costo_unitario": record.unit_cost,
            "costo_total": total_cost,
            "referencia": record.reference,
        }
