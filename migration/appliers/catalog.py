"""
Appliers for the catalog entities: accounts, counterparties, products
"""

from typing import Any, Dict
from migration.appliers.base import EntityApplier
from models.base import EntityType
from models.catalog import Account, Counterparty, Product
from schemas.snapshot import AccountRecord, CounterpartyRecord, ProductRecord


class AccountApplier(EntityApplier):
    """Chart of accounts, upserted by code"""

    entity = EntityType.CUENTAS
    prefix = "CTA"
    model = Account
    conflict_columns = ("codigo",)
    is_parent = True

    def build_values(self, record: AccountRecord, key: str) -> Dict[str, Any]:
        if not record.codigo:
            raise self.invalid("missing code", "codigo")

        return {
            "source_key": key,
            "codigo": record.codigo,
            "nombre": record.nombre,
            "tipo": record.tipo,
        }

    def aliases(self, record, values):
        return (values["codigo"],)


class CounterpartyApplier(EntityApplier):
    """Customers and suppliers, upserted by RUT"""

    entity = EntityType.TERCEROS
    prefix = "TER"
    model = Counterparty
    conflict_columns = ("rut",)
    is_parent = True

    def build_values(self, record: CounterpartyRecord, key: str) -> Dict[str, Any]:
        if not record.rut:
            raise self.invalid("missing rut", "rut")

        return {
            "source_key": key,
            "rut": record.rut,
            "nombre": record.nombre,
            "tipo": record.tipo,
            "email": record.email,
        }

    def aliases(self, record, values):
        return (values["rut"],)


class ProductApplier(EntityApplier):
    """Products, upserted by SKU; a product without SKU uses its row key"""

    entity = EntityType.PRODUCTOS
    prefix = "PROD"
    model = Product
    conflict_columns = ("sku",)
    is_parent = True

    def build_values(self, record: ProductRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "sku": record.sku or key,
            "nombre": record.nombre,
            "stock": record.stock,
            "costo_promedio": record.costo_promedio,
        }

    def aliases(self, record, values):
        return (values["sku"],)
