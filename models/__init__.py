"""
SQLAlchemy ORM models for the migration target.

Models:
    base: Declarative base, portable column types, shared enums (BatchStatus, EntityType)
    migration: Batch table and row ledger (tracking tables)
    identity: Users and sessions
    catalog: Accounts, counterparties, products
    operations: Movements and cash-flow entries
    accounting: Accounting periods, journal entries, journal lines
    inventory: Inventory lots and kardex movements
    compliance: Fiscal documents, reconciliation documents, tax configuration

Importing this package registers every table on ``Base.metadata``; schema
creation and the reset tool rely on that.

Dependency graph (parents first):
    usuarios -> sesiones, asientos_contables
    cuentas -> flujo_caja, asiento_lineas
    terceros, productos -> movimientos
    productos -> lotes_inventario -> kardex_movimientos
    asientos_contables -> asiento_lineas
    migration_batches -> migration_rows
"""

from models.base import Base, BatchStatus, EntityType
from models.migration import MigrationBatch, MigrationRow
from models.identity import User, Session
from models.catalog import Account, Counterparty, Product
from models.operations import Movement, CashFlowEntry
from models.accounting import AccountingPeriod, JournalEntry, JournalLine
from models.inventory import InventoryLot, KardexMovement
from models.compliance import FiscalDocument, ReconciliationDocument, TaxConfig

__all__ = [
    "Base",
    "BatchStatus",
    "EntityType",
    "MigrationBatch",
    "MigrationRow",
    "User",
    "Session",
    "Account",
    "Counterparty",
    "Product",
    "Movement",
    "CashFlowEntry",
    "AccountingPeriod",
    "JournalEntry",
    "JournalLine",
    "InventoryLot",
    "KardexMovement",
    "FiscalDocument",
    "ReconciliationDocument",
    "TaxConfig",
]
