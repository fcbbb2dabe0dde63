from datetime import datetime, timezone
from sqlalchemy import BigInteger, Integer, JSON, Numeric
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB
import enum

Base = declarative_base()


# ============================================================================
# PORTABLE TYPES
# ============================================================================

# SQLite only auto-increments INTEGER PRIMARY KEY
BigIntPK = BigInteger().with_variant(Integer(), "sqlite")

JSONDocument = JSON().with_variant(JSONB(), "postgresql")

Money = Numeric(14, 2)
Quantity = Numeric(14, 4)
Rate = Numeric(8, 4)


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the DateTime columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# ============================================================================
# ENUMS
# ============================================================================

class BatchStatus(str, enum.Enum):
    """Migration batch status"""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class EntityType(str, enum.Enum):
    """
    Entity collections carried by a snapshot.

    Values double as the row-ledger ``entity`` column and as the keys of
    batch summaries and reconciliation reports.
    """
    USUARIOS = "usuarios"
    SESIONES = "sesiones"
    CUENTAS = "cuentas"
    TERCEROS = "terceros"
    PRODUCTOS = "productos"
    MOVIMIENTOS = "movimientos"
    FLUJO_CAJA = "flujoCaja"
    PERIODOS = "periodos"
    ASIENTOS = "asientos"
    ASIENTO_LINEAS = "asientoLineas"
    INVENTORY_LOTS = "inventoryLots"
    KARDEX_MOVEMENTS = "kardexMovements"
    DOCUMENTOS_FISCALES = "documentosFiscales"
    CONCILIACIONES = "conciliaciones"
    TAX_CONFIG = "taxConfig"
