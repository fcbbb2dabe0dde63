from sqlalchemy import Column, BigInteger, String, Date, DateTime, ForeignKey
from models.base import Base, BigIntPK, Money, Quantity, utcnow


class InventoryLot(Base):
    """FIFO inventory lot of a product."""
    __tablename__ = "lotes_inventario"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    producto_id = Column(BigInteger, ForeignKey("productos.id"), nullable=False, index=True)
    fecha_ingreso = Column(Date, nullable=True)
    cantidad = Column(Quantity, nullable=False)
    cantidad_restante = Column(Quantity, nullable=False)
    costo_unitario = Column(Money, nullable=False, default=0)
    origen = Column(String(100), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class KardexMovement(Base):
    """Kardex (stock ledger) movement; the lot link is optional."""
    __tablename__ = "kardex_movimientos"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    producto_id = Column(BigInteger, ForeignKey("productos.id"), nullable=False, index=True)
    lote_id = Column(BigInteger, ForeignKey("lotes_inventario.id"), nullable=True, index=True)
    fecha = Column(Date, nullable=True)
    tipo = Column(String(20), nullable=False)
    cantidad = Column(Quantity, nullable=False)
    costo_unitario = Column(Money, nullable=False, default=0)
    costo_total = Column(Money, nullable=False, default=0)
    referencia = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
