from sqlalchemy import Column, BigInteger, String, Date, DateTime, Text, ForeignKey, Index
from models.base import Base, BigIntPK, Money, utcnow


class Movement(Base):
    """
    Commercial movement (sale, local expense, import, fees).

    Product and counterparty links are optional: an unresolved parent leaves
    the column null instead of dropping the movement.
    """
    __tablename__ = "movimientos"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    fecha = Column(Date, nullable=True)
    periodo = Column(String(10), nullable=False, index=True)
    tipo = Column(String(50), nullable=False)
    descripcion = Column(Text, nullable=False, default="")
    neto = Column(Money, nullable=False, default=0)
    iva = Column(Money, nullable=False, default=0)
    total = Column(Money, nullable=False, default=0)
    n_doc = Column(String(100), nullable=True)
    estado = Column(String(50), nullable=False)

    producto_id = Column(BigInteger, ForeignKey("productos.id"), nullable=True, index=True)
    tercero_id = Column(BigInteger, ForeignKey("terceros.id"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("idx_movimientos_tipo_periodo", "tipo", "periodo"),
    )


class CashFlowEntry(Base):
    """Cash-flow entry (INGRESO / EGRESO), optionally tied to an account."""
    __tablename__ = "flujo_caja"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    fecha = Column(Date, nullable=True)
    periodo = Column(String(10), nullable=False, index=True)
    tipo_movimiento = Column(String(20), nullable=False)
    monto = Column(Money, nullable=False, default=0)
    descripcion = Column(Text, nullable=False, default="")

    cuenta_id = Column(BigInteger, ForeignKey("cuentas.id"), nullable=True, index=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
