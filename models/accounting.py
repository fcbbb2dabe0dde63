from sqlalchemy import Column, BigInteger, Integer, String, Date, DateTime, Text, ForeignKey, UniqueConstraint
from models.base import Base, BigIntPK, Money, utcnow


class AccountingPeriod(Base):
    """Monthly accounting period. Natural key: (anio, mes)."""
    __tablename__ = "periodos_contables"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    anio = Column(Integer, nullable=False)
    mes = Column(Integer, nullable=False)
    estado = Column(String(20), nullable=False)
    cerrado_por = Column(String(255), nullable=True)
    cerrado_en = Column(DateTime, nullable=True)
    reabierto_por = Column(String(255), nullable=True)
    reabierto_en = Column(DateTime, nullable=True)
    motivo_reapertura = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("anio", "mes", name="uq_periodos_anio_mes"),
    )


class JournalEntry(Base):
    """Journal entry header. The author link is optional."""
    __tablename__ = "asientos_contables"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    fecha = Column(Date, nullable=True)
    periodo = Column(String(10), nullable=False, index=True)
    glosa = Column(Text, nullable=False, default="")
    origen = Column(String(50), nullable=False)
    estado = Column(String(20), nullable=False)
    creado_por = Column(String(255), nullable=True)
    autor_id = Column(BigInteger, ForeignKey("usuarios.id"), nullable=True, index=True)
    creado_en = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class JournalLine(Base):
    """Journal line. Entry and account are both structurally required."""
    __tablename__ = "asiento_lineas"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    asiento_id = Column(BigInteger, ForeignKey("asientos_contables.id"), nullable=False, index=True)
    cuenta_id = Column(BigInteger, ForeignKey("cuentas.id"), nullable=False, index=True)
    debe = Column(Money, nullable=False, default=0)
    haber = Column(Money, nullable=False, default=0)
    descripcion = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
