from sqlalchemy import Column, Integer, String, Date, DateTime, UniqueConstraint
from models.base import Base, BigIntPK, JSONDocument, Money, Rate, utcnow


class FiscalDocument(Base):
    """
    Tax document (DTE) including RCV sales / purchase register rows.

    Natural key: (tipo_dte, folio, registro_fecha). DTE documents leave
    registro_fecha empty; RCV register rows carry their issue date there, so
    one folio can appear on several dates.
    """
    __tablename__ = "documentos_fiscales"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    tipo_dte = Column(String(50), nullable=False)
    folio = Column(String(255), nullable=False)
    fecha_emision = Column(Date, nullable=True)
    periodo = Column(String(10), nullable=False, index=True)
    neto = Column(Money, nullable=False, default=0)
    iva = Column(Money, nullable=False, default=0)
    total = Column(Money, nullable=False, default=0)
    origen = Column(String(50), nullable=False)
    registro_fecha = Column(String(32), nullable=False, default="")
    extra_data = Column(JSONDocument, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("tipo_dte", "folio", "registro_fecha", name="uq_documentos_tipo_folio_fecha"),
    )


class ReconciliationDocument(Base):
    """Bank / marketplace reconciliation record for a period."""
    __tablename__ = "conciliaciones"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, unique=True)

    periodo = Column(String(10), nullable=False, index=True)
    fecha = Column(Date, nullable=True)
    fuente = Column(String(50), nullable=False)
    monto = Column(Money, nullable=False, default=0)
    estado = Column(String(20), nullable=False)
    extra_data = Column(JSONDocument, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TaxConfig(Base):
    """Tax regime configuration. Natural key: year."""
    __tablename__ = "tax_config"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    anio = Column(Integer, nullable=False, unique=True)
    regimen = Column(String(20), nullable=False)
    ppm_rate = Column(Rate, nullable=False)
    iva_rate = Column(Rate, nullable=False)
    ret_rate = Column(Rate, nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
