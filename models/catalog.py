from sqlalchemy import Column, String, DateTime
from models.base import Base, BigIntPK, Money, Quantity, utcnow


class Account(Base):
    """Chart-of-accounts entry. Natural key: account code."""
    __tablename__ = "cuentas"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    codigo = Column(String(50), nullable=False, unique=True)
    nombre = Column(String(200), nullable=False)
    tipo = Column(String(50), nullable=False)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Counterparty(Base):
    """Customer / supplier. Natural key: RUT."""
    __tablename__ = "terceros"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    rut = Column(String(20), nullable=False, unique=True)
    nombre = Column(String(200), nullable=False)
    tipo = Column(String(50), nullable=False)
    email = Column(String(255), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Product(Base):
    """Inventory product. Natural key: SKU."""
    __tablename__ = "productos"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    sku = Column(String(100), nullable=False, unique=True)
    nombre = Column(String(200), nullable=False)
    stock = Column(Quantity, nullable=False, default=0)
    costo_promedio = Column(Money, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
