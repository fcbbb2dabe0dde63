from sqlalchemy import Column, BigInteger, String, DateTime, ForeignKey
from models.base import Base, BigIntPK, utcnow


class User(Base):
    """Application user. Natural key: email."""
    __tablename__ = "usuarios"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    email = Column(String(255), nullable=False, unique=True)
    nombre = Column(String(200), nullable=False)
    rol = Column(String(50), nullable=False)
    password_hash = Column(String(255), nullable=True)
    creado_en = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Session(Base):
    """Login session. Natural key: token. Always owned by a user."""
    __tablename__ = "sesiones"

    id = Column(BigIntPK, primary_key=True, autoincrement=True)
    source_key = Column(String(255), nullable=False, index=True)

    token = Column(String(255), nullable=False, unique=True)
    usuario_id = Column(BigInteger, ForeignKey("usuarios.id"), nullable=False, index=True)
    creado_en = Column(DateTime, nullable=True)
    expira_en = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
