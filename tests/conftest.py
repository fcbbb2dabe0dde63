"""
Pytest configuration and fixtures
"""

import os
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import NullPool
from typing import AsyncGenerator

from models import Base


def _test_database_url(tmp_path) -> str:
    """SQLite file database per test unless TEST_DATABASE_URL points elsewhere"""
    return os.environ.get("TEST_DATABASE_URL") or f"sqlite+aiosqlite:///{tmp_path / 'migration_test.db'}"


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create test database engine"""
    engine = create_async_engine(
        _test_database_url(tmp_path),
        echo=False,
        poolclass=NullPool,  # Disable connection pooling for tests
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables after test
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker:
    """Session factory bound to the test engine"""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for tests"""
    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def sample_snapshot():
    """
    Small but complete document-store snapshot.

    Movement totals add up to 150000 and cash-flow amounts to 37499.50.
    """
    return {
        "source": "store.json",
        "migratedAt": None,
        "usuarios": [
            {"id": "u1", "email": "Ana@Example.com", "nombre": "Ana", "rol": "admin"},
            {"id": "u2", "email": "luis@example.com"},
        ],
        "sesiones": [
            {"id": "s1", "token": "tok-1", "userId": "u1", "expiraEn": "2024-03-06T10:00:00Z"},
        ],
        "cuentas": [
            {"id": "c1", "codigo": "1101", "nombre": "Caja", "tipo": "activo"},
            {"id": "c2", "codigo": 4101, "nombre": "Ventas", "tipo": "ingreso"},
        ],
        "terceros": [
            {"id": "t1", "rut": "76.123.456-7", "razonSocial": "Proveedor SpA", "tipo": "proveedor"},
        ],
        "productos": [
            {"id": "p1", "sku": "SKU-1", "nombre": "Widget", "stock": "10", "costoPromedio": "1500"},
        ],
        "movimientos": [
            {
                "id": "m1", "fecha": "2024-03-05", "tipo": "VENTA",
                "neto": "42016.81", "iva": "7983.19", "total": "50000",
                "productId": "p1", "terceroId": "t1",
            },
            {"id": "m2", "fecha": "15-03-2024", "tipo": "GASTO_LOCAL", "total": 60000},
            {"id": "m3", "fecha": "not a date", "tipo": "VENTA", "total": 40000.0},
        ],
        "flujoCaja": [
            {"id": "f1", "fecha": "2024-03-05", "tipoMovimiento": "INGRESO", "monto": "50000", "cuentaId": "1101"},
            {"id": "f2", "fecha": "2024-03-20", "tipoMovimiento": "EGRESO", "monto": "-12500.50"},
        ],
        "periodos": [
            {"anio": 2024, "mes": 3, "estado": "abierto"},
        ],
        "asientos": [
            {"id": "a1", "fecha": "2024-03-05", "glosa": "Venta", "creadoPor": "ANA@example.com"},
        ],
        "asientoLineas": [
            {"id": "l1", "asientoId": "a1", "cuentaId": "c1", "debe": "50000"},
            {"id": "l2", "asientoId": "a1", "cuentaId": "4101", "haber": "50000"},
        ],
        "inventoryLots": [
            {"id": "lot1", "productId": "p1", "fechaIngreso": "2024-03-01", "qty": "10", "unitCost": "1500"},
        ],
        "kardexMovements": [
            {"id": "k1", "productId": "p1", "lotId": "lot1", "fecha": "2024-03-01", "type": "ENTRADA", "qty": 10, "unitCost": 1500},
        ],
        "documentosFiscales": [
            {"id": "d1", "tipoDte": "33", "folio": 101, "fechaEmision": "2024-03-05", "neto": 42016.81, "iva": 7983.19, "total": 50000},
        ],
        "rcvVentas": [
            {"folio": "201", "fecha": "2024-03-06", "total": "1190"},
        ],
        "rcvCompras": [
            {"folio": "301", "fecha": "2024-03-07", "total": "2380"},
        ],
        "conciliaciones": [
            {"id": "r1", "fecha": "2024-03-31", "fuente": "banco", "monto": "50000"},
        ],
        "taxConfig": {"year": 2024, "regime": "14D8"},
    }


# Records per entity in ``sample_snapshot`` after normalization
SAMPLE_COUNTS = {
    "usuarios": 2,
    "sesiones": 1,
    "cuentas": 2,
    "terceros": 1,
    "productos": 1,
    "movimientos": 3,
    "flujoCaja": 2,
    "periodos": 1,
    "asientos": 1,
    "asientoLineas": 2,
    "inventoryLots": 1,
    "kardexMovements": 1,
    "documentosFiscales": 3,
    "conciliaciones": 1,
    "taxConfig": 1,
}


@pytest.fixture
def sample_counts():
    return dict(SAMPLE_COUNTS)
