"""
Typed source records and the normalized payload.

Every snapshot collection maps to one record type. The records form a tagged
union on ``entity`` so a raw document row is validated into exactly one
shape. Field aliases (camelCase / snake_case duplicates left behind by the
document store) are declared here and resolved once, when the Payload
Normalizer validates the snapshot; nothing downstream sees an alias.

Defaulting rules:
    - Monetary fields: Decimal quantized to 0.01, invalid/missing -> 0.00
    - Quantities: Decimal quantized to 0.0001, invalid/missing -> 0
    - Required text: fixed sentinel (e.g. "migrated product")
    - Keys: rendered as text, 7 / 7.0 / "7" are equal
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from models.base import EntityType
from schemas.coercion import (
    to_email,
    to_int,
    to_key,
    to_mapping,
    to_money,
    to_quantity,
    to_rate,
    to_text,
)


def _text_or(default: str) -> BeforeValidator:
    return BeforeValidator(lambda value: to_text(value) or default)


def _aliases(*names: str) -> AliasChoices:
    return AliasChoices(*names)


Money = Annotated[Decimal, BeforeValidator(to_money)]
Quantity = Annotated[Decimal, BeforeValidator(to_quantity)]
Rate = Annotated[Decimal, BeforeValidator(to_rate)]
Key = Annotated[Optional[str], BeforeValidator(to_key)]
Text = Annotated[Optional[str], BeforeValidator(to_text)]
Email = Annotated[Optional[str], BeforeValidator(to_email)]
Year = Annotated[Optional[int], BeforeValidator(to_int)]
Mapping = Annotated[Dict[str, Any], BeforeValidator(to_mapping)]

ZERO_MONEY = Decimal("0.00")
ZERO_QTY = Decimal("0.0000")

# Fiscal document origins of the RCV sales and purchase registers
RCV_ORIGINS = ("rcvVentas", "rcvCompras")


class RecordBase(BaseModel):
    """Common behaviour of every snapshot record"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: Key = None

    def natural_key(self) -> Optional[str]:
        """Identifier the source assigned to this row, if any"""
        return self.id


# ============================================================================
# Stage 1: independent entities
# ============================================================================

class UserRecord(RecordBase):
    entity: Literal["usuarios"] = "usuarios"

    email: Email = None
    nombre: Annotated[str, _text_or("migrated user")] = Field(
        "migrated user", validation_alias=_aliases("nombre", "name")
    )
    rol: Annotated[str, _text_or("operador")] = Field(
        "operador", validation_alias=_aliases("rol", "role")
    )
    password_hash: Text = Field(None, validation_alias=_aliases("passwordHash", "password_hash"))
    creado_en: Text = Field(None, validation_alias=_aliases("creadoEn", "creado_en", "createdAt"))


class AccountRecord(RecordBase):
    entity: Literal["cuentas"] = "cuentas"

    codigo: Key = Field(None, validation_alias=_aliases("codigo", "code"))
    nombre: Annotated[str, _text_or("migrated account")] = Field(
        "migrated account", validation_alias=_aliases("nombre", "name")
    )
    tipo: Annotated[str, _text_or("sin_tipo")] = Field(
        "sin_tipo", validation_alias=_aliases("tipo", "type")
    )


class CounterpartyRecord(RecordBase):
    entity: Literal["terceros"] = "terceros"

    rut: Text = None
    nombre: Annotated[str, _text_or("migrated counterparty")] = Field(
        "migrated counterparty", validation_alias=_aliases("nombre", "razonSocial", "razon_social", "name")
    )
    tipo: Annotated[str, _text_or("sin_tipo")] = Field(
        "sin_tipo", validation_alias=_aliases("tipo", "type")
    )
    email: Email = None


class ProductRecord(RecordBase):
    entity: Literal["productos"] = "productos"

    sku: Key = None
    nombre: Annotated[str, _text_or("migrated product")] = Field(
        "migrated product", validation_alias=_aliases("nombre", "name")
    )
    stock: Quantity = ZERO_QTY
    costo_promedio: Money = Field(ZERO_MONEY, validation_alias=_aliases("costoPromedio", "costo_promedio"))


# ============================================================================
# Stage 2: first-order dependents
# ============================================================================

class SessionRecord(RecordBase):
    entity: Literal["sesiones"] = "sesiones"

    token: Text = None
    user_id: Key = Field(None, validation_alias=_aliases("userId", "user_id", "usuarioId", "usuario_id"))
    creado_en: Text = Field(None, validation_alias=_aliases("creadoEn", "creado_en"))
    expira_en: Text = Field(None, validation_alias=_aliases("expiraEn", "expira_en"))

    def natural_key(self) -> Optional[str]:
        return self.id or self.token


class MovementRecord(RecordBase):
    entity: Literal["movimientos"] = "movimientos"

    fecha: Text = None
    tipo: Annotated[str, _text_or("SIN_TIPO")] = "SIN_TIPO"
    descripcion: Annotated[str, _text_or("")] = ""
    neto: Money = ZERO_MONEY
    iva: Money = ZERO_MONEY
    total: Money = ZERO_MONEY
    n_doc: Key = Field(None, validation_alias=_aliases("nDoc", "n_doc"))
    estado: Annotated[str, _text_or("registrado")] = "registrado"
    product_id: Key = Field(
        None, validation_alias=_aliases("productId", "productoId", "producto_id", "product_id")
    )
    counterparty_id: Key = Field(
        None, validation_alias=_aliases("terceroId", "tercero_id", "counterpartyId", "counterparty_id")
    )


class CashFlowRecord(RecordBase):
    entity: Literal["flujoCaja"] = "flujoCaja"

    fecha: Text = None
    tipo_movimiento: Annotated[str, _text_or("INGRESO")] = Field(
        "INGRESO", validation_alias=_aliases("tipoMovimiento", "tipo_movimiento", "tipo")
    )
    monto: Money = ZERO_MONEY
    descripcion: Annotated[str, _text_or("")] = ""
    account_id: Key = Field(None, validation_alias=_aliases("cuentaId", "cuenta_id", "accountId"))


class PeriodRecord(RecordBase):
    entity: Literal["periodos"] = "periodos"

    key: Text = None
    anio: Year = Field(None, validation_alias=_aliases("anio", "year"))
    mes: Year = Field(None, validation_alias=_aliases("mes", "month"))
    estado: Annotated[str, _text_or("abierto")] = "abierto"
    cerrado_por: Text = Field(None, validation_alias=_aliases("cerradoPor", "cerrado_por"))
    cerrado_en: Text = Field(None, validation_alias=_aliases("cerradoEn", "cerrado_en"))
    reabierto_por: Text = Field(None, validation_alias=_aliases("reabiertoPor", "reabierto_por"))
    reabierto_en: Text = Field(None, validation_alias=_aliases("reabiertoEn", "reabierto_en"))
    motivo_reapertura: Text = Field(None, validation_alias=_aliases("motivoReapertura", "motivo_reapertura"))

    def natural_key(self) -> Optional[str]:
        if self.id or self.key:
            return self.id or self.key
        if self.anio is not None and self.mes is not None:
            return f"{self.anio}-{self.mes:02d}"
        return None


class JournalEntryRecord(RecordBase):
    entity: Literal["asientos"] = "asientos"

    fecha: Text = None
    glosa: Annotated[str, _text_or("")] = ""
    origen: Annotated[str, _text_or("manual")] = "manual"
    estado: Annotated[str, _text_or("borrador")] = "borrador"
    creado_por: Text = Field(None, validation_alias=_aliases("creadoPor", "creado_por"))
    creado_en: Text = Field(None, validation_alias=_aliases("creadoEn", "creado_en"))


# ============================================================================
# Stage 3: second-order dependents and standalone documents
# ============================================================================

class JournalLineRecord(RecordBase):
    entity: Literal["asientoLineas"] = "asientoLineas"

    entry_id: Key = Field(None, validation_alias=_aliases("asientoId", "asiento_id", "entryId"))
    account_id: Key = Field(None, validation_alias=_aliases("cuentaId", "cuenta_id", "accountId"))
    debe: Money = ZERO_MONEY
    haber: Money = ZERO_MONEY
    descripcion: Annotated[str, _text_or("")] = ""


class InventoryLotRecord(RecordBase):
    entity: Literal["inventoryLots"] = "inventoryLots"

    product_id: Key = Field(
        None, validation_alias=_aliases("productId", "productoId", "producto_id", "product_id")
    )
    fecha_ingreso: Text = Field(None, validation_alias=_aliases("fechaIngreso", "fecha_ingreso"))
    qty: Quantity = Field(ZERO_QTY, validation_alias=_aliases("qty", "cantidad"))
    remaining_qty: Optional[Quantity] = Field(
        None, validation_alias=_aliases("remainingQty", "remaining_qty", "cantidadRestante")
    )
    unit_cost: Money = Field(ZERO_MONEY, validation_alias=_aliases("unitCost", "unit_cost", "costoUnitario"))
    origen: Annotated[str, _text_or("migracion")] = Field(
        "migracion", validation_alias=_aliases("source", "origen")
    )


class KardexRecord(RecordBase):
    entity: Literal["kardexMovements"] = "kardexMovements"

    product_id: Key = Field(
        None, validation_alias=_aliases("productId", "productoId", "producto_id", "product_id")
    )
    lot_id: Key = Field(None, validation_alias=_aliases("lotId", "loteId", "lote_id", "lot_id"))
    fecha: Text = None
    tipo: Annotated[str, _text_or("AJUSTE")] = Field("AJUSTE", validation_alias=_aliases("type", "tipo"))
    qty: Quantity = Field(ZERO_QTY, validation_alias=_aliases("qty", "cantidad"))
    unit_cost: Money = Field(ZERO_MONEY, validation_alias=_aliases("unitCost", "unit_cost", "costoUnitario"))
    total_cost: Optional[Money] = Field(None, validation_alias=_aliases("totalCost", "total_cost", "costoTotal"))
    reference: Text = Field(None, validation_alias=_aliases("reference", "referencia"))


class FiscalDocumentRecord(RecordBase):
    entity: Literal["documentosFiscales"] = "documentosFiscales"

    tipo_dte: Key = Field(None, validation_alias=_aliases("tipoDte", "tipo_dte"))
    folio: Key = None
    fecha_emision: Text = Field(None, validation_alias=_aliases("fechaEmision", "fecha_emision", "fecha"))
    neto: Money = ZERO_MONEY
    iva: Money = ZERO_MONEY
    total: Money = ZERO_MONEY
    origen: Annotated[str, _text_or("documentosFiscales")] = "documentosFiscales"
    extra_data: Mapping = Field(default_factory=dict, validation_alias=_aliases("metadata", "extra_data"))

    @property
    def is_register_row(self) -> bool:
        """Row of the RCV sales or purchases register"""
        return self.origen in RCV_ORIGINS

    def natural_key(self) -> Optional[str]:
        # Register rows are identified by folio and date within their register
        if not self.id and self.is_register_row and self.folio:
            return f"{self.origen}:{self.folio}-{self.fecha_emision or ''}"
        return self.id


class ReconciliationDocRecord(RecordBase):
    entity: Literal["conciliaciones"] = "conciliaciones"

    periodo: Text = None
    fecha: Text = None
    fuente: Annotated[str, _text_or("manual")] = Field(
        "manual", validation_alias=_aliases("fuente", "source", "tipo")
    )
    monto: Money = ZERO_MONEY
    estado: Annotated[str, _text_or("pendiente")] = "pendiente"
    extra_data: Mapping = Field(default_factory=dict, validation_alias=_aliases("detalle", "metadata", "extra_data"))


# Regime-dependent defaults for a tax configuration row
DEFAULT_REGIME = "14D8"
TRANSPARENT_PPM_RATE = Decimal("0.2000")
GENERAL_PPM_RATE = Decimal("0.2500")
PPM_RATE_KEYS = ("ppmRate", "ppm_rate")


class TaxConfigRecord(RecordBase):
    entity: Literal["taxConfig"] = "taxConfig"

    year: Year = Field(None, validation_alias=_aliases("year", "anio"))
    regime: Annotated[str, _text_or(DEFAULT_REGIME)] = Field(
        DEFAULT_REGIME, validation_alias=_aliases("regime", "regimen")
    )
    ppm_rate: Rate = Field(TRANSPARENT_PPM_RATE, validation_alias=_aliases(*PPM_RATE_KEYS))
    iva_rate: Rate = Field(Decimal("0.1900"), validation_alias=_aliases("ivaRate", "iva_rate"))
    retention_rate: Rate = Field(
        Decimal("14.5000"), validation_alias=_aliases("retentionRate", "retention_rate", "retRate", "ret_rate")
    )

    @model_validator(mode="before")
    @classmethod
    def apply_regime_defaults(cls, data: Any) -> Any:
        """
        Fill the fields the store itself defaults on read.

        A missing PPM rate is 0.20 under the transparent regime (14D8) and
        0.25 otherwise; a missing or zero year is the current year.
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        regime = to_text(data.get("regime", data.get("regimen"))) or DEFAULT_REGIME
        if not any(name in data for name in PPM_RATE_KEYS):
            data["ppmRate"] = TRANSPARENT_PPM_RATE if regime == DEFAULT_REGIME else GENERAL_PPM_RATE

        year = to_int(data.get("year")) or to_int(data.get("anio"))
        data["year"] = year or date.today().year
        return data

    def natural_key(self) -> Optional[str]:
        if self.id:
            return self.id
        return str(self.year) if self.year is not None else None


SnapshotRecord = Annotated[
    Union[
        UserRecord,
        AccountRecord,
        CounterpartyRecord,
        ProductRecord,
        SessionRecord,
        MovementRecord,
        CashFlowRecord,
        PeriodRecord,
        JournalEntryRecord,
        JournalLineRecord,
        InventoryLotRecord,
        KardexRecord,
        FiscalDocumentRecord,
        ReconciliationDocRecord,
        TaxConfigRecord,
    ],
    Field(discriminator="entity"),
]


# ============================================================================
# Payload
# ============================================================================

# Payload attribute holding each entity's records
PAYLOAD_FIELDS: Dict[EntityType, str] = {
    EntityType.USUARIOS: "usuarios",
    EntityType.SESIONES: "sesiones",
    EntityType.CUENTAS: "cuentas",
    EntityType.TERCEROS: "terceros",
    EntityType.PRODUCTOS: "productos",
    EntityType.MOVIMIENTOS: "movimientos",
    EntityType.FLUJO_CAJA: "flujo_caja",
    EntityType.PERIODOS: "periodos",
    EntityType.ASIENTOS: "asientos",
    EntityType.ASIENTO_LINEAS: "asiento_lineas",
    EntityType.INVENTORY_LOTS: "inventory_lots",
    EntityType.KARDEX_MOVEMENTS: "kardex_movements",
    EntityType.DOCUMENTOS_FISCALES: "documentos_fiscales",
    EntityType.CONCILIACIONES: "conciliaciones",
    EntityType.TAX_CONFIG: "tax_config",
}


class Payload(BaseModel):
    """
    Normalized, schema-stable projection of a snapshot.

    Every entity key is always present; absent collections are empty lists.
    The payload is what gets hashed for whole-batch idempotency.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    usuarios: List[UserRecord] = Field(default_factory=list)
    sesiones: List[SessionRecord] = Field(default_factory=list)
    cuentas: List[AccountRecord] = Field(default_factory=list)
    terceros: List[CounterpartyRecord] = Field(default_factory=list)
    productos: List[ProductRecord] = Field(default_factory=list)
    movimientos: List[MovementRecord] = Field(default_factory=list)
    flujo_caja: List[CashFlowRecord] = Field(default_factory=list, alias="flujoCaja")
    periodos: List[PeriodRecord] = Field(default_factory=list)
    asientos: List[JournalEntryRecord] = Field(default_factory=list)
    asiento_lineas: List[JournalLineRecord] = Field(default_factory=list, alias="asientoLineas")
    inventory_lots: List[InventoryLotRecord] = Field(default_factory=list, alias="inventoryLots")
    kardex_movements: List[KardexRecord] = Field(default_factory=list, alias="kardexMovements")
    documentos_fiscales: List[FiscalDocumentRecord] = Field(default_factory=list, alias="documentosFiscales")
    conciliaciones: List[ReconciliationDocRecord] = Field(default_factory=list)
    tax_config: List[TaxConfigRecord] = Field(default_factory=list, alias="taxConfig")

    def records(self, entity: EntityType) -> List[RecordBase]:
        return getattr(self, PAYLOAD_FIELDS[entity])

    def counts(self) -> Dict[str, int]:
        """Number of records per entity, keyed by entity name"""
        return {entity.value: len(self.records(entity)) for entity in EntityType}
