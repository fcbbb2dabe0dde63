"""
Project a raw snapshot into the fixed-shape, typed Payload
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple
from pydantic import TypeAdapter, ValidationError as PydanticValidationError
from models.base import EntityType
from schemas.snapshot import Payload, PAYLOAD_FIELDS, RecordBase, SnapshotRecord
import logging

logger = logging.getLogger(__name__)


# Top-level snapshot keys accepted for each entity, preferred spelling first
COLLECTION_KEYS: Dict[EntityType, Tuple[str, ...]] = {
    EntityType.USUARIOS: ("usuarios",),
    EntityType.SESIONES: ("sesiones",),
    EntityType.CUENTAS: ("cuentas",),
    EntityType.TERCEROS: ("terceros",),
    EntityType.PRODUCTOS: ("productos",),
    EntityType.MOVIMIENTOS: ("movimientos",),
    EntityType.FLUJO_CAJA: ("flujoCaja", "flujo_caja"),
    EntityType.PERIODOS: ("periodos",),
    EntityType.ASIENTOS: ("asientos",),
    EntityType.ASIENTO_LINEAS: ("asientoLineas", "asiento_lineas"),
    EntityType.INVENTORY_LOTS: ("inventoryLots", "inventory_lots"),
    EntityType.KARDEX_MOVEMENTS: ("kardexMovements", "kardex_movements"),
    EntityType.DOCUMENTOS_FISCALES: ("documentosFiscales", "documentos_fiscales"),
    EntityType.CONCILIACIONES: ("conciliaciones",),
    EntityType.TAX_CONFIG: ("taxConfig", "tax_config"),
}

# RCV register collections folded into fiscal documents, tagged by origin
RCV_COLLECTIONS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("rcvVentas", ("rcvVentas", "rcv_ventas")),
    ("rcvCompras", ("rcvCompras", "rcv_compras")),
)

# Validates a row tagged with its entity into the matching record type
RECORD_ADAPTER: TypeAdapter[RecordBase] = TypeAdapter(SnapshotRecord)


class PayloadNormalizer:
    """
    Normalize a document-store snapshot into a Payload.

    Handles:
    - Missing collections (empty lists)
    - Collection and field aliases (resolved here, once)
    - RCV sales / purchases folded into fiscal documents
    - taxConfig given as a single object, a list, or null
    """

    def __init__(self, default_source_label: Optional[str] = None):
        self.default_source_label = default_source_label

    def normalize(self, snapshot: Optional[Dict[str, Any]]) -> Payload:
        """
        Build the Payload for a snapshot.

        Rows that are not objects, or that fail validation, are logged and left
        out; they never reach the appliers.
        """
        snapshot = snapshot or {}
        collections: Dict[str, List[RecordBase]] = {}

        for entity, keys in COLLECTION_KEYS.items():
            rows = self._collection(snapshot, keys)
            if entity == EntityType.TAX_CONFIG:
                rows = self._as_list(rows)
            collections[PAYLOAD_FIELDS[entity]] = self._validate_rows(entity, rows)

        documents = collections[PAYLOAD_FIELDS[EntityType.DOCUMENTOS_FISCALES]]
        for origin, keys in RCV_COLLECTIONS:
            rows = self._collection(snapshot, keys)
            documents.extend(
                self._validate_rows(EntityType.DOCUMENTOS_FISCALES, rows, overrides={"origen": origin})
            )

        payload = Payload(**collections)
        logger.info(f"Normalized snapshot: {sum(payload.counts().values())} records")
        return payload

    def source_label(self, snapshot: Optional[Dict[str, Any]]) -> Optional[str]:
        """Human label of the snapshot origin (``source`` metadata key)"""
        label = (snapshot or {}).get("source")
        if isinstance(label, str) and label.strip():
            return label.strip()
        return self.default_source_label

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _collection(snapshot: Dict[str, Any], keys: Iterable[str]) -> Any:
        for key in keys:
            if snapshot.get(key) is not None:
                return snapshot[key]
        return []

    @staticmethod
    def _as_list(value: Any) -> List[Any]:
        if value is None:
            return []
        if isinstance(value, list):
            return value
        return [value]

    def _validate_rows(
        self,
        entity: EntityType,
        rows: Any,
        overrides: Optional[Dict[str, Any]] = None
    ) -> List[RecordBase]:
        if not isinstance(rows, list):
            logger.warning(f"Collection {entity.value} is not a list, treating as empty")
            return []

        records = []
        for index, row in enumerate(rows):
            if not isinstance(row, dict):
                logger.warning(f"Ignoring non-object row {entity.value}[{index}]")
                continue

            data = {**row, **(overrides or {}), "entity": entity.value}
            try:
                records.append(RECORD_ADAPTER.validate_python(data))
            except PydanticValidationError as e:
                logger.warning(f"Ignoring invalid row {entity.value}[{index}]: {e.error_count()} errors")

        return records
