"""
Appliers for fiscal documents, reconciliation documents and tax configuration
"""

from datetime import date
from typing import Any, Dict, Optional
from migration.appliers.base import EntityApplier
from models.base import EntityType
from models.compliance import FiscalDocument, ReconciliationDocument, TaxConfig
from schemas.coercion import parse_date, period_key
from schemas.snapshot import FiscalDocumentRecord, ReconciliationDocRecord, TaxConfigRecord

# Document type used when the source row carries none, by collection of origin
DEFAULT_DTE_TYPES = {
    "rcvVentas": "RCV_VENTA",
    "rcvCompras": "RCV_COMPRA",
}
DEFAULT_DTE_TYPE = "DTE"

# Width of FiscalDocument.registro_fecha
REGISTER_DATE_LENGTH = 32


class FiscalDocumentApplier(EntityApplier):
    """
    Fiscal documents, upserted by (tipo_dte, folio, registro_fecha).

    RCV sales and purchase register rows arrive here too, tagged with their
    origin by the normalizer. A register may list the same folio on several
    dates, so register rows also key on their issue date.
    """

    entity = EntityType.DOCUMENTOS_FISCALES
    prefix = "DOC"
    model = FiscalDocument
    conflict_columns = ("tipo_dte", "folio", "registro_fecha")

    def build_values(self, record: FiscalDocumentRecord, key: str) -> Dict[str, Any]:
        issued = parse_date(record.fecha_emision)
        return {
            "source_key": key,
            "tipo_dte": record.tipo_dte or DEFAULT_DTE_TYPES.get(record.origen, DEFAULT_DTE_TYPE),
            "folio": record.folio or key,
            "fecha_emision": issued,
            "periodo": period_key(record.fecha_emision),
            "neto": record.neto,
            "iva": record.iva,
            "total": record.total,
            "origen": record.origen,
            "registro_fecha": self._register_date(record, issued),
            "extra_data": record.extra_data,
        }

    @staticmethod
    def _register_date(record: FiscalDocumentRecord, issued: Optional[date]) -> str:
        if not record.is_register_row:
            return ""
        if issued is not None:
            return issued.isoformat()
        return (record.fecha_emision or "")[:REGISTER_DATE_LENGTH]


class ReconciliationDocumentApplier(EntityApplier):
    entity = EntityType.CONCILIACIONES
    prefix = "CONC"
    model = ReconciliationDocument

    def build_values(self, record: ReconciliationDocRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "periodo": record.periodo or period_key(record.fecha),
            "fecha": parse_date(record.fecha),
            "fuente": record.fuente,
            "monto": record.monto,
            "estado": record.estado,
            "extra_data": record.extra_data,
        }


class TaxConfigApplier(EntityApplier):
    """Tax regime configuration, one row per year (the record defaults a missing year)"""

    entity = EntityType.TAX_CONFIG
    prefix = "TAX"
    model = TaxConfig
    conflict_columns = ("anio",)

    def build_values(self, record: TaxConfigRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "anio": record.year,
            "regimen": record.regime,
            "ppm_rate": record.ppm_rate,
            "iva_rate": record.iva_rate,
            "ret_rate": record.retention_rate,
        }
