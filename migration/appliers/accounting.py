"""
Appliers for accounting periods, journal entries and journal lines
"""

import re
from typing import Any, Dict, Optional, Tuple
from migration.appliers.base import EntityApplier, reference_key
from models.base import EntityType
from models.accounting import AccountingPeriod, JournalEntry, JournalLine
from schemas.coercion import parse_date, parse_datetime, period_key
from schemas.snapshot import PeriodRecord, JournalEntryRecord, JournalLineRecord

PERIOD_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")


class PeriodApplier(EntityApplier):
    """Monthly periods, upserted by (anio, mes)"""

    entity = EntityType.PERIODOS
    prefix = "PER"
    model = AccountingPeriod
    conflict_columns = ("anio", "mes")

    def build_values(self, record: PeriodRecord, key: str) -> Dict[str, Any]:
        anio, mes = self._year_month(record)
        if anio is None or not 1900 <= anio <= 9999:
            raise self.invalid("invalid year", "anio")
        if mes is None or not 1 <= mes <= 12:
            raise self.invalid("invalid month", "mes")

        return {
            "source_key": key,
            "anio": anio,
            "mes": mes,
            "estado": record.estado,
            "cerrado_por": record.cerrado_por,
            "cerrado_en": parse_datetime(record.cerrado_en),
            "reabierto_por": record.reabierto_por,
            "reabierto_en": parse_datetime(record.reabierto_en),
            "motivo_reapertura": record.motivo_reapertura,
        }

    @staticmethod
    def _year_month(record: PeriodRecord) -> Tuple[Optional[int], Optional[int]]:
        if record.anio is not None and record.mes is not None:
            return record.anio, record.mes

        # Periods stored only as a "YYYY-MM" key
        match = PERIOD_KEY_PATTERN.match(record.key or record.id or "")
        if match:
            return int(match.group(1)), int(match.group(2))
        return record.anio, record.mes


class JournalEntryApplier(EntityApplier):
    """Journal entry headers. The author is resolved by email, optionally."""

    entity = EntityType.ASIENTOS
    prefix = "AST"
    model = JournalEntry
    is_parent = True

    def build_values(self, record: JournalEntryRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "fecha": parse_date(record.fecha),
            "periodo": period_key(record.fecha),
            "glosa": record.glosa,
            "origen": record.origen,
            "estado": record.estado,
            "creado_por": record.creado_por,
            "autor_id": self.resolve_parent(EntityType.USUARIOS, reference_key(record.creado_por)),
            "creado_en": parse_datetime(record.creado_en),
        }


class JournalLineApplier(EntityApplier):
    """Journal lines; both the entry and the account must resolve"""

    entity = EntityType.ASIENTO_LINEAS
    prefix = "ALN"
    model = JournalLine

    def build_values(self, record: JournalLineRecord, key: str) -> Dict[str, Any]:
        return {
            "source_key": key,
            "asiento_id": self.resolve_parent(EntityType.ASIENTOS, record.entry_id, required=True),
            "cuenta_id": self.resolve_parent(EntityType.CUENTAS, record.account_id, required=True),
            "debe": record.debe,
            "haber": record.haber,
            "descripcion": record.descripcion,
        }
