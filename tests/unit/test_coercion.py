"""
Unit tests for field coercion and record defaults
"""

import pytest
from datetime import date, datetime
from decimal import Decimal
from pydantic import TypeAdapter

from migration.transformers.normalizer import PayloadNormalizer
from schemas.coercion import (
    NO_PERIOD,
    parse_date,
    parse_datetime,
    period_key,
    to_int,
    to_key,
    to_money,
    to_quantity,
    to_rate,
)
from schemas.snapshot import (
    CounterpartyRecord,
    FiscalDocumentRecord,
    InventoryLotRecord,
    ProductRecord,
    SnapshotRecord,
    TaxConfigRecord,
    UserRecord,
)


class TestNumbers:
    """Test money and quantity coercion"""

    @pytest.mark.parametrize("value, expected", [
        ("1190", Decimal("1190.00")),
        (1190.005, Decimal("1190.01")),
        ("1.005", Decimal("1.01")),
        (" 42 ", Decimal("42.00")),
        ("-12500.5", Decimal("-12500.50")),
    ])
    def test_money_is_quantized_to_cents(self, value, expected):
        assert to_money(value) == expected

    @pytest.mark.parametrize("value", [None, "", "abc", "NaN", "Infinity", True, [1]])
    def test_invalid_money_becomes_zero(self, value):
        assert to_money(value) == Decimal("0.00")

    @pytest.mark.parametrize("value", [1e30, "1e30", "99999999999999999999999999999", "-1000000000000"])
    def test_money_beyond_column_range_becomes_zero(self, value):
        assert to_money(value) == Decimal("0.00")

    def test_largest_money_that_fits_is_kept(self):
        assert to_money("999999999999.99") == Decimal("999999999999.99")

    def test_out_of_range_quantity_and_rate_become_zero(self):
        assert to_quantity(1e12) == Decimal("0.0000")
        assert to_rate("12345") == Decimal("0.0000")

    def test_oversized_amount_does_not_break_normalization(self):
        payload = PayloadNormalizer().normalize({"movimientos": [{"id": "m1", "total": 1e30}]})

        assert payload.movimientos[0].total == Decimal("0.00")

    def test_quantity_keeps_four_decimals(self):
        assert to_quantity("2.123456") == Decimal("2.1235")
        assert to_quantity(None) == Decimal("0.0000")

    def test_int_parsing(self):
        assert to_int("3") == 3
        assert to_int(3.0) == 3
        assert to_int(3.5) is None
        assert to_int("marzo") is None
        assert to_int(False) is None


class TestKeys:
    """Test identifier rendering"""

    def test_numeric_keys_render_as_text(self):
        assert to_key(7) == "7"
        assert to_key(7.0) == "7"
        assert to_key("7") == "7"

    def test_blank_keys_are_none(self):
        assert to_key("  ") is None
        assert to_key(None) is None
        assert to_key(True) is None


class TestDates:
    """Test free-form date parsing and period bucketing"""

    def test_iso_timestamp_with_zulu_is_naive_utc(self):
        assert parse_datetime("2024-03-05T10:00:00Z") == datetime(2024, 3, 5, 10, 0, 0)

    def test_offset_timestamp_is_converted_to_utc(self):
        assert parse_datetime("2024-03-05T07:00:00-03:00") == datetime(2024, 3, 5, 10, 0, 0)

    @pytest.mark.parametrize("value", ["2024-03-15", "15-03-2024", "15/03/2024", "2024/03/15"])
    def test_supported_layouts(self, value):
        assert parse_date(value) == date(2024, 3, 15)

    def test_unparsable_date_is_none(self):
        assert parse_date("not a date") is None
        assert parse_date(None) is None

    def test_period_key(self):
        assert period_key("2024-03-15T12:00:00Z") == "2024-03"
        assert period_key("01/12/2023") == "2023-12"

    def test_unparsable_date_goes_to_no_period(self):
        assert period_key("mañana") == NO_PERIOD
        assert period_key("") == "no-period"


class TestRecordDefaults:
    """Test sentinel defaults and aliases on snapshot records"""

    def test_missing_text_takes_sentinels(self):
        user = UserRecord.model_validate({"email": "X@Y.CL"})
        product = ProductRecord.model_validate({"sku": "S1", "nombre": "  "})
        counterparty = CounterpartyRecord.model_validate({"rut": "1-9"})

        assert user.email == "x@y.cl"
        assert user.nombre == "migrated user"
        assert user.rol == "operador"
        assert product.nombre == "migrated product"
        assert counterparty.nombre == "migrated counterparty"

    def test_tax_config_defaults(self):
        tax = TaxConfigRecord.model_validate({"anio": 2024})

        assert tax.year == 2024
        assert tax.regime == "14D8"
        assert tax.iva_rate == Decimal("0.19")
        assert tax.ppm_rate == Decimal("0.2")
        assert tax.retention_rate == Decimal("14.5")

    def test_tax_config_ppm_rate_follows_regime(self):
        general = TaxConfigRecord.model_validate({"year": 2024, "regime": "14D3"})
        explicit = TaxConfigRecord.model_validate({"year": 2024, "regime": "14D3", "ppmRate": "0.3"})

        assert general.ppm_rate == Decimal("0.25")
        assert explicit.ppm_rate == Decimal("0.3")

    @pytest.mark.parametrize("row", [{}, {"year": None}, {"year": 0}, {"year": "abc"}])
    def test_tax_config_without_year_is_current_year(self, row):
        tax = TaxConfigRecord.model_validate(row)

        assert tax.year == date.today().year
        assert tax.natural_key() == str(date.today().year)

    def test_snake_and_camel_aliases(self):
        camel = InventoryLotRecord.model_validate({"productId": "p1", "remainingQty": "4", "unitCost": 10})
        snake = InventoryLotRecord.model_validate({"producto_id": "p1", "remaining_qty": "4", "unit_cost": 10})

        assert camel == snake
        assert camel.remaining_qty == Decimal("4.0000")

    def test_fiscal_metadata_alias(self):
        document = FiscalDocumentRecord.model_validate({"folio": 5, "metadata": {"rut": "1-9"}})

        assert document.folio == "5"
        assert document.extra_data == {"rut": "1-9"}

    def test_tagged_union_picks_record_type(self):
        adapter = TypeAdapter(SnapshotRecord)

        record = adapter.validate_python({"entity": "productos", "sku": "S1"})

        assert isinstance(record, ProductRecord)
