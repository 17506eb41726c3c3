"""Tests for output formatting and date helpers."""

import json
from datetime import date, datetime, timezone

from obras.core.output import (
    OutputFormat, format_currency, format_date, format_percent, format_result,
    parse_date, to_iso,
)


class TestCurrency:
    def test_thousands_and_decimals(self):
        assert format_currency(1234.56) == "1.234,56 €"

    def test_millions(self):
        assert format_currency(1234567) == "1.234.567,00 €"

    def test_negative(self):
        assert format_currency(-5) == "-5,00 €"

    def test_none_is_zero(self):
        assert format_currency(None) == "0,00 €"


class TestPercent:
    def test_share(self):
        assert format_percent(25, 200) == "12.5%"

    def test_zero_total(self):
        assert format_percent(10, 0) == "0.0%"


class TestDates:
    def test_parse_z_suffix(self):
        parsed = parse_date("2025-03-10T08:00:00.000Z")
        assert parsed.tzinfo is not None
        assert parsed.hour == 8

    def test_parse_invalid(self):
        assert parse_date("not a date") is None
        assert parse_date("") is None

    def test_parse_date_object(self):
        assert parse_date(date(2025, 1, 2)) == datetime(2025, 1, 2)

    def test_to_iso_plain_date(self):
        assert to_iso("2025-03-10") == "2025-03-10T00:00:00.000Z"

    def test_to_iso_converts_offset_to_utc(self):
        assert to_iso("2025-03-10T10:00:00+02:00") == "2025-03-10T08:00:00.000Z"

    def test_to_iso_aware_datetime(self):
        value = datetime(2025, 3, 10, 8, 30, 15, 123456, tzinfo=timezone.utc)
        assert to_iso(value) == "2025-03-10T08:30:15.123Z"

    def test_to_iso_none(self):
        assert to_iso(None) is None

    def test_format_date(self):
        assert format_date("2025-03-10T08:00:00.000Z") == "10/03/2025"
        assert format_date(None) == "-"
        assert format_date("garbage") == "-"


class TestFormatResult:
    def test_json(self):
        out = format_result({"nombre": "Ana", "total": 1.5}, OutputFormat.JSON)
        assert json.loads(out) == {"nombre": "Ana", "total": 1.5}

    def test_human_title_and_labels(self):
        out = format_result({"nombre_completo": "Ana"}, OutputFormat.HUMAN, title="Cliente")
        assert out.startswith("Cliente\n=======")
        assert "Nombre Completo" in out

    def test_markdown(self):
        out = format_result({"ciudad": "Madrid"}, OutputFormat.MARKDOWN, title="Proyecto")
        assert "# Proyecto" in out
        assert "| Ciudad | Madrid |" in out
