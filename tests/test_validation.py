"""
Tests for form input parsing used by the bot dialogs.
"""
from datetime import date
from decimal import Decimal

import pytest

from mastergym.core.validation import (
    normalize_email,
    normalize_phone,
    optional_text,
    parse_amount,
    parse_date,
    parse_id,
    parse_positive_float,
    whatsapp_phone,
)


class TestPhones:

    @pytest.mark.parametrize(
        "raw,expected",
        [("8888-1234", "88881234"), ("+506 8888 1234", "+50688881234"), (" 70001111 ", "70001111")],
    )
    def test_normalize_phone(self, raw, expected):
        assert normalize_phone(raw) == expected

    @pytest.mark.parametrize("raw", ["", "12", "phone", "++5068888"])
    def test_normalize_phone_rejects(self, raw):
        assert normalize_phone(raw) is None

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("8888-1234", "50688881234"),
            ("0088881234", "50688881234"),
            ("+1 (305) 555-0100", "13055550100"),
            ("1234567", None),
            (None, None),
            ("000", None),
        ],
    )
    def test_whatsapp_phone(self, raw, expected):
        assert whatsapp_phone(raw) == expected


def test_normalize_email():
    assert normalize_email("  Ana@Example.COM ") == "ana@example.com"
    assert normalize_email("ana@") is None
    assert normalize_email("ana example.com") is None


@pytest.mark.parametrize("raw", ["-", "No", "ninguno", "  ", None])
def test_optional_text_skips(raw):
    assert optional_text(raw) is None


def test_optional_text_keeps_value():
    assert optional_text("  Luis 8777-0000 ") == "Luis 8777-0000"


class TestParseDate:

    @pytest.mark.parametrize("raw", ["2024-03-05", "05/03/2024", "05-03-2024", "05.03.2024"])
    def test_formats(self, raw):
        assert parse_date(raw) == date(2024, 3, 5)

    def test_today(self):
        assert parse_date("Hoy") == date.today()

    @pytest.mark.parametrize("raw", ["31/02/2024", "mañana", "2024/03/05"])
    def test_invalid(self, raw):
        assert parse_date(raw) is None


class TestNumbers:

    @pytest.mark.parametrize(
        "raw,expected",
        [("15000", Decimal("15000.00")), ("15 000", Decimal("15000.00")), ("₡15000,5", Decimal("15000.50"))],
    )
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["0", "-100", "abc", "NaN", "Infinity"])
    def test_parse_amount_rejects(self, raw):
        assert parse_amount(raw) is None

    def test_parse_positive_float(self):
        assert parse_positive_float("72,5") == 72.5
        assert parse_positive_float("0") is None
        assert parse_positive_float("nan") is None
        assert parse_positive_float("inf") is None
        assert parse_positive_float("alto") is None

    def test_parse_id(self):
        assert parse_id("#12") == 12
        assert parse_id(" 7 ") == 7
        assert parse_id("12a") is None
        assert parse_id(None) is None
