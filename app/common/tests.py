"""
Tests de utilidades comunes: moneda colombiana, validadores de documentos y
resultados de operación.
"""
from decimal import Decimal

import pytest
from fastapi import HTTPException

from app.common.currency import (
    CurrencyFormatError, parse_currency, try_parse_currency, is_valid_currency_format,
    format_currency, format_currency_compact, format_percentage
)
from app.common.results import OperationResult, OperationStatus, raise_for_result
from app.common.validators import (
    calculate_nit_dv, validate_colombia_nit, validate_colombia_cedula,
    validate_colombia_phone, validate_document_number, clean_document
)


class TestParseCurrency:
    @pytest.mark.parametrize("raw, expected", [
        ("$1.000,50", Decimal("1000.50")),
        ("1.000.000", Decimal("1000000")),
        ("1000", Decimal("1000")),
        ("1.000,5", Decimal("1000.50")),
        (" $ 25.000 ", Decimal("25000")),
    ])
    def test_valid_formats(self, raw, expected):
        assert parse_currency(raw) == expected

    def test_empty_is_zero(self):
        assert parse_currency(None) == Decimal("0")
        assert parse_currency("   ") == Decimal("0")

    @pytest.mark.parametrize("raw", ["12a", "1,,5", "1..000", "1,234", "1,2,3"])
    def test_invalid_formats(self, raw):
        with pytest.raises(CurrencyFormatError):
            parse_currency(raw)

    def test_try_parse(self):
        assert try_parse_currency("2.500,75") == (True, Decimal("2500.75"))
        assert try_parse_currency("abc") == (False, Decimal("0"))

    def test_is_valid_currency_format(self):
        assert is_valid_currency_format("$1.000")
        assert not is_valid_currency_format("")
        assert not is_valid_currency_format("1,,0")


class TestFormatCurrency:
    def test_format_currency(self):
        assert format_currency(Decimal("1234567.89")) == "$1.234.567,89"
        assert format_currency(Decimal("476000")) == "$476.000,00"
        assert format_currency(Decimal("0")) == "$0,00"

    def test_format_currency_rounds_half_up(self):
        assert format_currency(Decimal("10.005")) == "$10,01"

    def test_format_without_symbol(self):
        assert format_currency(Decimal("1000.5"), include_symbol=False) == "1.000,50"

    def test_format_currency_compact(self):
        assert format_currency_compact(Decimal("50000000")) == "$50.000.000"
        assert format_currency_compact(Decimal("1500.25")) == "$1.500,25"

    def test_format_percentage(self):
        assert format_percentage(Decimal("19.00")) == "19%"
        assert format_percentage(Decimal("5.5")) == "5.5%"
        assert format_percentage(Decimal("10")) == "10%"


class TestDocumentValidators:
    def test_nit_check_digit(self):
        assert calculate_nit_dv("900123456") == 8
        assert calculate_nit_dv("800197268") == 4

    def test_validate_nit(self):
        assert validate_colombia_nit("900123456-8")
        assert validate_colombia_nit("800.197.268-4")
        assert not validate_colombia_nit("900123456-1")
        assert not validate_colombia_nit("1234")

    def test_validate_cedula(self):
        assert validate_colombia_cedula("1020304050")
        assert validate_colombia_cedula("12.345.678")
        assert not validate_colombia_cedula("0123456")
        assert not validate_colombia_cedula("12345")
        assert not validate_colombia_cedula("12345678901")

    def test_validate_document_number(self):
        assert validate_document_number("1020304050")
        assert validate_document_number("900123456-8")
        assert not validate_document_number("ABC123")

    def test_document_with_check_digit_is_validated_as_nit(self):
        # Sin el guion, "9001234561" pasaría como cédula de 10 dígitos
        assert not validate_document_number("900123456-1")
        assert not validate_document_number("900.123.456-1")
        assert validate_document_number("800.197.268-4")

    def test_clean_document(self):
        assert clean_document("900.123.456-8") == "9001234568"

    @pytest.mark.parametrize("phone", ["3001234567", "300 123 4567", "+57 300 123 4567", "6012345678", "2345678"])
    def test_valid_phones(self, phone):
        assert validate_colombia_phone(phone)

    @pytest.mark.parametrize("phone", ["12345", "20012345678", "abc"])
    def test_invalid_phones(self, phone):
        assert not validate_colombia_phone(phone)


class TestOperationResult:
    def test_success_returns_data(self):
        result = OperationResult.success("Ok", "Todo bien", data={"id": 1})
        assert result.ok
        assert raise_for_result(result) == {"id": 1}

    def test_rejected_maps_to_400(self):
        result = OperationResult.rejected("Inválido", "Dato inválido", warnings=["ojo"])
        assert result.status == OperationStatus.REJECTED
        assert result.errors == ["Dato inválido"]

        with pytest.raises(HTTPException) as exc:
            raise_for_result(result)
        assert exc.value.status_code == 400
        assert exc.value.detail["warnings"] == ["ojo"]

    def test_not_found_maps_to_404(self):
        with pytest.raises(HTTPException) as exc:
            raise_for_result(OperationResult.not_found("Factura"))
        assert exc.value.status_code == 404
        assert exc.value.detail["message"] == "Factura no encontrado(a)"

    def test_internal_error_maps_to_500(self):
        with pytest.raises(HTTPException) as exc:
            raise_for_result(OperationResult.internal_error())
        assert exc.value.status_code == 500


class TestApplication:
    def test_health_has_security_headers(self):
        from fastapi.testclient import TestClient
        from app.main import app

        response = TestClient(app).get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"

    def test_lifespan_logs_startup_and_shutdown(self, caplog):
        import logging
        from fastapi.testclient import TestClient
        from app.main import app

        caplog.set_level(logging.INFO, logger="app.main")
        with TestClient(app) as lifespan_client:
            assert lifespan_client.get("/health").status_code == 200

        messages = [record.getMessage() for record in caplog.records if record.name == "app.main"]
        assert "Facturación API starting up..." in messages
        assert "Facturación API shutting down..." in messages
