"""
Tests del módulo de Facturas

- Cálculo de totales (descuento por monto mínimo, IVA, redondeo comercial)
- Creación con validaciones y descuento de stock
- Agregar, modificar y quitar detalles
- Anulación con restauración de stock
- Conservación del stock a lo largo del ciclo de vida
- Endpoints de consulta, previsualización y validación
"""
from datetime import date, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.common.results import OperationStatus
from app.main import app
from app.modules.articles.models import Article
from app.modules.invoices.calculator import BillingRules, InvoiceCalculator
from app.modules.invoices.models import Invoice, InvoiceLineItem, InvoiceState, build_invoice_number
from app.modules.invoices.schemas import InvoiceCreate, InvoiceLineItemCreate, InvoiceLineItemUpdate, InvoiceValidation
from app.modules.invoices.dependencies import get_billing_rules
from app.modules.invoices.service import InvoiceService, _line_subtotal
from app.modules.invoices.stock import StockLedger, InsufficientStockError, StockError


client = TestClient(app)


def _item(article_id, quantity, unit_price="100000"):
    return {"article_id": article_id, "quantity": quantity, "unit_price": unit_price}


def _create_invoice(headers, customer, *items):
    return client.post("/facturas/", headers=headers, json={
        "customer_id": customer.id,
        "line_items": list(items),
        "notes": "Venta de mostrador"
    })


def _stock(db_session, article_id):
    db_session.expire_all()
    return db_session.get(Article, article_id).stock


# ===== CALCULADORA =====

class TestInvoiceCalculator:
    calculator = InvoiceCalculator(BillingRules())

    def test_subtotal(self):
        items = [
            InvoiceLineItemCreate(article_id=1, quantity=3, unit_price=Decimal("1000.50")),
            InvoiceLineItemCreate(article_id=2, quantity=2, unit_price=Decimal("250")),
        ]
        assert self.calculator.calculate_subtotal(items) == Decimal("3501.50")

    def test_no_discount_below_threshold(self):
        totals = self.calculator.calculate_totals(Decimal("400000"))

        assert totals.discount_value == Decimal("0.00")
        assert totals.discount_percentage == Decimal("0.00")
        assert totals.taxable_base == Decimal("400000.00")
        assert totals.tax_value == Decimal("76000.00")
        assert totals.total == Decimal("476000.00")

    def test_discount_above_threshold(self):
        totals = self.calculator.calculate_totals(Decimal("600000"))

        assert totals.discount_percentage == Decimal("5")
        assert totals.discount_value == Decimal("30000.00")
        assert totals.taxable_base == Decimal("570000.00")
        assert totals.tax_value == Decimal("108300.00")
        assert totals.total == Decimal("678300.00")

    def test_threshold_is_inclusive(self):
        assert self.calculator.calculate_discount(Decimal("500000.00")) == Decimal("25000.00")
        assert self.calculator.calculate_discount(Decimal("499999.99")) == Decimal("0.00")

    def test_rounding_is_half_up(self):
        # 500000.10 * 5% = 25000.005
        assert self.calculator.calculate_discount(Decimal("500000.10")) == Decimal("25000.01")
        # 0.50 * 19% = 0.095
        assert self.calculator.calculate_tax(Decimal("0.50")) == Decimal("0.10")

    @pytest.mark.parametrize("subtotal", ["0", "0.01", "123456.78", "499999.99", "500000", "987654.32", "99999999.99"])
    def test_totals_invariant(self, subtotal):
        totals = self.calculator.calculate_totals(Decimal(subtotal))

        assert totals.taxable_base == totals.subtotal - totals.discount_value
        assert totals.total == totals.subtotal - totals.discount_value + totals.tax_value
        assert totals.discount_value >= 0
        assert totals.tax_value >= 0

    def test_explicit_rates_override_rules(self):
        totals = self.calculator.calculate_totals(
            Decimal("1000"), discount_percentage=Decimal("10"),
            discount_min_amount=Decimal("0"), tax_percentage=Decimal("0")
        )
        assert totals.discount_value == Decimal("100.00")
        assert totals.tax_value == Decimal("0.00")
        assert totals.total == Decimal("900.00")

    def test_rules_from_settings(self):
        class FakeSettings:
            BILLING_TAX_PERCENTAGE = Decimal("16")
            BILLING_DISCOUNT_PERCENTAGE = Decimal("10")
            BILLING_DISCOUNT_MIN_AMOUNT = Decimal("1000")
            BILLING_PRICE_DEVIATION_WARNING = Decimal("15")
            BILLING_MAX_LINE_ITEMS = 5
            BILLING_MAX_QUANTITY_PER_ITEM = 10
            BILLING_MAX_UNIT_PRICE = Decimal("5000")
            BILLING_MAX_INVOICE_TOTAL = Decimal("20000")

        rules = BillingRules.from_settings(FakeSettings)
        totals = InvoiceCalculator(rules).calculate_totals(Decimal("1000"))

        assert rules.max_line_items == 5
        assert totals.discount_value == Decimal("100.00")
        assert totals.tax_value == Decimal("144.00")
        assert totals.total == Decimal("1044.00")

    def test_format_totals(self):
        formatted = InvoiceCalculator.format_totals(self.calculator.calculate_totals(Decimal("400000")))

        assert formatted.subtotal == "$400.000,00"
        assert formatted.discount_percentage == "0%"
        assert formatted.tax_percentage == "19%"
        assert formatted.total == "$476.000,00"


def test_build_invoice_number():
    assert build_invoice_number(1) == "FAC-000001"
    assert build_invoice_number(123456) == "FAC-123456"


# ===== LIBRO DE STOCK =====

class TestStockLedger:
    def test_issue_and_restore(self, db_session, article):
        ledger = StockLedger(db_session)
        locked = ledger.lock_active_article(article.id)

        ledger.issue(locked, 4)
        assert locked.stock == 6

        ledger.restore(locked, 4)
        assert locked.stock == 10

    def test_issue_more_than_available(self, db_session, article):
        ledger = StockLedger(db_session)
        locked = ledger.lock_active_article(article.id)

        with pytest.raises(InsufficientStockError) as exc:
            ledger.issue(locked, 11)
        assert "Stock disponible: 10" in str(exc.value)
        assert locked.stock == 10

    def test_adjust_moves_only_the_difference(self, db_session, article):
        ledger = StockLedger(db_session)
        locked = ledger.lock_active_article(article.id)

        ledger.adjust(locked, 2, 5)
        assert locked.stock == 7
        ledger.adjust(locked, 5, 1)
        assert locked.stock == 11

        with pytest.raises(InsufficientStockError):
            ledger.adjust(locked, 1, 13)

    def test_set_stock_rejects_negative(self, db_session, article):
        ledger = StockLedger(db_session)
        locked = ledger.lock_article(article.id)

        with pytest.raises(StockError):
            ledger.set_stock(locked, -3)
        assert ledger.set_stock(locked, 3) == 10
        assert locked.stock == 3

    def test_inactive_article_is_unavailable(self, db_session, article):
        article.is_active = False
        db_session.commit()

        with pytest.raises(StockError) as exc:
            StockLedger(db_session).lock_active_article(article.id)
        assert str(exc.value) == f"El artículo con ID {article.id} no existe o está inactivo"


# ===== CREACIÓN =====

class TestCreateInvoice:
    def test_scenario_without_discount(self, db_session, seller_headers, seller_user, customer, article):
        response = _create_invoice(seller_headers, customer, _item(article.id, 4))

        assert response.status_code == 201
        body = response.json()
        assert body["number"] == "FAC-000001"
        assert body["state"] == "Activa"
        assert Decimal(body["subtotal"]) == Decimal("400000")
        assert Decimal(body["discount_value"]) == Decimal("0")
        assert Decimal(body["discount_percentage"]) == Decimal("0")
        assert Decimal(body["tax_value"]) == Decimal("76000")
        assert Decimal(body["total"]) == Decimal("476000")
        assert len(body["line_items"]) == 1
        assert Decimal(body["line_items"][0]["subtotal"]) == Decimal("400000")

        assert _stock(db_session, article.id) == 6
        invoice = db_session.get(Invoice, body["id"])
        assert invoice.created_by_id == seller_user.id

    def test_scenario_with_discount(self, db_session, seller_headers, customer, article):
        response = _create_invoice(seller_headers, customer, _item(article.id, 6))

        assert response.status_code == 201
        body = response.json()
        assert Decimal(body["subtotal"]) == Decimal("600000")
        assert Decimal(body["discount_percentage"]) == Decimal("5")
        assert Decimal(body["discount_value"]) == Decimal("30000")
        assert Decimal(body["taxable_base"]) == Decimal("570000")
        assert Decimal(body["tax_value"]) == Decimal("108300")
        assert Decimal(body["total"]) == Decimal("678300")
        assert _stock(db_session, article.id) == 4

    def test_scenario_insufficient_stock(self, db_session, seller_headers, customer, article):
        response = _create_invoice(seller_headers, customer, _item(article.id, 11))

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["title"] == "Creación fallida"
        assert "No hay suficiente stock del artículo 'Taladro percutor'. Stock disponible: 10" in detail["errors"]

        assert _stock(db_session, article.id) == 10
        assert db_session.query(Invoice).count() == 0

    def test_snapshots_customer_and_article(self, db_session, seller_headers, customer, article):
        response = _create_invoice(seller_headers, customer, _item(article.id, 1))
        invoice_id = response.json()["id"]

        customer.first_names = "Nombre Cambiado"
        article.name = "Nombre de artículo cambiado"
        db_session.commit()

        body = client.get(f"/facturas/{invoice_id}", headers=seller_headers).json()
        assert body["customer_first_names"] == "Ana María"
        assert body["customer_document"] == "1020304050"
        assert body["line_items"][0]["article_name"] == "Taladro percutor"
        assert body["line_items"][0]["article_code"] == "TAL-001"

    def test_requires_at_least_one_item(self, seller_headers, customer):
        response = _create_invoice(seller_headers, customer)

        assert response.status_code == 400
        assert response.json()["detail"]["errors"] == ["Debe incluir al menos un artículo en la factura"]

    def test_unknown_customer_and_article(self, seller_headers, customer, article):
        response = client.post("/facturas/", headers=seller_headers, json={
            "customer_id": 999,
            "line_items": [_item(article.id, 1), _item(555, 1)]
        })

        assert response.status_code == 400
        errors = response.json()["detail"]["errors"]
        assert "El cliente especificado no existe o está inactivo" in errors
        assert "El artículo con ID 555 no existe o está inactivo" in errors

    def test_inactive_customer(self, db_session, seller_headers, customer, article):
        customer.is_active = False
        db_session.commit()

        response = _create_invoice(seller_headers, customer, _item(article.id, 1))
        assert response.status_code == 400

    def test_invalid_quantity_and_price(self, seller_headers, customer, article, second_article):
        response = _create_invoice(
            seller_headers, customer,
            _item(article.id, 0),
            _item(second_article.id, 1, unit_price="0")
        )

        assert response.status_code == 400
        errors = response.json()["detail"]["errors"]
        assert "La cantidad del artículo 'Taladro percutor' debe ser mayor a 0" in errors
        assert "El precio del artículo 'Martillo de uña' debe ser mayor a 0" in errors

    def test_duplicate_articles(self, seller_headers, customer, article):
        response = _create_invoice(seller_headers, customer, _item(article.id, 1), _item(article.id, 2))

        assert response.status_code == 400
        assert "No se pueden incluir artículos duplicados en la misma factura" in response.json()["detail"]["errors"]

    def test_price_drift_is_a_warning(self, db_session, customer, article):
        service = InvoiceService(db_session, BillingRules())
        data = InvoiceCreate(
            customer_id=customer.id,
            line_items=[InvoiceLineItemCreate(article_id=article.id, quantity=1, unit_price=Decimal("130000"))]
        )

        result = service.create_invoice(data)

        assert result.ok
        assert result.warnings == [
            "El precio del artículo 'Taladro percutor' difiere en 30.0% del precio actual ($100.000,00)"
        ]

    def test_limits_come_from_rules(self, db_session, customer, article, second_article):
        rules = BillingRules(max_line_items=1, max_invoice_total=Decimal("100000"))
        service = InvoiceService(db_session, rules)
        data = InvoiceCreate(customer_id=customer.id, line_items=[
            InvoiceLineItemCreate(article_id=article.id, quantity=1, unit_price=Decimal("100000")),
            InvoiceLineItemCreate(article_id=second_article.id, quantity=1, unit_price=Decimal("50000")),
        ])

        result = service.create_invoice(data)

        assert result.status == OperationStatus.REJECTED
        assert "Una factura no puede tener más de 1 artículos diferentes" in result.errors
        assert "El total de la factura no puede exceder $100.000" in result.errors

    def test_max_quantity_and_unit_price(self, db_session, customer, article):
        rules = BillingRules(max_quantity_per_item=5, max_unit_price=Decimal("90000"))
        data = InvoiceCreate(customer_id=customer.id, line_items=[
            InvoiceLineItemCreate(article_id=article.id, quantity=6, unit_price=Decimal("95000")),
        ])

        result = InvoiceService(db_session, rules).create_invoice(data)

        assert "La cantidad máxima por artículo es 5 unidades" in result.errors
        assert "El precio unitario máximo por artículo es $90.000" in result.errors

    def test_stock_race_is_rejected_without_changes(self, db_session, customer, article, monkeypatch):
        service = InvoiceService(db_session)
        monkeypatch.setattr(
            service.validator, "validate_invoice",
            lambda customer_id, line_items: InvoiceValidation(is_valid=True)
        )
        data = InvoiceCreate(customer_id=customer.id, line_items=[
            InvoiceLineItemCreate(article_id=article.id, quantity=11, unit_price=Decimal("100000")),
        ])

        result = service.create_invoice(data)

        assert result.status == OperationStatus.REJECTED
        assert result.message == "No hay suficiente stock del artículo 'Taladro percutor'. Stock disponible: 10"
        assert db_session.query(Invoice).count() == 0
        assert _stock(db_session, article.id) == 10

    def test_storage_failure_rolls_back(self, db_session, customer, article, second_article, monkeypatch):
        service = InvoiceService(db_session)
        original_issue = service.ledger.issue
        calls = []

        def failing_issue(locked_article, quantity, user_id=None):
            calls.append(locked_article.id)
            if len(calls) == 2:
                raise RuntimeError("disco lleno")
            original_issue(locked_article, quantity, user_id)

        monkeypatch.setattr(service.ledger, "issue", failing_issue)
        data = InvoiceCreate(customer_id=customer.id, line_items=[
            InvoiceLineItemCreate(article_id=article.id, quantity=3, unit_price=Decimal("100000")),
            InvoiceLineItemCreate(article_id=second_article.id, quantity=2, unit_price=Decimal("50000")),
        ])

        result = service.create_invoice(data)

        assert result.status == OperationStatus.ERROR
        assert db_session.query(Invoice).count() == 0
        assert db_session.query(InvoiceLineItem).count() == 0
        assert _stock(db_session, article.id) == 10
        assert _stock(db_session, second_article.id) == 20

    def test_create_requires_writer_role(self, supervisor_headers, customer, article):
        response = _create_invoice(supervisor_headers, customer, _item(article.id, 1))
        assert response.status_code == 403


# ===== DETALLES =====

@pytest.fixture
def invoice_id(seller_headers, customer, article):
    """Factura con 2 unidades del taladro (stock queda en 8)"""
    response = _create_invoice(seller_headers, customer, _item(article.id, 2))
    assert response.status_code == 201
    return response.json()["id"]


def _line_item_id(invoice_id, headers):
    return client.get(f"/facturas/{invoice_id}/detalles", headers=headers).json()[0]["id"]


class TestLineItems:
    def test_add_line_item(self, db_session, seller_headers, invoice_id, second_article):
        response = client.post(
            f"/facturas/{invoice_id}/detalles", headers=seller_headers,
            json=_item(second_article.id, 4, unit_price="50000")
        )

        assert response.status_code == 201
        assert response.json()["article_code"] == "MAR-002"
        assert _stock(db_session, second_article.id) == 16

        invoice = client.get(f"/facturas/{invoice_id}", headers=seller_headers).json()
        assert len(invoice["line_items"]) == 2
        assert Decimal(invoice["subtotal"]) == Decimal("400000")
        assert Decimal(invoice["total"]) == Decimal("476000")

    def test_add_duplicate_article(self, seller_headers, invoice_id, article):
        response = client.post(f"/facturas/{invoice_id}/detalles", headers=seller_headers, json=_item(article.id, 1))

        assert response.status_code == 400
        assert "No se pueden incluir artículos duplicados en la misma factura" in response.json()["detail"]["errors"]

    def test_add_more_than_stock(self, db_session, seller_headers, invoice_id, second_article):
        response = client.post(
            f"/facturas/{invoice_id}/detalles", headers=seller_headers,
            json=_item(second_article.id, 21, unit_price="50000")
        )

        assert response.status_code == 400
        assert _stock(db_session, second_article.id) == 20

    def test_add_to_unknown_invoice(self, seller_headers, second_article):
        response = client.post("/facturas/999/detalles", headers=seller_headers, json=_item(second_article.id, 1))
        assert response.status_code == 404

    def test_update_line_item_increases_quantity(self, db_session, seller_headers, invoice_id, article):
        line_item_id = _line_item_id(invoice_id, seller_headers)

        response = client.put(
            f"/facturas/detalles/{line_item_id}", headers=seller_headers,
            json={"quantity": 5, "unit_price": "100000"}
        )

        assert response.status_code == 200
        assert response.json()["quantity"] == 5
        assert _stock(db_session, article.id) == 5

        invoice = client.get(f"/facturas/{invoice_id}", headers=seller_headers).json()
        assert Decimal(invoice["subtotal"]) == Decimal("500000")
        assert Decimal(invoice["discount_value"]) == Decimal("25000")
        assert Decimal(invoice["tax_value"]) == Decimal("90250")
        assert Decimal(invoice["total"]) == Decimal("565250")

    def test_update_line_item_decreases_quantity(self, db_session, seller_headers, invoice_id, article):
        line_item_id = _line_item_id(invoice_id, seller_headers)

        response = client.put(
            f"/facturas/detalles/{line_item_id}", headers=seller_headers,
            json={"quantity": 1, "unit_price": "90000"}
        )

        assert response.status_code == 200
        assert Decimal(response.json()["subtotal"]) == Decimal("90000")
        assert _stock(db_session, article.id) == 9

    def test_update_line_item_beyond_stock(self, db_session, seller_headers, invoice_id, article):
        line_item_id = _line_item_id(invoice_id, seller_headers)

        response = client.put(
            f"/facturas/detalles/{line_item_id}", headers=seller_headers,
            json={"quantity": 11, "unit_price": "100000"}
        )

        assert response.status_code == 400
        assert (
            "No hay suficiente stock del artículo 'Taladro percutor'. Stock disponible: 8"
            in response.json()["detail"]["errors"]
        )
        assert _stock(db_session, article.id) == 8

    def test_update_unknown_line_item(self, seller_headers):
        response = client.put("/facturas/detalles/999", headers=seller_headers, json={"quantity": 1, "unit_price": "1"})
        assert response.status_code == 404

    def test_remove_line_item(self, db_session, seller_headers, invoice_id, article, second_article):
        client.post(
            f"/facturas/{invoice_id}/detalles", headers=seller_headers,
            json=_item(second_article.id, 4, unit_price="50000")
        )
        details = client.get(f"/facturas/{invoice_id}/detalles", headers=seller_headers).json()
        hammer_line = next(item for item in details if item["article_id"] == second_article.id)

        response = client.delete(f"/facturas/detalles/{hammer_line['id']}", headers=seller_headers)

        assert response.status_code == 200
        assert _stock(db_session, second_article.id) == 20

        invoice = client.get(f"/facturas/{invoice_id}", headers=seller_headers).json()
        assert [item["article_id"] for item in invoice["line_items"]] == [article.id]
        assert Decimal(invoice["subtotal"]) == Decimal("200000")
        assert Decimal(invoice["total"]) == Decimal("238000")

        removed = db_session.get(InvoiceLineItem, hammer_line["id"])
        assert removed.is_active is False

    def test_remove_last_line_item(self, db_session, seller_headers, supervisor_headers, invoice_id, article, second_article):
        line_item_id = _line_item_id(invoice_id, seller_headers)

        response = client.delete(f"/facturas/detalles/{line_item_id}", headers=seller_headers)

        assert response.status_code == 200
        assert _stock(db_session, article.id) == 10

        invoice = client.get(f"/facturas/{invoice_id}", headers=seller_headers).json()
        assert invoice["state"] == "Activa"
        assert invoice["line_items"] == []
        assert Decimal(invoice["subtotal"]) == Decimal("0")
        assert Decimal(invoice["tax_value"]) == Decimal("0")
        assert Decimal(invoice["total"]) == Decimal("0")

        added = client.post(
            f"/facturas/{invoice_id}/detalles", headers=seller_headers,
            json=_item(second_article.id, 1, unit_price="50000")
        )
        assert added.status_code == 201
        assert _stock(db_session, second_article.id) == 19

        client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"motivo": "Prueba"})
        assert _stock(db_session, article.id) == 10
        assert _stock(db_session, second_article.id) == 20

    def test_recalculate_totals(self, db_session, invoice_id):
        invoice = db_session.get(Invoice, invoice_id)
        invoice.total = Decimal("1.00")
        db_session.commit()

        result = InvoiceService(db_session).recalculate_totals(invoice_id)

        assert result.ok
        assert result.data.total == Decimal("238000.00")


# ===== ANULACIÓN =====

class TestVoidInvoice:
    def test_void_restores_stock(self, db_session, supervisor_headers, invoice_id, article):
        response = client.put(
            f"/facturas/{invoice_id}/anular", headers=supervisor_headers,
            json={"motivo": "Cliente desistió de la compra"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["state"] == "Anulada"
        assert "[ANULADA]" in body["notes"]
        assert body["notes"].startswith("Venta de mostrador\n")
        assert body["notes"].endswith("- Cliente desistió de la compra")
        assert _stock(db_session, article.id) == 10

    def test_void_requires_reason(self, db_session, supervisor_headers, invoice_id, article):
        response = client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"motivo": "   "})

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Debe indicar el motivo de la anulación"
        assert _stock(db_session, article.id) == 8

    def test_void_twice_is_rejected_and_stock_restored_once(self, db_session, supervisor_headers, invoice_id, article):
        client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"reason": "Error de digitación"})

        response = client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"reason": "Otra vez"})

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "La factura ya se encuentra anulada"
        assert _stock(db_session, article.id) == 10

    def test_void_unknown_invoice(self, supervisor_headers):
        response = client.put("/facturas/999/anular", headers=supervisor_headers, json={"motivo": "No existe"})
        assert response.status_code == 404

    def test_void_requires_voider_role(self, seller_headers, invoice_id):
        response = client.put(f"/facturas/{invoice_id}/anular", headers=seller_headers, json={"motivo": "Sin permiso"})
        assert response.status_code == 403

    def test_voided_invoice_is_immutable(self, db_session, seller_headers, supervisor_headers, invoice_id, article, second_article):
        line_item_id = _line_item_id(invoice_id, seller_headers)
        client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"motivo": "Devolución"})
        before = db_session.get(Invoice, invoice_id).total

        add = client.post(
            f"/facturas/{invoice_id}/detalles", headers=seller_headers,
            json=_item(second_article.id, 1, unit_price="50000")
        )
        update = client.put(
            f"/facturas/detalles/{line_item_id}", headers=seller_headers,
            json={"quantity": 3, "unit_price": "100000"}
        )
        remove = client.delete(f"/facturas/detalles/{line_item_id}", headers=seller_headers)

        assert add.status_code == 400
        assert add.json()["detail"]["message"] == "No se pueden agregar detalles a una factura anulada"
        assert update.status_code == 400
        assert update.json()["detail"]["message"] == "No se pueden modificar detalles de una factura anulada"
        assert remove.status_code == 400
        assert remove.json()["detail"]["message"] == "No se pueden eliminar detalles de una factura anulada"

        assert InvoiceService(db_session).recalculate_totals(invoice_id).status == OperationStatus.REJECTED

        db_session.expire_all()
        invoice = db_session.get(Invoice, invoice_id)
        assert invoice.total == before
        assert invoice.state == InvoiceState.VOIDED.value
        assert _stock(db_session, article.id) == 10
        assert _stock(db_session, second_article.id) == 20


def test_stock_is_conserved_through_the_lifecycle(
    db_session, seller_headers, supervisor_headers, customer, article, second_article
):
    created = _create_invoice(
        seller_headers, customer,
        _item(article.id, 4),
        _item(second_article.id, 5, unit_price="50000")
    ).json()
    details = {item["article_id"]: item["id"] for item in created["line_items"]}

    client.put(f"/facturas/detalles/{details[article.id]}", headers=seller_headers,
               json={"quantity": 7, "unit_price": "100000"})
    assert _stock(db_session, article.id) == 3

    client.delete(f"/facturas/detalles/{details[second_article.id]}", headers=seller_headers)
    assert _stock(db_session, second_article.id) == 20

    client.post(f"/facturas/{created['id']}/detalles", headers=seller_headers,
                json=_item(second_article.id, 2, unit_price="50000"))
    assert _stock(db_session, second_article.id) == 18

    client.put(f"/facturas/{created['id']}/anular", headers=supervisor_headers, json={"motivo": "Prueba"})

    assert _stock(db_session, article.id) == 10
    assert _stock(db_session, second_article.id) == 20


# ===== CONSULTAS =====

class TestInvoiceQueries:
    def test_get_by_number(self, seller_headers, invoice_id):
        response = client.get("/facturas/numero/fac-000001", headers=seller_headers)

        assert response.status_code == 200
        assert response.json()["id"] == invoice_id

        assert client.get("/facturas/numero/FAC-999999", headers=seller_headers).status_code == 404

    def test_get_unknown_invoice(self, seller_headers):
        assert client.get("/facturas/999", headers=seller_headers).status_code == 404
        assert client.get("/facturas/999/detalles", headers=seller_headers).status_code == 404

    def test_list_with_filters(self, db_session, seller_headers, supervisor_headers, customer, article, second_article):
        first = _create_invoice(seller_headers, customer, _item(article.id, 1)).json()
        _create_invoice(seller_headers, customer, _item(second_article.id, 1, unit_price="50000"))
        client.put(f"/facturas/{first['id']}/anular", headers=supervisor_headers, json={"motivo": "Prueba"})

        response = client.get("/facturas/", headers=seller_headers)
        body = response.json()
        assert body["total"] == 2
        assert body["data"][0]["customer_full_name"] == "Ana María Gómez Ruiz"

        voided = client.get("/facturas/", headers=seller_headers, params={"estado": "Anulada"}).json()
        assert [item["id"] for item in voided["data"]] == [first["id"]]

        by_name = client.get("/facturas/", headers=seller_headers, params={"busqueda": "Gómez"}).json()
        assert by_name["total"] == 2

        by_customer = client.get("/facturas/", headers=seller_headers, params={"cliente_id": 999}).json()
        assert by_customer["total"] == 0

    def test_list_date_range_is_inclusive(self, seller_headers, invoice_id):
        today = date.today()

        response = client.get("/facturas/", headers=seller_headers, params={
            "fecha_inicio": today.isoformat(), "fecha_fin": today.isoformat()
        })
        assert response.json()["total"] == 1

        tomorrow = today + timedelta(days=1)
        response = client.get("/facturas/", headers=seller_headers, params={"fecha_inicio": tomorrow.isoformat()})
        assert response.json()["total"] == 0

    def test_list_pagination(self, seller_headers, customer, article):
        for _ in range(3):
            _create_invoice(seller_headers, customer, _item(article.id, 1))

        body = client.get("/facturas/", headers=seller_headers, params={"pagina": 2, "elementos_por_pagina": 2}).json()

        assert body["total"] == 3
        assert len(body["data"]) == 1
        assert body["hasPrev"] is True
        assert body["hasNext"] is False


# ===== SIN PERSISTENCIA =====

class TestPreviewAndValidate:
    def test_preview_totals(self, db_session, seller_headers, article):
        response = client.post("/facturas/calcular-totales", headers=seller_headers, json={
            "line_items": [_item(article.id, 6)]
        })

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["totals"]["total"]) == Decimal("678300")
        assert body["formatted_totals"]["total"] == "$678.300,00"
        assert body["formatted_totals"]["discount_percentage"] == "5%"
        assert _stock(db_session, article.id) == 10

    def test_validate_invalid_invoice(self, db_session, seller_headers, customer, article):
        response = client.post("/facturas/validar", headers=seller_headers, json={
            "customer_id": customer.id,
            "line_items": [_item(article.id, 11)]
        })

        assert response.status_code == 200
        body = response.json()
        assert body["is_valid"] is False
        assert body["totals"] is None
        assert db_session.query(Invoice).count() == 0

    def test_validate_valid_invoice(self, seller_headers, customer, article):
        response = client.post("/facturas/validar", headers=seller_headers, json={
            "customer_id": customer.id,
            "line_items": [_item(article.id, 4)]
        })

        body = response.json()
        assert body["is_valid"] is True
        assert body["errors"] == []
        assert Decimal(body["totals"]["total"]) == Decimal("476000")


def test_service_update_line_item_direct(db_session, invoice_id, article):
    line_item = db_session.query(InvoiceLineItem).filter(InvoiceLineItem.invoice_id == invoice_id).first()

    result = InvoiceService(db_session).update_line_item(
        line_item.id, InvoiceLineItemUpdate(quantity=3, unit_price=Decimal("100000"))
    )

    assert result.ok
    assert _stock(db_session, article.id) == 7


def test_line_subtotal_rounds_half_up():
    assert _line_subtotal(1, Decimal("100000.005")) == Decimal("100000.01")
    assert _line_subtotal(3, Decimal("33333.33")) == Decimal("99999.99")


class TestSavedTotalsMatchPreview:
    def _items(self, article, second_article):
        return [
            _item(article.id, 3, unit_price="33333.33"),
            _item(second_article.id, 7, unit_price="12345.67"),
        ]

    def test_saved_totals_equal_preview(self, seller_headers, customer, article, second_article):
        items = self._items(article, second_article)
        preview = client.post("/facturas/calcular-totales", headers=seller_headers, json={"line_items": items}).json()

        created = _create_invoice(seller_headers, customer, *items)

        assert created.status_code == 201
        body = created.json()
        for field in ("subtotal", "discount_value", "taxable_base", "tax_value", "total"):
            assert Decimal(body[field]) == Decimal(preview["totals"][field])
        assert sum(Decimal(line["subtotal"]) for line in body["line_items"]) == Decimal(body["subtotal"])

    def test_unit_price_with_more_than_two_decimals_is_rejected(self, db_session, seller_headers, customer, article, invoice_id):
        created = _create_invoice(seller_headers, customer, _item(article.id, 1, unit_price="100000.005"))
        preview = client.post("/facturas/calcular-totales", headers=seller_headers, json={
            "line_items": [_item(article.id, 1, unit_price="100000.005")]
        })
        update = client.put(
            f"/facturas/detalles/{_line_item_id(invoice_id, seller_headers)}", headers=seller_headers,
            json={"quantity": 1, "unit_price": "100000.005"}
        )

        assert created.status_code == 422
        assert preview.status_code == 422
        assert update.status_code == 422
        assert _stock(db_session, article.id) == 8


def test_billing_rules_override_reaches_every_route(seller_headers, supervisor_headers, invoice_id):
    calls = []

    def counting_rules():
        calls.append(1)
        return BillingRules()

    app.dependency_overrides[get_billing_rules] = counting_rules
    try:
        assert client.get("/facturas/", headers=seller_headers).status_code == 200
        assert client.get(f"/facturas/{invoice_id}", headers=seller_headers).status_code == 200
        assert client.get(f"/facturas/{invoice_id}/detalles", headers=seller_headers).status_code == 200
        assert client.get("/facturas/numero/FAC-000001", headers=seller_headers).status_code == 200
        voided = client.put(f"/facturas/{invoice_id}/anular", headers=supervisor_headers, json={"motivo": "Prueba"})
        assert voided.status_code == 200
    finally:
        app.dependency_overrides.pop(get_billing_rules, None)

    assert len(calls) == 5
