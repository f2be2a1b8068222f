"""
Tests del módulo de Reportes

Las facturas anuladas no cuentan como venta en ningún reporte, salvo en el
conteo de facturas por estado.
"""
from datetime import date, datetime, timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.modules.customers.models import Customer
from app.modules.invoices.models import Invoice
from app.modules.invoices.schemas import InvoiceCreate, InvoiceLineItemCreate
from app.modules.invoices.service import InvoiceService
from app.modules.reports.service import MONTH_NAMES, SalesReportService
from app.modules.reports.utils import format_csv_value


client = TestClient(app)


def _invoice(db, customer, *lines):
    data = InvoiceCreate(customer_id=customer.id, line_items=[
        InvoiceLineItemCreate(article_id=article.id, quantity=quantity, unit_price=article.unit_price)
        for article, quantity in lines
    ])
    result = InvoiceService(db).create_invoice(data)
    assert result.ok, result.errors
    return result.data


@pytest.fixture
def other_customer(db_session):
    customer = Customer(document_number="8001972684", first_names="Construcciones", last_names="Andinas SAS")
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer


@pytest.fixture
def sales(db_session, customer, other_customer, article, second_article):
    """
    Dos facturas activas de hoy y una anulada:
    - Ana María: 4 taladros (total 476.000)
    - Construcciones Andinas: 2 martillos (total 119.000)
    - Ana María: 1 taladro + 1 martillo, anulada
    """
    first = _invoice(db_session, customer, (article, 4))
    second = _invoice(db_session, other_customer, (second_article, 2))
    voided = _invoice(db_session, customer, (article, 1), (second_article, 1))
    assert InvoiceService(db_session).void_invoice(voided.id, "Error de digitación").ok
    return first, second, voided


def _today_params():
    today = date.today().isoformat()
    return {"fecha_inicio": today, "fecha_fin": today}


class TestSalesReportService:
    def test_sales_report_excludes_voided(self, db_session, sales):
        today = date.today()
        report = SalesReportService(db_session).get_sales_report(today, today)

        assert report["total_invoices"] == 2
        assert report["total_sales"] == Decimal("595000.00")
        assert report["total_sales_formatted"] == "$595.000,00"
        assert report["total_tax"] == Decimal("95000.00")
        assert report["total_discounts"] == Decimal("0.00")

    def test_best_selling_articles(self, db_session, sales):
        today = date.today()
        articles = SalesReportService(db_session).get_best_selling_articles(today, today)

        assert [item["code"] for item in articles] == ["TAL-001", "MAR-002"]
        assert articles[0]["quantity_sold"] == 4
        assert articles[0]["amount_sold"] == Decimal("400000.00")
        assert articles[0]["times_sold"] == 1
        assert articles[1]["quantity_sold"] == 2

    def test_best_selling_articles_top(self, db_session, sales):
        today = date.today()
        assert len(SalesReportService(db_session).get_best_selling_articles(today, today, top=1)) == 1

    def test_frequent_customers(self, db_session, sales):
        today = date.today()
        customers = SalesReportService(db_session).get_frequent_customers(today, today)

        assert [item["full_name"] for item in customers] == ["Ana María Gómez Ruiz", "Construcciones Andinas SAS"]
        assert customers[0]["total_invoices"] == 1
        assert customers[0]["total_purchases"] == Decimal("476000.00")

    def test_sales_by_month(self, db_session, sales):
        today = date.today()
        by_month = SalesReportService(db_session).get_sales_by_month(today.year)

        assert list(by_month.keys()) == MONTH_NAMES
        assert by_month[MONTH_NAMES[today.month - 1]] == Decimal("595000.00")
        assert sum(by_month.values()) == Decimal("595000.00")

    def test_invoices_by_state(self, db_session, sales):
        assert SalesReportService(db_session).get_invoices_by_state() == {"Activa": 2, "Anulada": 1}

    def test_invoices_by_state_without_invoices(self, db_session):
        assert SalesReportService(db_session).get_invoices_by_state() == {"Activa": 0, "Anulada": 0}

    def test_sales_by_category(self, db_session, sales):
        today = date.today()
        by_category = SalesReportService(db_session).get_sales_by_category(today, today)

        assert by_category == {"Herramientas": Decimal("400000.00"), "Sin Categoría": Decimal("100000.00")}

    def test_daily_sales(self, db_session, sales):
        daily = SalesReportService(db_session).get_daily_sales(date.today())

        assert daily["total_invoices"] == 2
        assert daily["total_sales"] == Decimal("595000.00")

    def test_daily_average_counts_days_with_sales(self, db_session, sales):
        first, second, _ = sales
        stored = db_session.get(Invoice, second.id)
        stored.date = datetime.now() - timedelta(days=1)
        db_session.commit()

        today = date.today()
        service = SalesReportService(db_session)

        average = service.get_daily_average(today - timedelta(days=7), today)
        assert average["average"] == Decimal("297500.00")

        assert service.get_daily_average(today - timedelta(days=30), today - timedelta(days=10))["average"] == Decimal("0.00")

    def test_date_range_end_is_inclusive(self, db_session, sales):
        today = date.today()
        report = SalesReportService(db_session).get_sales_report(today - timedelta(days=3), today)
        assert report["total_invoices"] == 2

        report = SalesReportService(db_session).get_sales_report(today - timedelta(days=3), today - timedelta(days=1))
        assert report["total_invoices"] == 0

    def test_low_stock_articles(self, db_session, customer, article, second_article):
        _invoice(db_session, customer, (second_article, 2))
        second_article.minimum_stock = 30
        db_session.commit()

        low_stock = SalesReportService(db_session).get_low_stock_articles()

        assert [item["code"] for item in low_stock] == ["MAR-002"]
        assert low_stock[0]["stock"] == 18
        assert low_stock[0]["times_sold"] == 1
        assert low_stock[0]["category_name"] is None

    def test_dashboard(self, db_session, sales):
        dashboard = SalesReportService(db_session).get_dashboard()

        assert dashboard["today"]["total_sales"] == Decimal("595000.00")
        assert dashboard["month"]["total_invoices"] == 2
        assert dashboard["invoices_by_state"] == {"Activa": 2, "Anulada": 1}
        assert dashboard["low_stock_articles"] == 0


class TestReportEndpoints:
    def test_sales_report(self, admin_headers, sales):
        response = client.get("/reportes/ventas", headers=admin_headers, params=_today_params())

        assert response.status_code == 200
        body = response.json()
        assert body["total_invoices"] == 2
        assert Decimal(body["total_sales"]) == Decimal("595000")
        assert body["best_selling_articles"][0]["code"] == "TAL-001"
        assert body["frequent_customers"][0]["document_number"] == "1020304050"

    def test_supervisor_can_read_reports(self, supervisor_headers, sales):
        response = client.get("/reportes/facturas-por-estado", headers=supervisor_headers)

        assert response.status_code == 200
        assert response.json() == {"Activa": 2, "Anulada": 1}

    def test_seller_cannot_read_reports(self, seller_headers):
        response = client.get("/reportes/ventas", headers=seller_headers, params=_today_params())
        assert response.status_code == 403

    def test_reports_require_token(self):
        response = client.get("/reportes/dashboard")
        assert response.status_code in (401, 403)

    def test_invalid_range(self, admin_headers):
        today = date.today()
        response = client.get("/reportes/ventas-por-categoria", headers=admin_headers, params={
            "fecha_inicio": today.isoformat(),
            "fecha_fin": (today - timedelta(days=1)).isoformat()
        })

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "La fecha final no puede ser anterior a la fecha inicial"

    def test_missing_dates(self, admin_headers):
        response = client.get("/reportes/clientes-frecuentes", headers=admin_headers)
        assert response.status_code == 422

    def test_sales_by_month(self, admin_headers, sales):
        today = date.today()
        response = client.get(f"/reportes/ventas-por-mes/{today.year}", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert len(body) == 12
        assert Decimal(body[MONTH_NAMES[today.month - 1]]) == Decimal("595000")

    def test_sales_by_month_invalid_year(self, admin_headers):
        response = client.get("/reportes/ventas-por-mes/1999", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["detail"]["title"] == "Año inválido"

    def test_best_selling_articles_top_bounds(self, admin_headers):
        params = dict(_today_params(), top=0)
        response = client.get("/reportes/articulos-mas-vendidos", headers=admin_headers, params=params)
        assert response.status_code == 422

    def test_daily_sales_defaults_to_today(self, admin_headers, sales):
        response = client.get("/reportes/ventas-del-dia", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["date"] == date.today().isoformat()
        assert response.json()["total_invoices"] == 2

    def test_daily_average(self, admin_headers, sales):
        response = client.get("/reportes/promedio-ventas-diarias", headers=admin_headers, params=_today_params())

        assert response.status_code == 200
        assert Decimal(response.json()["average"]) == Decimal("595000")
        assert response.json()["average_formatted"] == "$595.000,00"

    def test_low_stock_csv_export(self, db_session, admin_headers, second_article):
        second_article.stock = 1
        db_session.commit()

        response = client.get("/reportes/articulos-stock-bajo", headers=admin_headers, params={"export": "csv"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines[0] == "Código,Nombre,Categoría,Precio Unitario,Stock,Stock Mínimo,Veces Vendido"
        assert lines[1] == "MAR-002,Martillo de uña,,50000.00,1,5,0"

    def test_low_stock_json(self, db_session, admin_headers, second_article):
        second_article.stock = 5
        db_session.commit()

        response = client.get("/reportes/articulos-stock-bajo", headers=admin_headers)

        assert response.status_code == 200
        assert [item["code"] for item in response.json()] == ["MAR-002"]

    def test_low_stock_rejects_unknown_format(self, admin_headers):
        response = client.get("/reportes/articulos-stock-bajo", headers=admin_headers, params={"export": "pdf"})
        assert response.status_code == 422

    def test_dashboard(self, admin_headers, sales):
        response = client.get("/reportes/dashboard", headers=admin_headers)

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["today"]["total_sales"]) == Decimal("595000")
        assert body["month"]["total_invoices"] == 2
        assert len(body["sales_by_month"]) == 12


def test_format_csv_value():
    assert format_csv_value(None) == ""
    assert format_csv_value(True) == "Sí"
    assert format_csv_value(Decimal("1500.50")) == "1500.50"
    assert format_csv_value(date(2024, 3, 5)) == "2024-03-05"
