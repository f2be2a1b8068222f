"""
Sales Reports Service

Consultas agregadas sobre facturas Activa (no eliminadas) y sus detalles
activos. Los rangos de fechas son inclusivos: la fecha final cubre el día
completo.
"""
import logging
from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from app.common.currency import CENTS, format_currency
from app.modules.articles.models import Article
from app.modules.categories.models import Category
from app.modules.invoices.models import Invoice, InvoiceLineItem, InvoiceState

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Sin Categoría"

MONTH_NAMES = [
    "enero", "febrero", "marzo", "abril", "mayo", "junio",
    "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
]


def _money(value) -> Decimal:
    if value is None:
        return Decimal('0.00')
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def _day_bounds(start_date: date, end_date: date):
    """[inicio del primer día, inicio del día siguiente al último)"""
    start = datetime.combine(start_date, datetime.min.time())
    end = datetime.combine(end_date, datetime.min.time()) + timedelta(days=1)
    return start, end


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str):
        return datetime.fromisoformat(value).date()
    return value


class SalesReportService:
    """Reportes de ventas, clientes y artículos"""

    def __init__(self, db: Session):
        self.db = db

    def _get_base_invoice_query(self):
        return self.db.query(Invoice).filter(
            Invoice.is_active == True,
            Invoice.state == InvoiceState.ACTIVE.value
        )

    def _apply_date_filter(self, query, start_date: date, end_date: date):
        start, end = _day_bounds(start_date, end_date)
        return query.filter(Invoice.date >= start, Invoice.date < end)

    def _get_base_line_item_query(self, *columns):
        return self.db.query(*columns).join(
            Invoice, InvoiceLineItem.invoice_id == Invoice.id
        ).filter(
            InvoiceLineItem.is_active == True,
            Invoice.is_active == True,
            Invoice.state == InvoiceState.ACTIVE.value
        )

    def get_sales_report(self, start_date: date, end_date: date, top: int = 10) -> Dict:
        """
        Totales del período (ventas, IVA, descuentos) más artículos más
        vendidos y clientes frecuentes.
        """
        query = self._apply_date_filter(self._get_base_invoice_query(), start_date, end_date)

        result = query.with_entities(
            func.count(Invoice.id).label('total_invoices'),
            func.sum(Invoice.total).label('total_sales'),
            func.sum(Invoice.tax_value).label('total_tax'),
            func.sum(Invoice.discount_value).label('total_discounts')
        ).first()

        total_sales = _money(result.total_sales)
        total_tax = _money(result.total_tax)
        total_discounts = _money(result.total_discounts)

        logger.info(
            f"Reporte de ventas {start_date} - {end_date}: {result.total_invoices or 0} facturas, "
            f"{format_currency(total_sales)}"
        )

        return {
            "start_date": start_date,
            "end_date": end_date,
            "total_invoices": result.total_invoices or 0,
            "total_sales": total_sales,
            "total_sales_formatted": format_currency(total_sales),
            "total_tax": total_tax,
            "total_tax_formatted": format_currency(total_tax),
            "total_discounts": total_discounts,
            "total_discounts_formatted": format_currency(total_discounts),
            "best_selling_articles": self.get_best_selling_articles(start_date, end_date, top),
            "frequent_customers": self.get_frequent_customers(start_date, end_date, top),
        }

    def get_best_selling_articles(self, start_date: date, end_date: date, top: int = 10) -> List[Dict]:
        """Artículos ordenados por monto vendido, de mayor a menor"""
        amount = func.sum(InvoiceLineItem.subtotal).label('amount_sold')
        query = self._get_base_line_item_query(
            InvoiceLineItem.article_id,
            InvoiceLineItem.article_code,
            InvoiceLineItem.article_name,
            func.sum(InvoiceLineItem.quantity).label('quantity_sold'),
            amount,
            func.count(InvoiceLineItem.id).label('times_sold')
        )
        query = self._apply_date_filter(query, start_date, end_date)

        rows = query.group_by(
            InvoiceLineItem.article_id,
            InvoiceLineItem.article_code,
            InvoiceLineItem.article_name
        ).order_by(desc(amount)).limit(top).all()

        return [
            {
                "article_id": row.article_id,
                "code": row.article_code,
                "name": row.article_name,
                "quantity_sold": int(row.quantity_sold or 0),
                "amount_sold": _money(row.amount_sold),
                "amount_sold_formatted": format_currency(_money(row.amount_sold)),
                "times_sold": row.times_sold,
            }
            for row in rows
        ]

    def get_frequent_customers(self, start_date: date, end_date: date, top: int = 10) -> List[Dict]:
        """Clientes ordenados por monto total comprado"""
        purchases = func.sum(Invoice.total).label('total_purchases')
        query = self._apply_date_filter(self._get_base_invoice_query(), start_date, end_date)

        rows = query.with_entities(
            Invoice.customer_id,
            Invoice.customer_first_names,
            Invoice.customer_last_names,
            Invoice.customer_document,
            func.count(Invoice.id).label('total_invoices'),
            purchases,
            func.max(Invoice.date).label('last_purchase')
        ).group_by(
            Invoice.customer_id,
            Invoice.customer_first_names,
            Invoice.customer_last_names,
            Invoice.customer_document
        ).order_by(desc(purchases)).limit(top).all()

        return [
            {
                "customer_id": row.customer_id,
                "full_name": f"{row.customer_first_names} {row.customer_last_names}",
                "document_number": row.customer_document,
                "total_invoices": row.total_invoices,
                "total_purchases": _money(row.total_purchases),
                "total_purchases_formatted": format_currency(_money(row.total_purchases)),
                "last_purchase": row.last_purchase,
            }
            for row in rows
        ]

    def get_sales_by_month(self, year: int) -> Dict[str, Decimal]:
        """Total vendido por mes; incluye los doce meses aunque estén en 0"""
        query = self._apply_date_filter(self._get_base_invoice_query(), date(year, 1, 1), date(year, 12, 31))

        sales = {name: Decimal('0.00') for name in MONTH_NAMES}
        for invoice_date, total in query.with_entities(Invoice.date, Invoice.total).all():
            sales[MONTH_NAMES[invoice_date.month - 1]] += _money(total)
        return sales

    def get_invoices_by_state(self) -> Dict[str, int]:
        rows = self.db.query(
            Invoice.state,
            func.count(Invoice.id)
        ).filter(Invoice.is_active == True).group_by(Invoice.state).all()

        counts = {state.value: 0 for state in InvoiceState}
        for state, count in rows:
            counts[state] = count
        return counts

    def get_sales_by_category(self, start_date: date, end_date: date) -> Dict[str, Decimal]:
        query = self._get_base_line_item_query(
            Category.name,
            func.sum(InvoiceLineItem.subtotal)
        ).join(
            Article, InvoiceLineItem.article_id == Article.id
        ).outerjoin(
            Category, Article.category_id == Category.id
        )
        query = self._apply_date_filter(query, start_date, end_date)

        sales: Dict[str, Decimal] = defaultdict(lambda: Decimal('0.00'))
        for category_name, amount in query.group_by(Category.name).all():
            sales[category_name or UNCATEGORIZED] += _money(amount)
        return dict(sales)

    def get_daily_sales(self, day: date) -> Dict:
        query = self._apply_date_filter(self._get_base_invoice_query(), day, day)
        result = query.with_entities(
            func.count(Invoice.id).label('total_invoices'),
            func.sum(Invoice.total).label('total_sales')
        ).first()

        total_sales = _money(result.total_sales)
        return {
            "date": day,
            "total_sales": total_sales,
            "total_sales_formatted": format_currency(total_sales),
            "total_invoices": result.total_invoices or 0,
        }

    def get_daily_average(self, start_date: date, end_date: date) -> Dict:
        """Promedio sobre los días que tuvieron al menos una venta"""
        query = self._apply_date_filter(self._get_base_invoice_query(), start_date, end_date)

        per_day: Dict[date, Decimal] = defaultdict(lambda: Decimal('0.00'))
        for invoice_date, total in query.with_entities(Invoice.date, Invoice.total).all():
            per_day[_as_date(invoice_date)] += _money(total)

        average = _money(sum(per_day.values()) / len(per_day)) if per_day else Decimal('0.00')
        return {
            "start_date": start_date,
            "end_date": end_date,
            "average": average,
            "average_formatted": format_currency(average),
        }

    def get_low_stock_articles(self) -> List[Dict]:
        """Artículos activos con stock igual o inferior al mínimo y cuántas veces se han vendido"""
        sold = self.db.query(
            InvoiceLineItem.article_id.label('article_id'),
            func.count(InvoiceLineItem.id).label('times_sold')
        ).filter(
            InvoiceLineItem.is_active == True
        ).group_by(InvoiceLineItem.article_id).subquery()

        rows = self.db.query(
            Article,
            func.coalesce(sold.c.times_sold, 0)
        ).outerjoin(
            sold, sold.c.article_id == Article.id
        ).filter(
            Article.is_active == True,
            Article.stock <= Article.minimum_stock
        ).order_by(Article.stock, Article.name).all()

        return [
            {
                "id": article.id,
                "code": article.code,
                "name": article.name,
                "category_name": article.category_name,
                "unit_price": _money(article.unit_price),
                "unit_price_formatted": format_currency(_money(article.unit_price)),
                "stock": article.stock,
                "minimum_stock": article.minimum_stock,
                "times_sold": times_sold,
            }
            for article, times_sold in rows
        ]

    def get_dashboard(self, today: Optional[date] = None) -> Dict:
        today = today or date.today()
        month_start = today.replace(day=1)
        next_month = (month_start + timedelta(days=32)).replace(day=1)
        month_end = next_month - timedelta(days=1)

        return {
            "generated_at": datetime.now(),
            "today": self.get_daily_sales(today),
            "month": self.get_sales_report(month_start, month_end, top=5),
            "sales_by_category": self.get_sales_by_category(month_start, month_end),
            "low_stock_articles": len(self.get_low_stock_articles()),
            "invoices_by_state": self.get_invoices_by_state(),
            "sales_by_month": self.get_sales_by_month(today.year),
        }
