"""
Pydantic schemas for Reports module
"""
from pydantic import BaseModel, Field
from decimal import Decimal
from typing import Dict, List, Optional
from datetime import date, datetime


class BestSellingArticle(BaseModel):
    article_id: int
    code: str
    name: str
    quantity_sold: int
    amount_sold: Decimal
    amount_sold_formatted: str
    times_sold: int = Field(..., description="Número de detalles de factura en los que aparece")


class FrequentCustomer(BaseModel):
    customer_id: int
    full_name: str
    document_number: str
    total_invoices: int
    total_purchases: Decimal
    total_purchases_formatted: str
    last_purchase: datetime


class SalesReport(BaseModel):
    """Totales de ventas de un período"""
    start_date: date
    end_date: date
    total_invoices: int
    total_sales: Decimal
    total_sales_formatted: str
    total_tax: Decimal
    total_tax_formatted: str
    total_discounts: Decimal
    total_discounts_formatted: str
    best_selling_articles: List[BestSellingArticle] = Field(default_factory=list)
    frequent_customers: List[FrequentCustomer] = Field(default_factory=list)


class DailySales(BaseModel):
    date: date
    total_sales: Decimal
    total_sales_formatted: str
    total_invoices: int


class DailyAverage(BaseModel):
    start_date: date
    end_date: date
    average: Decimal
    average_formatted: str


class LowStockArticle(BaseModel):
    id: int
    code: str
    name: str
    category_name: Optional[str] = None
    unit_price: Decimal
    unit_price_formatted: str
    stock: int
    minimum_stock: int
    times_sold: int


class Dashboard(BaseModel):
    generated_at: datetime
    today: DailySales
    month: SalesReport
    sales_by_category: Dict[str, Decimal]
    low_stock_articles: int
    invoices_by_state: Dict[str, int]
    sales_by_month: Dict[str, Decimal]
