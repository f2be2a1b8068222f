"""
Reports Router

Endpoints de reportes de ventas. Solo administradores y supervisores.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.common.results import OperationResult, raise_for_result
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies, REPORT_READERS
from app.modules.auth.models import User
from app.modules.reports.service import SalesReportService
from app.modules.reports.schemas import (
    SalesReport, BestSellingArticle, FrequentCustomer, DailySales, DailyAverage,
    LowStockArticle, Dashboard
)
from app.modules.reports.utils import create_csv_response, CSV_HEADERS

router = APIRouter(prefix="/reportes", tags=["Reportes"])

MIN_YEAR = 2000
MAX_YEAR = 2100


def _check_range(fecha_inicio: date, fecha_fin: date):
    if fecha_fin < fecha_inicio:
        raise_for_result(OperationResult.rejected(
            "Rango inválido",
            "La fecha final no puede ser anterior a la fecha inicial"
        ))


@router.get("/ventas", response_model=SalesReport)
def sales_report(
    fecha_inicio: date = Query(..., description="Fecha inicial (YYYY-MM-DD)"),
    fecha_fin: date = Query(..., description="Fecha final inclusive (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    """
    Reporte de ventas de un período.

    Incluye total facturado, IVA, descuentos, los 10 artículos más vendidos
    y los 10 clientes con más compras.
    """
    _check_range(fecha_inicio, fecha_fin)
    return SalesReportService(db).get_sales_report(fecha_inicio, fecha_fin)


@router.get("/articulos-mas-vendidos", response_model=List[BestSellingArticle])
def best_selling_articles(
    fecha_inicio: date = Query(...),
    fecha_fin: date = Query(...),
    top: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    _check_range(fecha_inicio, fecha_fin)
    return SalesReportService(db).get_best_selling_articles(fecha_inicio, fecha_fin, top)


@router.get("/clientes-frecuentes", response_model=List[FrequentCustomer])
def frequent_customers(
    fecha_inicio: date = Query(...),
    fecha_fin: date = Query(...),
    top: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    _check_range(fecha_inicio, fecha_fin)
    return SalesReportService(db).get_frequent_customers(fecha_inicio, fecha_fin, top)


@router.get("/ventas-por-mes/{anio}", response_model=Dict[str, Decimal])
def sales_by_month(
    anio: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    if anio < MIN_YEAR or anio > MAX_YEAR:
        raise_for_result(OperationResult.rejected(
            "Año inválido",
            f"El año debe estar entre {MIN_YEAR} y {MAX_YEAR}"
        ))
    return SalesReportService(db).get_sales_by_month(anio)


@router.get("/facturas-por-estado", response_model=Dict[str, int])
def invoices_by_state(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    return SalesReportService(db).get_invoices_by_state()


@router.get("/ventas-por-categoria", response_model=Dict[str, Decimal])
def sales_by_category(
    fecha_inicio: date = Query(...),
    fecha_fin: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    _check_range(fecha_inicio, fecha_fin)
    return SalesReportService(db).get_sales_by_category(fecha_inicio, fecha_fin)


@router.get("/ventas-del-dia", response_model=DailySales)
def daily_sales(
    fecha: Optional[date] = Query(None, description="Por defecto, hoy"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    return SalesReportService(db).get_daily_sales(fecha or date.today())


@router.get("/promedio-ventas-diarias", response_model=DailyAverage)
def daily_average(
    fecha_inicio: date = Query(...),
    fecha_fin: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    _check_range(fecha_inicio, fecha_fin)
    return SalesReportService(db).get_daily_average(fecha_inicio, fecha_fin)


@router.get("/articulos-stock-bajo", response_model=None)
def low_stock_articles(
    export: Optional[str] = Query(None, pattern="^(csv)$", description="Formato de exportación: csv"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    """Artículos con stock igual o inferior al mínimo, opcionalmente como CSV"""
    articles = SalesReportService(db).get_low_stock_articles()

    if export == "csv":
        return create_csv_response(
            data=articles,
            filename=f"articulos_stock_bajo_{date.today()}.csv",
            headers=CSV_HEADERS["low_stock_articles"]
        )

    return [LowStockArticle(**article) for article in articles]


@router.get("/dashboard", response_model=Dashboard)
def dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_role(REPORT_READERS))
):
    """Indicadores del día, del mes en curso y del año"""
    return SalesReportService(db).get_dashboard()
