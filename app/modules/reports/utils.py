"""
Utilities for Reports module

Exportación CSV de reportes.
"""
import csv
import io
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List

from fastapi import Response


CSV_HEADERS = {
    "low_stock_articles": {
        "code": "Código",
        "name": "Nombre",
        "category_name": "Categoría",
        "unit_price": "Precio Unitario",
        "stock": "Stock",
        "minimum_stock": "Stock Mínimo",
        "times_sold": "Veces Vendido",
    },
}


def create_csv_response(
    data: List[Dict[str, Any]],
    filename: str,
    headers: Dict[str, str] = None
) -> Response:
    """
    Create a CSV response from a list of dictionaries.

    Args:
        data: Filas del reporte
        filename: Nombre del archivo CSV
        headers: Mapeo opcional de campo -> encabezado; define también las columnas

    Returns:
        FastAPI Response con contenido CSV
    """
    output = io.StringIO()

    fieldnames = list(headers.keys()) if headers else (list(data[0].keys()) if data else [])
    csv_headers = list(headers.values()) if headers else fieldnames

    writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction="ignore")
    if fieldnames:
        writer.writerow(dict(zip(fieldnames, csv_headers)))

    for row in data:
        writer.writerow({key: format_csv_value(row.get(key)) for key in fieldnames})

    csv_content = output.getvalue()
    output.close()

    return Response(
        content=csv_content,
        media_type="text/csv",
        headers={
            "Content-Disposition": f"attachment; filename={filename}",
            "Content-Type": "text/csv; charset=utf-8"
        }
    )


def format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Sí" if value else "No"
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)
