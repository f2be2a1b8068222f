from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date

from app.core.config import settings
from app.common.results import raise_for_result
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies, INVOICE_WRITERS, INVOICE_VOIDERS
from app.modules.auth.models import User
from app.modules.invoices.calculator import BillingRules
from app.modules.invoices.dependencies import get_billing_rules
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceDetail, InvoiceList, InvoiceFilters, InvoiceStateFilter,
    InvoiceLineItemCreate, InvoiceLineItemUpdate, InvoiceLineItemOut,
    InvoiceVoidRequest, InvoiceValidation, TotalsPreviewRequest, TotalsPreview
)

# Router principal del módulo de facturas
router = APIRouter(prefix="/facturas", tags=["Facturas"])


@router.post("/", response_model=InvoiceDetail, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_data: InvoiceCreate,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_role(INVOICE_WRITERS))
):
    """
    Crear una nueva factura de venta

    Solo administradores y vendedores pueden crear facturas.
    Se descuenta automáticamente el stock de los artículos.
    """
    service = InvoiceService(db, rules)
    return raise_for_result(service.create_invoice(invoice_data, current_user.id))


@router.get("/", response_model=InvoiceList)
def list_invoices(
    pagina: int = Query(1, ge=1, description="Número de página"),
    elementos_por_pagina: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    busqueda: Optional[str] = Query(None, description="Buscar por número, documento o nombre del cliente"),
    fecha_inicio: Optional[date] = Query(None, description="Fecha inicial (YYYY-MM-DD)"),
    fecha_fin: Optional[date] = Query(None, description="Fecha final inclusive (YYYY-MM-DD)"),
    estado: Optional[InvoiceStateFilter] = Query(None, description="Estado de la factura"),
    cliente_id: Optional[int] = Query(None, description="Filtrar por cliente"),
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    """
    Listar facturas con filtros

    Permite filtrar por fechas, cliente, estado y texto libre.
    Todos los roles pueden ver las facturas.
    """
    service = InvoiceService(db, rules)
    filters = InvoiceFilters(
        search=busqueda,
        date_from=fecha_inicio,
        date_to=fecha_fin,
        state=estado,
        customer_id=cliente_id
    )
    return service.get_invoices(filters, page=pagina, limit=elementos_por_pagina)


@router.post("/calcular-totales", response_model=TotalsPreview)
def preview_totals(
    data: TotalsPreviewRequest,
    rules: BillingRules = Depends(get_billing_rules),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    """Calcula los totales de un conjunto de detalles sin guardar nada"""
    return InvoiceService(db, rules).preview_totals(data.line_items)


@router.post("/validar", response_model=InvoiceValidation)
def validate_invoice(
    invoice_data: InvoiceCreate,
    rules: BillingRules = Depends(get_billing_rules),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    """Ejecuta las validaciones de creación sin guardar nada"""
    return InvoiceService(db, rules).validate_invoice(invoice_data)


@router.get("/numero/{numero}", response_model=InvoiceDetail)
def get_invoice_by_number(
    numero: str,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(InvoiceService(db, rules).get_invoice_by_number(numero))


@router.put("/detalles/{detalle_id}", response_model=InvoiceLineItemOut)
def update_line_item(
    detalle_id: int,
    data: InvoiceLineItemUpdate,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_role(INVOICE_WRITERS))
):
    """Modifica cantidad y precio de un detalle; el stock se ajusta por la diferencia"""
    service = InvoiceService(db, rules)
    return raise_for_result(service.update_line_item(detalle_id, data, current_user.id))


@router.delete("/detalles/{detalle_id}")
def remove_line_item(
    detalle_id: int,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_role(INVOICE_WRITERS))
):
    """Quita un detalle de la factura y devuelve su cantidad al stock"""
    result = InvoiceService(db, rules).remove_line_item(detalle_id, current_user.id)
    raise_for_result(result)
    return {"message": result.message}


@router.get("/{invoice_id}", response_model=InvoiceDetail)
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    """
    Obtener detalles completos de una factura
    """
    return raise_for_result(InvoiceService(db, rules).get_invoice(invoice_id))


@router.get("/{invoice_id}/detalles", response_model=List[InvoiceLineItemOut])
def get_line_items(
    invoice_id: int,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(InvoiceService(db, rules).get_line_items(invoice_id))


@router.post("/{invoice_id}/detalles", response_model=InvoiceLineItemOut, status_code=status.HTTP_201_CREATED)
def add_line_item(
    invoice_id: int,
    item: InvoiceLineItemCreate,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_role(INVOICE_WRITERS))
):
    """Agrega un artículo a una factura activa y descuenta el stock"""
    service = InvoiceService(db, rules)
    return raise_for_result(service.add_line_item(invoice_id, item, current_user.id))


@router.put("/{invoice_id}/anular", response_model=InvoiceDetail)
def void_invoice(
    invoice_id: int,
    data: InvoiceVoidRequest,
    db: Session = Depends(get_db),
    rules: BillingRules = Depends(get_billing_rules),
    current_user: User = Depends(AuthDependencies.require_role(INVOICE_VOIDERS))
):
    """
    Anular una factura

    Devuelve al stock las cantidades de todos los detalles activos y deja
    registro del motivo en las notas. Solo administradores y supervisores.
    """
    service = InvoiceService(db, rules)
    return raise_for_result(service.void_invoice(invoice_id, data.reason, current_user.id))
