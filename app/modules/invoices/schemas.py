from pydantic import AliasChoices, BaseModel, Field
from decimal import Decimal
from typing import Optional, List
from datetime import date, datetime
from enum import Enum


class InvoiceStateFilter(str, Enum):
    ACTIVE = "Activa"
    VOIDED = "Anulada"


# Totals
class InvoiceTotals(BaseModel):
    """Totales calculados de la factura"""
    subtotal: Decimal
    discount_percentage: Decimal  # 0 cuando no se aplicó descuento
    discount_value: Decimal
    taxable_base: Decimal
    tax_percentage: Decimal
    tax_value: Decimal
    total: Decimal


class FormattedInvoiceTotals(BaseModel):
    """Totales en formato de pesos colombianos para presentación"""
    subtotal: str
    discount_percentage: str
    discount_value: str
    taxable_base: str
    tax_percentage: str
    tax_value: str
    total: str


# Invoice Line Item Schemas
class InvoiceLineItemCreate(BaseModel):
    # Sin restricciones de rango: las reglas de cantidad y precio las aplica InvoiceValidator
    article_id: int
    quantity: int
    unit_price: Decimal = Field(..., decimal_places=2, description="Precio unitario sin impuestos")


class InvoiceLineItemUpdate(BaseModel):
    quantity: int
    unit_price: Decimal = Field(..., decimal_places=2)


class InvoiceLineItemOut(BaseModel):
    id: int
    invoice_id: int
    article_id: int
    article_code: str
    article_name: str
    article_description: Optional[str] = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    is_active: bool

    class Config:
        from_attributes = True


# Invoice Schemas
class InvoiceCreate(BaseModel):
    customer_id: int
    line_items: List[InvoiceLineItemCreate] = Field(default_factory=list)
    notes: Optional[str] = Field(None, max_length=1000)


class InvoiceVoidRequest(BaseModel):
    reason: Optional[str] = Field(
        None, max_length=500, description="Motivo de la anulación",
        validation_alias=AliasChoices("motivo", "reason")
    )


class TotalsPreviewRequest(BaseModel):
    line_items: List[InvoiceLineItemCreate]


class InvoiceSummary(BaseModel):
    id: int
    number: Optional[str]
    date: datetime
    customer_id: int
    customer_document: str
    customer_full_name: str
    total: Decimal
    state: str

    class Config:
        from_attributes = True


class InvoiceOut(BaseModel):
    id: int
    number: Optional[str]
    date: datetime
    customer_id: int
    customer_document: str
    customer_first_names: str
    customer_last_names: str
    customer_address: Optional[str] = None
    customer_phone: Optional[str] = None
    subtotal: Decimal
    discount_percentage: Decimal
    discount_value: Decimal
    taxable_base: Decimal
    tax_percentage: Decimal
    tax_value: Decimal
    total: Decimal
    notes: Optional[str] = None
    state: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceDetail(InvoiceOut):
    """Factura con sus detalles activos"""
    line_items: List[InvoiceLineItemOut] = Field(default_factory=list, validation_alias="active_line_items")

    class Config:
        from_attributes = True


class InvoiceList(BaseModel):
    data: List[InvoiceSummary]
    total: int
    page: int
    limit: int
    hasNext: bool
    hasPrev: bool


# Validation Response Schemas
class InvoiceValidation(BaseModel):
    """Resultado completo de validación de factura"""
    is_valid: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    totals: Optional[InvoiceTotals] = None


class TotalsPreview(BaseModel):
    line_items: List[InvoiceLineItemCreate]
    totals: InvoiceTotals
    formatted_totals: FormattedInvoiceTotals


class InvoiceFilters(BaseModel):
    """Filtros para búsqueda de facturas"""
    search: Optional[str] = Field(None, description="Buscar en número, documento o nombre del cliente")
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    state: Optional[InvoiceStateFilter] = None
    customer_id: Optional[int] = None
