"""
Servicio de facturas

Coordina validación, cálculo de totales y movimientos de stock. Cada
operación que modifica una factura corre en una sola transacción: si algo
falla se hace rollback completo y no queda ni factura parcial ni stock
descontado a medias.
"""
import logging
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from uuid import UUID

from sqlalchemy import or_, desc
from sqlalchemy.orm import Session

from app.common.currency import CENTS, format_currency
from app.core.config import settings
from app.common.results import OperationResult
from app.modules.customers.models import Customer
from app.modules.invoices.calculator import BillingRules, InvoiceCalculator
from app.modules.invoices.models import Invoice, InvoiceLineItem, InvoiceState, build_invoice_number
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceLineItemCreate, InvoiceLineItemUpdate, InvoiceFilters,
    InvoiceValidation, TotalsPreview
)
from app.modules.invoices.stock import StockLedger, StockError
from app.modules.invoices.validator import InvoiceValidator

logger = logging.getLogger(__name__)

VOID_NOTE_DATE_FORMAT = "%d/%m/%Y %H:%M"


def _line_subtotal(quantity: int, unit_price: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(str(unit_price))).quantize(CENTS, rounding=ROUND_HALF_UP)


class InvoiceService:
    def __init__(self, db: Session, rules: Optional[BillingRules] = None):
        self.db = db
        self.rules = rules or BillingRules.from_settings(settings)
        self.calculator = InvoiceCalculator(self.rules)
        self.validator = InvoiceValidator(db, self.rules, self.calculator)
        self.ledger = StockLedger(db)

    # ===== Helpers =====

    def _lock_invoice(self, invoice_id: int) -> Optional[Invoice]:
        return self.db.query(Invoice).filter(
            Invoice.id == invoice_id,
            Invoice.is_active == True
        ).with_for_update().populate_existing().first()

    def _get_active_line_item(self, line_item_id: int) -> Optional[InvoiceLineItem]:
        return self.db.query(InvoiceLineItem).filter(
            InvoiceLineItem.id == line_item_id,
            InvoiceLineItem.is_active == True
        ).first()

    def _apply_totals(self, invoice: Invoice):
        """Recalcula los totales a partir de los detalles activos"""
        subtotal = sum((item.subtotal for item in invoice.active_line_items), Decimal('0.00'))
        tax_percentage = invoice.tax_percentage if invoice.tax_percentage is not None else self.rules.tax_percentage
        totals = self.calculator.calculate_totals(subtotal, tax_percentage=tax_percentage)

        invoice.subtotal = totals.subtotal
        invoice.discount_percentage = totals.discount_percentage
        invoice.discount_value = totals.discount_value
        invoice.taxable_base = totals.taxable_base
        invoice.tax_percentage = totals.tax_percentage
        invoice.tax_value = totals.tax_value
        invoice.total = totals.total

    @staticmethod
    def _rejected_from(title: str, validation: InvoiceValidation) -> OperationResult:
        return OperationResult.rejected(
            title,
            f"La operación tiene errores: {', '.join(validation.errors)}",
            errors=validation.errors,
            warnings=validation.warnings
        )

    # ===== Consultas =====

    def get_invoice(self, invoice_id: int) -> OperationResult:
        invoice = self.db.query(Invoice).filter(
            Invoice.id == invoice_id,
            Invoice.is_active == True
        ).first()
        if not invoice:
            return OperationResult.not_found("Factura")
        return OperationResult.success("Factura", "Factura encontrada", data=invoice)

    def get_invoice_by_number(self, number: str) -> OperationResult:
        invoice = self.db.query(Invoice).filter(
            Invoice.number == number.strip().upper(),
            Invoice.is_active == True
        ).first()
        if not invoice:
            return OperationResult.not_found("Factura")
        return OperationResult.success("Factura", "Factura encontrada", data=invoice)

    def get_line_items(self, invoice_id: int) -> OperationResult:
        result = self.get_invoice(invoice_id)
        if not result.ok:
            return result
        return OperationResult.success("Detalles de factura", "Detalles activos", data=result.data.active_line_items)

    def get_invoices(self, filters: InvoiceFilters, page: int = 1, limit: int = 20) -> dict:
        """Obtener lista paginada de facturas con filtros"""
        query = self.db.query(Invoice).filter(Invoice.is_active == True)

        if filters.search:
            term = f"%{filters.search.strip()}%"
            query = query.filter(or_(
                Invoice.number.ilike(term),
                Invoice.customer_document.ilike(term),
                Invoice.customer_first_names.ilike(term),
                Invoice.customer_last_names.ilike(term)
            ))
        if filters.date_from:
            query = query.filter(Invoice.date >= datetime.combine(filters.date_from, datetime.min.time()))
        if filters.date_to:
            end = datetime.combine(filters.date_to, datetime.min.time()) + timedelta(days=1)
            query = query.filter(Invoice.date < end)
        if filters.state:
            query = query.filter(Invoice.state == filters.state.value)
        if filters.customer_id:
            query = query.filter(Invoice.customer_id == filters.customer_id)

        total = query.count()
        offset = (page - 1) * limit
        invoices = query.order_by(desc(Invoice.date), desc(Invoice.id)).offset(offset).limit(limit).all()

        return {
            "data": invoices,
            "total": total,
            "page": page,
            "limit": limit,
            "hasNext": (offset + limit) < total,
            "hasPrev": page > 1,
        }

    # ===== Validación y cálculo sin persistencia =====

    def validate_invoice(self, invoice_data: InvoiceCreate) -> InvoiceValidation:
        return self.validator.validate_invoice(invoice_data.customer_id, invoice_data.line_items)

    def preview_totals(self, line_items: List[InvoiceLineItemCreate]) -> TotalsPreview:
        totals = self.calculator.calculate_totals_for_items(line_items)
        return TotalsPreview(
            line_items=line_items,
            totals=totals,
            formatted_totals=self.calculator.format_totals(totals)
        )

    # ===== Creación =====

    def create_invoice(self, invoice_data: InvoiceCreate, user_id: Optional[UUID] = None) -> OperationResult:
        """
        Crear factura con sus detalles.

        Valida, copia los datos del cliente y de cada artículo, descuenta el
        stock y calcula totales dentro de una misma transacción.
        """
        validation = self.validate_invoice(invoice_data)
        if not validation.is_valid:
            logger.warning(f"Creación de factura rechazada: {validation.errors}")
            return OperationResult.rejected(
                "Creación fallida",
                f"La factura tiene errores: {', '.join(validation.errors)}",
                errors=validation.errors,
                warnings=validation.warnings
            )

        try:
            customer = self.db.get(Customer, invoice_data.customer_id)

            invoice = Invoice(
                date=datetime.now(),
                customer_id=customer.id,
                customer_document=customer.document_number,
                customer_first_names=customer.first_names,
                customer_last_names=customer.last_names,
                customer_address=customer.address,
                customer_phone=customer.phone,
                tax_percentage=self.rules.tax_percentage,
                notes=invoice_data.notes,
                state=InvoiceState.ACTIVE.value,
                is_active=True,
                created_by_id=user_id,
                modified_by_id=user_id
            )
            self.db.add(invoice)
            self.db.flush()
            invoice.number = build_invoice_number(invoice.id)

            for item in invoice_data.line_items:
                article = self.ledger.lock_active_article(item.article_id)
                invoice.line_items.append(InvoiceLineItem(
                    article_id=article.id,
                    article_code=article.code,
                    article_name=article.name,
                    article_description=article.description,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=_line_subtotal(item.quantity, item.unit_price),
                    is_active=True
                ))
                self.ledger.issue(article, item.quantity, user_id)

            self._apply_totals(invoice)

            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Factura {invoice.number} creada para cliente {customer.id} por {format_currency(invoice.total)}")
            return OperationResult.success(
                "Factura creada",
                f"La factura '{invoice.number}' ha sido creada correctamente por un valor de {format_currency(invoice.total)}",
                data=invoice,
                warnings=validation.warnings
            )

        except StockError as e:
            self.db.rollback()
            logger.warning(f"Creación de factura rechazada al aplicar stock: {e}")
            return OperationResult.rejected("Creación fallida", str(e), warnings=validation.warnings)
        except Exception:
            self.db.rollback()
            logger.error(f"Error al crear factura para cliente {invoice_data.customer_id}", exc_info=True)
            return OperationResult.internal_error()

    # ===== Detalles =====

    def add_line_item(self, invoice_id: int, item: InvoiceLineItemCreate, user_id: Optional[UUID] = None) -> OperationResult:
        invoice = self._lock_invoice(invoice_id)
        if not invoice:
            return OperationResult.not_found("Factura")

        if invoice.is_voided:
            return OperationResult.rejected(
                "Factura anulada",
                "No se pueden agregar detalles a una factura anulada"
            )

        validation = self.validator.validate_line_item_addition(invoice, item)
        if not validation.is_valid:
            return self._rejected_from("Detalle inválido", validation)

        try:
            article = self.ledger.lock_active_article(item.article_id)
            line_item = InvoiceLineItem(
                article_id=article.id,
                article_code=article.code,
                article_name=article.name,
                article_description=article.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                subtotal=_line_subtotal(item.quantity, item.unit_price),
                is_active=True
            )
            invoice.line_items.append(line_item)
            self.ledger.issue(article, item.quantity, user_id)

            self._apply_totals(invoice)
            invoice.modified_by_id = user_id

            self.db.commit()
            self.db.refresh(line_item)

            logger.info(f"Detalle {line_item.id} agregado a factura {invoice.number}")
            return OperationResult.success(
                "Detalle agregado",
                f"Se agregó correctamente {item.quantity} unidad(es) del artículo '{article.name}' a la factura",
                data=line_item,
                warnings=validation.warnings
            )

        except StockError as e:
            self.db.rollback()
            return OperationResult.rejected("Detalle inválido", str(e))
        except Exception:
            self.db.rollback()
            logger.error(f"Error al agregar detalle a la factura {invoice_id}", exc_info=True)
            return OperationResult.internal_error()

    def update_line_item(self, line_item_id: int, data: InvoiceLineItemUpdate, user_id: Optional[UUID] = None) -> OperationResult:
        line_item = self._get_active_line_item(line_item_id)
        if not line_item:
            return OperationResult.not_found("Detalle de factura")

        invoice = self._lock_invoice(line_item.invoice_id)
        if not invoice:
            return OperationResult.not_found("Factura")

        if invoice.is_voided:
            return OperationResult.rejected(
                "Factura anulada",
                "No se pueden modificar detalles de una factura anulada"
            )

        validation = self.validator.validate_line_item_update(line_item, data.quantity, data.unit_price)
        if not validation.is_valid:
            return self._rejected_from("Detalle inválido", validation)

        try:
            article = self.ledger.lock_article(line_item.article_id)
            self.ledger.adjust(article, line_item.quantity, data.quantity, user_id)

            line_item.quantity = data.quantity
            line_item.unit_price = data.unit_price
            line_item.subtotal = _line_subtotal(data.quantity, data.unit_price)

            self._apply_totals(invoice)
            invoice.modified_by_id = user_id

            self.db.commit()
            self.db.refresh(line_item)

            return OperationResult.success(
                "Detalle actualizado",
                f"Se actualizó correctamente el detalle del artículo '{line_item.article_name}' en la factura",
                data=line_item,
                warnings=validation.warnings
            )

        except StockError as e:
            self.db.rollback()
            return OperationResult.rejected("Detalle inválido", str(e))
        except Exception:
            self.db.rollback()
            logger.error(f"Error al actualizar detalle {line_item_id}", exc_info=True)
            return OperationResult.internal_error()

    def remove_line_item(self, line_item_id: int, user_id: Optional[UUID] = None) -> OperationResult:
        line_item = self._get_active_line_item(line_item_id)
        if not line_item:
            return OperationResult.not_found("Detalle de factura")

        invoice = self._lock_invoice(line_item.invoice_id)
        if not invoice:
            return OperationResult.not_found("Factura")

        if invoice.is_voided:
            return OperationResult.rejected(
                "Factura anulada",
                "No se pueden eliminar detalles de una factura anulada"
            )

        try:
            article = self.ledger.lock_article(line_item.article_id)
            self.ledger.restore(article, line_item.quantity, user_id)
            line_item.is_active = False

            self._apply_totals(invoice)
            invoice.modified_by_id = user_id

            self.db.commit()

            return OperationResult.success(
                "Detalle eliminado",
                f"Se eliminó correctamente {line_item.quantity} unidad(es) del artículo "
                f"'{line_item.article_name}' de la factura"
            )

        except Exception:
            self.db.rollback()
            logger.error(f"Error al eliminar detalle {line_item_id}", exc_info=True)
            return OperationResult.internal_error()

    def recalculate_totals(self, invoice_id: int) -> OperationResult:
        invoice = self._lock_invoice(invoice_id)
        if not invoice:
            return OperationResult.not_found("Factura")

        if invoice.is_voided:
            return OperationResult.rejected(
                "Factura anulada",
                "No se pueden modificar los totales de una factura anulada"
            )

        try:
            self._apply_totals(invoice)
            self.db.commit()
            self.db.refresh(invoice)
            return OperationResult.success("Totales recalculados", f"Total: {format_currency(invoice.total)}", data=invoice)
        except Exception:
            self.db.rollback()
            logger.error(f"Error al recalcular totales de la factura {invoice_id}", exc_info=True)
            return OperationResult.internal_error()

    # ===== Anulación =====

    def void_invoice(self, invoice_id: int, reason: Optional[str], user_id: Optional[UUID] = None) -> OperationResult:
        """
        Anular factura con reversión completa de inventario

        Args:
            invoice_id: ID de la factura a anular
            reason: Motivo de la anulación (obligatorio)
            user_id: Usuario que anula

        Returns:
            OperationResult con la factura anulada
        """
        invoice = self._lock_invoice(invoice_id)
        if not invoice:
            return OperationResult.not_found("Factura")

        if not reason or not reason.strip():
            return OperationResult.rejected("Anulación fallida", "Debe indicar el motivo de la anulación")

        if invoice.is_voided:
            return OperationResult.rejected("Anulación fallida", "La factura ya se encuentra anulada")

        try:
            restored = self.ledger.restore_invoice(invoice, user_id)

            stamp = datetime.now().strftime(VOID_NOTE_DATE_FORMAT)
            void_note = f"[ANULADA] {stamp} - {reason.strip()}"
            invoice.notes = f"{invoice.notes}\n{void_note}" if invoice.notes else void_note
            invoice.state = InvoiceState.VOIDED.value
            invoice.modified_by_id = user_id

            self.db.commit()
            self.db.refresh(invoice)

            logger.info(f"Factura {invoice.number} anulada; stock restaurado en {restored} detalles")
            return OperationResult.success(
                "Factura anulada",
                f"La factura '{invoice.number}' ha sido anulada correctamente",
                data=invoice
            )

        except Exception:
            self.db.rollback()
            logger.error(f"Error al anular factura {invoice_id}", exc_info=True)
            return OperationResult.internal_error()
