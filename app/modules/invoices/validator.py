"""
Validación de facturas y detalles antes de escribir en base de datos.

No modifica estado. Los errores bloquean la operación; las advertencias
(por ejemplo un precio muy distinto al precio actual del artículo) se
informan pero no la impiden.
"""
import logging
from collections import Counter
from decimal import Decimal
from types import SimpleNamespace
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.common.currency import format_currency, format_currency_compact
from app.modules.articles.models import Article
from app.modules.customers.models import Customer
from app.modules.invoices.calculator import BillingRules, InvoiceCalculator
from app.modules.invoices.models import Invoice, InvoiceLineItem
from app.modules.invoices.schemas import InvoiceLineItemCreate, InvoiceValidation

logger = logging.getLogger(__name__)

HUNDRED = Decimal('100')


class _Checks:
    """Acumulador de errores y advertencias"""

    def __init__(self):
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def error(self, message: str):
        self.errors.append(message)

    def warn(self, message: str):
        self.warnings.append(message)

    def result(self, totals=None) -> InvoiceValidation:
        is_valid = not self.errors
        return InvoiceValidation(
            is_valid=is_valid,
            errors=self.errors,
            warnings=self.warnings,
            totals=totals if is_valid else None
        )


class InvoiceValidator:
    """Reglas de negocio para crear facturas y modificar sus detalles"""

    def __init__(self, db: Session, rules: BillingRules, calculator: Optional[InvoiceCalculator] = None):
        self.db = db
        self.rules = rules
        self.calculator = calculator or InvoiceCalculator(rules)

    # ===== Helpers =====

    def _get_active_article(self, article_id: int) -> Optional[Article]:
        article = self.db.get(Article, article_id)
        if article is None or not article.is_active:
            return None
        return article

    def _check_amounts(self, checks: _Checks, article: Article, quantity: int, unit_price: Decimal):
        if quantity <= 0:
            checks.error(f"La cantidad del artículo '{article.name}' debe ser mayor a 0")
        if unit_price <= 0:
            checks.error(f"El precio del artículo '{article.name}' debe ser mayor a 0")

    def _check_stock(self, checks: _Checks, article: Article, required: int):
        if required > article.stock:
            checks.error(
                f"No hay suficiente stock del artículo '{article.name}'. "
                f"Stock disponible: {article.stock}"
            )

    def _check_price_drift(self, checks: _Checks, article: Article, unit_price: Decimal):
        current = Decimal(str(article.unit_price))
        if current <= 0 or unit_price <= 0:
            return
        difference = abs(unit_price - current) / current * HUNDRED
        if difference > self.rules.price_deviation_warning:
            checks.warn(
                f"El precio del artículo '{article.name}' difiere en {difference:.1f}% "
                f"del precio actual ({format_currency(current)})"
            )

    def _check_limits(self, checks: _Checks, items: Sequence):
        """
        Límites agregados sobre el conjunto final de detalles de la factura.

        items: objetos con article_id, quantity y unit_price
        """
        rules = self.rules

        if len(items) > rules.max_line_items:
            checks.error(f"Una factura no puede tener más de {rules.max_line_items} artículos diferentes")

        if any(item.quantity > rules.max_quantity_per_item for item in items):
            checks.error(f"La cantidad máxima por artículo es {rules.max_quantity_per_item} unidades")

        if any(Decimal(str(item.unit_price)) > rules.max_unit_price for item in items):
            checks.error(
                f"El precio unitario máximo por artículo es {format_currency_compact(rules.max_unit_price)}"
            )

        counts = Counter(item.article_id for item in items)
        if any(count > 1 for count in counts.values()):
            checks.error("No se pueden incluir artículos duplicados en la misma factura")

        totals = self.calculator.calculate_totals_for_items(items)
        if totals.total > rules.max_invoice_total:
            checks.error(
                f"El total de la factura no puede exceder {format_currency_compact(rules.max_invoice_total)}"
            )

    # ===== Creación =====

    def validate_invoice(self, customer_id: int, line_items: Sequence[InvoiceLineItemCreate]) -> InvoiceValidation:
        """
        Valida una factura candidata.

        Orden de verificación:
        1. Cliente existente y activo
        2. Al menos un detalle (si no hay, no se evalúa nada más)
        3. Por cada detalle: artículo activo, cantidad, precio, stock y desviación de precio
        4. Límites agregados (cantidad de detalles, máximos, duplicados, total)
        5. Totales, solo si no hubo errores
        """
        checks = _Checks()

        customer = self.db.get(Customer, customer_id)
        if customer is None or not customer.is_active:
            checks.error("El cliente especificado no existe o está inactivo")

        if not line_items:
            checks.error("Debe incluir al menos un artículo en la factura")
            return checks.result()

        for item in line_items:
            article = self._get_active_article(item.article_id)
            if article is None:
                checks.error(f"El artículo con ID {item.article_id} no existe o está inactivo")
                continue

            self._check_amounts(checks, article, item.quantity, item.unit_price)
            self._check_stock(checks, article, item.quantity)
            self._check_price_drift(checks, article, item.unit_price)

        self._check_limits(checks, line_items)

        if checks.errors:
            logger.warning(f"Factura para cliente {customer_id} rechazada: {checks.errors}")
            return checks.result()

        return checks.result(self.calculator.calculate_totals_for_items(line_items))

    # ===== Modificación de detalles =====

    def validate_line_item_addition(self, invoice: Invoice, item: InvoiceLineItemCreate) -> InvoiceValidation:
        checks = _Checks()

        article = self._get_active_article(item.article_id)
        if article is None:
            checks.error(f"El artículo con ID {item.article_id} no existe o está inactivo")
            return checks.result()

        self._check_amounts(checks, article, item.quantity, item.unit_price)
        self._check_stock(checks, article, item.quantity)
        self._check_price_drift(checks, article, item.unit_price)

        resulting = list(invoice.active_line_items) + [item]
        self._check_limits(checks, resulting)

        if checks.errors:
            return checks.result()
        return checks.result(self.calculator.calculate_totals_for_items(resulting))

    def validate_line_item_update(self, line_item: InvoiceLineItem, quantity: int, unit_price: Decimal) -> InvoiceValidation:
        checks = _Checks()
        article = line_item.article

        self._check_amounts(checks, article, quantity, unit_price)

        delta = quantity - line_item.quantity
        if delta > 0:
            self._check_stock(checks, article, delta)

        self._check_price_drift(checks, article, unit_price)

        updated = SimpleNamespace(article_id=line_item.article_id, quantity=quantity, unit_price=unit_price)
        resulting = [
            updated if existing.id == line_item.id else existing
            for existing in line_item.invoice.active_line_items
        ]
        self._check_limits(checks, resulting)

        if checks.errors:
            return checks.result()
        return checks.result(self.calculator.calculate_totals_for_items(resulting))
