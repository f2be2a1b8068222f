"""
Cálculo de totales de factura

subtotal -> descuento -> base imponible -> IVA -> total

Todos los valores monetarios se redondean a 2 decimales con ROUND_HALF_UP
(redondeo comercial). Los porcentajes y el monto mínimo para descuento llegan
en un BillingRules; la calculadora no lee configuración por su cuenta.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

from app.common.currency import CENTS, format_currency, format_percentage
from app.modules.invoices.schemas import InvoiceTotals, FormattedInvoiceTotals

HUNDRED = Decimal('100')
ZERO = Decimal('0.00')


@dataclass(frozen=True)
class BillingRules:
    """Parámetros de negocio de facturación"""
    tax_percentage: Decimal = Decimal('19')
    discount_percentage: Decimal = Decimal('5')
    discount_min_amount: Decimal = Decimal('500000')
    price_deviation_warning: Decimal = Decimal('20')
    max_line_items: int = 50
    max_quantity_per_item: int = 1000
    max_unit_price: Decimal = Decimal('50000000')
    max_invoice_total: Decimal = Decimal('100000000')

    @classmethod
    def from_settings(cls, settings) -> "BillingRules":
        return cls(
            tax_percentage=Decimal(str(settings.BILLING_TAX_PERCENTAGE)),
            discount_percentage=Decimal(str(settings.BILLING_DISCOUNT_PERCENTAGE)),
            discount_min_amount=Decimal(str(settings.BILLING_DISCOUNT_MIN_AMOUNT)),
            price_deviation_warning=Decimal(str(settings.BILLING_PRICE_DEVIATION_WARNING)),
            max_line_items=settings.BILLING_MAX_LINE_ITEMS,
            max_quantity_per_item=settings.BILLING_MAX_QUANTITY_PER_ITEM,
            max_unit_price=Decimal(str(settings.BILLING_MAX_UNIT_PRICE)),
            max_invoice_total=Decimal(str(settings.BILLING_MAX_INVOICE_TOTAL)),
        )


def _round(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


class InvoiceCalculator:
    """Funciones puras de cálculo de totales"""

    def __init__(self, rules: Optional[BillingRules] = None):
        self.rules = rules or BillingRules()

    def calculate_subtotal(self, items: Iterable) -> Decimal:
        """
        Suma cantidad * precio unitario de cada item.

        Args:
            items: Objetos con atributos quantity y unit_price

        Returns:
            Subtotal redondeado a 2 decimales
        """
        subtotal = sum(
            (Decimal(item.quantity) * Decimal(str(item.unit_price)) for item in items),
            Decimal('0')
        )
        return _round(subtotal)

    def calculate_discount(
        self,
        subtotal: Decimal,
        discount_percentage: Optional[Decimal] = None,
        discount_min_amount: Optional[Decimal] = None
    ) -> Decimal:
        """Descuento solo si el subtotal alcanza el monto mínimo"""
        pct = self.rules.discount_percentage if discount_percentage is None else Decimal(str(discount_percentage))
        minimum = self.rules.discount_min_amount if discount_min_amount is None else Decimal(str(discount_min_amount))

        if subtotal >= minimum:
            return _round(subtotal * pct / HUNDRED)
        return ZERO

    def calculate_tax(self, taxable_base: Decimal, tax_percentage: Optional[Decimal] = None) -> Decimal:
        pct = self.rules.tax_percentage if tax_percentage is None else Decimal(str(tax_percentage))
        return _round(taxable_base * pct / HUNDRED)

    def calculate_total(self, subtotal: Decimal, discount: Decimal, tax: Decimal) -> Decimal:
        return subtotal - discount + tax

    def calculate_totals(
        self,
        subtotal: Decimal,
        discount_percentage: Optional[Decimal] = None,
        discount_min_amount: Optional[Decimal] = None,
        tax_percentage: Optional[Decimal] = None
    ) -> InvoiceTotals:
        """
        Calcula los totales completos a partir del subtotal.

        El porcentaje de descuento se reporta en 0 cuando no se aplicó
        descuento, aunque la tasa nominal sea distinta de 0.
        """
        subtotal = _round(Decimal(str(subtotal)))
        pct = self.rules.discount_percentage if discount_percentage is None else Decimal(str(discount_percentage))
        tax_pct = self.rules.tax_percentage if tax_percentage is None else Decimal(str(tax_percentage))

        discount = self.calculate_discount(subtotal, pct, discount_min_amount)
        taxable_base = subtotal - discount
        tax = self.calculate_tax(taxable_base, tax_pct)

        return InvoiceTotals(
            subtotal=subtotal,
            discount_percentage=pct if discount > 0 else ZERO,
            discount_value=discount,
            taxable_base=taxable_base,
            tax_percentage=tax_pct,
            tax_value=tax,
            total=self.calculate_total(subtotal, discount, tax)
        )

    def calculate_totals_for_items(self, items: Iterable) -> InvoiceTotals:
        return self.calculate_totals(self.calculate_subtotal(items))

    @staticmethod
    def format_totals(totals: InvoiceTotals) -> FormattedInvoiceTotals:
        return FormattedInvoiceTotals(
            subtotal=format_currency(totals.subtotal),
            discount_percentage=format_percentage(totals.discount_percentage),
            discount_value=format_currency(totals.discount_value),
            taxable_base=format_currency(totals.taxable_base),
            tax_percentage=format_percentage(totals.tax_percentage),
            tax_value=format_currency(totals.tax_value),
            total=format_currency(totals.total)
        )
