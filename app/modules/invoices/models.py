from app.database.database import Base
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, Numeric, Text, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from decimal import Decimal
import enum

from app.common.mixins import TimestampMixin, AuditMixin


class InvoiceState(str, enum.Enum):
    ACTIVE = "Activa"     # Editable: se pueden agregar, modificar o quitar detalles
    VOIDED = "Anulada"    # Terminal


INVOICE_NUMBER_PREFIX = "FAC-"


def build_invoice_number(invoice_id: int) -> str:
    return f"{INVOICE_NUMBER_PREFIX}{invoice_id:06d}"


class Invoice(Base, TimestampMixin, AuditMixin):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    number = Column(String(20), nullable=True, unique=True, index=True)  # Se asigna tras el primer flush
    date = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)

    # Snapshot del cliente al momento de facturar
    customer_document = Column(String(20), nullable=False)
    customer_first_names = Column(String(100), nullable=False)
    customer_last_names = Column(String(100), nullable=False)
    customer_address = Column(String(250), nullable=True)
    customer_phone = Column(String(20), nullable=True)

    # Totales (calculados)
    subtotal = Column(Numeric(18, 2), nullable=False, default=Decimal('0.00'))
    discount_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal('0.00'))
    discount_value = Column(Numeric(18, 2), nullable=False, default=Decimal('0.00'))
    taxable_base = Column(Numeric(18, 2), nullable=False, default=Decimal('0.00'))
    tax_percentage = Column(Numeric(5, 2), nullable=False, default=Decimal('0.00'))
    tax_value = Column(Numeric(18, 2), nullable=False, default=Decimal('0.00'))
    total = Column(Numeric(18, 2), nullable=False, default=Decimal('0.00'))

    notes = Column(Text, nullable=True)
    state = Column(String(20), nullable=False, default=InvoiceState.ACTIVE.value)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    customer = relationship("Customer", back_populates="invoices")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        order_by="InvoiceLineItem.id",
        cascade="all, delete-orphan"
    )

    @property
    def customer_full_name(self) -> str:
        return f"{self.customer_first_names} {self.customer_last_names}"

    @property
    def is_voided(self) -> bool:
        return self.state == InvoiceState.VOIDED.value

    @property
    def active_line_items(self):
        return [item for item in self.line_items if item.is_active]


class InvoiceLineItem(Base, TimestampMixin):
    __tablename__ = "invoice_line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    article_id = Column(Integer, ForeignKey("articles.id"), nullable=False, index=True)

    # Snapshot data (para preservar información si el artículo cambia)
    article_code = Column(String(50), nullable=False)
    article_name = Column(String(150), nullable=False)
    article_description = Column(String(500), nullable=True)

    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(18, 2), nullable=False)
    subtotal = Column(Numeric(18, 2), nullable=False)  # quantity * unit_price
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    invoice = relationship("Invoice", back_populates="line_items")
    article = relationship("Article", back_populates="line_items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_line_item_quantity_positive"),
        CheckConstraint("unit_price > 0", name="ck_line_item_unit_price_positive"),
    )
