"""
Modelo de clientes

Los datos de identificación, nombre, dirección y teléfono se copian a la
factura al momento de crearla; modificar el cliente no altera facturas previas.
"""
from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship

from app.database.database import Base
from app.common.mixins import TimestampMixin, AuditMixin


class Customer(Base, TimestampMixin, AuditMixin):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_number = Column(String(20), nullable=False, unique=True, index=True)
    first_names = Column(String(100), nullable=False)
    last_names = Column(String(100), nullable=False, index=True)
    address = Column(String(250), nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    # Relationships
    invoices = relationship("Invoice", back_populates="customer")

    @property
    def full_name(self) -> str:
        return f"{self.first_names} {self.last_names}"
