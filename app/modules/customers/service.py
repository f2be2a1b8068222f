"""
Servicios de negocio para el módulo de Clientes
"""
import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.common.results import OperationResult
from app.modules.customers.models import Customer
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate
from app.modules.invoices.models import Invoice

logger = logging.getLogger(__name__)


class CustomerService:
    """Servicio principal para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db

    def _get_active(self, customer_id: int) -> Optional[Customer]:
        return self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.is_active == True
        ).first()

    def _document_taken(self, document_number: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Customer).filter(Customer.document_number == document_number)
        if exclude_id is not None:
            query = query.filter(Customer.id != exclude_id)
        return query.first() is not None

    def create_customer(self, data: CustomerCreate, user_id: Optional[UUID] = None) -> OperationResult:
        """Crear un nuevo cliente"""
        try:
            if self._document_taken(data.document_number):
                return OperationResult.rejected(
                    "Creación fallida",
                    f"Ya existe un cliente con el número de documento '{data.document_number}'"
                )

            customer = Customer(
                document_number=data.document_number,
                first_names=data.first_names.strip(),
                last_names=data.last_names.strip(),
                address=data.address,
                phone=data.phone,
                email=data.email,
                created_by_id=user_id,
                modified_by_id=user_id
            )
            self.db.add(customer)
            self.db.commit()
            self.db.refresh(customer)

            logger.info(f"Cliente {customer.id} ({customer.document_number}) creado")
            return OperationResult.success(
                "Cliente creado",
                f"El cliente '{customer.full_name}' ha sido creado correctamente",
                data=customer
            )

        except Exception:
            self.db.rollback()
            logger.error(f"Error creando cliente {data.document_number}", exc_info=True)
            return OperationResult.internal_error()

    def get_customers(self, page: int = 1, limit: int = 20, search: Optional[str] = None) -> dict:
        """Listar clientes activos con búsqueda por documento o nombre"""
        query = self.db.query(Customer).filter(Customer.is_active == True)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Customer.document_number.ilike(term),
                Customer.first_names.ilike(term),
                Customer.last_names.ilike(term),
                Customer.email.ilike(term)
            ))

        total = query.count()
        offset = (page - 1) * limit
        customers = query.order_by(Customer.last_names, Customer.first_names).offset(offset).limit(limit).all()

        return {
            "data": customers,
            "total": total,
            "page": page,
            "limit": limit,
            "hasNext": (offset + limit) < total,
            "hasPrev": page > 1,
        }

    def get_customer(self, customer_id: int) -> OperationResult:
        customer = self._get_active(customer_id)
        if not customer:
            return OperationResult.not_found("Cliente")
        return OperationResult.success("Cliente", "Cliente encontrado", data=customer)

    def get_customer_by_document(self, document_number: str) -> OperationResult:
        customer = self.db.query(Customer).filter(
            Customer.document_number == document_number,
            Customer.is_active == True
        ).first()
        if not customer:
            return OperationResult.not_found("Cliente")
        return OperationResult.success("Cliente", "Cliente encontrado", data=customer)

    def update_customer(self, customer_id: int, data: CustomerUpdate, user_id: Optional[UUID] = None) -> OperationResult:
        """
        Actualiza los datos del cliente. Las facturas ya emitidas conservan
        la copia de los datos tomada al crearlas.
        """
        try:
            customer = self._get_active(customer_id)
            if not customer:
                return OperationResult.not_found("Cliente")

            if data.document_number and data.document_number != customer.document_number:
                if self._document_taken(data.document_number, exclude_id=customer_id):
                    return OperationResult.rejected(
                        "Actualización fallida",
                        f"Ya existe un cliente con el número de documento '{data.document_number}'"
                    )

            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(customer, field, value)
            customer.modified_by_id = user_id

            self.db.commit()
            self.db.refresh(customer)
            return OperationResult.success(
                "Cliente actualizado",
                f"El cliente '{customer.full_name}' ha sido actualizado correctamente",
                data=customer
            )

        except Exception:
            self.db.rollback()
            logger.error(f"Error actualizando cliente {customer_id}", exc_info=True)
            return OperationResult.internal_error()

    def delete_customer(self, customer_id: int, user_id: Optional[UUID] = None) -> OperationResult:
        """Eliminación lógica; se rechaza si el cliente tiene facturas (activas o anuladas)"""
        try:
            customer = self._get_active(customer_id)
            if not customer:
                return OperationResult.not_found("Cliente")

            has_invoices = self.db.query(Invoice.id).filter(
                Invoice.customer_id == customer_id,
                Invoice.is_active == True
            ).first() is not None

            if has_invoices:
                return OperationResult.rejected(
                    "Eliminación fallida",
                    f"No se puede eliminar el cliente '{customer.full_name}' porque tiene facturas asociadas"
                )

            customer.is_active = False
            customer.modified_by_id = user_id
            self.db.commit()

            logger.info(f"Cliente {customer_id} eliminado")
            return OperationResult.success(
                "Cliente eliminado",
                f"El cliente '{customer.full_name}' ha sido eliminado correctamente"
            )

        except Exception:
            self.db.rollback()
            logger.error(f"Error eliminando cliente {customer_id}", exc_info=True)
            return OperationResult.internal_error()
