"""
Router para el módulo de Clientes

Lectura para cualquier usuario autenticado; escritura solo administradores.
"""
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import Optional

from app.core.config import settings
from app.common.results import raise_for_result
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.customers.service import CustomerService
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate, CustomerOut, CustomerList

router = APIRouter(
    prefix="/clientes",
    tags=["Clientes"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_data: CustomerCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    """
    Crear un nuevo cliente

    - **document_number**: Cédula o NIT (único)
    - **first_names** / **last_names**: Nombres y apellidos
    """
    return raise_for_result(CustomerService(db).create_customer(customer_data, current_user.id))


@router.get("/", response_model=CustomerList)
def get_customers(
    page: int = Query(1, ge=1, description="Número de página"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Elementos por página"),
    search: Optional[str] = Query(None, description="Búsqueda por documento, nombre o email"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return CustomerService(db).get_customers(page, limit, search)


@router.get("/documento/{document_number}", response_model=CustomerOut)
def get_customer_by_document(
    document_number: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(CustomerService(db).get_customer_by_document(document_number))


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(CustomerService(db).get_customer(customer_id))


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_id: int,
    customer_data: CustomerUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    return raise_for_result(CustomerService(db).update_customer(customer_id, customer_data, current_user.id))


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    """
    Eliminar (desactivar) un cliente. No se permite si tiene facturas asociadas.
    """
    result = CustomerService(db).delete_customer(customer_id, current_user.id)
    raise_for_result(result)
    return {"message": result.message}
