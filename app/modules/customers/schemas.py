"""
Esquemas Pydantic para el módulo de Clientes
"""
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional, List
from datetime import datetime

from app.common.validators import (
    validate_colombia_phone, validate_document_number, clean_document, clean_phone
)


def _check_phone(v):
    if v is None or v.strip() == "":
        return None
    if not validate_colombia_phone(v):
        raise ValueError(
            'Número de teléfono inválido. Use formato colombiano: '
            '3XXXXXXXXX (móvil), +573XXXXXXXXX o 601XXXXXXX (fijo)'
        )
    return clean_phone(v)


class CustomerBase(BaseModel):
    first_names: str = Field(..., min_length=2, max_length=100)
    last_names: str = Field(..., min_length=2, max_length=100)
    address: Optional[str] = Field(None, max_length=250)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)


class CustomerCreate(CustomerBase):
    document_number: str = Field(..., min_length=6, max_length=20)

    @field_validator('document_number')
    @classmethod
    def validate_document(cls, v):
        if not validate_document_number(v):
            raise ValueError(
                'Documento inválido. Debe ser una cédula (6-10 dígitos, sin 0 inicial) '
                'o un NIT con dígito de verificación'
            )
        return clean_document(v)


class CustomerUpdate(BaseModel):
    first_names: Optional[str] = Field(None, min_length=2, max_length=100)
    last_names: Optional[str] = Field(None, min_length=2, max_length=100)
    address: Optional[str] = Field(None, max_length=250)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    document_number: Optional[str] = Field(None, min_length=6, max_length=20)

    @field_validator('phone')
    @classmethod
    def validate_phone(cls, v):
        return _check_phone(v)

    @field_validator('document_number')
    @classmethod
    def validate_document(cls, v):
        if v is None:
            return v
        if not validate_document_number(v):
            raise ValueError('Documento inválido')
        return clean_document(v)


class CustomerOut(BaseModel):
    id: int
    document_number: str
    first_names: str
    last_names: str
    full_name: str
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerList(BaseModel):
    data: List[CustomerOut]
    total: int
    page: int
    limit: int
    hasNext: bool
    hasPrev: bool
