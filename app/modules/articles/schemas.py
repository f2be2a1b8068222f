from pydantic import BaseModel, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from datetime import datetime


class ArticleCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50, description="Código único, no se puede modificar")
    name: str = Field(..., min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    unit_price: Decimal = Field(..., gt=0, description="Precio de venta sin IVA")
    stock: int = Field(0, ge=0, description="Stock inicial")
    minimum_stock: int = Field(0, ge=0)
    category_id: Optional[int] = None

    @field_validator('code')
    @classmethod
    def normalize_code(cls, v):
        v = v.strip().upper()
        if not v:
            raise ValueError('El código no puede estar vacío')
        return v


class ArticleUpdate(BaseModel):
    """El código y el stock no se modifican por aquí"""
    name: Optional[str] = Field(None, min_length=2, max_length=150)
    description: Optional[str] = Field(None, max_length=500)
    unit_price: Optional[Decimal] = Field(None, gt=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = None


class StockUpdate(BaseModel):
    # Negativos se rechazan en el servicio con un mensaje de negocio
    stock: int


class ArticleOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    unit_price: Decimal
    stock: int
    minimum_stock: int
    is_low_stock: bool
    category_id: Optional[int] = None
    category_name: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ArticleList(BaseModel):
    data: List[ArticleOut]
    total: int
    page: int
    limit: int
    hasNext: bool
    hasPrev: bool


class StockChangeOut(BaseModel):
    id: int
    code: str
    name: str
    previous_stock: int
    current_stock: int
