from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import datetime

from app.modules.auth.models import UserRole


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    first_name: str = Field(..., min_length=2, max_length=100)
    last_name: str = Field(..., min_length=2, max_length=100)
    email: Optional[EmailStr] = None
    role: UserRole = UserRole.VENDEDOR

    @field_validator('username')
    @classmethod
    def normalize_username(cls, v):
        v = v.strip().lower()
        if not v.replace('_', '').replace('.', '').isalnum():
            raise ValueError('El usuario solo puede contener letras, números, puntos y guiones bajos')
        return v


class UserLogin(BaseModel):
    username: str
    password: str


class UserOut(BaseModel):
    id: UUID
    username: str
    first_name: str
    last_name: str
    full_name: str
    email: Optional[str]
    role: str
    is_active: bool
    last_login: Optional[datetime]

    class Config:
        from_attributes = True


# Token schemas
class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserOut
