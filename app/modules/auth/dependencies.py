"""
Dependencias de autenticación para FastAPI.
"""
from typing import List
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from app.database.database import get_db
from app.modules.auth.models import User, UserRole
from app.modules.auth.utils import decode_token

# Security scheme
security = HTTPBearer()


class AuthDependencies:
    """Dependencias de autenticación reutilizables."""

    @staticmethod
    def get_current_user(
        credentials: HTTPAuthorizationCredentials = Depends(security),
        db: Session = Depends(get_db)
    ) -> User:
        """
        Obtener usuario actual desde token JWT.
        """
        credentials_exception = HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No se pudieron validar las credenciales",
            headers={"WWW-Authenticate": "Bearer"},
        )

        try:
            payload = decode_token(credentials.credentials)
            user_id: str = payload.get("sub")
            if user_id is None or payload.get("type") != "access":
                raise credentials_exception
            user_uuid = UUID(user_id)
        except (jwt.PyJWTError, ValueError):
            raise credentials_exception

        user = db.query(User).filter(User.id == user_uuid).first()
        if user is None or not user.is_active:
            raise credentials_exception

        return user

    @staticmethod
    def require_role(allowed_roles: List[str]):
        """
        Dependencia para requerir roles específicos.
        """
        def role_checker(current_user: User = Depends(AuthDependencies.get_current_user)) -> User:
            if current_user.role not in allowed_roles:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Se requiere uno de estos roles: {', '.join(allowed_roles)}"
                )
            return current_user

        return role_checker

    @staticmethod
    def require_admin():
        return AuthDependencies.require_role([UserRole.ADMIN.value])

    @staticmethod
    def require_any_role():
        return AuthDependencies.require_role([role.value for role in UserRole])


get_current_user = AuthDependencies.get_current_user

# Permisos por operación
INVOICE_WRITERS = [UserRole.ADMIN.value, UserRole.VENDEDOR.value]
INVOICE_VOIDERS = [UserRole.ADMIN.value, UserRole.SUPERVISOR.value]
REPORT_READERS = [UserRole.ADMIN.value, UserRole.SUPERVISOR.value]
CATALOG_WRITERS = [UserRole.ADMIN.value]
