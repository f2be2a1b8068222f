from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies, get_current_user
from app.modules.auth.models import User
from app.modules.auth.schemas import UserCreate, UserLogin, UserOut, TokenResponse
from app.modules.auth.service import AuthService

auth_router = APIRouter(prefix="/auth", tags=["Auth"])


@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Login de usuario. Retorna token de acceso y datos del usuario.
    """
    return AuthService(db).login(credentials.username, credentials.password)


@auth_router.post("/registro", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    user_data: UserCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    """
    Registrar un nuevo usuario (solo administradores).
    """
    return AuthService(db).create_user(user_data)


@auth_router.get("/perfil", response_model=UserOut)
def get_profile(current_user: User = Depends(get_current_user)):
    """
    Obtener información del usuario actual.
    """
    return current_user
