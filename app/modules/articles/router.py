from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session
from typing import List, Optional

from app.core.config import settings
from app.common.results import raise_for_result
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.articles import service
from app.modules.articles.schemas import (
    ArticleCreate, ArticleUpdate, ArticleOut, ArticleList, StockUpdate, StockChangeOut
)

article_router = APIRouter(prefix="/articulos", tags=["Artículos"])


@article_router.post("/", response_model=ArticleOut, status_code=status.HTTP_201_CREATED)
def create_article(
    data: ArticleCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    return raise_for_result(service.create_article(db, data, current_user.id))


@article_router.get("/", response_model=ArticleList)
def list_articles(
    page: int = Query(1, ge=1, description="Número de página"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE, description="Elementos por página"),
    search: Optional[str] = Query(None, description="Buscar por código, nombre o descripción"),
    category_id: Optional[int] = Query(None, description="Filtrar por categoría"),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    """Lista artículos con filtros y paginación."""
    return service.get_articles(db, page=page, limit=limit, search=search, category_id=category_id)


@article_router.get("/stock-bajo", response_model=List[ArticleOut])
def low_stock_articles(
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return service.get_low_stock_articles(db)


@article_router.get("/codigo/{code}", response_model=ArticleOut)
def get_article_by_code(
    code: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(service.get_article_by_code(db, code))


@article_router.get("/{article_id}", response_model=ArticleOut)
def get_article(
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    return raise_for_result(service.get_article(db, article_id))


@article_router.put("/{article_id}", response_model=ArticleOut)
def update_article(
    article_id: int,
    data: ArticleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    return raise_for_result(service.update_article(db, article_id, data, current_user.id))


@article_router.patch("/{article_id}/stock", response_model=StockChangeOut)
def update_stock(
    article_id: int,
    data: StockUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    """Ajuste manual del stock de un artículo"""
    return raise_for_result(service.update_stock(db, article_id, data.stock, current_user.id))


@article_router.delete("/{article_id}")
def delete_article(
    article_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    result = service.delete_article(db, article_id, current_user.id)
    raise_for_result(result)
    return {"message": result.message}
