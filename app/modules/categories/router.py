from fastapi import APIRouter, status, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from app.common.results import raise_for_result
from app.database.database import get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User
from app.modules.articles.schemas import ArticleOut
from app.modules.categories import service
from app.modules.categories.schemas import (
    CategoryCreate, CategoryUpdate, CategoryOut, CategoryList
)

categories_router = APIRouter(prefix="/categorias", tags=["Categorías"])


@categories_router.post("/", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    category_service = service.CategoryService(db)
    return raise_for_result(category_service.create_category(data, current_user.id))


@categories_router.get("/", response_model=CategoryList)
def list_categories(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    category_service = service.CategoryService(db)
    return category_service.get_all_categories(limit, offset)


@categories_router.get("/{category_id}", response_model=CategoryOut)
def get_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    category_service = service.CategoryService(db)
    return raise_for_result(category_service.get_category_by_id(category_id))


@categories_router.get("/{category_id}/articulos", response_model=List[ArticleOut])
def get_category_articles(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_any_role())
):
    category_service = service.CategoryService(db)
    return raise_for_result(category_service.get_category_articles(category_id))


@categories_router.put("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    category_service = service.CategoryService(db)
    return raise_for_result(category_service.update_category(category_id, data, current_user.id))


@categories_router.delete("/{category_id}")
def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(AuthDependencies.require_admin())
):
    category_service = service.CategoryService(db)
    result = category_service.delete_category(category_id, current_user.id)
    raise_for_result(result)
    return {"message": result.message}
