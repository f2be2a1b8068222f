import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.common.results import OperationResult
from app.modules.categories.models import Category
from app.modules.categories.schemas import CategoryCreate, CategoryUpdate

logger = logging.getLogger(__name__)


class CategoryService:
    """Servicio para gestión de categorías"""

    def __init__(self, db: Session):
        self.db = db

    def _get_active(self, category_id: int) -> Optional[Category]:
        return self.db.query(Category).filter(
            Category.id == category_id,
            Category.is_active == True
        ).first()

    def _name_taken(self, name: str, exclude_id: Optional[int] = None) -> bool:
        query = self.db.query(Category).filter(func.lower(Category.name) == name.lower())
        if exclude_id is not None:
            query = query.filter(Category.id != exclude_id)
        return query.first() is not None

    def create_category(self, data: CategoryCreate, user_id: Optional[UUID] = None) -> OperationResult:
        """
        Crear nueva categoría

        Args:
            data: Datos de la categoría
            user_id: ID del usuario que crea

        Returns:
            OperationResult con la categoría creada
        """
        try:
            if self._name_taken(data.name):
                return OperationResult.rejected(
                    "Categoría duplicada",
                    f"Ya existe una categoría con el nombre '{data.name}'"
                )

            category = Category(
                name=data.name,
                description=data.description,
                created_by_id=user_id,
                modified_by_id=user_id
            )
            self.db.add(category)
            self.db.commit()
            self.db.refresh(category)

            logger.info(f"Categoría {category.id} '{category.name}' creada")
            return OperationResult.success("Categoría creada", "La categoría se creó correctamente", data=category)

        except Exception:
            self.db.rollback()
            logger.error("Error creando categoría", exc_info=True)
            return OperationResult.internal_error()

    def get_all_categories(self, limit: int = 100, offset: int = 0):
        """Listar categorías activas con paginación"""
        query = self.db.query(Category).filter(Category.is_active == True)
        total = query.count()
        categories = query.order_by(Category.name).offset(offset).limit(limit).all()

        return {
            "categories": categories,
            "total": total,
            "limit": limit,
            "offset": offset
        }

    def get_category_by_id(self, category_id: int) -> OperationResult:
        category = self._get_active(category_id)
        if not category:
            return OperationResult.not_found("Categoría")
        return OperationResult.success("Categoría", "Categoría encontrada", data=category)

    def get_category_articles(self, category_id: int) -> OperationResult:
        """Artículos activos de una categoría"""
        category = self._get_active(category_id)
        if not category:
            return OperationResult.not_found("Categoría")

        articles = [article for article in category.articles if article.is_active]
        articles.sort(key=lambda a: a.name)
        return OperationResult.success("Artículos de la categoría", f"{len(articles)} artículos", data=articles)

    def update_category(self, category_id: int, data: CategoryUpdate, user_id: Optional[UUID] = None) -> OperationResult:
        """Actualizar categoría"""
        try:
            category = self._get_active(category_id)
            if not category:
                return OperationResult.not_found("Categoría")

            if data.name and data.name.strip() != category.name:
                if self._name_taken(data.name.strip(), exclude_id=category_id):
                    return OperationResult.rejected(
                        "Categoría duplicada",
                        f"Ya existe otra categoría con el nombre '{data.name}'"
                    )

            update_dict = data.model_dump(exclude_unset=True)
            for field, value in update_dict.items():
                setattr(category, field, value.strip() if isinstance(value, str) else value)
            category.modified_by_id = user_id

            self.db.commit()
            self.db.refresh(category)
            return OperationResult.success("Categoría actualizada", "La categoría se actualizó correctamente", data=category)

        except Exception:
            self.db.rollback()
            logger.error(f"Error actualizando categoría {category_id}", exc_info=True)
            return OperationResult.internal_error()

    def delete_category(self, category_id: int, user_id: Optional[UUID] = None) -> OperationResult:
        """Eliminación lógica; no se permite si la categoría tiene artículos activos"""
        try:
            category = self._get_active(category_id)
            if not category:
                return OperationResult.not_found("Categoría")

            if any(article.is_active for article in category.articles):
                return OperationResult.rejected(
                    "No se puede eliminar",
                    "La categoría no puede ser eliminada porque está siendo utilizada en artículos"
                )

            category.is_active = False
            category.modified_by_id = user_id
            self.db.commit()

            logger.info(f"Categoría {category_id} eliminada")
            return OperationResult.success("Categoría eliminada", "Categoría eliminada exitosamente")

        except Exception:
            self.db.rollback()
            logger.error(f"Error eliminando categoría {category_id}", exc_info=True)
            return OperationResult.internal_error()
