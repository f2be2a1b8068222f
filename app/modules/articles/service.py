import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.common.currency import format_currency
from app.common.results import OperationResult
from app.modules.articles.models import Article
from app.modules.articles.schemas import ArticleCreate, ArticleUpdate
from app.modules.categories.models import Category
from app.modules.invoices.models import InvoiceLineItem
from app.modules.invoices.stock import StockLedger, StockError

logger = logging.getLogger(__name__)


def _category_exists(db: Session, category_id: int) -> bool:
    return db.query(Category.id).filter(
        Category.id == category_id,
        Category.is_active == True
    ).first() is not None


def _get_active(db: Session, article_id: int) -> Optional[Article]:
    return db.query(Article).filter(Article.id == article_id, Article.is_active == True).first()


def create_article(db: Session, data: ArticleCreate, user_id: Optional[UUID] = None) -> OperationResult:
    """Crea un artículo; el código debe ser único"""
    try:
        if db.query(Article.id).filter(Article.code == data.code).first():
            return OperationResult.rejected(
                "Código ya existe",
                f"El código '{data.code}' ya está asociado a otro artículo"
            )

        if data.category_id is not None and not _category_exists(db, data.category_id):
            return OperationResult.rejected(
                "Categoría no existe",
                "La categoría especificada no existe o está inactiva"
            )

        article = Article(
            code=data.code,
            name=data.name.strip(),
            description=data.description,
            unit_price=data.unit_price,
            stock=data.stock,
            minimum_stock=data.minimum_stock,
            category_id=data.category_id,
            created_by_id=user_id,
            modified_by_id=user_id
        )
        db.add(article)
        db.commit()
        db.refresh(article)

        logger.info(f"Artículo {article.id} ({article.code}) creado con stock {article.stock}")
        return OperationResult.success(
            "Artículo creado",
            f"El artículo '{article.name}' ha sido creado correctamente",
            data=article
        )

    except Exception:
        db.rollback()
        logger.error(f"Error al crear artículo con código {data.code}", exc_info=True)
        return OperationResult.internal_error()


def get_articles(
    db: Session,
    page: int = 1,
    limit: int = 20,
    search: Optional[str] = None,
    category_id: Optional[int] = None
) -> dict:
    """Lista artículos activos con filtros y paginación."""
    query = db.query(Article).filter(Article.is_active == True)

    if search:
        term = f"%{search.strip()}%"
        query = query.filter(or_(
            Article.code.ilike(term),
            Article.name.ilike(term),
            Article.description.ilike(term)
        ))
    if category_id:
        query = query.filter(Article.category_id == category_id)

    total = query.count()
    offset = (page - 1) * limit
    articles = query.order_by(Article.name).offset(offset).limit(limit).all()

    return {
        "data": articles,
        "total": total,
        "page": page,
        "limit": limit,
        "hasNext": (offset + limit) < total,
        "hasPrev": page > 1,
    }


def get_article(db: Session, article_id: int) -> OperationResult:
    article = _get_active(db, article_id)
    if not article:
        return OperationResult.not_found("Artículo")
    return OperationResult.success("Artículo", "Artículo encontrado", data=article)


def get_article_by_code(db: Session, code: str) -> OperationResult:
    article = db.query(Article).filter(
        Article.code == code.strip().upper(),
        Article.is_active == True
    ).first()
    if not article:
        return OperationResult.not_found("Artículo")
    return OperationResult.success("Artículo", "Artículo encontrado", data=article)


def get_low_stock_articles(db: Session):
    """Artículos activos con stock igual o inferior al mínimo, del más crítico al menos"""
    return db.query(Article).filter(
        Article.is_active == True,
        Article.stock <= Article.minimum_stock
    ).order_by(Article.stock, Article.name).all()


def update_article(db: Session, article_id: int, data: ArticleUpdate, user_id: Optional[UUID] = None) -> OperationResult:
    """Actualiza datos descriptivos y precio. El código y el stock no cambian aquí."""
    try:
        article = _get_active(db, article_id)
        if not article:
            return OperationResult.not_found("Artículo")

        update_dict = data.model_dump(exclude_unset=True)

        if update_dict.get("category_id") is not None and not _category_exists(db, update_dict["category_id"]):
            return OperationResult.rejected(
                "Categoría no existe",
                "La categoría especificada no existe o está inactiva"
            )

        for field, value in update_dict.items():
            setattr(article, field, value)
        article.modified_by_id = user_id

        db.commit()
        db.refresh(article)

        if "unit_price" in update_dict:
            logger.info(f"Precio del artículo {article.code} actualizado a {format_currency(article.unit_price)}")

        return OperationResult.success(
            "Artículo actualizado",
            f"El artículo '{article.name}' ha sido actualizado correctamente",
            data=article
        )

    except Exception:
        db.rollback()
        logger.error(f"Error al actualizar artículo con ID {article_id}", exc_info=True)
        return OperationResult.internal_error()


def update_stock(db: Session, article_id: int, new_stock: int, user_id: Optional[UUID] = None) -> OperationResult:
    """Ajuste manual de stock (inventario físico, compras)"""
    if new_stock < 0:
        return OperationResult.rejected("Stock inválido", "El stock no puede ser un valor negativo")

    try:
        ledger = StockLedger(db)
        article = ledger.lock_article(article_id)
        if article is None or not article.is_active:
            return OperationResult.not_found("Artículo")

        previous_stock = ledger.set_stock(article, new_stock, user_id)
        db.commit()

        return OperationResult.success(
            "Stock actualizado",
            f"El stock del artículo '{article.name}' ha sido actualizado de {previous_stock} a {new_stock}",
            data={
                "id": article.id,
                "code": article.code,
                "name": article.name,
                "previous_stock": previous_stock,
                "current_stock": new_stock,
            }
        )

    except StockError as e:
        db.rollback()
        return OperationResult.rejected("Stock inválido", str(e))
    except Exception:
        db.rollback()
        logger.error(f"Error al actualizar stock del artículo con ID {article_id}", exc_info=True)
        return OperationResult.internal_error()


def delete_article(db: Session, article_id: int, user_id: Optional[UUID] = None) -> OperationResult:
    """Eliminación lógica; se rechaza mientras existan detalles activos que lo referencien"""
    try:
        article = _get_active(db, article_id)
        if not article:
            return OperationResult.not_found("Artículo")

        in_use = db.query(InvoiceLineItem.id).filter(
            InvoiceLineItem.article_id == article_id,
            InvoiceLineItem.is_active == True
        ).first() is not None

        if in_use:
            return OperationResult.rejected(
                "No se puede eliminar",
                "El artículo no puede ser eliminado porque está siendo utilizado en facturas"
            )

        article.is_active = False
        article.modified_by_id = user_id
        db.commit()

        logger.info(f"Artículo {article.code} eliminado")
        return OperationResult.success(
            "Artículo eliminado",
            f"El artículo '{article.name}' ha sido eliminado correctamente"
        )

    except Exception:
        db.rollback()
        logger.error(f"Error al eliminar artículo con ID {article_id}", exc_info=True)
        return OperationResult.internal_error()
