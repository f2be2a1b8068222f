"""
Libro de stock de artículos

Único componente que escribe Article.stock. Cada movimiento verifica que el
stock no quede negativo antes de escribir y deja registro "anterior -> nuevo".
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.modules.articles.models import Article
from app.modules.invoices.models import Invoice

logger = logging.getLogger(__name__)


class StockError(Exception):
    """Movimiento de stock inválido"""


class ArticleUnavailableError(StockError):
    def __init__(self, article_id: int):
        self.article_id = article_id
        super().__init__(f"El artículo con ID {article_id} no existe o está inactivo")


class InsufficientStockError(StockError):
    def __init__(self, article: Article, requested: int):
        self.article_id = article.id
        self.article_name = article.name
        self.available = article.stock
        self.requested = requested
        super().__init__(
            f"No hay suficiente stock del artículo '{article.name}'. "
            f"Stock disponible: {article.stock}"
        )


class StockLedger:
    """Movimientos de stock ligados al ciclo de vida de los detalles de factura"""

    def __init__(self, db: Session):
        self.db = db

    def lock_article(self, article_id: int) -> Optional[Article]:
        """Obtiene el artículo con bloqueo de fila (SELECT ... FOR UPDATE)"""
        return self.db.query(Article).filter(
            Article.id == article_id
        ).with_for_update().populate_existing().first()

    def lock_active_article(self, article_id: int) -> Article:
        article = self.lock_article(article_id)
        if article is None or not article.is_active:
            raise ArticleUnavailableError(article_id)
        return article

    def _write(self, article: Article, new_stock: int, reason: str, user_id: Optional[UUID] = None):
        if new_stock < 0:
            raise InsufficientStockError(article, article.stock - new_stock)

        old_stock = article.stock
        article.stock = new_stock
        article.updated_at = datetime.now(timezone.utc)
        if user_id is not None:
            article.modified_by_id = user_id
        logger.info(f"Stock artículo {article.id} ({article.code}): {old_stock} -> {new_stock} [{reason}]")

    def issue(self, article: Article, quantity: int, user_id: Optional[UUID] = None):
        """Salida por creación de un detalle"""
        if article.stock < quantity:
            raise InsufficientStockError(article, quantity)
        self._write(article, article.stock - quantity, "salida", user_id)

    def adjust(self, article: Article, old_quantity: int, new_quantity: int, user_id: Optional[UUID] = None):
        """Cambio de cantidad de un detalle: solo se mueve la diferencia"""
        delta = new_quantity - old_quantity
        if delta == 0:
            return
        if delta > 0 and article.stock < delta:
            raise InsufficientStockError(article, delta)
        self._write(article, article.stock - delta, f"ajuste {old_quantity} -> {new_quantity}", user_id)

    def restore(self, article: Article, quantity: int, user_id: Optional[UUID] = None):
        """Devolución por eliminación de un detalle"""
        self._write(article, article.stock + quantity, "devolución", user_id)

    def restore_invoice(self, invoice: Invoice, user_id: Optional[UUID] = None) -> int:
        """
        Devuelve al stock todas las cantidades de los detalles activos de la factura.

        Returns:
            Número de detalles cuyo stock fue restaurado
        """
        restored = 0
        for line_item in invoice.active_line_items:
            article = self.lock_article(line_item.article_id)
            if article is None:
                raise ArticleUnavailableError(line_item.article_id)
            self._write(article, article.stock + line_item.quantity, f"anulación {invoice.number}", user_id)
            restored += 1
        return restored

    def set_stock(self, article: Article, new_stock: int, user_id: Optional[UUID] = None) -> int:
        """
        Ajuste manual del stock.

        Returns:
            Stock anterior
        """
        if new_stock < 0:
            raise StockError("El stock no puede ser un valor negativo")
        old_stock = article.stock
        self._write(article, new_stock, "ajuste manual", user_id)
        return old_stock
