from sqlalchemy import Column, Integer, String, Boolean, ForeignKey, Numeric, CheckConstraint
from sqlalchemy.orm import relationship

from app.database.database import Base
from app.common.mixins import TimestampMixin, AuditMixin


class Article(Base, TimestampMixin, AuditMixin):
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    code = Column(String(50), nullable=False, unique=True, index=True)  # No cambia después de creado
    name = Column(String(150), nullable=False)
    description = Column(String(500), nullable=True)
    unit_price = Column(Numeric(18, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)  # Solo lo escribe StockLedger
    minimum_stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)

    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True)

    # Relationships
    category = relationship("Category", back_populates="articles", lazy="joined")
    line_items = relationship("InvoiceLineItem", back_populates="article")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_article_stock_non_negative"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.stock <= self.minimum_stock

    @property
    def category_name(self):
        return self.category.name if self.category else None
