"""
购物车模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Integer, Boolean, ForeignKey, CheckConstraint, UniqueConstraint, Index, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utc_now
from .catalog import Product, ProductSku, format_specifications


class CartItem(Base):
    """购物车条目，同一用户的 (商品, SKU) 组合唯一

    有 SKU 时价格、库存、图片以 SKU 为准，否则取商品的值；
    读取这些属性前需预加载 product 和 sku。
    """
    __tablename__ = "cart_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    product_sku_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("product_skus.id"))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    is_selected: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    product: Mapped["Product"] = relationship("Product")
    sku: Mapped[Optional["ProductSku"]] = relationship("ProductSku")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_cart_items_quantity_positive"),
        UniqueConstraint("user_id", "product_id", "product_sku_id", name="uq_cart_items_user_product_sku"),
        # NULL 不参与唯一约束，无 SKU 的条目单独建部分唯一索引
        Index(
            "uq_cart_items_user_product_no_sku", "user_id", "product_id",
            unique=True,
            postgresql_where=text("product_sku_id IS NULL"),
            sqlite_where=text("product_sku_id IS NULL"),
        ),
    )

    @property
    def unit_price(self) -> Decimal:
        return self.sku.price if self.sku is not None else self.product.price

    @property
    def available_stock(self) -> int:
        return self.sku.stock if self.sku is not None else self.product.stock

    @property
    def image_url(self) -> Optional[str]:
        if self.sku is not None and self.sku.image_url:
            return self.sku.image_url
        return self.product.main_image_url

    @property
    def specifications_text(self) -> Optional[str]:
        return format_specifications(self.sku.specifications) if self.sku is not None else None

    def __repr__(self) -> str:
        return f"<CartItem(id={self.id}, user_id={self.user_id}, product_id={self.product_id}, qty={self.quantity})>"
