"""
商品目录模型：分类、商品、SKU
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlalchemy import (
    Integer, Text, Boolean, Numeric, ForeignKey,
    CheckConstraint, Index
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utc_now, load_json_list, load_json_map


class Category(Base):
    """商品分类（软删除）"""
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    parent_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("categories.id"), comment="父分类"
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, name={self.name})>"


class Product(Base):
    """商品（软删除）"""
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    detail_html: Mapped[Optional[str]] = mapped_column(Text, comment="图文详情")

    # 金额（必须使用 Decimal）
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))

    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    unit: Mapped[Optional[str]] = mapped_column(Text, comment="计量单位")

    main_image_url: Mapped[Optional[str]] = mapped_column(Text)
    image_urls: Mapped[Optional[str]] = mapped_column(Text, comment="图片列表 JSON 文本")

    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id"), nullable=False
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_recommended: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_new: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_hot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    category: Mapped["Category"] = relationship("Category")
    skus: Mapped[List["ProductSku"]] = relationship(
        "ProductSku", back_populates="product", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        Index("ix_products_category_active", "category_id", "is_active"),
    )

    @property
    def image_list(self) -> List[str]:
        return load_json_list(self.image_urls)

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name}, stock={self.stock})>"


class ProductSku(Base):
    """商品 SKU，价格/库存/图片覆盖所属商品"""
    __tablename__ = "product_skus"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    product_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False
    )
    sku_code: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    sku_name: Mapped[Optional[str]] = mapped_column(Text)
    specifications: Mapped[Optional[str]] = mapped_column(Text, comment="规格 JSON 文本")

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2))
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    sales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    image_url: Mapped[Optional[str]] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    product: Mapped["Product"] = relationship("Product", back_populates="skus")

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_product_skus_stock_non_negative"),
        Index("ix_product_skus_product", "product_id"),
    )

    @property
    def spec_map(self):
        return load_json_map(self.specifications)

    def __repr__(self) -> str:
        return f"<ProductSku(id={self.id}, code={self.sku_code}, stock={self.stock})>"


def format_specifications(raw: Optional[str]) -> Optional[str]:
    """规格 JSON 格式化为 "颜色: 红色, 尺码: L"，无法解析时返回 None"""
    specs = load_json_map(raw)
    if not specs:
        return None
    return ", ".join(f"{k}: {v}" for k, v in specs.items())
