"""
订单相关数据模型
"""
from datetime import datetime
from decimal import Decimal
from enum import IntEnum
from typing import Optional, List

from sqlalchemy import (
    Integer, SmallInteger, Text, Numeric, ForeignKey,
    CheckConstraint, Index, UniqueConstraint
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, utc_now


class OrderStatus(IntEnum):
    """订单状态：1→2→3→4→5，取消仅可由待支付进入"""
    PENDING_PAYMENT = 1
    AWAITING_SHIPMENT = 2
    SHIPPED = 3
    COMPLETED = 4
    REVIEWED = 5
    CANCELLED = 6

    @property
    def text(self) -> str:
        return _ORDER_STATUS_TEXT[self]


_ORDER_STATUS_TEXT = {
    OrderStatus.PENDING_PAYMENT: "待支付",
    OrderStatus.AWAITING_SHIPMENT: "待发货",
    OrderStatus.SHIPPED: "已发货",
    OrderStatus.COMPLETED: "已完成",
    OrderStatus.REVIEWED: "已评价",
    OrderStatus.CANCELLED: "已取消",
}


class PaymentStatus(IntEnum):
    """支付状态"""
    UNPAID = 0
    PAID = 1
    FAILED = 2
    REFUNDED = 3

    @property
    def text(self) -> str:
        return _PAYMENT_STATUS_TEXT[self]


_PAYMENT_STATUS_TEXT = {
    PaymentStatus.UNPAID: "未支付",
    PaymentStatus.PAID: "已支付",
    PaymentStatus.FAILED: "支付失败",
    PaymentStatus.REFUNDED: "已退款",
}


class Order(Base):
    """订单表"""
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_no: Mapped[str] = mapped_column(Text, nullable=False, comment="订单号")
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)

    # 金额（必须使用 Decimal）
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, comment="商品总额")
    discount_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00"), comment="优惠金额"
    )
    shipping_fee: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00"), comment="运费"
    )
    pay_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, comment="实付金额")

    # 状态
    status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=OrderStatus.PENDING_PAYMENT
    )
    payment_status: Mapped[int] = mapped_column(
        SmallInteger, nullable=False, default=PaymentStatus.UNPAID
    )

    # 支付信息
    payment_method: Mapped[Optional[str]] = mapped_column(Text)
    payment_transaction_id: Mapped[Optional[str]] = mapped_column(Text)
    payment_time: Mapped[Optional[datetime]] = mapped_column()

    # 收货信息快照 - PII 数据
    receiver_name: Mapped[str] = mapped_column(Text, nullable=False)
    receiver_phone: Mapped[str] = mapped_column(Text, nullable=False)
    receiver_address: Mapped[str] = mapped_column(Text, nullable=False)
    receiver_postcode: Mapped[Optional[str]] = mapped_column(Text)

    # 物流
    shipping_company: Mapped[Optional[str]] = mapped_column(Text)
    shipping_no: Mapped[Optional[str]] = mapped_column(Text)
    shipping_time: Mapped[Optional[datetime]] = mapped_column()
    delivery_time: Mapped[Optional[datetime]] = mapped_column()
    finish_time: Mapped[Optional[datetime]] = mapped_column()

    remark: Mapped[Optional[str]] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.id"
    )

    __table_args__ = (
        UniqueConstraint("order_no", name="uq_orders_order_no"),
        Index("ix_orders_user_created", "user_id", "created_at"),
        Index("ix_orders_user_status", "user_id", "status"),
        CheckConstraint("status BETWEEN 1 AND 6", name="ck_orders_status"),
        CheckConstraint("payment_status BETWEEN 0 AND 3", name="ck_orders_payment_status"),
    )

    @property
    def status_text(self) -> str:
        return OrderStatus(self.status).text

    @property
    def payment_status_text(self) -> str:
        return PaymentStatus(self.payment_status).text

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, order_no={self.order_no}, status={self.status})>"


class OrderItem(Base):
    """订单明细，创建后不可变"""
    __tablename__ = "order_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    order_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False
    )
    product_id: Mapped[int] = mapped_column(Integer, ForeignKey("products.id"), nullable=False)
    product_sku_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("product_skus.id"))

    # 下单时的商品快照
    product_name: Mapped[str] = mapped_column(Text, nullable=False)
    product_image: Mapped[Optional[str]] = mapped_column(Text)
    sku_specifications: Mapped[Optional[str]] = mapped_column(Text, comment="规格快照")

    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, comment="price × quantity")

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        Index("ix_order_items_order", "order_id"),
    )

    def __repr__(self) -> str:
        return f"<OrderItem(id={self.id}, order_id={self.order_id}, qty={self.quantity})>"
