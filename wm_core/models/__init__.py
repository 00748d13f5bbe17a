"""
WeMall 数据模型包
"""
from .base import Base
from .users import User, UserAddress
from .catalog import Category, Product, ProductSku
from .cart import CartItem
from .orders import Order, OrderItem, OrderStatus, PaymentStatus

__all__ = [
    "Base",
    "User",
    "UserAddress",
    "Category",
    "Product",
    "ProductSku",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentStatus",
]
