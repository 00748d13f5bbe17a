"""
WeMall 核心服务模块
"""
from .base import BaseService
from .addresses import AddressService
from .auth_service import AuthService
from .cart import CartService
from .catalog import CatalogService
from .orders import OrdersService

__all__ = [
    "BaseService",
    "AddressService",
    "AuthService",
    "CartService",
    "CatalogService",
    "OrdersService",
]
