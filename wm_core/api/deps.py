"""
路由依赖：当前用户与服务实例
"""
from fastapi import Request

from wm_core.services.addresses import AddressService
from wm_core.services.auth_service import AuthService
from wm_core.services.cart import CartService
from wm_core.services.catalog import CatalogService
from wm_core.services.orders import OrdersService
from wm_core.utils.errors import UnauthorizedError


def get_current_user_id(request: Request) -> int:
    """读取认证中间件写入的 user_id"""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        raise UnauthorizedError()
    return user_id


def get_auth_service() -> AuthService:
    return AuthService()


def get_catalog_service() -> CatalogService:
    return CatalogService()


def get_cart_service() -> CartService:
    return CartService()


def get_address_service() -> AddressService:
    return AddressService()


def get_orders_service() -> OrdersService:
    return OrdersService()
