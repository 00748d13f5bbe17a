"""
WeMall API 路由模块
"""
from fastapi import APIRouter

from .cart import router as cart_router
from .orders import router as orders_router
from .products import router as products_router
from .system import router as system_router
from .user import router as user_router

# 创建主路由器
api_router = APIRouter()

api_router.include_router(user_router, prefix="/user", tags=["User"])
api_router.include_router(products_router, prefix="/products", tags=["Products"])
api_router.include_router(cart_router, prefix="/cart", tags=["Cart"])
api_router.include_router(orders_router, prefix="/orders", tags=["Orders"])
api_router.include_router(system_router, prefix="/system", tags=["System"])
