"""
购物车 API 路由
"""
from fastapi import APIRouter, Depends

from wm_core.services.cart import CartService
from .deps import get_current_user_id, get_cart_service
from .models import (
    ApiResponse, AddToCartRequest, UpdateCartItemRequest,
    BatchUpdateCartRequest, RemoveCartItemsRequest,
    CartItemOut, CartSummaryOut
)

router = APIRouter()


@router.get("", response_model=ApiResponse[CartSummaryOut])
async def get_cart(
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    return ApiResponse.success(await service.get_cart(user_id))


@router.post("/add", response_model=ApiResponse[CartItemOut])
async def add_to_cart(
    body: AddToCartRequest,
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    item = await service.add(user_id, body.product_id, body.quantity, sku_id=body.product_sku_id)
    return ApiResponse.success(item, message="已加入购物车")


@router.put("/batch", response_model=ApiResponse[dict])
async def batch_update_cart(
    body: BatchUpdateCartRequest,
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    """批量更新数量/选中状态"""
    updated = await service.batch_update(user_id, [i.model_dump() for i in body.items])
    return ApiResponse.success({"updated": updated})


@router.put("/{item_id}", response_model=ApiResponse[CartItemOut])
async def update_cart_item(
    item_id: int,
    body: UpdateCartItemRequest,
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    item = await service.update_item(user_id, item_id, quantity=body.quantity, is_selected=body.is_selected)
    return ApiResponse.success(item)


@router.delete("/remove", response_model=ApiResponse[dict])
async def remove_cart_items(
    body: RemoveCartItemsRequest,
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    removed = await service.remove(user_id, body.cart_item_ids)
    return ApiResponse.success({"removed": removed})


@router.delete("/clear", response_model=ApiResponse[dict])
async def clear_cart(
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    removed = await service.clear(user_id)
    return ApiResponse.success({"removed": removed})


@router.get("/count", response_model=ApiResponse[int])
async def cart_count(
    user_id: int = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    return ApiResponse.success(await service.count(user_id))
