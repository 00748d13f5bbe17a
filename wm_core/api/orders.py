"""
订单 API 路由
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from wm_core.middleware.metrics import ORDERS_CREATED
from wm_core.services.orders import OrdersService
from wm_core.utils.logger import get_logger
from .deps import get_current_user_id, get_orders_service
from .models import (
    ApiResponse, PagedResponse,
    OrderPreviewRequest, CreateOrderRequest, PayOrderRequest,
    CancelOrderRequest, ConfirmReceiptRequest,
    OrderOut, OrderPreviewOut, PayOrderOut, OrderStatisticsOut
)

router = APIRouter()
logger = get_logger(__name__)


@router.post("/preview", response_model=ApiResponse[OrderPreviewOut])
async def preview_order(
    body: OrderPreviewRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    """结算预览"""
    return ApiResponse.success(await service.preview(user_id, body.cart_item_ids))


@router.post("", response_model=ApiResponse[OrderOut])
async def create_order(
    body: CreateOrderRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    """提交订单"""
    order = await service.create_order(
        user_id,
        body.cart_item_ids,
        body.address_id,
        remark=body.remark,
        coupon_amount=body.coupon_amount,
    )
    ORDERS_CREATED.inc()
    return ApiResponse.success(order, message="订单创建成功")


@router.get("", response_model=ApiResponse[PagedResponse[OrderOut]])
async def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100, alias="pageSize"),
    status: Optional[int] = Query(None, ge=1, le=6),
    pay_status: Optional[int] = Query(None, ge=0, le=3, alias="payStatus"),
    order_no: Optional[str] = Query(None, alias="orderNo"),
    start_date: Optional[date] = Query(None, alias="startDate"),
    end_date: Optional[date] = Query(None, alias="endDate"),
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    """订单列表"""
    result = await service.list_orders(
        user_id,
        status=status,
        payment_status=pay_status,
        order_no=order_no,
        start_date=start_date,
        end_date=end_date,
        page=page,
        page_size=page_size,
    )
    return ApiResponse.success(result)


@router.get("/statistics", response_model=ApiResponse[OrderStatisticsOut])
async def order_statistics(
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    """各状态订单数"""
    return ApiResponse.success(await service.statistics(user_id))


@router.get("/{order_id}", response_model=ApiResponse[OrderOut])
async def get_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    return ApiResponse.success(await service.get_order(user_id, order_id))


@router.post("/pay", response_model=ApiResponse[PayOrderOut])
async def pay_order(
    body: PayOrderRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    """发起支付"""
    payment = await service.pay(user_id, body.order_id, body.pay_method)
    return ApiResponse.success(payment, message="支付信息获取成功")


@router.post("/cancel", response_model=ApiResponse[None])
async def cancel_order(
    body: CancelOrderRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    await service.cancel(user_id, body.order_id, body.reason)
    return ApiResponse.success(message="订单取消成功")


@router.post("/confirm-receipt", response_model=ApiResponse[None])
async def confirm_receipt(
    body: ConfirmReceiptRequest,
    user_id: int = Depends(get_current_user_id),
    service: OrdersService = Depends(get_orders_service),
):
    await service.confirm_receipt(user_id, body.order_id)
    return ApiResponse.success(message="确认收货成功")
