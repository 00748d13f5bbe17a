"""
订单服务
购物车结算、下单扣库存、支付、取消回补库存、确认收货
"""
import random
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List
from uuid import uuid4

from sqlalchemy import select, update as sql_update, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wm_core.config import Settings
from wm_core.database import DatabaseManager
from wm_core.models.base import utc_now
from wm_core.models.cart import CartItem
from wm_core.models.catalog import Product, ProductSku
from wm_core.models.orders import Order, OrderItem, OrderStatus, PaymentStatus
from wm_core.models.users import UserAddress
from wm_core.utils.errors import (
    NotFoundError, ValidationError, ConflictError, InvalidStateError,
    InsufficientStockError, AlreadyPaidError, NoDefaultAddressError,
    handle_errors
)
from wm_core.utils.logger import get_logger
from wm_core.utils.money import (
    ZERO, to_money, line_total, sum_money, shipping_fee_for, pay_amount_for
)
from .addresses import AddressService, serialize_address
from .base import BaseService, RepositoryMixin, page_payload
from .cart import cart_items_query

logger = get_logger(__name__)

# 统计口径
STATISTICS_BUCKETS = {
    "pendingPayment": OrderStatus.PENDING_PAYMENT,
    "pendingShipment": OrderStatus.AWAITING_SHIPMENT,
    "shipped": OrderStatus.SHIPPED,
    "completed": OrderStatus.COMPLETED,
    "cancelled": OrderStatus.CANCELLED,
}


def serialize_order_item(item: OrderItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_sku_id": item.product_sku_id,
        "product_name": item.product_name,
        "product_image": item.product_image,
        "sku_specifications": item.sku_specifications,
        "price": item.price,
        "quantity": item.quantity,
        "total_amount": item.total_amount,
    }


def serialize_order(order: Order) -> Dict[str, Any]:
    return {
        "id": order.id,
        "order_no": order.order_no,
        "total_amount": order.total_amount,
        "discount_amount": order.discount_amount,
        "shipping_fee": order.shipping_fee,
        "pay_amount": order.pay_amount,
        "status": order.status,
        "status_text": order.status_text,
        "payment_status": order.payment_status,
        "payment_status_text": order.payment_status_text,
        "payment_method": order.payment_method,
        "payment_time": order.payment_time,
        "receiver_name": order.receiver_name,
        "receiver_phone": order.receiver_phone,
        "receiver_address": order.receiver_address,
        "shipping_company": order.shipping_company,
        "shipping_no": order.shipping_no,
        "remark": order.remark,
        "items": [serialize_order_item(i) for i in order.items],
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def serialize_cart_line(line: CartItem) -> Dict[str, Any]:
    """结算预览中的一行，字段与订单明细一致"""
    return {
        "id": line.id,
        "product_id": line.product_id,
        "product_sku_id": line.product_sku_id,
        "product_name": line.product.name,
        "product_image": line.image_url,
        "sku_specifications": line.specifications_text,
        "price": to_money(line.unit_price),
        "quantity": line.quantity,
        "total_amount": line_total(line.unit_price, line.quantity),
    }


class StubPaymentGateway:
    """模拟支付网关：返回支付单号和跳转地址，不发起真实扣款"""

    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    @handle_errors(logger)
    async def create_payment(self, order: Order, pay_method: str) -> Dict[str, Any]:
        payment_id = str(uuid4())
        return {
            "payment_id": payment_id,
            "payment_url": f"{self.base_url}/pay/{payment_id}",
            "payment_params": {
                "orderId": order.id,
                "orderNo": order.order_no,
                "amount": order.pay_amount,
                "payMethod": pay_method,
            },
        }


class OrdersService(BaseService, RepositoryMixin):
    """订单服务

    下单与取消各自在一个事务内完成；库存通过条件更新扣减，
    并发下单不会把库存扣成负数。
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        settings: Optional[Settings] = None,
        payment_gateway: Optional[StubPaymentGateway] = None
    ):
        super().__init__(db_manager, settings)
        self.addresses = AddressService(self.db_manager, self.settings)
        self.payment_gateway = payment_gateway or StubPaymentGateway(self.settings.payment_gateway_url)

    # ========== 内部工具 ==========

    async def _load_cart_lines(self, session: AsyncSession, user_id: int, cart_item_ids: List[int]) -> List[CartItem]:
        lines = []
        if cart_item_ids:
            stmt = cart_items_query(user_id).where(CartItem.id.in_(cart_item_ids)).order_by(CartItem.id)
            lines = list((await session.execute(stmt)).scalars().all())
        if not lines:
            raise NotFoundError(code="CART_ITEM_NOT_FOUND", resource="购物车项")
        return lines

    def _check_lines(self, lines: List[CartItem]) -> None:
        """逐行校验商品可售和库存，首个不满足的行即失败"""
        for line in lines:
            if not line.product.is_active or (line.sku is not None and not line.sku.is_active):
                raise ConflictError(code="PRODUCT_UNAVAILABLE", detail=f"商品 {line.product.name} 已下架")
            if line.available_stock < line.quantity:
                raise InsufficientStockError(line.product.name, line.product_id)

    def _amounts(self, lines: List[CartItem], discount: Decimal = ZERO) -> Dict[str, Decimal]:
        total = sum_money(line_total(line.unit_price, line.quantity) for line in lines)
        shipping_fee = shipping_fee_for(
            total, self.settings.shipping_free_threshold, self.settings.shipping_flat_fee
        )
        discount = to_money(discount)
        if discount > total + shipping_fee:
            raise ValidationError(code="INVALID_COUPON_AMOUNT", detail="优惠金额不能超过订单金额")

        return {
            "total_amount": total,
            "shipping_fee": shipping_fee,
            "discount_amount": discount,
            "pay_amount": pay_amount_for(total, shipping_fee, discount),
        }

    async def _adjust_stock(self, session: AsyncSession, product_id: int, sku_id: Optional[int], delta: int) -> bool:
        """调整库存；扣减时带 stock >= 数量 条件，返回是否更新成功"""
        model = ProductSku if sku_id is not None else Product
        target_id = sku_id if sku_id is not None else product_id

        stmt = sql_update(model).where(model.id == target_id)
        if delta < 0:
            stmt = stmt.where(model.stock >= -delta)
        result = await session.execute(
            stmt.values(stock=model.stock + delta).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def _add_sales(self, session: AsyncSession, product_id: int, sku_id: Optional[int], quantity: int) -> None:
        await session.execute(
            sql_update(Product)
            .where(Product.id == product_id)
            .values(sales_count=Product.sales_count + quantity)
            .execution_options(synchronize_session=False)
        )
        if sku_id is not None:
            await session.execute(
                sql_update(ProductSku)
                .where(ProductSku.id == sku_id)
                .values(sales_count=ProductSku.sales_count + quantity)
                .execution_options(synchronize_session=False)
            )

    def _new_order_no(self) -> str:
        """订单号：前缀 + 时间 + 4位随机数"""
        now = datetime.now(timezone.utc)
        return f"{self.settings.order_no_prefix}{now:%Y%m%d%H%M%S}{random.randint(1000, 9999)}"

    async def _generate_order_no(self, session: AsyncSession) -> str:
        for _ in range(self.settings.order_no_max_attempts):
            order_no = self._new_order_no()
            if not await self.exists(session, Order, order_no=order_no):
                return order_no
            self.logger.warning("Order number collision, retrying", order_no=order_no)

        raise ConflictError(code="ORDER_NO_CONFLICT", detail="订单号生成失败，请重新提交")

    async def _load_order(
        self,
        session: AsyncSession,
        user_id: int,
        order_id: int,
        for_update: bool = False
    ) -> Order:
        stmt = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.id == order_id, Order.user_id == user_id)
        )
        if for_update:
            stmt = stmt.with_for_update()
        order = (await session.execute(stmt)).scalar_one_or_none()
        if order is None:
            raise NotFoundError(code="ORDER_NOT_FOUND", resource="订单")
        return order

    # ========== 结算与下单 ==========

    async def preview(self, user_id: int, cart_item_ids: List[int]) -> Dict[str, Any]:
        """结算预览，无副作用"""
        async def _preview(session: AsyncSession):
            lines = await self._load_cart_lines(session, user_id, cart_item_ids)
            self._check_lines(lines)

            address = await self.addresses.find_default(session, user_id)
            if address is None:
                raise NoDefaultAddressError()

            return {
                "items": [serialize_cart_line(line) for line in lines],
                **self._amounts(lines),
                "address": serialize_address(address),
            }

        return await self.execute_with_session(_preview)

    async def create_order(
        self,
        user_id: int,
        cart_item_ids: List[int],
        address_id: int,
        remark: Optional[str] = None,
        coupon_amount: Optional[Decimal] = None
    ) -> Dict[str, Any]:
        """下单：校验、扣库存、落单、清理购物车，全部在一个事务内"""
        discount = to_money(coupon_amount) if coupon_amount is not None else ZERO
        if discount < ZERO:
            raise ValidationError(code="INVALID_COUPON_AMOUNT", detail="优惠金额不能为负数")

        async def _create(session: AsyncSession):
            lines = await self._load_cart_lines(session, user_id, cart_item_ids)

            address = await self.get_owned(session, UserAddress, address_id, user_id)
            if address is None:
                raise NotFoundError(code="ADDRESS_NOT_FOUND", resource="收货地址")

            self._check_lines(lines)
            amounts = self._amounts(lines, discount)

            for line in lines:
                if not await self._adjust_stock(session, line.product_id, line.product_sku_id, -line.quantity):
                    raise InsufficientStockError(line.product.name, line.product_id)

            order = Order(
                order_no=await self._generate_order_no(session),
                user_id=user_id,
                status=OrderStatus.PENDING_PAYMENT,
                payment_status=PaymentStatus.UNPAID,
                receiver_name=address.receiver_name,
                receiver_phone=address.phone,
                receiver_address=address.full_address,
                receiver_postcode=address.postal_code,
                remark=remark,
                **amounts,
            )
            for line in lines:
                order.items.append(OrderItem(
                    product_id=line.product_id,
                    product_sku_id=line.product_sku_id,
                    product_name=line.product.name,
                    product_image=line.image_url,
                    sku_specifications=line.specifications_text,
                    price=to_money(line.unit_price),
                    quantity=line.quantity,
                    total_amount=line_total(line.unit_price, line.quantity),
                ))
            session.add(order)

            try:
                await session.flush()
            except IntegrityError as e:
                if "order_no" in str(e.orig):
                    raise ConflictError(code="ORDER_NO_CONFLICT", detail="订单号冲突，请重新提交") from e
                raise

            await session.execute(
                delete(CartItem)
                .where(CartItem.id.in_([line.id for line in lines]))
                .execution_options(synchronize_session=False)
            )

            self.logger.info(
                "Order created",
                order_id=order.id,
                order_no=order.order_no,
                pay_amount=str(order.pay_amount),
                line_count=len(lines),
            )
            return serialize_order(order)

        return await self.execute_with_transaction(_create)

    # ========== 查询 ==========

    async def list_orders(
        self,
        user_id: int,
        status: Optional[int] = None,
        payment_status: Optional[int] = None,
        order_no: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """订单列表，按创建时间倒序；日期范围按 UTC 自然日且包含首尾两天"""
        stmt = (
            select(Order)
            .options(selectinload(Order.items))
            .where(Order.user_id == user_id)
        )
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if payment_status is not None:
            stmt = stmt.where(Order.payment_status == payment_status)
        if order_no:
            stmt = stmt.where(Order.order_no.contains(order_no, autoescape=True))
        if start_date is not None:
            stmt = stmt.where(Order.created_at >= datetime.combine(start_date, time.min, tzinfo=timezone.utc))
        if end_date is not None:
            day_after = datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
            stmt = stmt.where(Order.created_at < day_after)

        stmt = stmt.order_by(Order.created_at.desc(), Order.id.desc())

        async def _list(session: AsyncSession):
            orders, total = await self.paginate(session, stmt, page, page_size)
            return page_payload([serialize_order(o) for o in orders], total, page, page_size)

        return await self.execute_with_session(_list)

    async def get_order(self, user_id: int, order_id: int) -> Dict[str, Any]:
        async def _get(session: AsyncSession):
            return serialize_order(await self._load_order(session, user_id, order_id))

        return await self.execute_with_session(_get)

    async def statistics(self, user_id: int) -> Dict[str, int]:
        """按状态统计订单数"""
        async def _stats(session: AsyncSession):
            result = await session.execute(
                select(Order.status, func.count(Order.id))
                .where(Order.user_id == user_id)
                .group_by(Order.status)
            )
            counts = {status: count for status, count in result.all()}
            return {bucket: counts.get(status, 0) for bucket, status in STATISTICS_BUCKETS.items()}

        return await self.execute_with_session(_stats)

    # ========== 状态流转 ==========

    async def pay(self, user_id: int, order_id: int, pay_method: str) -> Dict[str, Any]:
        """发起支付；订单状态由支付回调推进，此处不变"""
        async def _pay(session: AsyncSession):
            order = await self._load_order(session, user_id, order_id, for_update=True)
            if order.status != OrderStatus.PENDING_PAYMENT:
                raise InvalidStateError(detail=f"订单{order.status_text}，无法支付")
            if order.payment_status != PaymentStatus.UNPAID:
                raise AlreadyPaidError()

            payment = await self.payment_gateway.create_payment(order, pay_method)
            order.payment_method = pay_method
            order.payment_transaction_id = payment["payment_id"]
            await session.flush()

            self.logger.info("Payment initiated", order_id=order.id, pay_method=pay_method)
            return payment

        return await self.execute_with_transaction(_pay)

    async def cancel(self, user_id: int, order_id: int, reason: Optional[str] = None) -> None:
        """取消订单并回补库存"""
        async def _cancel(session: AsyncSession):
            order = await self._load_order(session, user_id, order_id, for_update=True)
            if order.status != OrderStatus.PENDING_PAYMENT:
                raise InvalidStateError(detail=f"订单{order.status_text}，无法取消")

            for item in order.items:
                await self._adjust_stock(session, item.product_id, item.product_sku_id, item.quantity)

            if reason:
                order.remark = f"{order.remark}\n取消原因：{reason}" if order.remark else f"取消原因：{reason}"
            order.status = OrderStatus.CANCELLED
            await session.flush()

            self.logger.info("Order cancelled", order_id=order.id, order_no=order.order_no)

        await self.execute_with_transaction(_cancel)

    async def confirm_receipt(self, user_id: int, order_id: int) -> None:
        """确认收货：订单完成并累加销量"""
        async def _confirm(session: AsyncSession):
            order = await self._load_order(session, user_id, order_id, for_update=True)
            if order.status != OrderStatus.SHIPPED:
                raise InvalidStateError(detail=f"订单{order.status_text}，无法确认收货")

            for item in order.items:
                await self._add_sales(session, item.product_id, item.product_sku_id, item.quantity)

            order.status = OrderStatus.COMPLETED
            order.finish_time = utc_now()
            await session.flush()

            self.logger.info("Order completed", order_id=order.id, order_no=order.order_no)

        await self.execute_with_transaction(_confirm)
