"""
购物车服务
"""
from typing import Optional, Dict, Any, List

from sqlalchemy import select, delete, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wm_core.models.cart import CartItem
from wm_core.models.catalog import Product, ProductSku
from wm_core.utils.errors import NotFoundError, ValidationError, InsufficientStockError
from wm_core.utils.money import line_total, sum_money
from .base import BaseService, RepositoryMixin


def serialize_cart_item(item: CartItem) -> Dict[str, Any]:
    return {
        "id": item.id,
        "product_id": item.product_id,
        "product_sku_id": item.product_sku_id,
        "product_name": item.product.name,
        "product_image": item.image_url,
        "sku_specifications": item.specifications_text,
        "price": item.unit_price,
        "stock": item.available_stock,
        "quantity": item.quantity,
        "is_selected": item.is_selected,
        "total_amount": line_total(item.unit_price, item.quantity),
        "created_at": item.created_at,
    }


def cart_items_query(user_id: int):
    """带商品和 SKU 的购物车查询"""
    return (
        select(CartItem)
        .options(selectinload(CartItem.product), selectinload(CartItem.sku))
        .where(CartItem.user_id == user_id)
    )


class CartService(BaseService, RepositoryMixin):
    """购物车服务"""

    def _check_quantity(self, quantity: int) -> None:
        if quantity < 1 or quantity > self.settings.cart_max_quantity:
            raise ValidationError(
                code="INVALID_QUANTITY",
                detail=f"商品数量必须在 1 到 {self.settings.cart_max_quantity} 之间"
            )

    async def _load_item(self, session: AsyncSession, user_id: int, item_id: int) -> CartItem:
        stmt = cart_items_query(user_id).where(CartItem.id == item_id)
        item = (await session.execute(stmt)).scalar_one_or_none()
        if item is None:
            raise NotFoundError(code="CART_ITEM_NOT_FOUND", resource="购物车项")
        return item

    async def get_cart(self, user_id: int) -> Dict[str, Any]:
        """购物车列表及汇总"""
        async def _get(session: AsyncSession):
            stmt = cart_items_query(user_id).order_by(CartItem.created_at.desc(), CartItem.id.desc())
            items = [serialize_cart_item(i) for i in (await session.execute(stmt)).scalars().all()]
            selected = [i for i in items if i["is_selected"]]

            return {
                "items": items,
                "total_count": sum(i["quantity"] for i in items),
                "selected_count": sum(i["quantity"] for i in selected),
                "total_amount": sum_money(i["total_amount"] for i in items),
                "selected_amount": sum_money(i["total_amount"] for i in selected),
            }

        return await self.execute_with_session(_get)

    async def add(
        self,
        user_id: int,
        product_id: int,
        quantity: int = 1,
        sku_id: Optional[int] = None
    ) -> Dict[str, Any]:
        """加入购物车；已有相同 (商品, SKU) 时累加数量"""
        self._check_quantity(quantity)

        async def _add(session: AsyncSession):
            product = await session.get(Product, product_id)
            if product is None or not product.is_active:
                raise NotFoundError(code="PRODUCT_NOT_FOUND", resource="商品")

            sku = None
            if sku_id is not None:
                sku = await session.get(ProductSku, sku_id)
                if sku is None or sku.product_id != product_id or not sku.is_active:
                    raise NotFoundError(code="SKU_NOT_FOUND", resource="商品规格")

            available = sku.stock if sku is not None else product.stock

            stmt = select(CartItem).where(
                CartItem.user_id == user_id,
                CartItem.product_id == product_id,
                CartItem.product_sku_id.is_(None) if sku_id is None else CartItem.product_sku_id == sku_id,
            )
            existing = (await session.execute(stmt)).scalar_one_or_none()

            new_quantity = quantity + (existing.quantity if existing else 0)
            self._check_quantity(new_quantity)
            if available < new_quantity:
                raise InsufficientStockError(product.name, product.id)

            if existing:
                existing.quantity = new_quantity
                item_id = existing.id
            else:
                item = await self.create(session, CartItem, {
                    "user_id": user_id,
                    "product_id": product_id,
                    "product_sku_id": sku_id,
                    "quantity": quantity,
                    "is_selected": True,
                })
                item_id = item.id
            await session.flush()

            self.logger.info("Cart item added", product_id=product_id, sku_id=sku_id, quantity=new_quantity)
            return serialize_cart_item(await self._load_item(session, user_id, item_id))

        return await self.execute_with_transaction(_add)

    async def update_item(
        self,
        user_id: int,
        item_id: int,
        quantity: Optional[int] = None,
        is_selected: Optional[bool] = None
    ) -> Dict[str, Any]:
        async def _update(session: AsyncSession):
            item = await self._load_item(session, user_id, item_id)
            if quantity is not None:
                self._check_quantity(quantity)
                if item.available_stock < quantity:
                    raise InsufficientStockError(item.product.name, item.product_id)
                item.quantity = quantity
            if is_selected is not None:
                item.is_selected = is_selected
            await session.flush()
            return serialize_cart_item(item)

        return await self.execute_with_transaction(_update)

    async def batch_update(self, user_id: int, updates: List[Dict[str, Any]]) -> int:
        """批量更新；不存在的条目与超出库存的数量直接跳过，返回实际更新条数"""
        by_id = {u["id"]: u for u in updates if u.get("id") is not None}

        async def _batch(session: AsyncSession):
            if not by_id:
                return 0
            stmt = cart_items_query(user_id).where(CartItem.id.in_(by_id.keys()))
            updated = 0
            for item in (await session.execute(stmt)).scalars().all():
                change = by_id[item.id]
                touched = False
                qty = change.get("quantity")
                if qty is not None and 1 <= qty <= self.settings.cart_max_quantity and item.available_stock >= qty:
                    item.quantity = qty
                    touched = True
                if change.get("is_selected") is not None:
                    item.is_selected = change["is_selected"]
                    touched = True
                updated += touched
            await session.flush()
            return updated

        return await self.execute_with_transaction(_batch)

    async def remove(self, user_id: int, item_ids: List[int]) -> int:
        async def _remove(session: AsyncSession):
            result = await session.execute(
                delete(CartItem)
                .where(CartItem.user_id == user_id, CartItem.id.in_(item_ids))
                .execution_options(synchronize_session=False)
            )
            if not result.rowcount:
                raise NotFoundError(code="CART_ITEM_NOT_FOUND", resource="购物车项")
            return result.rowcount

        return await self.execute_with_transaction(_remove)

    async def clear(self, user_id: int) -> int:
        async def _clear(session: AsyncSession):
            result = await session.execute(
                delete(CartItem)
                .where(CartItem.user_id == user_id)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

        return await self.execute_with_transaction(_clear)

    async def count(self, user_id: int) -> int:
        """购物车商品总件数"""
        async def _count(session: AsyncSession):
            result = await session.execute(
                select(func.coalesce(func.sum(CartItem.quantity), 0)).where(CartItem.user_id == user_id)
            )
            return int(result.scalar_one())

        return await self.execute_with_session(_count)
