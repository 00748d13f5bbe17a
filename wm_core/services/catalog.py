"""
商品目录服务
商品/SKU/分类的查询与维护；商品和分类均为软删除
"""
import json
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from wm_core.models.catalog import Category, Product, ProductSku
from wm_core.utils.errors import NotFoundError, ValidationError, ConflictError
from wm_core.utils.money import to_money
from .base import BaseService, RepositoryMixin, page_payload

PRODUCT_FIELDS = [
    "name", "description", "detail_html", "price", "original_price", "stock", "unit",
    "main_image_url", "category_id", "sort_order", "is_recommended", "is_new", "is_hot",
]
SKU_FIELDS = ["sku_code", "sku_name", "price", "original_price", "stock", "image_url"]
CATEGORY_FIELDS = ["name", "description", "image_url", "parent_id", "sort_order"]
# 非空列：更新时传入 None 视为未修改
REQUIRED_PRODUCT_FIELDS = {
    "name", "price", "stock", "category_id", "sort_order", "is_recommended", "is_new", "is_hot",
}
REQUIRED_CATEGORY_FIELDS = {"name", "sort_order"}

SORT_OPTIONS = {
    "price_asc": (Product.price.asc(), Product.id.asc()),
    "price_desc": (Product.price.desc(), Product.id.desc()),
    "sales_desc": (Product.sales_count.desc(), Product.id.desc()),
    "created_desc": (Product.created_at.desc(), Product.id.desc()),
}
DEFAULT_SORT = (Product.sort_order.asc(), Product.created_at.desc(), Product.id.desc())


def serialize_sku(sku: ProductSku) -> Dict[str, Any]:
    return {
        "id": sku.id,
        "product_id": sku.product_id,
        "sku_code": sku.sku_code,
        "sku_name": sku.sku_name,
        "specifications": sku.spec_map,
        "price": sku.price,
        "original_price": sku.original_price,
        "stock": sku.stock,
        "sales_count": sku.sales_count,
        "image_url": sku.image_url,
    }


def serialize_product(product: Product, with_skus: bool = True) -> Dict[str, Any]:
    data = {
        "id": product.id,
        "name": product.name,
        "description": product.description,
        "price": product.price,
        "original_price": product.original_price,
        "stock": product.stock,
        "sales_count": product.sales_count,
        "unit": product.unit,
        "main_image_url": product.main_image_url,
        "image_urls": product.image_list,
        "category_id": product.category_id,
        "category_name": product.category.name if product.category else None,
        "sort_order": product.sort_order,
        "is_recommended": product.is_recommended,
        "is_new": product.is_new,
        "is_hot": product.is_hot,
        "created_at": product.created_at,
    }
    if with_skus:
        data["detail_html"] = product.detail_html
        data["skus"] = [serialize_sku(s) for s in product.skus if s.is_active]
    return data


class CatalogService(BaseService, RepositoryMixin):
    """商品目录服务"""

    # ========== 商品查询 ==========

    async def list_products(
        self,
        category_id: Optional[int] = None,
        keyword: Optional[str] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        is_recommended: Optional[bool] = None,
        is_new: Optional[bool] = None,
        is_hot: Optional[bool] = None,
        sort_by: Optional[str] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Dict[str, Any]:
        """商品列表：仅上架商品，支持筛选、排序、分页"""
        stmt = (
            select(Product)
            .options(selectinload(Product.category))
            .where(Product.is_active.is_(True))
        )

        if category_id is not None:
            stmt = stmt.where(Product.category_id == category_id)
        if keyword:
            pattern = f"%{keyword}%"
            stmt = stmt.where(or_(Product.name.like(pattern), Product.description.like(pattern)))
        if min_price is not None:
            stmt = stmt.where(Product.price >= min_price)
        if max_price is not None:
            stmt = stmt.where(Product.price <= max_price)
        if is_recommended is not None:
            stmt = stmt.where(Product.is_recommended.is_(is_recommended))
        if is_new is not None:
            stmt = stmt.where(Product.is_new.is_(is_new))
        if is_hot is not None:
            stmt = stmt.where(Product.is_hot.is_(is_hot))

        stmt = stmt.order_by(*SORT_OPTIONS.get(sort_by or "", DEFAULT_SORT))

        async def _list(session: AsyncSession):
            products, total = await self.paginate(session, stmt, page, page_size)
            items = [serialize_product(p, with_skus=False) for p in products]
            return page_payload(items, total, page, page_size)

        return await self.execute_with_session(_list)

    async def _load_product(self, session: AsyncSession, product_id: int, active_only: bool = True) -> Product:
        stmt = (
            select(Product)
            .options(selectinload(Product.category), selectinload(Product.skus))
            .where(Product.id == product_id)
        )
        if active_only:
            stmt = stmt.where(Product.is_active.is_(True))
        product = (await session.execute(stmt)).scalar_one_or_none()
        if product is None:
            raise NotFoundError(code="PRODUCT_NOT_FOUND", resource="商品")
        return product

    async def get_product(self, product_id: int) -> Dict[str, Any]:
        async def _get(session: AsyncSession):
            return serialize_product(await self._load_product(session, product_id))

        return await self.execute_with_session(_get)

    # ========== 商品维护 ==========

    async def _require_category(self, session: AsyncSession, category_id: int) -> Category:
        category = await session.get(Category, category_id)
        if category is None or not category.is_active:
            raise NotFoundError(code="CATEGORY_NOT_FOUND", resource="商品分类")
        return category

    def _product_values(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = self.sanitize_input(data, PRODUCT_FIELDS)
        for key in ("price", "original_price"):
            if values.get(key) is not None:
                values[key] = to_money(values[key])
        if "image_urls" in data:
            values["image_urls"] = json.dumps(data.get("image_urls") or [], ensure_ascii=False)
        return values

    def _sku_values(self, data: Dict[str, Any]) -> Dict[str, Any]:
        values = self.sanitize_input(data, SKU_FIELDS)
        for key in ("price", "original_price"):
            if values.get(key) is not None:
                values[key] = to_money(values[key])
        values["specifications"] = json.dumps(data.get("specifications") or {}, ensure_ascii=False)
        return values

    async def _check_sku_codes(self, session: AsyncSession, skus: List[Dict[str, Any]], product_id: Optional[int]):
        """SKU 编码全局唯一"""
        codes = [s["sku_code"] for s in skus]
        if len(codes) != len(set(codes)):
            raise ValidationError(code="DUPLICATE_SKU_CODE", detail="SKU 编码重复")
        if not codes:
            return
        stmt = select(ProductSku.sku_code).where(ProductSku.sku_code.in_(codes))
        if product_id is not None:
            stmt = stmt.where(ProductSku.product_id != product_id)
        taken = (await session.execute(stmt)).scalars().all()
        if taken:
            raise ConflictError(code="SKU_CODE_EXISTS", detail=f"SKU 编码已存在: {', '.join(taken)}")

    async def create_product(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.validate_required_fields(data, ["name", "price", "category_id"])
        skus = data.get("skus") or []

        async def _create(session: AsyncSession):
            await self._require_category(session, data["category_id"])
            await self._check_sku_codes(session, skus, None)

            product = await self.create(session, Product, self._product_values(data))
            for sku in skus:
                session.add(ProductSku(product_id=product.id, **self._sku_values(sku)))
            await session.flush()

            self.logger.info("Product created", product_id=product.id, sku_count=len(skus))
            return product.id

        product_id = await self.execute_with_transaction(_create)
        return await self.get_product(product_id)

    async def update_product(self, product_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """更新商品；传入 skus 时替换 SKU 集合

        历史订单和购物车可能引用旧 SKU，未出现在新集合中的 SKU 做下架处理而非物理删除。
        """
        async def _update(session: AsyncSession):
            product = await self._load_product(session, product_id, active_only=False)
            if data.get("category_id") is not None:
                await self._require_category(session, data["category_id"])

            values = self._product_values(data)
            changes = {k: v for k, v in values.items() if v is not None or k not in REQUIRED_PRODUCT_FIELDS}
            await self.update(session, product, changes)

            if data.get("skus") is not None:
                incoming = {s["sku_code"]: s for s in data["skus"]}
                await self._check_sku_codes(session, data["skus"], product.id)

                for sku in product.skus:
                    if sku.sku_code in incoming:
                        await self.update(session, sku, {**self._sku_values(incoming.pop(sku.sku_code)), "is_active": True})
                    else:
                        sku.is_active = False
                for sku_data in incoming.values():
                    session.add(ProductSku(product_id=product.id, **self._sku_values(sku_data)))
                await session.flush()

            self.logger.info("Product updated", product_id=product.id)

        await self.execute_with_transaction(_update)
        return await self.get_product(product_id)

    async def delete_product(self, product_id: int) -> None:
        async def _delete(session: AsyncSession):
            product = await self._load_product(session, product_id)
            product.is_active = False
            await session.flush()
            self.logger.info("Product deleted", product_id=product_id)

        await self.execute_with_transaction(_delete)

    # ========== 分类 ==========

    async def _category_payload(self, session: AsyncSession, category: Category) -> Dict[str, Any]:
        children = (await session.execute(
            select(Category)
            .where(Category.parent_id == category.id, Category.is_active.is_(True))
            .order_by(Category.sort_order, Category.created_at)
        )).scalars().all()
        product_count = (await session.execute(
            select(func.count(Product.id))
            .where(Product.category_id == category.id, Product.is_active.is_(True))
        )).scalar_one()

        return {
            "id": category.id,
            "name": category.name,
            "description": category.description,
            "image_url": category.image_url,
            "parent_id": category.parent_id,
            "sort_order": category.sort_order,
            "product_count": product_count,
            "children": [
                {"id": c.id, "name": c.name, "image_url": c.image_url, "sort_order": c.sort_order}
                for c in children
            ],
        }

    async def list_categories(self) -> List[Dict[str, Any]]:
        async def _list(session: AsyncSession):
            categories = (await session.execute(
                select(Category)
                .where(Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.created_at, Category.id)
            )).scalars().all()
            return [await self._category_payload(session, c) for c in categories]

        return await self.execute_with_session(_list)

    async def get_category(self, category_id: int) -> Dict[str, Any]:
        async def _get(session: AsyncSession):
            return await self._category_payload(session, await self._require_category(session, category_id))

        return await self.execute_with_session(_get)

    async def create_category(self, data: Dict[str, Any]) -> Dict[str, Any]:
        self.validate_required_fields(data, ["name"])

        async def _create(session: AsyncSession):
            if data.get("parent_id") is not None:
                await self._require_category(session, data["parent_id"])
            category = await self.create(session, Category, self.sanitize_input(data, CATEGORY_FIELDS))
            self.logger.info("Category created", category_id=category.id)
            return await self._category_payload(session, category)

        return await self.execute_with_transaction(_create)

    async def update_category(self, category_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        async def _update(session: AsyncSession):
            category = await self._require_category(session, category_id)
            parent_id = data.get("parent_id")
            if parent_id is not None:
                if parent_id == category_id:
                    raise ValidationError(code="INVALID_PARENT_CATEGORY", detail="父分类不能是自身")
                await self._require_category(session, parent_id)

            values = self.sanitize_input(data, CATEGORY_FIELDS)
            changes = {k: v for k, v in values.items() if v is not None or k not in REQUIRED_CATEGORY_FIELDS}
            await self.update(session, category, changes)
            return await self._category_payload(session, category)

        return await self.execute_with_transaction(_update)

    async def delete_category(self, category_id: int) -> None:
        """删除分类；存在上架子分类或商品时拒绝"""
        async def _delete(session: AsyncSession):
            category = await self._require_category(session, category_id)

            if await self.exists(session, Category, parent_id=category_id, is_active=True):
                raise ConflictError(code="CATEGORY_HAS_CHILDREN", detail="该分类下还有子分类，无法删除")
            if await self.exists(session, Product, category_id=category_id, is_active=True):
                raise ConflictError(code="CATEGORY_HAS_PRODUCTS", detail="该分类下还有商品，无法删除")

            category.is_active = False
            await session.flush()
            self.logger.info("Category deleted", category_id=category_id)

        await self.execute_with_transaction(_delete)
