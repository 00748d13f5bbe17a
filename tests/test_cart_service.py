"""
购物车服务测试
"""
from decimal import Decimal

import pytest
from sqlalchemy.exc import IntegrityError

from wm_core.models import CartItem
from wm_core.utils.errors import InsufficientStockError, NotFoundError, ValidationError


@pytest.mark.asyncio
async def test_add_merges_same_product(cart_service, seed, db_manager, helpers):
    first = await cart_service.add(seed.user_id, seed.tshirt_id, 1)
    second = await cart_service.add(seed.user_id, seed.tshirt_id, 2)

    assert first["id"] == second["id"]
    assert second["quantity"] == 3
    assert second["total_amount"] == Decimal("150.00")
    assert await helpers.count_rows(db_manager, CartItem, user_id=seed.user_id) == 1


@pytest.mark.asyncio
async def test_duplicate_cart_rows_are_rejected_by_database(seed, db_manager, helpers):
    await helpers.add_cart_item(db_manager, seed.user_id, seed.tshirt_id, 1)
    await helpers.add_cart_item(db_manager, seed.user_id, seed.jacket_id, 1, sku_id=seed.jacket_sku_id)

    # 无 SKU 的条目同样受唯一约束
    with pytest.raises(IntegrityError):
        await helpers.add_cart_item(db_manager, seed.user_id, seed.tshirt_id, 2)
    with pytest.raises(IntegrityError):
        await helpers.add_cart_item(db_manager, seed.user_id, seed.jacket_id, 2, sku_id=seed.jacket_sku_id)

    # 同一商品的无 SKU 条目与 SKU 条目可以并存，其他用户不受影响
    await helpers.add_cart_item(db_manager, seed.user_id, seed.jacket_id, 1)
    await helpers.add_cart_item(db_manager, seed.other_user_id, seed.tshirt_id, 1)
    assert await helpers.count_rows(db_manager, CartItem, user_id=seed.user_id) == 3


@pytest.mark.asyncio
async def test_add_sku_uses_sku_price_and_specs(cart_service, seed):
    item = await cart_service.add(seed.user_id, seed.jacket_id, 2, sku_id=seed.jacket_sku_id)

    assert item["price"] == Decimal("30.00")
    assert item["stock"] == 10
    assert item["sku_specifications"] == "颜色: 红色, 尺码: L"
    assert item["product_image"] == "https://img.example.com/jacket-red.jpg"

    # 同一商品不同 SKU 是独立条目
    plain = await cart_service.add(seed.user_id, seed.jacket_id, 1)
    assert plain["id"] != item["id"]
    assert plain["price"] == Decimal("199.00")


@pytest.mark.asyncio
async def test_add_rejects_bad_input(cart_service, seed):
    with pytest.raises(ValidationError):
        await cart_service.add(seed.user_id, seed.tshirt_id, 0)
    with pytest.raises(NotFoundError):
        await cart_service.add(seed.user_id, 9999, 1)
    with pytest.raises(NotFoundError):
        await cart_service.add(seed.user_id, seed.tshirt_id, 1, sku_id=seed.jacket_sku_id)

    await cart_service.add(seed.user_id, seed.tshirt_id, 4)
    with pytest.raises(InsufficientStockError):
        await cart_service.add(seed.user_id, seed.tshirt_id, 2)


@pytest.mark.asyncio
async def test_get_cart_summary(cart_service, seed):
    tshirt = await cart_service.add(seed.user_id, seed.tshirt_id, 2)
    await cart_service.add(seed.user_id, seed.jacket_id, 1, sku_id=seed.jacket_sku_id)
    await cart_service.update_item(seed.user_id, tshirt["id"], is_selected=False)

    cart = await cart_service.get_cart(seed.user_id)

    assert len(cart["items"]) == 2
    assert cart["total_count"] == 3
    assert cart["selected_count"] == 1
    assert cart["total_amount"] == Decimal("130.00")
    assert cart["selected_amount"] == Decimal("30.00")


@pytest.mark.asyncio
async def test_update_item(cart_service, seed):
    item = await cart_service.add(seed.user_id, seed.tshirt_id, 1)

    updated = await cart_service.update_item(seed.user_id, item["id"], quantity=5)
    assert updated["quantity"] == 5

    with pytest.raises(InsufficientStockError):
        await cart_service.update_item(seed.user_id, item["id"], quantity=6)
    with pytest.raises(NotFoundError):
        await cart_service.update_item(seed.other_user_id, item["id"], quantity=1)


@pytest.mark.asyncio
async def test_batch_update_skips_invalid_entries(cart_service, seed):
    tshirt = await cart_service.add(seed.user_id, seed.tshirt_id, 1)
    jacket = await cart_service.add(seed.user_id, seed.jacket_id, 1)

    updated = await cart_service.batch_update(seed.user_id, [
        {"id": tshirt["id"], "quantity": 3},
        {"id": jacket["id"], "is_selected": False},
        {"id": 9999, "quantity": 2},
        {"id": tshirt["id"] + 1000, "is_selected": True},
    ])
    assert updated == 2

    cart = {i["id"]: i for i in (await cart_service.get_cart(seed.user_id))["items"]}
    assert cart[tshirt["id"]]["quantity"] == 3
    assert cart[jacket["id"]]["is_selected"] is False

    # 超出库存的数量被忽略
    assert await cart_service.batch_update(seed.user_id, [{"id": tshirt["id"], "quantity": 50}]) == 0


@pytest.mark.asyncio
async def test_remove_clear_and_count(cart_service, seed):
    tshirt = await cart_service.add(seed.user_id, seed.tshirt_id, 2)
    await cart_service.add(seed.user_id, seed.jacket_id, 3)
    await cart_service.add(seed.other_user_id, seed.tshirt_id, 1)

    assert await cart_service.count(seed.user_id) == 5

    assert await cart_service.remove(seed.user_id, [tshirt["id"]]) == 1
    assert await cart_service.count(seed.user_id) == 3

    with pytest.raises(NotFoundError):
        await cart_service.remove(seed.user_id, [tshirt["id"]])

    assert await cart_service.clear(seed.user_id) == 1
    assert await cart_service.count(seed.user_id) == 0
    assert await cart_service.count(seed.other_user_id) == 1
