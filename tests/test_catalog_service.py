"""
商品目录服务测试
"""
from decimal import Decimal

import pytest

from wm_core.utils.errors import ConflictError, NotFoundError, ValidationError


def sku(code, price="10.00", stock=5, **specs):
    return {"sku_code": code, "price": Decimal(price), "stock": stock, "specifications": specs}


@pytest.mark.asyncio
async def test_list_products_filters_and_sorting(catalog_service, seed):
    page = await catalog_service.list_products()
    assert page["total"] == 2
    assert "skus" not in page["items"][0]

    hot = await catalog_service.list_products(is_hot=True)
    assert [p["id"] for p in hot["items"]] == [seed.tshirt_id]

    by_keyword = await catalog_service.list_products(keyword="秋季")
    assert [p["id"] for p in by_keyword["items"]] == [seed.jacket_id]

    cheap = await catalog_service.list_products(max_price=Decimal("100"))
    assert [p["id"] for p in cheap["items"]] == [seed.tshirt_id]

    by_price = await catalog_service.list_products(sort_by="price_desc")
    assert [p["id"] for p in by_price["items"]] == [seed.jacket_id, seed.tshirt_id]

    paged = await catalog_service.list_products(sort_by="price_asc", page=2, page_size=1)
    assert [p["id"] for p in paged["items"]] == [seed.jacket_id]
    assert paged["has_previous"] is True
    assert paged["has_next"] is False


@pytest.mark.asyncio
async def test_get_product_with_skus(catalog_service, seed):
    product = await catalog_service.get_product(seed.jacket_id)

    assert product["category_name"] == "服装"
    assert len(product["skus"]) == 1
    assert product["skus"][0]["specifications"] == {"颜色": "红色", "尺码": "L"}

    tshirt = await catalog_service.get_product(seed.tshirt_id)
    assert tshirt["image_urls"] == ["https://img.example.com/tshirt-1.jpg"]

    with pytest.raises(NotFoundError):
        await catalog_service.get_product(9999)


@pytest.mark.asyncio
async def test_create_and_update_product_skus(catalog_service, seed):
    created = await catalog_service.create_product({
        "name": "运动鞋",
        "price": Decimal("299"),
        "stock": 0,
        "category_id": seed.category_id,
        "image_urls": ["https://img.example.com/shoe.jpg"],
        "skus": [sku("SHOE-40", 颜色="白"), sku("SHOE-41", 颜色="白")],
    })

    assert created["price"] == Decimal("299.00")
    assert {s["sku_code"] for s in created["skus"]} == {"SHOE-40", "SHOE-41"}

    updated = await catalog_service.update_product(created["id"], {
        "name": "跑步鞋",
        "skus": [sku("SHOE-41", price="288.00", stock=3), sku("SHOE-42")],
    })

    assert updated["name"] == "跑步鞋"
    skus = {s["sku_code"]: s for s in updated["skus"]}
    # 未出现在新集合中的 SKU 已下架
    assert set(skus) == {"SHOE-41", "SHOE-42"}
    assert skus["SHOE-41"]["price"] == Decimal("288.00")
    assert skus["SHOE-41"]["stock"] == 3


@pytest.mark.asyncio
async def test_product_validation(catalog_service, seed):
    with pytest.raises(ValidationError):
        await catalog_service.create_product({"name": "缺少价格", "category_id": seed.category_id})
    with pytest.raises(NotFoundError):
        await catalog_service.create_product({"name": "无分类", "price": Decimal("1"), "category_id": 9999})
    with pytest.raises(ValidationError):
        await catalog_service.create_product({
            "name": "重复编码", "price": Decimal("1"), "category_id": seed.category_id,
            "skus": [sku("DUP"), sku("DUP")],
        })
    with pytest.raises(ConflictError):
        await catalog_service.create_product({
            "name": "编码已占用", "price": Decimal("1"), "category_id": seed.category_id,
            "skus": [sku("JACKET-RED-L")],
        })


@pytest.mark.asyncio
async def test_update_with_null_required_fields_keeps_values(catalog_service, seed):
    updated = await catalog_service.update_product(seed.tshirt_id, {
        "name": None,
        "price": None,
        "stock": None,
        "description": None,
    })

    assert updated["name"] == "纯棉T恤"
    assert updated["price"] == Decimal("50.00")
    assert updated["stock"] == 5
    # 可空列允许清空
    assert updated["description"] is None

    category = await catalog_service.update_category(seed.category_id, {"name": None, "sort_order": None})
    assert category["name"] == "服装"
    assert category["sort_order"] == 1


@pytest.mark.asyncio
async def test_delete_product_is_soft(catalog_service, seed):
    await catalog_service.delete_product(seed.tshirt_id)

    with pytest.raises(NotFoundError):
        await catalog_service.get_product(seed.tshirt_id)
    assert (await catalog_service.list_products())["total"] == 1


@pytest.mark.asyncio
async def test_categories(catalog_service, seed):
    child = await catalog_service.create_category({"name": "男装", "parent_id": seed.category_id})
    assert child["parent_id"] == seed.category_id

    parent = await catalog_service.get_category(seed.category_id)
    assert parent["product_count"] == 2
    assert [c["id"] for c in parent["children"]] == [child["id"]]

    assert len(await catalog_service.list_categories()) == 2

    renamed = await catalog_service.update_category(child["id"], {"name": "男士服装"})
    assert renamed["name"] == "男士服装"

    with pytest.raises(ValidationError):
        await catalog_service.update_category(child["id"], {"parent_id": child["id"]})

    with pytest.raises(ConflictError) as exc_info:
        await catalog_service.delete_category(seed.category_id)
    assert exc_info.value.code == "CATEGORY_HAS_CHILDREN"

    await catalog_service.delete_category(child["id"])
    with pytest.raises(ConflictError) as exc_info:
        await catalog_service.delete_category(seed.category_id)
    assert exc_info.value.code == "CATEGORY_HAS_PRODUCTS"

    with pytest.raises(NotFoundError):
        await catalog_service.get_category(child["id"])
