"""
收货地址服务测试
"""
import pytest

from wm_core.models import UserAddress
from wm_core.utils.errors import NotFoundError, ValidationError

ADDRESS = {
    "receiver_name": "李四",
    "phone": "13900139000",
    "province": "北京市",
    "city": "北京市",
    "district": "海淀区",
    "detail_address": "中关村大街1号",
    "postal_code": "100080",
}


async def count_defaults(helpers, db_manager, user_id):
    return await helpers.count_rows(db_manager, UserAddress, user_id=user_id, is_default=True)


@pytest.mark.asyncio
async def test_first_address_becomes_default(address_service, seed):
    created = await address_service.create_address(seed.other_user_id, dict(ADDRESS))

    assert created["is_default"] is True
    assert created["full_address"] == "北京市北京市海淀区中关村大街1号"


@pytest.mark.asyncio
async def test_create_default_replaces_previous(address_service, seed, db_manager, helpers):
    second = await address_service.create_address(seed.user_id, {**ADDRESS, "is_default": True})

    assert second["is_default"] is True
    assert await count_defaults(helpers, db_manager, seed.user_id) == 1
    assert (await address_service.get_default(seed.user_id))["id"] == second["id"]

    listed = await address_service.list_addresses(seed.user_id)
    assert [a["id"] for a in listed] == [second["id"], seed.address_id]


@pytest.mark.asyncio
async def test_set_default_leaves_exactly_one(address_service, seed, db_manager, helpers):
    second = await address_service.create_address(seed.user_id, dict(ADDRESS))
    assert second["is_default"] is False

    await address_service.set_default(seed.user_id, second["id"])
    assert await count_defaults(helpers, db_manager, seed.user_id) == 1
    assert (await address_service.get_default(seed.user_id))["id"] == second["id"]

    await address_service.set_default(seed.user_id, seed.address_id)
    assert await count_defaults(helpers, db_manager, seed.user_id) == 1
    assert (await address_service.get_default(seed.user_id))["id"] == seed.address_id


@pytest.mark.asyncio
async def test_update_address(address_service, seed, db_manager, helpers):
    second = await address_service.create_address(seed.user_id, dict(ADDRESS))

    updated = await address_service.update_address(
        seed.user_id, second["id"], {"detail_address": "中关村大街2号", "is_default": True}
    )

    assert updated["detail_address"] == "中关村大街2号"
    assert updated["receiver_name"] == "李四"
    assert updated["is_default"] is True
    assert await count_defaults(helpers, db_manager, seed.user_id) == 1


@pytest.mark.asyncio
async def test_validation_and_ownership(address_service, seed):
    with pytest.raises(ValidationError) as exc_info:
        await address_service.create_address(seed.user_id, {**ADDRESS, "phone": "12345"})
    assert exc_info.value.code == "INVALID_PHONE"

    with pytest.raises(ValidationError) as exc_info:
        await address_service.create_address(seed.user_id, {**ADDRESS, "postal_code": "abc"})
    assert exc_info.value.code == "INVALID_POSTAL_CODE"

    with pytest.raises(ValidationError):
        await address_service.create_address(seed.user_id, {"receiver_name": "李四"})

    with pytest.raises(NotFoundError):
        await address_service.get_address(seed.other_user_id, seed.address_id)
    with pytest.raises(NotFoundError):
        await address_service.set_default(seed.other_user_id, seed.address_id)


@pytest.mark.asyncio
async def test_delete_address(address_service, seed):
    await address_service.delete_address(seed.user_id, seed.address_id)

    assert await address_service.list_addresses(seed.user_id) == []
    assert await address_service.get_default(seed.user_id) is None
    with pytest.raises(NotFoundError):
        await address_service.delete_address(seed.user_id, seed.address_id)
