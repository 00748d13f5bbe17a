"""
收货地址服务
每个用户至多一个默认地址；修改默认地址时在同一事务内清除旧的默认标记
"""
import re
from typing import Optional, Dict, Any, List

from sqlalchemy import select, update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from wm_core.models.users import User, UserAddress
from wm_core.utils.errors import NotFoundError, ValidationError
from .base import BaseService, RepositoryMixin

PHONE_PATTERN = re.compile(r"^1[3-9]\d{9}$")
POSTCODE_PATTERN = re.compile(r"^\d{6}$")

ADDRESS_FIELDS = [
    "receiver_name", "phone", "province", "city", "district", "detail_address", "postal_code",
]


def serialize_address(address: UserAddress) -> Dict[str, Any]:
    return {
        "id": address.id,
        "receiver_name": address.receiver_name,
        "phone": address.phone,
        "province": address.province,
        "city": address.city,
        "district": address.district,
        "detail_address": address.detail_address,
        "postal_code": address.postal_code,
        "full_address": address.full_address,
        "is_default": address.is_default,
        "created_at": address.created_at,
    }


class AddressService(BaseService, RepositoryMixin):
    """收货地址服务"""

    def _validate(self, data: Dict[str, Any]) -> None:
        phone = data.get("phone")
        if phone is not None and not PHONE_PATTERN.match(phone):
            raise ValidationError(code="INVALID_PHONE", detail="手机号格式不正确")
        postal_code = data.get("postal_code")
        if postal_code and not POSTCODE_PATTERN.match(postal_code):
            raise ValidationError(code="INVALID_POSTAL_CODE", detail="邮编格式不正确")

    async def _lock_user(self, session: AsyncSession, user_id: int) -> None:
        """锁定用户行，串行化同一用户的默认地址变更"""
        await session.execute(select(User.id).where(User.id == user_id).with_for_update())

    async def _clear_default(self, session: AsyncSession, user_id: int, keep_id: Optional[int] = None) -> None:
        stmt = sql_update(UserAddress).where(
            UserAddress.user_id == user_id,
            UserAddress.is_default.is_(True),
        )
        if keep_id is not None:
            stmt = stmt.where(UserAddress.id != keep_id)
        await session.execute(
            stmt.values(is_default=False).execution_options(synchronize_session=False)
        )

    async def _load(self, session: AsyncSession, user_id: int, address_id: int) -> UserAddress:
        address = await self.get_owned(session, UserAddress, address_id, user_id)
        if address is None:
            raise NotFoundError(code="ADDRESS_NOT_FOUND", resource="收货地址")
        return address

    async def list_addresses(self, user_id: int) -> List[Dict[str, Any]]:
        """默认地址在前，其余按创建时间倒序"""
        async def _list(session: AsyncSession):
            result = await session.execute(
                select(UserAddress)
                .where(UserAddress.user_id == user_id)
                .order_by(UserAddress.is_default.desc(), UserAddress.created_at.desc(), UserAddress.id.desc())
            )
            return [serialize_address(a) for a in result.scalars().all()]

        return await self.execute_with_session(_list)

    async def get_default(self, user_id: int) -> Optional[Dict[str, Any]]:
        async def _get(session: AsyncSession):
            address = await self.find_default(session, user_id)
            return serialize_address(address) if address else None

        return await self.execute_with_session(_get)

    async def find_default(self, session: AsyncSession, user_id: int) -> Optional[UserAddress]:
        """在调用方会话内查找默认地址"""
        result = await session.execute(
            select(UserAddress)
            .where(UserAddress.user_id == user_id, UserAddress.is_default.is_(True))
            .order_by(UserAddress.updated_at.desc(), UserAddress.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_address(self, user_id: int, address_id: int) -> Dict[str, Any]:
        async def _get(session: AsyncSession):
            return serialize_address(await self._load(session, user_id, address_id))

        return await self.execute_with_session(_get)

    async def create_address(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """新增地址；用户的第一个地址自动成为默认地址"""
        self.validate_required_fields(
            data, ["receiver_name", "phone", "province", "city", "district", "detail_address"]
        )
        self._validate(data)

        async def _create(session: AsyncSession):
            await self._lock_user(session, user_id)
            is_default = bool(data.get("is_default")) or not await self.exists(
                session, UserAddress, user_id=user_id
            )
            if is_default:
                await self._clear_default(session, user_id)

            address = await self.create(session, UserAddress, {
                **self.sanitize_input(data, ADDRESS_FIELDS),
                "user_id": user_id,
                "is_default": is_default,
            })
            self.logger.info("Address created", address_id=address.id, is_default=is_default)
            return serialize_address(address)

        return await self.execute_with_transaction(_create)

    async def update_address(self, user_id: int, address_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        self._validate(data)

        async def _update(session: AsyncSession):
            await self._lock_user(session, user_id)
            address = await self._load(session, user_id, address_id)

            changes = {k: v for k, v in self.sanitize_input(data, ADDRESS_FIELDS).items() if v is not None}
            if data.get("is_default") is not None:
                if data["is_default"]:
                    await self._clear_default(session, user_id, keep_id=address.id)
                changes["is_default"] = bool(data["is_default"])

            await self.update(session, address, changes)
            return serialize_address(address)

        return await self.execute_with_transaction(_update)

    async def delete_address(self, user_id: int, address_id: int) -> None:
        async def _delete(session: AsyncSession):
            address = await self._load(session, user_id, address_id)
            await session.delete(address)
            await session.flush()
            self.logger.info("Address deleted", address_id=address_id)

        await self.execute_with_transaction(_delete)

    async def set_default(self, user_id: int, address_id: int) -> Dict[str, Any]:
        """设为默认地址，完成后该用户恰有一个默认地址"""
        async def _set(session: AsyncSession):
            await self._lock_user(session, user_id)
            address = await self._load(session, user_id, address_id)
            await self._clear_default(session, user_id, keep_id=address.id)
            await self.update(session, address, {"is_default": True})
            return serialize_address(address)

        return await self.execute_with_transaction(_set)
