"""
认证服务
小程序登录（code 换取 open_id）与 JWT 访问令牌
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from uuid import uuid4

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from wm_core.models.users import User
from wm_core.utils.errors import UnauthorizedError, NotFoundError, ValidationError
from .base import BaseService, RepositoryMixin

# 登录时允许同步的资料字段
PROFILE_FIELDS = [
    "nick_name", "avatar_url", "gender", "country", "province", "city", "phone", "email"
]


def serialize_user(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "open_id": user.open_id,
        "nick_name": user.nick_name,
        "avatar_url": user.avatar_url,
        "gender": user.gender,
        "country": user.country,
        "province": user.province,
        "city": user.city,
        "phone": user.phone,
        "email": user.email,
        "created_at": user.created_at,
    }


class AuthService(BaseService, RepositoryMixin):
    """认证服务"""

    # ========== JWT处理 ==========

    @property
    def access_token_expire(self) -> timedelta:
        return timedelta(days=self.settings.access_token_expire_days)

    def create_access_token(self, user: User) -> str:
        """创建访问令牌"""
        expire = datetime.now(timezone.utc) + self.access_token_expire
        to_encode = {
            "sub": str(user.id),
            "open_id": user.open_id,
            "exp": expire,
            "type": "access",
            "jti": str(uuid4()),
        }
        return jwt.encode(to_encode, self.settings.secret_key, algorithm=self.settings.algorithm)

    def decode_token(self, token: str) -> dict:
        """解码JWT令牌"""
        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.algorithm]
            )
        except JWTError as e:
            raise UnauthorizedError(
                code="INVALID_TOKEN",
                detail=f"Token validation failed: {str(e)}"
            )

        if payload.get("type") != "access" or not str(payload.get("sub", "")).isdigit():
            raise UnauthorizedError(code="INVALID_TOKEN", detail="Invalid token payload")
        return payload

    def user_id_from_token(self, token: str) -> int:
        return int(self.decode_token(token)["sub"])

    # ========== 登录 ==========

    def exchange_code(self, code: str) -> str:
        """模拟小程序 code2session，返回 open_id"""
        if not code or not code.strip():
            raise ValidationError(code="INVALID_LOGIN_CODE", detail="登录凭证不能为空")
        return f"{self.settings.wechat_openid_prefix}{code.strip()}"

    async def login(self, code: str, profile: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """登录：查找或创建用户，刷新资料并签发令牌"""
        open_id = self.exchange_code(code)
        profile = self.sanitize_input(profile or {}, PROFILE_FIELDS)

        async def _login(session: AsyncSession):
            result = await session.execute(select(User).where(User.open_id == open_id))
            user = result.scalar_one_or_none()

            if user is None:
                user = await self.create(session, User, {"open_id": open_id, **profile})
                self.logger.info("User registered", user_id=user.id)
            else:
                if not user.is_active:
                    raise UnauthorizedError(code="USER_INACTIVE", detail="用户已被禁用")
                await self.update(session, user, {k: v for k, v in profile.items() if v is not None})

            return user

        user = await self.execute_with_transaction(_login)
        self.logger.info("User logged in", user_id=user.id)

        return {
            "token": self.create_access_token(user),
            "token_type": "bearer",
            "expires_in": int(self.access_token_expire.total_seconds()),
            "user": serialize_user(user),
        }

    # ========== 用户资料 ==========

    async def _load_user(self, session: AsyncSession, user_id: int) -> User:
        user = await session.get(User, user_id)
        if user is None or not user.is_active:
            raise NotFoundError(code="USER_NOT_FOUND", resource="用户")
        return user

    async def get_profile(self, user_id: int) -> Dict[str, Any]:
        async def _get(session: AsyncSession):
            return serialize_user(await self._load_user(session, user_id))

        return await self.execute_with_session(_get)

    async def update_profile(self, user_id: int, data: Dict[str, Any]) -> Dict[str, Any]:
        """更新资料，仅更新传入的非空字段"""
        changes = {k: v for k, v in self.sanitize_input(data, PROFILE_FIELDS).items() if v is not None}

        async def _update(session: AsyncSession):
            user = await self._load_user(session, user_id)
            await self.update(session, user, changes)
            return serialize_user(user)

        return await self.execute_with_transaction(_update)
