"""
用户与收货地址模型
"""
from datetime import datetime
from typing import Optional

from sqlalchemy import Integer, Text, Boolean, ForeignKey, Index, SmallInteger
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utc_now


class User(Base):
    """小程序用户"""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # 登录凭证换取的身份标识
    open_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True, comment="小程序 OpenID")
    union_id: Mapped[Optional[str]] = mapped_column(Text, comment="开放平台 UnionID")

    # 资料
    nick_name: Mapped[Optional[str]] = mapped_column(Text, comment="昵称")
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, comment="头像")
    gender: Mapped[int] = mapped_column(SmallInteger, nullable=False, default=0, comment="0未知 1男 2女")
    country: Mapped[Optional[str]] = mapped_column(Text)
    province: Mapped[Optional[str]] = mapped_column(Text)
    city: Mapped[Optional[str]] = mapped_column(Text)
    phone: Mapped[Optional[str]] = mapped_column(Text, comment="手机号")
    email: Mapped[Optional[str]] = mapped_column(Text)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, open_id={self.open_id})>"


class UserAddress(Base):
    """收货地址，每个用户至多一个默认地址"""
    __tablename__ = "user_addresses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    receiver_name: Mapped[str] = mapped_column(Text, nullable=False, comment="收货人")
    phone: Mapped[str] = mapped_column(Text, nullable=False, comment="联系电话")
    province: Mapped[str] = mapped_column(Text, nullable=False)
    city: Mapped[str] = mapped_column(Text, nullable=False)
    district: Mapped[str] = mapped_column(Text, nullable=False)
    detail_address: Mapped[str] = mapped_column(Text, nullable=False)
    postal_code: Mapped[Optional[str]] = mapped_column(Text, comment="6位邮编")
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(nullable=False, default=utc_now, onupdate=utc_now)

    __table_args__ = (
        Index("ix_user_addresses_user_default", "user_id", "is_default"),
    )

    @property
    def full_address(self) -> str:
        return f"{self.province}{self.city}{self.district}{self.detail_address}"

    def __repr__(self) -> str:
        return f"<UserAddress(id={self.id}, user_id={self.user_id}, default={self.is_default})>"
